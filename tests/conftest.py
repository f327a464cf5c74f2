"""Shared fixtures for the emulator test suite."""

import asyncio

import pytest

from pm5_emulator.engine import TelemetryEngine


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested waits instead of sleeping.

    With block_after set, the Nth call parks the caller forever so a test can
    inspect a loop mid-flight and then cancel it.
    """

    def __init__(self, block_after: int | None = None):
        self.calls: list[float] = []
        self.block_after = block_after
        self.blocked = asyncio.Event()

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.block_after is not None and len(self.calls) >= self.block_after:
            self.blocked.set()
            await asyncio.Event().wait()
        await asyncio.sleep(0)


class RecordingSink:
    def __init__(self):
        self.frames: list[bytes] = []

    def __call__(self, data: bytes) -> None:
        self.frames.append(bytes(data))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    return TelemetryEngine(seed=1234, clock=clock)
