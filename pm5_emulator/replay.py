"""Timed playback of a captured multiplexed-info notification log.

Each line of the log is `<deltaMillis>:<hexPayload>`: wait `deltaMillis`
(never less than 50 ms), then notify the decoded payload.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from .codec import decode_hex
from .const import MULTIPLEXED_MAX_LENGTH, REPLAY_MIN_DELAY_MS
from .scheduler import Sleep
from .transport import Sink, write_to_sink

_LOGGER = logging.getLogger(__name__)


class ReplayLogUnavailable(Exception):
    """Replay log could not be opened."""


@dataclass
class ReplayEvent:
    delta_ms: int
    payload: bytes


def parse_line(line: str) -> ReplayEvent:
    """Parse one `<deltaMillis>:<hexPayload>` line; raises ValueError."""
    delta_text, sep, hex_text = line.strip().partition(":")
    if not sep:
        raise ValueError(f"Missing ':' separator: {line.strip()!r}")
    if not delta_text.isdecimal():
        raise ValueError(f"Invalid delta milliseconds: {delta_text!r}")

    payload = decode_hex(hex_text)
    if len(payload) > MULTIPLEXED_MAX_LENGTH:
        raise ValueError(
            f"Payload of {len(payload)} bytes exceeds {MULTIPLEXED_MAX_LENGTH}"
        )
    return ReplayEvent(int(delta_text), payload)


class ReplayLog:
    """A replay log on disk, read lazily one line at a time per pass."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @classmethod
    def open(cls, path: str | Path) -> ReplayLog:
        """Check the log is readable now so a bad path is reported at startup."""
        try:
            with open(path, encoding="utf-8", errors="replace"):
                pass
        except OSError as err:
            raise ReplayLogUnavailable(f"Cannot open replay log {path}: {err}") from err
        return cls(path)

    def __iter__(self) -> Iterator[str]:
        with open(self.path, encoding="utf-8", errors="replace") as f:
            yield from f


class ReplayPlayer:
    """Forwards each event of a replay log to a sink at its recorded pace.

    One pass only: the player ends at end of log and never rewinds.
    """

    def __init__(
        self,
        lines: Iterable[str],
        sink: Sink,
        sleep: Sleep = asyncio.sleep,
        min_delay_ms: int = REPLAY_MIN_DELAY_MS,
    ) -> None:
        self._lines = lines
        self._sink = sink
        self._sleep = sleep
        self._min_delay_ms = min_delay_ms
        self._task: asyncio.Task | None = None
        self.sent = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def start(self) -> asyncio.Task:
        self._task = asyncio.get_running_loop().create_task(self.play())
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            _LOGGER.info("Replay cancelled after %d events", self.sent)
            self._task.cancel()

    async def play(self) -> int:
        """Play the log through once; returns the number of payloads sent."""
        try:
            for lineno, line in enumerate(self._lines, start=1):
                if not line.strip():
                    continue

                try:
                    event = parse_line(line)
                except ValueError as err:
                    self.skipped += 1
                    _LOGGER.error("Skipping replay line %d: %s", lineno, err)
                    continue

                delay_ms = max(event.delta_ms, self._min_delay_ms)
                _LOGGER.debug("Replay sleeping %d ms", delay_ms)
                await self._sleep(delay_ms / 1000)

                try:
                    await write_to_sink(self._sink, event.payload)
                except Exception as err:
                    _LOGGER.warning("Replay notify failed; stopping playback: %s", err)
                    break

                self.sent += 1
                _LOGGER.debug("Replay notify: %s", event.payload.hex())
        except OSError as err:
            _LOGGER.error("Replay log read failed: %s", err)

        _LOGGER.info(
            "Replay finished: %d sent, %d skipped", self.sent, self.skipped
        )
        return self.sent
