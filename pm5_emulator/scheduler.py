from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .const import (
    CHARACTERISTIC_NAMES,
    DELAYED_FIRST_NOTIFY,
    NOTIFY_INTERVAL_MS,
    STATUS_CHARACTERISTICS,
)
from .engine import TelemetryEngine
from .transport import Sink, write_to_sink

_LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def _name(char: int) -> str:
    return CHARACTERISTIC_NAMES.get(char, hex(char))


class NotificationScheduler:
    """One repeating notify task per subscribed characteristic.

    A characteristic is Idle until a client subscribes, Active while its task
    runs, and back to Idle when the client unsubscribes or the sink fails.
    Waits are measured from the end of the previous send, so ticks drift
    rather than align to the wall clock.
    """

    def __init__(self, engine: TelemetryEngine, sleep: Sleep = asyncio.sleep) -> None:
        self.engine = engine
        self._sleep = sleep
        self._tasks: dict[int, asyncio.Task] = {}

    def interval_ms(self, char: int) -> int:
        if char in STATUS_CHARACTERISTICS:
            return self.engine.status_delay_ms()
        return NOTIFY_INTERVAL_MS[char]

    def is_active(self, char: int) -> bool:
        task = self._tasks.get(char)
        return task is not None and not task.done()

    def subscribe(self, char: int, sink: Sink) -> asyncio.Task:
        """Start notifying `char` into `sink`. Must run inside an event loop."""
        if char not in STATUS_CHARACTERISTICS and char not in NOTIFY_INTERVAL_MS:
            raise ValueError(f"Characteristic {hex(char)} is not schedulable")

        self.unsubscribe(char)

        _LOGGER.info("%s notify request", _name(char))
        task = asyncio.get_running_loop().create_task(self._notify_loop(char, sink))
        self._tasks[char] = task
        task.add_done_callback(lambda t, c=char: self._forget(c, t))
        return task

    def unsubscribe(self, char: int) -> None:
        task = self._tasks.pop(char, None)
        if task is None or task.done():
            return
        _LOGGER.info("%s unsubscribed", _name(char))
        task.cancel()

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _forget(self, char: int, task: asyncio.Task) -> None:
        if self._tasks.get(char) is task:
            del self._tasks[char]

    async def _notify_loop(self, char: int, sink: Sink) -> None:
        if char in DELAYED_FIRST_NOTIFY:
            await self._sleep(self.interval_ms(char) / 1000)

        while True:
            frame = self.engine.build_frame(char)
            try:
                await write_to_sink(sink, frame)
            except Exception as err:
                _LOGGER.warning(
                    "%s notify failed; stopping notifications: %s", _name(char), err
                )
                return

            _LOGGER.debug("%s notify: %s", _name(char), frame.hex())
            await self._sleep(self.interval_ms(char) / 1000)
