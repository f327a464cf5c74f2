"""Transport seam between the emulator core and a GATT server."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Protocol, Union

from .codec import c2_uuid
from .const import CHARACTERISTIC_NAMES

_LOGGER = logging.getLogger(__name__)

Sink = Callable[[bytes], Union[Awaitable[None], None]]
SubscribeHandler = Callable[[Sink], None]
UnsubscribeHandler = Callable[[], None]
ReadHandler = Callable[[], bytes]
WriteHandler = Callable[[bytes], bool]


class SinkWriteError(Exception):
    """The transport could not deliver a notification."""


async def write_to_sink(sink: Sink, data: bytes) -> None:
    """Call a sink that may be a plain function or a coroutine function."""
    result = sink(data)
    if inspect.isawaitable(result):
        await result


class GattTransport(Protocol):
    """What the emulator needs from the BLE layer."""

    def register_characteristic(
        self,
        char: int,
        on_subscribe: SubscribeHandler,
        on_unsubscribe: UnsubscribeHandler,
    ) -> None: ...

    def register_read_handler(self, char: int, fn: ReadHandler) -> None: ...

    def register_write_handler(self, char: int, fn: WriteHandler) -> None: ...


class LoopbackTransport:
    """In-process transport: a harness plays the part of the BLE client.

    Subscribing hands the given sink to the emulator exactly as a GATT server
    would when a client enables notifications.
    """

    def __init__(self) -> None:
        self._notify: dict[int, tuple[SubscribeHandler, UnsubscribeHandler]] = {}
        self._read: dict[int, ReadHandler] = {}
        self._write: dict[int, WriteHandler] = {}

    # ---------- GattTransport ----------
    def register_characteristic(
        self,
        char: int,
        on_subscribe: SubscribeHandler,
        on_unsubscribe: UnsubscribeHandler,
    ) -> None:
        self._notify[char] = (on_subscribe, on_unsubscribe)

    def register_read_handler(self, char: int, fn: ReadHandler) -> None:
        self._read[char] = fn

    def register_write_handler(self, char: int, fn: WriteHandler) -> None:
        self._write[char] = fn

    # ---------- Client side ----------
    @property
    def characteristics(self) -> list[int]:
        return sorted(self._notify)

    def subscribe(self, char: int, sink: Sink) -> None:
        try:
            on_subscribe, _ = self._notify[char]
        except KeyError:
            raise KeyError(f"Characteristic not registered: {c2_uuid(char)}") from None
        _LOGGER.debug(
            "Loopback subscribe %s", CHARACTERISTIC_NAMES.get(char, hex(char))
        )
        on_subscribe(sink)

    def unsubscribe(self, char: int) -> None:
        try:
            _, on_unsubscribe = self._notify[char]
        except KeyError:
            raise KeyError(f"Characteristic not registered: {c2_uuid(char)}") from None
        _LOGGER.debug(
            "Loopback unsubscribe %s", CHARACTERISTIC_NAMES.get(char, hex(char))
        )
        on_unsubscribe()

    def read(self, char: int) -> bytes:
        return self._read[char]()

    def write(self, char: int, data: bytes) -> bool:
        return self._write[char](data)
