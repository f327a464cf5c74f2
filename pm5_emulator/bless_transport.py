"""GattTransport backed by a real BLE peripheral through bless."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from bless import (
    BlessGATTCharacteristic,
    BlessServer,
    GATTAttributePermissions,
    GATTCharacteristicProperties,
)

from .codec import c2_uuid
from .const import CHAR_0080, CHARACTERISTIC_NAMES, FRAME_LENGTHS, SERVICE_0030
from .transport import (
    ReadHandler,
    Sink,
    SinkWriteError,
    SubscribeHandler,
    UnsubscribeHandler,
    WriteHandler,
)

_LOGGER = logging.getLogger(__name__)

# Started when a central connects and stopped when it leaves
CONNECTION_SCOPED = (CHAR_0080,)

CONNECTION_POLL_INTERVAL = 1.0  # seconds


class BlessTransport:
    """Publishes the PM5 rowing service (0x0030) through bless.

    bless does not report per-client subscriptions. Periodic characteristics
    count as subscribed from start() until stop(), and bless only delivers
    their notifications to centrals that enabled them. Characteristics in
    CONNECTION_SCOPED (the one-pass multiplexed replay) are subscribed when
    a central connects and unsubscribed when the last one disconnects.
    """

    def __init__(
        self,
        name: str,
        poll_interval: float = CONNECTION_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.name = name
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._server: BlessServer | None = None
        self._service_uuid = c2_uuid(SERVICE_0030)
        self._notify: dict[int, tuple[SubscribeHandler, UnsubscribeHandler]] = {}
        self._read: dict[int, ReadHandler] = {}
        self._write: dict[int, WriteHandler] = {}
        self._by_uuid: dict[str, int] = {}
        self._watch_task: asyncio.Task | None = None
        self.connected = False

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

    # ---------- Lifecycle ----------
    async def start(self) -> None:
        server = BlessServer(name=self.name, loop=asyncio.get_running_loop())
        server.read_request_func = self._handle_read
        server.write_request_func = self._handle_write

        await server.add_new_service(self._service_uuid)

        for char in self._notify:
            await server.add_new_characteristic(
                self._service_uuid,
                self._uuid(char),
                GATTCharacteristicProperties.read | GATTCharacteristicProperties.notify,
                bytearray(FRAME_LENGTHS.get(char, 0)),
                GATTAttributePermissions.readable,
            )

        for char in set(self._read) | set(self._write):
            properties = GATTCharacteristicProperties(0)
            permissions = GATTAttributePermissions(0)
            if char in self._read:
                properties |= GATTCharacteristicProperties.read
                permissions |= GATTAttributePermissions.readable
            if char in self._write:
                properties |= GATTCharacteristicProperties.write
                permissions |= GATTAttributePermissions.writeable
            await server.add_new_characteristic(
                self._service_uuid,
                self._uuid(char),
                properties,
                bytearray(self._read[char]() if char in self._read else b""),
                permissions,
            )

        await server.start()
        self._server = server
        _LOGGER.info("Advertising %s", self.name)

        for char, (on_subscribe, _) in self._notify.items():
            if char not in CONNECTION_SCOPED:
                on_subscribe(self._sink(char))

        self._watch_task = asyncio.get_running_loop().create_task(
            self._watch_connections()
        )

    async def stop(self) -> None:
        if self._watch_task is not None:
            self._watch_task.cancel()
            await asyncio.gather(self._watch_task, return_exceptions=True)
            self._watch_task = None

        for char, (_, on_unsubscribe) in self._notify.items():
            if char not in CONNECTION_SCOPED:
                on_unsubscribe()
        if self.connected:
            self._on_disconnect()

        server = self._server
        self._server = None
        if server is not None:
            await server.stop()
            _LOGGER.info("Stopped advertising %s", self.name)

    async def _watch_connections(self) -> None:
        while self._server is not None:
            connected = bool(await self._server.is_connected())
            if connected and not self.connected:
                self._on_connect()
            elif not connected and self.connected:
                self._on_disconnect()
            await self._sleep(self._poll_interval)

    def _on_connect(self) -> None:
        _LOGGER.info("Central connected")
        self.connected = True
        for char in CONNECTION_SCOPED:
            if char in self._notify:
                on_subscribe, _ = self._notify[char]
                on_subscribe(self._sink(char))

    def _on_disconnect(self) -> None:
        _LOGGER.info("Central disconnected")
        self.connected = False
        for char in CONNECTION_SCOPED:
            if char in self._notify:
                _, on_unsubscribe = self._notify[char]
                on_unsubscribe()

    # ---------- Helpers ----------
    def _uuid(self, char: int) -> str:
        uuid = c2_uuid(char)
        self._by_uuid[uuid] = char
        return uuid

    def _lookup(self, characteristic: BlessGATTCharacteristic) -> int | None:
        return self._by_uuid.get(str(characteristic.uuid).lower())

    def _sink(self, char: int) -> Sink:
        uuid = c2_uuid(char)
        name = CHARACTERISTIC_NAMES.get(char, uuid)

        def write(data: bytes) -> None:
            server = self._server
            if server is None:
                raise SinkWriteError("GATT server not running")

            characteristic = server.get_characteristic(uuid)
            if characteristic is None:
                raise SinkWriteError(f"Characteristic missing: {uuid}")

            characteristic.value = bytearray(data)
            # False means the backend's send queue is full; the next tick retries
            if server.update_value(self._service_uuid, uuid) is False:
                _LOGGER.debug("%s notify queue full; frame dropped", name)

        return write

    def _handle_read(
        self, characteristic: BlessGATTCharacteristic, **kwargs: Any
    ) -> bytearray:
        char = self._lookup(characteristic)
        if char in self._read:
            characteristic.value = bytearray(self._read[char]())
        return characteristic.value

    def _handle_write(
        self, characteristic: BlessGATTCharacteristic, value: Any, **kwargs: Any
    ) -> None:
        char = self._lookup(characteristic)
        if char not in self._write:
            _LOGGER.debug("Write to unhandled characteristic %s", characteristic.uuid)
            return

        self._write[char](bytes(value))
        if char in self._read:
            characteristic.value = bytearray(self._read[char]())
        else:
            characteristic.value = bytearray(value)
