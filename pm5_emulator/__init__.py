"""Concept2 PM5 rowing service emulator."""

from __future__ import annotations

import asyncio
import logging

from .config import ConfigError, EmulatorConfig, load_config, load_config_file
from .const import (
    CHAR_0034,
    CHAR_0080,
    CHARACTERISTIC_NAMES,
    NOTIFY_INTERVAL_MS,
    STATUS_CHARACTERISTICS,
)
from .codec import DecodeError, decode_hex, encode_le
from .engine import Session, TelemetryEngine
from .replay import ReplayEvent, ReplayLog, ReplayLogUnavailable, ReplayPlayer
from .scheduler import NotificationScheduler, Sleep
from .transport import GattTransport, LoopbackTransport, Sink, SinkWriteError

_LOGGER = logging.getLogger(__name__)

NOTIFY_CHARACTERISTICS = sorted((*STATUS_CHARACTERISTICS, *NOTIFY_INTERVAL_MS))


class PM5Emulator:
    """Wires the telemetry engine, notify scheduler and replay player to a transport."""

    def __init__(
        self,
        transport: GattTransport,
        engine: TelemetryEngine,
        replay_log: ReplayLog | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.engine = engine
        self.replay_log = replay_log
        self.scheduler = NotificationScheduler(engine, sleep=sleep)
        self._sleep = sleep
        self._player: ReplayPlayer | None = None

    def register(self) -> None:
        for char in NOTIFY_CHARACTERISTICS:
            self.transport.register_characteristic(
                char,
                lambda sink, c=char: self.scheduler.subscribe(c, sink),
                lambda c=char: self.scheduler.unsubscribe(c),
            )

        self.transport.register_characteristic(
            CHAR_0080, self._start_replay, self._stop_replay
        )

        self.transport.register_read_handler(CHAR_0034, self._read_status_rate)
        self.transport.register_write_handler(CHAR_0034, self._write_status_rate)

    async def stop(self) -> None:
        player = self._player
        self._stop_replay()
        await self.scheduler.stop()
        if player is not None and player.task is not None:
            await asyncio.gather(player.task, return_exceptions=True)

    # ---------- 0x0034 sample rate ----------
    def _read_status_rate(self) -> bytes:
        _LOGGER.info("Sample Rate read request")
        return encode_le(self.engine.status_rate, 1)

    def _write_status_rate(self, data: bytes) -> bool:
        """Always reports success back to the client, as a PM5 does."""
        _LOGGER.info("Sample Rate write request: %s", bytes(data).hex())
        if not data:
            _LOGGER.error("Sample Rate write request carried no data")
            return True
        if len(data) > 1:
            _LOGGER.error("Sample Rate write request received more than one byte")

        self.engine.status_rate = data[0]
        return True

    # ---------- 0x0080 multiplexed info ----------
    def _start_replay(self, sink: Sink) -> None:
        _LOGGER.info("%s notify request", CHARACTERISTIC_NAMES[CHAR_0080])
        if self.replay_log is None:
            _LOGGER.warning("Replay disabled; no multiplexed data will be sent")
            return

        self._stop_replay()
        self._player = ReplayPlayer(self.replay_log, sink, sleep=self._sleep)
        self._player.start()

    def _stop_replay(self) -> None:
        if self._player is not None:
            self._player.cancel()
            self._player = None


def setup_emulator(
    transport: GattTransport,
    config: EmulatorConfig,
    sleep: Sleep = asyncio.sleep,
) -> PM5Emulator:
    engine = TelemetryEngine(status_rate=config.status_rate, seed=config.seed)

    replay_log = None
    if config.replay_log:
        try:
            replay_log = ReplayLog.open(config.replay_log)
        except ReplayLogUnavailable as err:
            _LOGGER.error("%s; replay disabled", err)

    emulator = PM5Emulator(transport, engine, replay_log, sleep=sleep)
    emulator.register()
    return emulator


__all__ = [
    "ConfigError",
    "DecodeError",
    "EmulatorConfig",
    "GattTransport",
    "LoopbackTransport",
    "NotificationScheduler",
    "PM5Emulator",
    "ReplayEvent",
    "ReplayLog",
    "ReplayLogUnavailable",
    "ReplayPlayer",
    "Session",
    "SinkWriteError",
    "TelemetryEngine",
    "decode_hex",
    "encode_le",
    "load_config",
    "load_config_file",
    "setup_emulator",
]
