"""Run the PM5 emulator.

Usage:
  python -m pm5_emulator                         # advertise over BLE
  python -m pm5_emulator --replay-log ride.erg    # replay a capture on 0x0080
  python -m pm5_emulator --loopback --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from . import NOTIFY_CHARACTERISTICS, setup_emulator
from .config import ConfigError, EmulatorConfig, load_config, load_config_file
from .const import (
    CHAR_0080,
    CHARACTERISTIC_NAMES,
    CONF_DEVICE_NAME,
    CONF_LOG_LEVEL,
    CONF_REPLAY_LOG,
    CONF_SEED,
    CONF_STATUS_RATE,
)
from .frame_parser import FrameError, parse_frame, parse_multiplexed
from .transport import LoopbackTransport, Sink

_LOGGER = logging.getLogger("pm5_emulator")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pm5_emulator", description="Concept2 PM5 BLE rowing service emulator"
    )
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--name", dest=CONF_DEVICE_NAME, help="advertised device name")
    parser.add_argument("--replay-log", dest=CONF_REPLAY_LOG, help="replay log path")
    parser.add_argument(
        "--no-replay", action="store_true", help="disable multiplexed replay"
    )
    parser.add_argument(
        "--status-rate",
        dest=CONF_STATUS_RATE,
        type=int,
        help="initial status sample rate (0=1s, 1=500ms, 2=250ms, 3=100ms)",
    )
    parser.add_argument("--seed", dest=CONF_SEED, type=int, help="random seed")
    parser.add_argument("--log-level", dest=CONF_LOG_LEVEL, help="logging level")
    parser.add_argument(
        "--loopback",
        action="store_true",
        help="subscribe in-process and log decoded frames instead of advertising",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> EmulatorConfig:
    data: dict = {}
    if args.config:
        data.update(vars(load_config_file(args.config)))

    for key in (
        CONF_DEVICE_NAME,
        CONF_REPLAY_LOG,
        CONF_STATUS_RATE,
        CONF_SEED,
        CONF_LOG_LEVEL,
    ):
        value = getattr(args, key)
        if value is not None:
            data[key] = value

    if args.no_replay:
        data[CONF_REPLAY_LOG] = None

    return load_config(data)


def _monitor_sink(char: int) -> Sink:
    name = CHARACTERISTIC_NAMES.get(char, hex(char))

    def write(data: bytes) -> None:
        try:
            if char == CHAR_0080:
                cmd, values = parse_multiplexed(data)
                _LOGGER.info("%s [0x%02x] %s", name, cmd, values or data.hex())
            else:
                _LOGGER.info("%s %s", name, parse_frame(char, data) or data.hex())
        except FrameError as err:
            _LOGGER.warning("%s undecodable frame: %s", name, err)

    return write


async def run_loopback(config: EmulatorConfig) -> None:
    transport = LoopbackTransport()
    emulator = setup_emulator(transport, config)
    for char in (*NOTIFY_CHARACTERISTICS, CHAR_0080):
        transport.subscribe(char, _monitor_sink(char))

    try:
        await asyncio.Event().wait()
    finally:
        await emulator.stop()


async def run_ble(config: EmulatorConfig) -> None:
    from .bless_transport import BlessTransport

    transport = BlessTransport(config.device_name)
    emulator = setup_emulator(transport, config)
    await transport.start()
    try:
        await asyncio.Event().wait()
    finally:
        await transport.stop()
        await emulator.stop()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
    except ConfigError as err:
        print(f"Invalid configuration: {err}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    runner = run_loopback if args.loopback else run_ble
    try:
        asyncio.run(runner(config))
    except KeyboardInterrupt:
        _LOGGER.info("Shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
