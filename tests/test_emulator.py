# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import logging

from conftest import FakeSleep, RecordingSink
from pm5_emulator import (
    NOTIFY_CHARACTERISTICS,
    LoopbackTransport,
    PM5Emulator,
    load_config,
    setup_emulator,
)
from pm5_emulator.replay import ReplayLog


def make_emulator(engine, sleep=None, replay_log=None):
    transport = LoopbackTransport()
    emulator = PM5Emulator(
        transport, engine, replay_log=replay_log, sleep=sleep or FakeSleep()
    )
    emulator.register()
    return transport, emulator


def test_registers_every_characteristic(engine):
    transport, _ = make_emulator(engine)
    assert transport.characteristics == [
        0x0031, 0x0032, 0x0033, 0x0035, 0x0036, 0x0037,
        0x0038, 0x0039, 0x003A, 0x003B, 0x003D, 0x0080,
    ]
    assert NOTIFY_CHARACTERISTICS == transport.characteristics[:-1]


# ---------------------------------------------------------------------
# 0x0034 sample rate
# ---------------------------------------------------------------------

def test_status_rate_read_reflects_current_value(engine):
    transport, _ = make_emulator(engine)
    assert transport.read(0x0034) == b"\x01"

    engine.status_rate = 2
    assert transport.read(0x0034) == b"\x02"


def test_status_rate_write(engine):
    transport, _ = make_emulator(engine)

    assert transport.write(0x0034, b"\x03") is True
    assert engine.status_rate == 3
    assert engine.status_delay_ms() == 100
    assert transport.read(0x0034) == b"\x03"


def test_status_rate_write_too_long_is_logged_not_rejected(engine, caplog):
    transport, _ = make_emulator(engine)

    with caplog.at_level(logging.ERROR, logger="pm5_emulator"):
        assert transport.write(0x0034, b"\x00\x07") is True

    assert engine.status_rate == 0
    assert "more than one byte" in caplog.text


def test_status_rate_empty_write(engine, caplog):
    transport, _ = make_emulator(engine)

    with caplog.at_level(logging.ERROR, logger="pm5_emulator"):
        assert transport.write(0x0034, b"") is True

    assert engine.status_rate == 1
    assert "no data" in caplog.text


def test_out_of_range_status_rate_falls_back_to_500ms(engine):
    transport, _ = make_emulator(engine)
    transport.write(0x0034, b"\x09")
    assert engine.status_delay_ms() == 500


# ---------------------------------------------------------------------
# Notifications through the transport
# ---------------------------------------------------------------------

def test_subscribe_and_unsubscribe(engine):
    sleep = FakeSleep(block_after=2)
    sink = RecordingSink()

    async def scenario():
        transport, emulator = make_emulator(engine, sleep=sleep)
        transport.subscribe(0x0031, sink)
        await sleep.blocked.wait()
        assert emulator.scheduler.is_active(0x0031)

        transport.unsubscribe(0x0031)
        await asyncio.sleep(0)
        assert not emulator.scheduler.is_active(0x0031)

    asyncio.run(scenario())
    assert len(sink.frames) == 2


def test_multiplexed_subscription_replays_log(engine, tmp_path):
    path = tmp_path / "replaylog.erg"
    path.write_text("10:31AA\n20:32BB\n")
    sleep = FakeSleep()
    sink = RecordingSink()

    async def scenario():
        transport, emulator = make_emulator(
            engine, sleep=sleep, replay_log=ReplayLog.open(path)
        )
        transport.subscribe(0x0080, sink)
        for _ in range(10):
            await asyncio.sleep(0)
        await emulator.stop()

    asyncio.run(scenario())
    assert sink.frames == [b"\x31\xaa", b"\x32\xbb"]
    assert sleep.calls == [0.05, 0.05]


def test_stop_cancels_everything(engine, tmp_path):
    path = tmp_path / "replaylog.erg"
    path.write_text("60:01\n" * 5)
    sleep = FakeSleep(block_after=1)

    async def scenario():
        transport, emulator = make_emulator(
            engine, sleep=sleep, replay_log=ReplayLog.open(path)
        )
        for char in (0x0031, 0x0035, 0x0080):
            transport.subscribe(char, RecordingSink())
        await sleep.blocked.wait()
        player = emulator._player
        assert player.running

        await emulator.stop()
        assert player.task.done()
        assert not player.running
        await asyncio.sleep(0)
        assert not emulator.scheduler.is_active(0x0031)
        assert not emulator.scheduler.is_active(0x0035)

    asyncio.run(scenario())


# ---------------------------------------------------------------------
# setup_emulator
# ---------------------------------------------------------------------

def test_missing_replay_log_disables_replay_only(tmp_path, caplog):
    config = load_config(
        {"replay_log": str(tmp_path / "missing.erg"), "status_rate": 2, "seed": 1}
    )
    sleep = FakeSleep(block_after=1)
    sink = RecordingSink()
    mux = RecordingSink()

    async def scenario():
        transport = LoopbackTransport()
        with caplog.at_level(logging.ERROR, logger="pm5_emulator"):
            emulator = setup_emulator(transport, config, sleep=sleep)
        assert emulator.replay_log is None

        transport.subscribe(0x0080, mux)
        transport.subscribe(0x0033, sink)
        await sleep.blocked.wait()
        await emulator.stop()

    asyncio.run(scenario())

    assert "replay disabled" in caplog.text
    assert caplog.text.count("Cannot open replay log") == 1
    assert mux.frames == []
    assert len(sink.frames) == 1
    assert sleep.calls == [0.25]


def test_setup_without_replay():
    config = load_config({"replay_log": None})
    emulator = setup_emulator(LoopbackTransport(), config)
    assert emulator.replay_log is None
    assert emulator.engine.status_rate == 1
