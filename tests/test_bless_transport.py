# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import logging

import pytest

from conftest import FakeSleep
from pm5_emulator import PM5Emulator
from pm5_emulator import bless_transport
from pm5_emulator.bless_transport import BlessTransport
from pm5_emulator.codec import c2_uuid
from pm5_emulator.replay import ReplayLog
from pm5_emulator.scheduler import NotificationScheduler
from pm5_emulator.transport import SinkWriteError


class FakeCharacteristic:
    def __init__(self, uuid, value):
        self.uuid = uuid
        self.value = value


class FakeBlessServer:
    """Stands in for bless.BlessServer without touching a BLE adapter."""

    instances: list = []

    def __init__(self, name, loop=None, **kwargs):
        self.name = name
        self.characteristics: dict[str, FakeCharacteristic] = {}
        self.client_connected = False
        self.update_results: list[bool] = []
        self.notified: list[tuple[str, bytes]] = []
        self.started = False
        self.stopped = False
        self.read_request_func = None
        self.write_request_func = None
        FakeBlessServer.instances.append(self)

    async def add_new_service(self, uuid):
        self.service_uuid = uuid

    async def add_new_characteristic(self, service, uuid, properties, value, perms):
        self.characteristics[uuid] = FakeCharacteristic(uuid, value)

    async def start(self):
        self.started = True

    async def stop(self):
        self.stopped = True

    async def is_connected(self):
        return self.client_connected

    def get_characteristic(self, uuid):
        return self.characteristics.get(uuid)

    def update_value(self, service, uuid):
        self.notified.append((uuid, bytes(self.characteristics[uuid].value)))
        if self.update_results:
            return self.update_results.pop(0)
        return True

    def sent(self, char):
        return [data for uuid, data in self.notified if uuid == c2_uuid(char)]


@pytest.fixture
def fake_server(monkeypatch):
    FakeBlessServer.instances = []
    monkeypatch.setattr(bless_transport, "BlessServer", FakeBlessServer)
    return FakeBlessServer


async def yield_sleep(seconds):
    await asyncio.sleep(0)


async def spin(turns=10):
    for _ in range(turns):
        await asyncio.sleep(0)


class Recorder:
    def __init__(self):
        self.events = []

    def subscribe(self, sink):
        self.events.append("subscribe")

    def unsubscribe(self):
        self.events.append("unsubscribe")


# ---------------------------------------------------------------------
# Subscription lifecycle
# ---------------------------------------------------------------------


def test_multiplexed_waits_for_a_connected_central(fake_server):
    status, multiplexed = Recorder(), Recorder()

    async def scenario():
        transport = BlessTransport("PM5 test", sleep=yield_sleep)
        transport.register_characteristic(0x0031, status.subscribe, status.unsubscribe)
        transport.register_characteristic(
            0x0080, multiplexed.subscribe, multiplexed.unsubscribe
        )
        await transport.start()
        server = fake_server.instances[0]
        assert server.started

        await spin()
        assert status.events == ["subscribe"]
        assert multiplexed.events == []

        server.client_connected = True
        await spin()
        assert transport.connected
        assert multiplexed.events == ["subscribe"]

        server.client_connected = False
        await spin()
        assert not transport.connected
        assert multiplexed.events == ["subscribe", "unsubscribe"]

        server.client_connected = True
        await spin()
        await transport.stop()
        assert server.stopped

    asyncio.run(scenario())

    assert status.events == ["subscribe", "unsubscribe"]
    assert multiplexed.events == ["subscribe", "unsubscribe", "subscribe", "unsubscribe"]


def test_replay_reaches_a_central_that_connects_later(fake_server, engine, tmp_path):
    path = tmp_path / "replaylog.erg"
    path.write_text("10:31AA\n10:32BB\n")

    async def scenario():
        transport = BlessTransport("PM5 test", sleep=yield_sleep)
        emulator = PM5Emulator(
            transport, engine, replay_log=ReplayLog.open(path), sleep=FakeSleep()
        )
        emulator.register()
        await transport.start()
        server = fake_server.instances[0]

        await spin()
        assert server.sent(0x0080) == []

        server.client_connected = True
        for _ in range(100):
            if len(server.sent(0x0080)) == 2:
                break
            await asyncio.sleep(0)
        sent = server.sent(0x0080)

        await transport.stop()
        await emulator.stop()
        return sent

    assert asyncio.run(scenario()) == [b"\x31\xaa", b"\x32\xbb"]


# ---------------------------------------------------------------------
# Notification sink
# ---------------------------------------------------------------------


def test_full_send_queue_drops_the_frame_and_keeps_notifying(
    fake_server, engine, caplog
):
    sleep = FakeSleep(block_after=4)

    async def scenario():
        scheduler = NotificationScheduler(engine, sleep=sleep)
        transport = BlessTransport("PM5 test", sleep=yield_sleep)
        transport.register_characteristic(
            0x0031,
            lambda sink: scheduler.subscribe(0x0031, sink),
            lambda: scheduler.unsubscribe(0x0031),
        )
        await transport.start()
        server = fake_server.instances[0]
        server.update_results = [False, False]

        await sleep.blocked.wait()
        assert scheduler.is_active(0x0031)
        frames = server.sent(0x0031)

        await transport.stop()
        await scheduler.stop()
        return frames

    with caplog.at_level(logging.DEBUG, logger="pm5_emulator.bless_transport"):
        frames = asyncio.run(scenario())

    assert len(frames) == 4
    assert all(len(f) == 19 for f in frames)
    assert caplog.text.count("frame dropped") == 2


def test_sink_fails_when_server_is_not_running(fake_server):
    transport = BlessTransport("PM5 test")
    with pytest.raises(SinkWriteError):
        transport._sink(0x0031)(b"\x00")


def test_sink_fails_when_characteristic_is_missing(fake_server):
    async def scenario():
        transport = BlessTransport("PM5 test", sleep=yield_sleep)
        await transport.start()
        with pytest.raises(SinkWriteError):
            transport._sink(0x0031)(b"\x00")
        await transport.stop()

    asyncio.run(scenario())


# ---------------------------------------------------------------------
# Read / write requests
# ---------------------------------------------------------------------


def test_status_rate_write_and_read_requests(fake_server, engine):
    async def scenario():
        transport = BlessTransport("PM5 test", sleep=yield_sleep)
        emulator = PM5Emulator(transport, engine, sleep=FakeSleep(block_after=1))
        emulator.register()
        await transport.start()
        server = fake_server.instances[0]
        assert server.read_request_func == transport._handle_read
        assert server.write_request_func == transport._handle_write

        characteristic = server.get_characteristic(c2_uuid(0x0034))
        assert bytes(characteristic.value) == b"\x01"

        transport._handle_write(characteristic, bytearray([3]))
        assert engine.status_rate == 3
        assert bytes(characteristic.value) == b"\x03"
        assert bytes(transport._handle_read(characteristic)) == b"\x03"

        await transport.stop()
        await emulator.stop()
        assert not emulator.scheduler.is_active(0x0031)

    asyncio.run(scenario())


def test_write_to_unhandled_characteristic_is_ignored(fake_server, engine):
    async def scenario():
        transport = BlessTransport("PM5 test", sleep=yield_sleep)
        emulator = PM5Emulator(transport, engine, sleep=FakeSleep(block_after=1))
        emulator.register()
        await transport.start()
        server = fake_server.instances[0]

        characteristic = server.get_characteristic(c2_uuid(0x0031))
        transport._handle_write(characteristic, bytearray([9]))
        assert engine.status_rate == 1

        await transport.stop()
        await emulator.stop()

    asyncio.run(scenario())
