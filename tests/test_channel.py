# tests/test_channel.py
import time

from alarm.channel import TRIGGER_ALARM, UPDATE_ALARMS, MessageChannel


def test_drain_delivers_in_order():
    channel = MessageChannel("test")
    received = []
    channel.on_message(received.append)
    channel.send(UPDATE_ALARMS, alarms=[])
    channel.send(TRIGGER_ALARM, alarm={"id": 1})
    assert channel.pending() == 2
    assert channel.drain() == 2
    assert [m.type for m in received] == [UPDATE_ALARMS, TRIGGER_ALARM]
    assert received[1].payload == {"alarm": {"id": 1}}


def test_payload_is_copied():
    channel = MessageChannel("test")
    received = []
    channel.on_message(received.append)
    alarm = {"id": 1, "days": ["mon"]}
    channel.send(TRIGGER_ALARM, alarm=alarm)
    alarm["days"].append("tue")
    channel.drain()
    assert received[0].payload["alarm"]["days"] == ["mon"]


def test_failing_handler_does_not_stop_others():
    channel = MessageChannel("test")
    received = []

    def broken(message):
        raise RuntimeError("handler bug")

    channel.on_message(broken)
    channel.on_message(received.append)
    channel.send(TRIGGER_ALARM, alarm={"id": 1})
    channel.drain()
    assert len(received) == 1


def test_dispatch_thread_delivers():
    channel = MessageChannel("test")
    received = []
    channel.on_message(received.append)
    channel.start()
    try:
        channel.send(TRIGGER_ALARM, alarm={"id": 2})
        deadline = time.monotonic() + 2
        while not received and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        channel.close()
    assert received[0].payload["alarm"]["id"] == 2


def test_close_drops_pending_and_is_idempotent():
    channel = MessageChannel("test")
    channel.send(TRIGGER_ALARM, alarm={"id": 1})
    channel.close()
    channel.close()
    assert channel.pending() == 0
