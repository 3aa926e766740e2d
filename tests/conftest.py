import random
from datetime import datetime

import pytest

from alarm.scheduler import SchedulingLoop
from alarm.store import MemoryAlarmStore

# 2024-01-01 was a Monday
MONDAY_0700 = datetime(2024, 1, 1, 7, 0, 0)


class RecordingEffects:
    """Stands in for the sound/vibration/notification devices."""

    def __init__(self, fail=False):
        self.fired = []
        self.dismissed = 0
        self.fail = fail

    def alarm_fired(self, alarm):
        self.fired.append(alarm.id)
        if self.fail:
            raise RuntimeError("sound backend unavailable")

    def alarm_dismissed(self):
        self.dismissed += 1


@pytest.fixture
def monday_0700():
    return MONDAY_0700


@pytest.fixture
def make_record():
    """Factory for store records, defaulting to a Monday 07:00 easy alarm."""
    def _make(**overrides):
        record = {
            "id": 1,
            "time": "07:00",
            "days": ["mon"],
            "enabled": True,
            "difficulty": "easy",
            "autoDelete": False,
        }
        record.update(overrides)
        return record
    return _make


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store(make_record):
    return MemoryAlarmStore([make_record()])


@pytest.fixture
def effects():
    return RecordingEffects()


@pytest.fixture
def events():
    return {"fired": [], "updated": [], "complete": [], "wrong": []}


@pytest.fixture
def loop(store, effects, events, rng):
    """An in-process loop that is ticked by hand."""
    scheduling_loop = SchedulingLoop(
        store,
        effects,
        on_alarm_fired=lambda alarm: events["fired"].append(alarm.id),
        on_challenge_updated=lambda challenge: events["updated"].append(challenge.to_dict()),
        on_challenge_complete=lambda alarm_id: events["complete"].append(alarm_id),
        on_wrong_answer=lambda alarm_id: events["wrong"].append(alarm_id),
        rng=rng,
        use_worker=False,
    )
    scheduling_loop.update_alarms(store.list_alarms())
    yield scheduling_loop
    scheduling_loop.stop()
