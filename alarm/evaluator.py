"""Decide which alarms are due at a given moment."""

from datetime import datetime
from typing import Iterable

from .models import WEEKDAYS, Alarm


def minute_stamp(now: datetime) -> str:
    """Floor-to-minute stamp used to de-duplicate firings."""
    return now.strftime("%Y-%m-%d %H:%M")


def current_time(now: datetime) -> str:
    return now.strftime("%H:%M")


def current_day(now: datetime) -> str:
    return WEEKDAYS[now.weekday()]


def is_due(alarm: Alarm, now: datetime) -> bool:
    """Check enabled/time/day gating for one alarm, ignoring de-duplication."""
    return (
        alarm.enabled
        and alarm.time == current_time(now)
        and current_day(now) in alarm.days
    )


def evaluate(now: datetime, alarms: Iterable[Alarm], already_fired) -> list[int]:
    """
    Return ids of alarms that should fire now.

    Ids come back in snapshot order, each at most once. Alarms whose id is
    in already_fired are skipped, which is what keeps a one-second tick
    from firing the same alarm sixty times in a minute.
    """
    due = []
    seen = set()
    for alarm in alarms:
        if alarm.id in seen or alarm.id in already_fired:
            continue
        if is_due(alarm, now):
            due.append(alarm.id)
            seen.add(alarm.id)
    return due
