"""Alarm records and the sound references they carry."""

import re
from dataclasses import dataclass, field
from typing import Optional, Union
from urllib.parse import urlparse

# Weekday tags, indexed by datetime.weekday()
WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

DIFFICULTY_LEVELS = ("easy", "medium", "hard")

# Builtin ringtones shipped in sounds/
BUILTIN_SOUNDS = {
    "default": "alarm_clock.mp3",
    "alarm_clock": "alarm_clock.mp3",
    "digital_alarm": "digital_alarm.mp3",
    "beep": "beep.mp3",
}

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


class InvalidAlarmError(ValueError):
    """Raised when an alarm record or its settings cannot be used."""


@dataclass(frozen=True)
class BuiltinSound:
    """A ringtone bundled with the application."""
    name: str

    @property
    def filename(self) -> str:
        return BUILTIN_SOUNDS[self.name]

    def to_value(self) -> str:
        return self.name


@dataclass(frozen=True)
class CustomSound:
    """A user-uploaded ringtone, referenced by URL."""
    url: str

    def to_value(self) -> str:
        return self.url


SoundRef = Union[BuiltinSound, CustomSound]


def _is_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def parse_sound_ref(value: Optional[str]) -> SoundRef:
    """
    Resolve a stored sound value into a SoundRef.

    Builtin names win, then absolute http(s) URLs. Anything else falls back
    to the default ringtone so the alarm can still ring.
    """
    if not value:
        return BuiltinSound("default")
    if value in BUILTIN_SOUNDS:
        return BuiltinSound(value)
    if _is_url(value):
        return CustomSound(value)
    print(f"[Alarm] Unknown sound '{value}', using default")
    return BuiltinSound("default")


def parse_time(value: str) -> tuple[int, int]:
    """Parse HH:MM (or H:MM) into (hour, minute)."""
    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        raise InvalidAlarmError(f"Invalid time format: {value!r}. Use HH:MM")
    return int(match.group(1)), int(match.group(2))


def parse_days(values) -> frozenset:
    """Normalize a list of weekday tags, rejecting unknown ones."""
    if isinstance(values, str):
        raise InvalidAlarmError("days must be a list of weekday tags")
    days = frozenset(str(day).strip().lower() for day in values)
    unknown = days - set(WEEKDAYS)
    if unknown:
        raise InvalidAlarmError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
    return days


@dataclass(frozen=True)
class Alarm:
    """A recurring time-of-day trigger."""
    id: int
    hour: int
    minute: int
    days: frozenset = field(default_factory=frozenset)
    enabled: bool = True
    difficulty: str = "easy"
    sound: SoundRef = field(default_factory=lambda: BuiltinSound("default"))
    volume: int = 100
    auto_delete: bool = False
    vibration: bool = False
    label: str = ""

    @property
    def time(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    @classmethod
    def from_dict(cls, data: dict) -> "Alarm":
        """Build an Alarm from a store record (camelCase keys)."""
        if "id" not in data:
            raise InvalidAlarmError("Alarm record has no id")
        try:
            alarm_id = int(data["id"])
        except (TypeError, ValueError):
            raise InvalidAlarmError(f"Invalid alarm id: {data['id']!r}")

        hour, minute = parse_time(data.get("time", ""))
        days = parse_days(data.get("days", []))

        difficulty = data.get("difficulty", "easy")
        if difficulty not in DIFFICULTY_LEVELS:
            raise InvalidAlarmError(f"Invalid difficulty level: {difficulty!r}")

        volume = data.get("volume", 100)
        if not isinstance(volume, (int, float)) or not 0 <= volume <= 100:
            raise InvalidAlarmError(f"Volume must be between 0 and 100, got {volume!r}")

        return cls(
            id=alarm_id,
            hour=hour,
            minute=minute,
            days=days,
            enabled=bool(data.get("enabled", True)),
            difficulty=difficulty,
            sound=parse_sound_ref(data.get("sound", "default")),
            volume=int(volume),
            auto_delete=bool(data.get("autoDelete", False)),
            vibration=bool(data.get("vibration", False)),
            label=data.get("label") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "time": self.time,
            "days": [day for day in WEEKDAYS if day in self.days],
            "enabled": self.enabled,
            "difficulty": self.difficulty,
            "sound": self.sound.to_value(),
            "volume": self.volume,
            "autoDelete": self.auto_delete,
            "vibration": self.vibration,
            "label": self.label,
        }


@dataclass(frozen=True)
class Problem:
    """An arithmetic question and the answer that dismisses it."""
    question: str
    expected_answer: float
    left: int
    operator: str
    right: int
