# tests/test_models.py
import pytest

from alarm.models import (
    Alarm, BuiltinSound, CustomSound, InvalidAlarmError, parse_days, parse_sound_ref, parse_time,
)


def test_from_dict_defaults():
    alarm = Alarm.from_dict({"id": 7, "time": "6:05", "days": ["MON", "fri"]})
    assert alarm.id == 7
    assert alarm.time == "06:05"
    assert alarm.days == frozenset({"mon", "fri"})
    assert alarm.enabled is True
    assert alarm.difficulty == "easy"
    assert alarm.sound == BuiltinSound("default")
    assert alarm.volume == 100
    assert alarm.auto_delete is False
    assert alarm.vibration is False
    assert alarm.label == ""


def test_from_dict_reads_camel_case_keys(make_record):
    alarm = Alarm.from_dict(make_record(autoDelete=True, vibration=True, volume=40, label="Gym"))
    assert alarm.auto_delete is True
    assert alarm.vibration is True
    assert alarm.volume == 40
    assert alarm.label == "Gym"


def test_to_dict_orders_days_and_uses_store_keys(make_record):
    alarm = Alarm.from_dict(make_record(days=["sun", "mon", "wed"], sound="beep"))
    data = alarm.to_dict()
    assert data["days"] == ["mon", "wed", "sun"]
    assert data["autoDelete"] is False
    assert data["sound"] == "beep"
    assert Alarm.from_dict(data) == alarm


def test_empty_days_allowed(make_record):
    assert Alarm.from_dict(make_record(days=[])).days == frozenset()


# --- Validation ---


@pytest.mark.parametrize("value", ["24:00", "7", "07:60", "seven", ""])
def test_parse_time_rejects_bad_values(value):
    with pytest.raises(InvalidAlarmError):
        parse_time(value)


def test_parse_time_accepts_single_digit_hour():
    assert parse_time("7:30") == (7, 30)


def test_parse_days_rejects_unknown_tag():
    with pytest.raises(InvalidAlarmError):
        parse_days(["mon", "funday"])


def test_parse_days_rejects_bare_string():
    with pytest.raises(InvalidAlarmError):
        parse_days("mon")


def test_invalid_difficulty_rejected(make_record):
    with pytest.raises(InvalidAlarmError):
        Alarm.from_dict(make_record(difficulty="nightmare"))


def test_volume_out_of_range_rejected(make_record):
    with pytest.raises(InvalidAlarmError):
        Alarm.from_dict(make_record(volume=150))


def test_missing_id_rejected():
    with pytest.raises(InvalidAlarmError):
        Alarm.from_dict({"time": "07:00", "days": ["mon"]})


def test_invalid_alarm_error_is_value_error():
    assert issubclass(InvalidAlarmError, ValueError)


# --- Sound references ---


def test_builtin_sound():
    sound = parse_sound_ref("digital_alarm")
    assert sound == BuiltinSound("digital_alarm")
    assert sound.filename == "digital_alarm.mp3"


def test_custom_sound_url():
    sound = parse_sound_ref("https://example.com/ringtones/42.mp3")
    assert sound == CustomSound("https://example.com/ringtones/42.mp3")


def test_unknown_sound_falls_back_to_default():
    assert parse_sound_ref("not a sound") == BuiltinSound("default")
    assert parse_sound_ref("ftp://example.com/a.mp3") == BuiltinSound("default")
    assert parse_sound_ref(None) == BuiltinSound("default")
