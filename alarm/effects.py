"""Sound, vibration and notification side effects of a ringing alarm."""

from typing import Optional

from . import notify, player
from .config import VIBRATION_PATTERN
from .hardware import VibrationMotor
from .models import Alarm


class AlarmEffects:
    """Starts and stops everything a ringing alarm does to the device."""

    def __init__(self, motor: Optional[VibrationMotor] = None):
        self._motor = motor

    def alarm_fired(self, alarm: Alarm):
        player.play_looping(alarm.sound, alarm.volume)
        if alarm.vibration and self._motor is not None:
            self._motor.vibrate(VIBRATION_PATTERN)
        label = f" ({alarm.label})" if alarm.label else ""
        notify.show_notification(f"Time to wake up! {alarm.time}{label}")

    def alarm_dismissed(self):
        player.stop_playback()
        if self._motor is not None:
            self._motor.stop()

    def close(self):
        self.alarm_dismissed()
        if self._motor is not None:
            self._motor.close()
