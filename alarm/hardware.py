"""Vibration motor driven from a GPIO pin."""

import threading
from typing import Optional

from .config import VIBRATION_GPIO, VIBRATION_PATTERN

# Hardware available flag
HARDWARE_AVAILABLE = False

try:
    from gpiozero import OutputDevice
    HARDWARE_AVAILABLE = True
except ImportError as e:
    print(f"[Hardware] Libraries not available: {e}")
except Exception as e:
    print(f"[Hardware] Error loading libraries: {e}")


class VibrationMotor:
    """Pulses a vibration motor in an on/off pattern until stopped."""

    # Pause between pattern repetitions (milliseconds)
    REPEAT_GAP_MS = 800

    def __init__(self, gpio: int = VIBRATION_GPIO):
        self._gpio = gpio
        self._device: Optional["OutputDevice"] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        if not HARDWARE_AVAILABLE:
            print("[Hardware] Hardware libraries not available, running in software-only mode")
            return

        try:
            self._device = OutputDevice(gpio, active_high=True, initial_value=False)
            print(f"[Hardware] Vibration motor initialized on GPIO {gpio}")
        except Exception as e:
            print(f"[Hardware] Error initializing vibration motor: {e}")
            self._device = None

    @property
    def is_available(self) -> bool:
        return self._device is not None

    def _pulse_loop(self, pattern: list[int]):
        """Background thread that plays the pattern until stopped."""
        while not self._stop_event.is_set():
            for index, duration_ms in enumerate(pattern):
                if index % 2 == 0:
                    self._device.on()
                else:
                    self._device.off()
                if self._stop_event.wait(duration_ms / 1000):
                    break
            self._device.off()
            self._stop_event.wait(self.REPEAT_GAP_MS / 1000)
        self._device.off()

    def vibrate(self, pattern: Optional[list[int]] = None) -> bool:
        """
        Start vibrating.

        Args:
            pattern: Alternating on/off durations in milliseconds

        Returns:
            True if the motor started
        """
        if self._device is None:
            return False

        self.stop()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._pulse_loop,
            args=(list(pattern or VIBRATION_PATTERN),),
            daemon=True,
        )
        self._thread.start()
        return True

    def stop(self):
        """Stop vibrating."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=1)
            self._thread = None

    def close(self):
        self.stop()
        if self._device is not None:
            self._device.close()
            self._device = None
