"""Ringtone player using mpv."""

import subprocess
from typing import Optional

from . import SOUNDS_DIR
from .models import BuiltinSound, SoundRef

# Global reference to current player process
_current_player: Optional[subprocess.Popen] = None


def resolve_sound(sound: SoundRef) -> str:
    """Turn a SoundRef into something mpv can open."""
    if isinstance(sound, BuiltinSound):
        return str(SOUNDS_DIR / sound.filename)
    return sound.url


def play_looping(sound: SoundRef, volume: int = 100) -> bool:
    """
    Loop a ringtone until stop_playback() is called.

    Returns True if playback started, False on error.
    """
    global _current_player

    # Stop any existing playback
    stop_playback()

    target = resolve_sound(sound)
    volume = max(0, min(100, int(volume)))
    print(f"[Player] Looping {target} at {volume}%")

    try:
        _current_player = subprocess.Popen(
            [
                "mpv",
                "--no-video",
                "--loop=inf",  # Loop forever until stopped
                f"--volume={volume}",
                "--",  # End of options
                target,
            ],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        return True
    except FileNotFoundError:
        print("[Player] Error: mpv not installed. Run: sudo apt install mpv")
        return False
    except Exception as e:
        print(f"[Player] Error starting playback: {e}")
        return False


def stop_playback(timeout: float = 2) -> bool:
    """
    Stop the current ringtone, killing mpv if it ignores SIGTERM for
    longer than timeout seconds.

    Returns True if a player was stopped, False if none was running.
    """
    global _current_player

    process, _current_player = _current_player, None
    if process is None:
        return False

    try:
        process.terminate()
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            print("[Player] mpv did not exit, killing it")
            process.kill()
            process.wait()
    except OSError as e:
        print(f"[Player] Error stopping playback: {e}")

    print("[Player] Playback stopped")
    return True


def is_playing() -> bool:
    process = _current_player
    return process is not None and process.poll() is None
