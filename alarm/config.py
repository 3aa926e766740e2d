"""Configuration for the alarm engine."""

import json
import os

from . import CONFIG_FILE

# Persistence API (the CRUD server that owns alarm records)
API_BASE_URL = os.environ.get("ALARM_API_URL", "http://localhost:5000")
API_TIMEOUT = 10  # seconds

# Clock check interval; the minute stamp de-duplicates firings
TICK_SECONDS = float(os.environ.get("ALARM_TICK_SECONDS", "1"))

# How often the alarm list is re-fetched from the store
RELOAD_SECONDS = float(os.environ.get("ALARM_RELOAD_SECONDS", "10"))

# Challenge settings
REQUIRED_SOLVES = 3
ANSWER_TOLERANCE = 0.001  # division answers come back as floats

# Vibration motor (BCM pin numbering)
VIBRATION_GPIO = int(os.environ.get("ALARM_VIBRATION_GPIO", "27"))
VIBRATION_PATTERN = [200, 100, 200]  # on/off milliseconds, alternating

# Debug settings
DEBUG = os.environ.get("ALARM_DEBUG", "0") == "1"


def load_config() -> dict:
    """Load engine configuration from JSON file, merged over defaults."""
    default_config = {
        "api_url": API_BASE_URL,
        "tick_seconds": TICK_SECONDS,
        "reload_seconds": RELOAD_SECONDS,
        "required_solves": REQUIRED_SOLVES,
        "use_worker": True,
    }

    if not CONFIG_FILE.exists():
        return default_config

    try:
        with open(CONFIG_FILE, "r") as f:
            config = json.load(f)
        if not isinstance(config, dict):
            print(f"[Alarm] Ignoring config, expected an object in {CONFIG_FILE}")
            return default_config
        # Merge with defaults for any missing keys
        return {**default_config, **config}
    except (json.JSONDecodeError, IOError) as e:
        print(f"[Alarm] Error loading config: {e}")
        return default_config
