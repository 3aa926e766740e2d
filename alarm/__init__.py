"""Alarm engine: recurring alarms dismissed by solving math problems."""

from pathlib import Path

# Base paths
ALARM_DIR = Path(__file__).parent
PROJECT_DIR = ALARM_DIR.parent
SOUNDS_DIR = PROJECT_DIR / "sounds"
CONFIG_FILE = PROJECT_DIR / "data" / "alarm_config.json"
