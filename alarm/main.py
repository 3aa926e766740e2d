#!/usr/bin/env python3
"""
Main entry point for the alarm service.

Usage:
    python -m alarm.main               # Use the alarm API from config
    python -m alarm.main --api URL     # Use a different alarm API
    python -m alarm.main --in-process  # Check the clock without a worker
    python -m alarm.main --demo        # In-memory alarm one minute from now
"""

import argparse
import os
import queue
import signal
import sys
from datetime import datetime, timedelta

from .models import WEEKDAYS


def _demo_alarm(now: datetime) -> dict:
    """An alarm record that rings at the start of the next minute."""
    ring_at = now + timedelta(minutes=1)
    return {
        "time": ring_at.strftime("%H:%M"),
        "days": [WEEKDAYS[ring_at.weekday()]],
        "enabled": True,
        "difficulty": "easy",
        "label": "Demo",
    }


def _run_challenge(loop, alarm_id: int):
    """Prompt for answers on the terminal until the challenge is done."""
    while True:
        challenge = loop.challenge(alarm_id)
        if challenge is None or not challenge.is_open:
            return
        print(f"[{challenge.solved_count}/{challenge.required_count}] {challenge.current_problem.question}")
        try:
            answer = input("> ")
        except EOFError:
            return
        try:
            loop.submit_answer(alarm_id, answer)
        except KeyError:
            # Cancelled while we were waiting for input
            return


def main():
    parser = argparse.ArgumentParser(description="Math Alarm Clock")
    parser.add_argument("--api", help="Alarm API base URL")
    parser.add_argument("--in-process", action="store_true", help="Check the clock without a worker")
    parser.add_argument("--demo", action="store_true", help="Use an in-memory alarm one minute from now")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    args = parser.parse_args()

    # Set debug mode before imports
    if args.debug:
        os.environ["ALARM_DEBUG"] = "1"

    # Now import modules (they read DEBUG from env)
    from .config import load_config
    from .effects import AlarmEffects
    from .hardware import VibrationMotor
    from .scheduler import SchedulingLoop
    from .store import AlarmStore, MemoryAlarmStore

    config = load_config()

    if args.demo:
        store = MemoryAlarmStore([_demo_alarm(datetime.now())])
    else:
        store = AlarmStore(args.api or config["api_url"])

    motor = VibrationMotor()
    effects = AlarmEffects(motor if motor.is_available else None)
    fired = queue.Queue()

    loop = SchedulingLoop(
        store,
        effects,
        on_alarm_fired=lambda alarm: fired.put(alarm.id),
        on_wrong_answer=lambda alarm_id: print("Wrong answer, try again!"),
        on_challenge_complete=lambda alarm_id: print("Alarm dismissed. Good morning!"),
        use_worker=config["use_worker"] and not args.in_process,
        tick_seconds=config["tick_seconds"],
        reload_seconds=config["reload_seconds"],
        required_solves=config["required_solves"],
    )

    def shutdown(signum=None, frame=None):
        """Handle shutdown signals."""
        print("\n[Alarm] Shutting down...")
        loop.stop()
        effects.close()
        sys.exit(0)

    # Set up signal handlers
    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    print("=" * 50)
    print("Math Alarm Clock")
    print("=" * 50)
    print(f"Alarm source: {'demo (in-memory)' if args.demo else store.base_url}")
    print(f"Vibration: {'GPIO' if motor.is_available else 'not available'}")
    print()

    loop.start()
    for alarm in loop.alarms:
        state = "on" if alarm.enabled else "off"
        print(f"  #{alarm.id} {alarm.time} [{', '.join(d for d in WEEKDAYS if d in alarm.days)}] {alarm.difficulty} ({state})")
    print()
    print("Alarm service running. Press Ctrl+C to stop.")

    try:
        while True:
            try:
                alarm_id = fired.get(timeout=1)
            except queue.Empty:
                continue
            print(f"\nALARM #{alarm_id}! Solve the problems to dismiss it.")
            _run_challenge(loop, alarm_id)
    except KeyboardInterrupt:
        pass
    finally:
        loop.stop()
        effects.close()


if __name__ == "__main__":
    main()
