"""Scheduling loop for alarms using APScheduler."""

import dataclasses
import random
import threading
from datetime import datetime
from typing import Callable, Iterable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from .challenge import AnswerResult, Challenge
from .channel import ERROR, TRIGGER_ALARM, UPDATE_ALARMS, Message, MessageChannel
from .config import RELOAD_SECONDS, REQUIRED_SOLVES, TICK_SECONDS
from .evaluator import evaluate, minute_stamp
from .models import Alarm, InvalidAlarmError
from .worker import ClockWorker

# Job IDs
TICK_JOB_ID = "alarm_tick"
RELOAD_JOB_ID = "alarm_reload"
POST_FIRE_JOB_ID = "post_fire_{}"

# Loop modes
MODE_WORKER = "worker"
MODE_IN_PROCESS = "in-process"


class SchedulingLoop:
    """
    Owns the alarm snapshot and every open challenge.

    Either a ClockWorker checks the clock and reports back over a message
    channel, or (when the worker can't be started) the loop ticks on its
    own scheduler. Both paths go through the same firing logic, so an
    alarm fires at most once per minute and never while its challenge is
    still open.
    """

    # Worker start is retried once before falling back to in-process ticks
    WORKER_START_ATTEMPTS = 2

    def __init__(
        self,
        store=None,
        effects=None,
        *,
        on_alarm_fired: Optional[Callable[[Alarm], None]] = None,
        on_challenge_updated: Optional[Callable[[Challenge], None]] = None,
        on_challenge_complete: Optional[Callable[[int], None]] = None,
        on_wrong_answer: Optional[Callable[[int], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
        use_worker: bool = True,
        worker_factory: Callable[..., ClockWorker] = ClockWorker,
        tick_seconds: float = TICK_SECONDS,
        reload_seconds: float = RELOAD_SECONDS,
        required_solves: int = REQUIRED_SOLVES,
    ):
        self._store = store
        self._effects = effects
        self._on_alarm_fired = on_alarm_fired
        self._on_challenge_updated = on_challenge_updated
        self._on_challenge_complete = on_challenge_complete
        self._on_wrong_answer = on_wrong_answer
        self._clock = clock
        self._rng = rng
        self._use_worker = use_worker
        self._worker_factory = worker_factory
        self._tick_seconds = tick_seconds
        self._reload_seconds = reload_seconds
        self._required_solves = required_solves

        self._alarms: tuple = ()
        self._challenges: dict[int, Challenge] = {}
        # Alarm as it was when its challenge started
        self._fired_alarms: dict[int, Alarm] = {}
        # Alarm id -> minute stamp of its last firing
        self._fired: dict[int, str] = {}
        self._current_minute: Optional[str] = None
        # Dismissed alarms whose store request hasn't run yet
        self._pending_post_fire: dict[int, Alarm] = {}

        self._lock = threading.RLock()
        self._scheduler: Optional[BackgroundScheduler] = None
        self._worker: Optional[ClockWorker] = None
        self._outbox: Optional[MessageChannel] = None
        self._running = False
        self._mode: Optional[str] = None

    # -- snapshot ---------------------------------------------------------

    @property
    def alarms(self) -> tuple:
        return self._alarms

    def update_alarms(self, alarms: Iterable) -> int:
        """
        Replace the alarm snapshot.

        Accepts Alarm objects or store records; invalid records are logged
        and skipped. Open challenges are left alone even if their alarm is
        gone. Returns the number of alarms in the new snapshot.
        """
        parsed = []
        for item in alarms:
            if isinstance(item, Alarm):
                parsed.append(item)
                continue
            try:
                parsed.append(Alarm.from_dict(item))
            except InvalidAlarmError as e:
                print(f"[Alarm] Skipping invalid alarm: {e}")

        with self._lock:
            self._alarms = tuple(parsed)
            worker = self._worker

        if worker is not None:
            worker.post(UPDATE_ALARMS, alarms=[alarm.to_dict() for alarm in parsed])
        return len(parsed)

    def reload(self) -> bool:
        """Re-fetch the alarm list from the store."""
        if self._store is None:
            return False
        try:
            alarms = self._store.list_alarms()
        except Exception as e:
            print(f"[Alarm] Error reloading alarms: {e}")
            return False
        self.update_alarms(alarms)
        return True

    # -- firing -----------------------------------------------------------

    def _fired_this_minute(self, stamp: str) -> set:
        if stamp != self._current_minute:
            self._fired = {
                alarm_id: fired_at
                for alarm_id, fired_at in self._fired.items()
                if fired_at == stamp
            }
            self._current_minute = stamp
        return set(self._fired)

    def _begin_challenge(self, alarm: Alarm, stamp: str) -> Optional[Challenge]:
        """Open a challenge for a due alarm. Caller holds the lock."""
        self._fired[alarm.id] = stamp
        if alarm.id in self._challenges:
            return None
        try:
            challenge = Challenge(alarm.id, alarm.difficulty, self._required_solves, self._rng)
        except ValueError as e:
            print(f"[Alarm] Cannot start challenge for alarm {alarm.id}: {e}")
            return None
        self._challenges[alarm.id] = challenge
        self._fired_alarms[alarm.id] = alarm
        return challenge

    def _dispatch_fired(self, alarm: Alarm, challenge: Challenge):
        print(f"[Alarm] Alarm {alarm.id} triggered at {alarm.time}")
        if self._effects is not None:
            self._safe_call("alarm effects", self._effects.alarm_fired, alarm)
        self._safe_call("on_alarm_fired", self._on_alarm_fired, alarm)
        self._safe_call("on_challenge_updated", self._on_challenge_updated, challenge)

    def tick(self, now: Optional[datetime] = None) -> list[int]:
        """
        Evaluate the snapshot once and start challenges for due alarms.

        Returns the ids of alarms that fired on this tick.
        """
        now = now or self._clock()
        stamp = minute_stamp(now)

        started = []
        with self._lock:
            due = evaluate(now, self._alarms, self._fired_this_minute(stamp))
            by_id = {}
            for alarm in self._alarms:
                by_id.setdefault(alarm.id, alarm)
            for alarm_id in due:
                challenge = self._begin_challenge(by_id[alarm_id], stamp)
                if challenge is not None:
                    started.append((by_id[alarm_id], challenge))

        for alarm, challenge in started:
            self._dispatch_fired(alarm, challenge)
        return [alarm.id for alarm, _ in started]

    def handle_worker_message(self, message: Message) -> None:
        """Process a message posted by the clock worker. Ignored once stopped."""
        if not self._running:
            return
        if message.type == TRIGGER_ALARM:
            try:
                alarm = Alarm.from_dict(message.payload["alarm"])
            except (KeyError, InvalidAlarmError) as e:
                print(f"[Alarm] Bad trigger from worker: {e}")
                return
            stamp = message.payload.get("stamp") or minute_stamp(self._clock())
            with self._lock:
                # The worker may not have seen the latest snapshot yet
                current = next((a for a in self._alarms if a.id == alarm.id), None)
                if current is None or not current.enabled:
                    print(f"[Alarm] Ignoring trigger for alarm {alarm.id}, not enabled here")
                    return
                alarm = current
                if alarm.id in self._fired_this_minute(stamp):
                    return
                challenge = self._begin_challenge(alarm, stamp)
            if challenge is not None:
                self._dispatch_fired(alarm, challenge)
        elif message.type == ERROR:
            print(f"[Alarm] Worker error: {message.payload.get('error')}")
            self._restart_worker()
        else:
            print(f"[Alarm] Ignoring unknown worker message: {message.type}")

    # -- challenges -------------------------------------------------------

    def challenge(self, alarm_id: int) -> Optional[Challenge]:
        return self._challenges.get(alarm_id)

    def active_challenges(self) -> dict:
        with self._lock:
            return dict(self._challenges)

    def submit_answer(self, alarm_id: int, value) -> AnswerResult:
        """
        Submit an answer for an alarm's open challenge.

        Raises KeyError if the alarm has no open challenge.
        """
        with self._lock:
            challenge = self._challenges.get(alarm_id)
            if challenge is None:
                raise KeyError(f"No active challenge for alarm {alarm_id}")
            result = challenge.submit_answer(value)
            if result.complete:
                del self._challenges[alarm_id]
                alarm = self._fired_alarms.pop(alarm_id)
                self._retire_alarm(alarm)
                self._pending_post_fire[alarm.id] = alarm

        if not result.correct:
            self._safe_call("on_wrong_answer", self._on_wrong_answer, alarm_id)
        elif not result.complete:
            self._safe_call("on_challenge_updated", self._on_challenge_updated, challenge)
        else:
            print(f"[Alarm] Alarm {alarm_id} dismissed")
            self._silence_if_idle()
            self._safe_call("on_challenge_updated", self._on_challenge_updated, challenge)
            self._safe_call("on_challenge_complete", self._on_challenge_complete, alarm_id)
            self._apply_post_fire_policy(alarm)
        return result

    def cancel_challenge(self, alarm_id: int) -> bool:
        """Cancel an open challenge without applying the post-fire policy."""
        with self._lock:
            challenge = self._challenges.pop(alarm_id, None)
            self._fired_alarms.pop(alarm_id, None)
        if challenge is None:
            return False
        challenge.cancel()
        print(f"[Alarm] Challenge for alarm {alarm_id} cancelled")
        self._silence_if_idle()
        return True

    def _silence_if_idle(self):
        """Stop sound and vibration unless another challenge is still open."""
        if self._effects is None:
            return
        # Held across the call so a firing can't slip in between check and stop
        with self._lock:
            if self._challenges:
                return
            self._safe_call("alarm effects", self._effects.alarm_dismissed)

    def _retire_alarm(self, alarm: Alarm):
        """Drop or disable a dismissed alarm in the local snapshot. Caller holds the lock."""
        if alarm.auto_delete:
            self._alarms = tuple(a for a in self._alarms if a.id != alarm.id)
        else:
            self._alarms = tuple(
                dataclasses.replace(a, enabled=False) if a.id == alarm.id else a
                for a in self._alarms
            )
        if self._worker is not None:
            self._worker.post(UPDATE_ALARMS, alarms=[a.to_dict() for a in self._alarms])

    def _apply_post_fire_policy(self, alarm: Alarm):
        scheduler = self._scheduler
        if self._store is not None and self._running and scheduler is not None:
            scheduler.add_job(
                self._run_post_fire,
                args=[alarm.id],
                id=POST_FIRE_JOB_ID.format(alarm.id),
                replace_existing=True,
            )
        else:
            self._run_post_fire(alarm.id)

    def _run_post_fire(self, alarm_id: int):
        """Send the pending store request for a dismissed alarm, once."""
        with self._lock:
            alarm = self._pending_post_fire.pop(alarm_id, None)
        if alarm is not None:
            self._request_post_fire(alarm)

    def _flush_post_fire(self):
        with self._lock:
            pending = list(self._pending_post_fire)
        for alarm_id in pending:
            self._run_post_fire(alarm_id)

    def _request_post_fire(self, alarm: Alarm):
        """Ask the store to delete or disable a dismissed alarm."""
        if self._store is None:
            return
        try:
            if alarm.auto_delete:
                self._store.delete_alarm(alarm.id)
                print(f"[Alarm] Alarm {alarm.id} deleted")
            else:
                self._store.update_alarm(alarm.id, {"enabled": False})
                print(f"[Alarm] Alarm {alarm.id} disabled")
        except Exception as e:
            action = "delete" if alarm.auto_delete else "disable"
            print(f"[Alarm] Failed to {action} alarm {alarm.id}: {e}")

    @staticmethod
    def _safe_call(name: str, callback: Optional[Callable], *args):
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            print(f"[Alarm] {name} failed: {e}")

    # -- timer ------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def mode(self) -> Optional[str]:
        return self._mode

    def _on_timer(self):
        if not self._running:
            return
        try:
            self.tick()
        except Exception as e:
            print(f"[Alarm] Tick failed: {e}")

    def _start_worker(self) -> bool:
        outbox = MessageChannel("loop")
        outbox.on_message(self.handle_worker_message)

        for attempt in range(1, self.WORKER_START_ATTEMPTS + 1):
            try:
                worker = self._worker_factory(
                    outbox, clock=self._clock, tick_seconds=self._tick_seconds
                )
                worker.start()
            except Exception as e:
                print(f"[Alarm] Worker failed to start (attempt {attempt}): {e}")
                continue

            with self._lock:
                self._worker = worker
                self._outbox = outbox
                self._mode = MODE_WORKER
                snapshot = [alarm.to_dict() for alarm in self._alarms]
            outbox.start()
            worker.post(UPDATE_ALARMS, alarms=snapshot)
            return True

        outbox.close()
        return False

    def _stop_worker(self):
        with self._lock:
            worker, self._worker = self._worker, None
            outbox, self._outbox = self._outbox, None
        if worker is not None:
            try:
                worker.stop()
            except Exception as e:
                print(f"[Alarm] Error stopping worker: {e}")
        if outbox is not None:
            outbox.close()

    def _start_in_process(self):
        scheduler = self._scheduler
        if scheduler is None:
            return
        self._mode = MODE_IN_PROCESS
        scheduler.add_job(
            self._on_timer,
            "interval",
            seconds=self._tick_seconds,
            id=TICK_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def _restart_worker(self):
        print("[Alarm] Restarting clock worker")
        self._stop_worker()
        if not self._running:
            return
        if not self._start_worker():
            print("[Alarm] Worker unavailable, checking alarms in-process")
            self._start_in_process()

    def start(self):
        """Start checking alarms. Replaces any timer left from a previous start."""
        if self._scheduler is not None:
            self.stop()

        self._scheduler = BackgroundScheduler()
        self._running = True

        if self._store is not None:
            self.reload()
            self._scheduler.add_job(
                self.reload,
                "interval",
                seconds=self._reload_seconds,
                id=RELOAD_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

        if not (self._use_worker and self._start_worker()):
            if self._use_worker:
                print("[Alarm] Worker unavailable, checking alarms in-process")
            self._start_in_process()

        self._scheduler.start()
        print(f"[Alarm] Scheduling loop started ({self._mode})")

    def stop(self):
        """Stop checking alarms. Safe to call more than once."""
        was_running = self._running
        self._running = False

        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None and scheduler.running:
            # Lets an in-flight tick finish
            scheduler.shutdown(wait=True)

        # Jobs the scheduler never picked up are dropped by shutdown
        self._flush_post_fire()
        self._stop_worker()
        self._mode = None
        if was_running:
            print("[Alarm] Scheduling loop stopped")
