"""Background clock worker that watches the time and reports due alarms."""

import threading
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from .channel import ERROR, STOP, TRIGGER_ALARM, UPDATE_ALARMS, Message, MessageChannel
from .config import DEBUG, TICK_SECONDS
from .evaluator import evaluate, minute_stamp
from .models import Alarm, InvalidAlarmError


class ClockWorker:
    """
    Separate execution context for clock checking.

    The worker only knows what arrives on its inbox: a full alarm list with
    each UPDATE_ALARMS, or STOP. It answers on the outbox with one
    TRIGGER_ALARM per newly due alarm, or ERROR if a tick blows up so the
    owner can replace it.
    """

    TICK_JOB_ID = "clock_tick"

    def __init__(
        self,
        outbox: MessageChannel,
        clock: Callable[[], datetime] = datetime.now,
        tick_seconds: float = TICK_SECONDS,
    ):
        self.outbox = outbox
        self.inbox = MessageChannel("worker")
        self.inbox.on_message(self.handle_message)
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._alarms: tuple = ()
        self._fired: dict[int, str] = {}
        self._lock = threading.Lock()
        self._running = False
        self._scheduler: Optional[BackgroundScheduler] = None

    def post(self, message_type: str, **payload) -> None:
        """Send a message into the worker."""
        self.inbox.send(message_type, **payload)

    def handle_message(self, message: Message) -> None:
        if message.type == UPDATE_ALARMS:
            alarms = []
            for record in message.payload.get("alarms", []):
                try:
                    alarms.append(Alarm.from_dict(record))
                except InvalidAlarmError as e:
                    print(f"[Worker] Skipping invalid alarm: {e}")
            with self._lock:
                self._alarms = tuple(alarms)
            if DEBUG:
                print(f"[Worker] Watching {len(alarms)} alarm(s)")
        elif message.type == STOP:
            self.stop()
        else:
            print(f"[Worker] Ignoring unknown message: {message.type}")

    def tick(self, now: Optional[datetime] = None) -> list[int]:
        """Check the clock once and post a trigger for each due alarm."""
        now = now or self._clock()
        stamp = minute_stamp(now)

        with self._lock:
            # Forget firings from earlier minutes
            self._fired = {
                alarm_id: fired_at
                for alarm_id, fired_at in self._fired.items()
                if fired_at == stamp
            }
            due = evaluate(now, self._alarms, self._fired)

            by_id = {}
            for alarm in self._alarms:
                by_id.setdefault(alarm.id, alarm)

            for alarm_id in due:
                self._fired[alarm_id] = stamp
                self.outbox.send(TRIGGER_ALARM, alarm=by_id[alarm_id].to_dict(), stamp=stamp)

        return due

    def _on_timer(self):
        if not self._running:
            return
        try:
            self.tick()
        except Exception as e:
            print(f"[Worker] Tick failed: {e}")
            self.outbox.send(ERROR, error=str(e))

    def start(self):
        """Start ticking and accepting messages."""
        if self._scheduler is not None:
            self._shutdown_scheduler()

        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self._on_timer,
            "interval",
            seconds=self._tick_seconds,
            id=self.TICK_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._running = True
        scheduler.start()
        self._scheduler = scheduler
        self.inbox.start()
        print("[Worker] Clock worker started")

    def _shutdown_scheduler(self):
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=False)

    def stop(self):
        """Stop ticking. Safe to call more than once."""
        was_running = self._running
        self._running = False
        self._shutdown_scheduler()
        self.inbox.close()
        if was_running:
            print("[Worker] Clock worker stopped")

    @property
    def running(self) -> bool:
        return self._running
