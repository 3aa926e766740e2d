"""Message passing between the clock worker and the scheduling loop."""

import json
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .config import DEBUG

# Message types
UPDATE_ALARMS = "UPDATE_ALARMS"
STOP = "STOP"
TRIGGER_ALARM = "TRIGGER_ALARM"
ERROR = "ERROR"


@dataclass(frozen=True)
class Message:
    """A typed message with a plain-data payload."""
    type: str
    payload: dict


class MessageChannel:
    """
    One-way message pipe into an execution context.

    Payloads are JSON-encoded on send and decoded on delivery, so the
    receiver only ever sees copies of plain data. Delivery happens either
    on a background dispatch thread (start/close) or synchronously via
    drain().
    """

    # Dispatch thread wake-up interval (seconds)
    POLL_INTERVAL = 0.1

    def __init__(self, name: str):
        self.name = name
        self._queue: queue.Queue = queue.Queue()
        self._handlers: list[Callable[[Message], None]] = []
        self._running = False
        self._thread: Optional[threading.Thread] = None

    def send(self, message_type: str, **payload) -> None:
        """Queue a message; payload must be JSON-serializable."""
        self._queue.put((message_type, json.dumps(payload)))

    def on_message(self, handler: Callable[[Message], None]) -> None:
        """Register a receiver for every delivered message."""
        self._handlers.append(handler)

    def _deliver(self, message_type: str, encoded: str) -> None:
        message = Message(message_type, json.loads(encoded))
        if DEBUG:
            print(f"[Channel] {self.name} <- {message_type}")
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception as e:
                print(f"[Channel] {self.name}: handler failed on {message_type}: {e}")

    def drain(self) -> int:
        """Deliver all pending messages in the calling thread."""
        delivered = 0
        while True:
            try:
                message_type, encoded = self._queue.get_nowait()
            except queue.Empty:
                return delivered
            self._deliver(message_type, encoded)
            delivered += 1

    def pending(self) -> int:
        return self._queue.qsize()

    def _dispatch_loop(self):
        """Background thread that delivers queued messages."""
        while self._running:
            try:
                message_type, encoded = self._queue.get(timeout=self.POLL_INTERVAL)
            except queue.Empty:
                continue
            self._deliver(message_type, encoded)

    def start(self):
        """Start delivering messages on a daemon thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._dispatch_loop, name=f"channel-{self.name}", daemon=True
        )
        self._thread.start()

    def close(self):
        """Stop the dispatch thread. Undelivered messages are dropped."""
        self._running = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1)
        self._thread = None
        while not self._queue.empty():
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
