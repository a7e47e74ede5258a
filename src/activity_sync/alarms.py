"""Named periodic alarms fired from a single background thread."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Alarm:
    name: str


AlarmListener = Callable[[Alarm], Any]


@dataclass(slots=True)
class _Schedule:
    period: float
    next_due: float


class AlarmScheduler:
    """Fires every registered alarm to every listener, one alarm at a time.

    Listeners receive all alarms and are expected to ignore names that are not
    theirs. An alarm that comes due while another is being handled fires after
    it; overlapping runs of one alarm never happen.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._schedules: dict[str, _Schedule] = {}
        self._listeners: list[AlarmListener] = []
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._wakeup = threading.Event()

    def create(self, name: str, period: timedelta, delay: Optional[timedelta] = None) -> None:
        """Schedule ``name`` every ``period``; first firing after ``delay`` (default ``period``)."""
        seconds = period.total_seconds()
        if seconds <= 0:
            raise ValueError("Alarm period must be positive")
        first = (delay if delay is not None else period).total_seconds()
        with self._lock:
            self._schedules[name] = _Schedule(period=seconds, next_due=self._clock() + first)
        self._wakeup.set()

    def clear(self, name: str) -> None:
        with self._lock:
            self._schedules.pop(name, None)

    def add_listener(self, listener: AlarmListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def fire(self, name: str) -> None:
        """Deliver ``name`` to all listeners on the calling thread."""
        alarm = Alarm(name=name)
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(alarm)
            except Exception:
                logger.exception("Listener failed for alarm %s", name)

    def run_pending(self) -> list[str]:
        """Fire the alarms that are due now; returns their names."""
        now = self._clock()
        due: list[str] = []
        with self._lock:
            for name, schedule in self._schedules.items():
                if schedule.next_due <= now:
                    due.append(name)
                    schedule.next_due = now + schedule.period
        for name in due:
            self.fire(name)
        return due

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(target=self._run, args=(stop_event,), daemon=True)
            self._thread = thread
            self._stop_event = stop_event
        thread.start()
        logger.info("Alarm scheduler started.")

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        self._wakeup.set()
        thread.join(timeout=10)
        logger.info("Alarm scheduler stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def _seconds_until_next(self) -> Optional[float]:
        with self._lock:
            if not self._schedules:
                return None
            earliest = min(schedule.next_due for schedule in self._schedules.values())
        return max(0.0, earliest - self._clock())

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self.run_pending()
            self._wakeup.clear()
            if stop_event.is_set():
                break
            # Sleep until the next alarm, a new schedule, or stop.
            self._wakeup.wait(self._seconds_until_next())
