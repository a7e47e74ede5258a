"""Durable, ordered buffer of activity events awaiting upload."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, Optional, Sequence

from .config import BUFFER_KEY
from .errors import BufferCorruptError, PreconditionError
from .merge import Extend, merge
from .models import ActivityEvent
from .store import KeyValueStore

logger = logging.getLogger(__name__)


class EventBuffer:
    """Ordered events persisted under a single store key.

    All operations hold one re-entrant lock, so the read-merge-write of
    :meth:`add_one` never interleaves with another buffer operation issued
    through the same handle. Only the last element is ever rewritten.
    """

    def __init__(self, store: KeyValueStore, key: str = BUFFER_KEY) -> None:
        self._store = store
        self._key = key
        self._lock = threading.RLock()

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self._lock:
            yield

    def read_all(self) -> list[ActivityEvent]:
        with self._lock:
            raw = self._store.get(self._key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise BufferCorruptError(f"Expected a list under {self._key!r}, got {type(raw).__name__}")
        try:
            return [ActivityEvent.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as exc:
            raise BufferCorruptError(f"Undecodable event under {self._key!r}: {exc}") from exc

    def append(self, event: ActivityEvent) -> None:
        with self._lock:
            events = self.read_all()
            events.append(event)
            self._write(events)

    def replace_tail(self, event: ActivityEvent) -> None:
        with self._lock:
            events = self.read_all()
            if not events:
                raise PreconditionError("Cannot replace the tail of an empty buffer")
            events[-1] = event
            self._write(events)

    def clear(self) -> None:
        with self._lock:
            self._write([])

    def add_one(self, candidate: ActivityEvent, pulse_window_seconds: float) -> ActivityEvent:
        """Merge ``candidate`` into the tail or append it; returns the stored tail."""
        with self._lock:
            events = self.read_all()
            last: Optional[ActivityEvent] = events[-1] if events else None
            result = merge(last, candidate, pulse_window_seconds)
            if isinstance(result, Extend):
                events[-1] = result.event
            else:
                events.append(result.event)
            self._write(events)
            return result.event

    def discard_flushed(self, snapshot: Sequence[ActivityEvent]) -> int:
        """Remove the events of an uploaded snapshot; returns how many were flushed.

        Events appended after the snapshot was read are kept. When the tail was
        extended after the snapshot, only the unsent remainder of it stays: it
        starts where the uploaded tail ended and carries the extra duration.
        """
        if not snapshot:
            return 0
        with self._lock:
            events = self.read_all()
            count = len(snapshot)
            if events[:count] == list(snapshot):
                self._write(events[count:])
                return count
            flushed_tail = snapshot[-1]
            if (
                len(events) >= count
                and events[: count - 1] == list(snapshot[:-1])
                and _extends(events[count - 1], flushed_tail)
            ):
                tail = events[count - 1]
                kept = events[count:]
                extra = tail.duration - flushed_tail.duration
                if extra > 0:
                    remainder = replace(
                        tail, timestamp=flushed_tail.end_time, duration=extra
                    )
                    kept = [remainder, *kept]
                self._write(kept)
                return count
            logger.warning(
                "Buffer changed underneath the upload; keeping %d stored events",
                len(events),
            )
            return 0

    def __len__(self) -> int:
        return len(self.read_all())

    def _write(self, events: Sequence[ActivityEvent]) -> None:
        self._store.set(self._key, [event.to_dict() for event in events])


def _extends(current: ActivityEvent, flushed: ActivityEvent) -> bool:
    return (
        current.timestamp == flushed.timestamp
        and current.data == flushed.data
        and current.duration >= flushed.duration
    )
