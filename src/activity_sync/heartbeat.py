"""Turn active-tab observations into buffered activity events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .buffer import EventBuffer
from .config import HeartbeatSettings
from .models import ActivityEvent, TabData
from .state import get_enabled, get_heartbeat_data, set_heartbeat_data
from .store import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TabSnapshot:
    """The active tab as reported by the browser; any field may be missing."""

    url: Optional[str] = None
    title: Optional[str] = None
    audible: Optional[bool] = None
    incognito: bool = False


class HeartbeatRecorder:
    """Records one heartbeat per observation of the active tab."""

    def __init__(
        self,
        buffer: EventBuffer,
        store: KeyValueStore,
        settings: Optional[HeartbeatSettings] = None,
    ) -> None:
        self.buffer = buffer
        self.store = store
        self.settings = settings or HeartbeatSettings()

    def record(
        self,
        tab: Optional[TabSnapshot],
        tab_count: int = 1,
        email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[ActivityEvent]:
        """Buffer a heartbeat for ``tab``; returns the stored tail, or None if ignored.

        When the tab differs from the previous heartbeat, the previous data is
        first recorded one millisecond earlier so its session ends where the
        new one starts.
        """
        if not get_enabled(self.store):
            logger.warning("Ignoring heartbeat because client has not been enabled")
            return None
        if tab is None:
            logger.warning("Ignoring heartbeat because no active tab was found")
            return None
        if not tab.url or not tab.title:
            logger.warning("Ignoring heartbeat because tab is missing URL or title")
            return None

        now = now or datetime.now(timezone.utc)
        data = TabData(
            url=tab.url,
            title=tab.title,
            audible=bool(tab.audible),
            incognito=tab.incognito,
            tab_count=tab_count,
        )
        pulse = self.settings.pulse_window_seconds

        with self.buffer.lock():
            previous = get_heartbeat_data(self.store)
            if previous is not None and previous != data:
                logger.debug("Recording heartbeat for previous data %s", previous)
                self.buffer.add_one(
                    ActivityEvent(
                        timestamp=now - timedelta(milliseconds=1),
                        duration=0.0,
                        data=previous,
                        email=email,
                    ),
                    pulse,
                )
            logger.debug("Recording heartbeat %s", data)
            tail = self.buffer.add_one(
                ActivityEvent(timestamp=now, duration=0.0, data=data, email=email),
                pulse,
            )
            set_heartbeat_data(self.store, data)
        return tail
