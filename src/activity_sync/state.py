"""Typed accessors for the small pieces of client state kept in the store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .config import ENABLED_KEY, HEARTBEAT_DATA_KEY, LAST_SYNC_KEY, LAST_SYNC_SUCCESS_KEY
from .models import TabData
from .store import KeyValueStore


@dataclass(slots=True)
class SyncStatus:
    success: Optional[bool] = None
    date: Optional[str] = None


def get_enabled(store: KeyValueStore) -> bool:
    return bool(store.get(ENABLED_KEY))


def set_enabled(store: KeyValueStore, enabled: bool) -> None:
    store.set(ENABLED_KEY, enabled)


def wait_for_enabled(store: KeyValueStore, timeout: Optional[float] = None) -> bool:
    return store.wait_for(ENABLED_KEY, True, timeout)


def get_sync_status(store: KeyValueStore) -> SyncStatus:
    values = store.get_many([LAST_SYNC_SUCCESS_KEY, LAST_SYNC_KEY])
    success = values[LAST_SYNC_SUCCESS_KEY]
    date = values[LAST_SYNC_KEY]
    return SyncStatus(
        success=None if success is None else bool(success),
        date=None if date is None else str(date),
    )


def set_sync_status(store: KeyValueStore, success: bool) -> None:
    store.set_many(
        {
            LAST_SYNC_SUCCESS_KEY: success,
            LAST_SYNC_KEY: datetime.now(timezone.utc).isoformat(),
        }
    )


def get_heartbeat_data(store: KeyValueStore) -> Optional[TabData]:
    raw = store.get(HEARTBEAT_DATA_KEY)
    if not isinstance(raw, dict):
        return None
    return TabData.from_dict(raw)


def set_heartbeat_data(store: KeyValueStore, data: TabData) -> None:
    store.set(HEARTBEAT_DATA_KEY, data.to_dict())
