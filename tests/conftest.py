"""Shared pytest fixtures."""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

from activity_sync.buffer import EventBuffer
from activity_sync.models import ActivityEvent, TabData
from activity_sync.store import KeyValueStore

T0 = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


def make_event(
    url: str = "https://example.com/a",
    offset_ms: float = 0,
    duration: float = 0.0,
    title: str = "Example",
    email: str | None = None,
) -> ActivityEvent:
    return ActivityEvent(
        timestamp=T0 + timedelta(milliseconds=offset_ms),
        duration=duration,
        data=TabData(url=url, title=title),
        email=email,
    )


@pytest.fixture
def store(tmp_path: Path) -> Iterator[KeyValueStore]:
    kv = KeyValueStore(tmp_path / "storage.sqlite3")
    yield kv
    kv.close()


@pytest.fixture
def buffer(store: KeyValueStore) -> EventBuffer:
    return EventBuffer(store)


@pytest.fixture
def policy_file(tmp_path: Path) -> Callable[..., Path]:
    """Write a managed policy file and return its path."""
    path = tmp_path / "policy.json"

    def write(**values: Any) -> Path:
        path.write_text(json.dumps(values), encoding="utf-8")
        return path

    return write
