"""SQLite-backed key-value store with per-key change subscriptions."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


def open_database(
    path: Union[Path, str], *, check_same_thread: bool = True
) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        str(path),
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )


def read_value(conn: sqlite3.Connection, key: str) -> Optional[str]:
    row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
    return row["value"] if row is not None else None


def write_values(conn: sqlite3.Connection, items: Mapping[str, str]) -> None:
    conn.execute("BEGIN")
    try:
        conn.executemany(
            """
            INSERT INTO kv (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            list(items.items()),
        )
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def delete_value(conn: sqlite3.Connection, key: str) -> None:
    conn.execute("DELETE FROM kv WHERE key = ?", (key,))


class KeyValueStore:
    """JSON values keyed by string, persisted in a single SQLite table.

    Every write notifies the listeners subscribed to the written key with the
    new value (``None`` after a delete). Listeners run on the writing thread,
    after the write has been committed and outside the store lock.
    """

    def __init__(self, path: Union[Path, str]) -> None:
        self.path = path
        self._conn = open_database(path, check_same_thread=False)
        self._lock = threading.Lock()
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            raw = read_value(self._conn, key)
        if raw is None:
            return default
        return json.loads(raw)

    def get_many(self, keys: list[str]) -> dict[str, Any]:
        return {key: self.get(key) for key in keys}

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        encoded = {key: json.dumps(value) for key, value in items.items()}
        with self._lock:
            write_values(self._conn, encoded)
        for key, value in items.items():
            self._notify(key, value)

    def delete(self, key: str) -> None:
        with self._lock:
            delete_value(self._conn, key)
        self._notify(key, None)

    def subscribe(self, key: str, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the new value whenever ``key`` changes."""
        with self._lock:
            self._listeners[key].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners[key]:
                    self._listeners[key].remove(listener)

        return unsubscribe

    def wait_for(self, key: str, desired: Any, timeout: Optional[float] = None) -> bool:
        """Block until ``key`` holds ``desired``; False if the timeout expires."""
        reached = threading.Event()

        def listener(value: Any) -> None:
            if value == desired:
                reached.set()

        unsubscribe = self.subscribe(key, listener)
        try:
            if self.get(key) == desired:
                return True
            return reached.wait(timeout)
        finally:
            unsubscribe()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _notify(self, key: str, value: Any) -> None:
        with self._lock:
            listeners = list(self._listeners.get(key, ()))
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("Listener for key %s failed", key)
