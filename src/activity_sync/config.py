"""Configuration models and helpers for activity sync."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

# Storage keys shared by the buffer and the typed state accessors.
BUFFER_KEY = "asHeartbeats"
HEARTBEAT_DATA_KEY = "heartbeatData"
ENABLED_KEY = "enabled"
LAST_SYNC_SUCCESS_KEY = "lastSyncSuccess"
LAST_SYNC_KEY = "lastSync"


@dataclass(slots=True)
class HeartbeatSettings:
    """Runtime configuration for heartbeat recording."""

    interval: timedelta = timedelta(seconds=60)
    pulse_window: timedelta = timedelta(seconds=80)

    @classmethod
    def from_intervals(
        cls,
        interval_seconds: float,
        pulse_seconds: float | None = None,
    ) -> "HeartbeatSettings":
        pulse = pulse_seconds if pulse_seconds is not None else interval_seconds + 20.0
        return cls(
            interval=timedelta(seconds=interval_seconds),
            pulse_window=timedelta(seconds=pulse),
        )

    @property
    def pulse_window_seconds(self) -> float:
        return self.pulse_window.total_seconds()


@dataclass(slots=True)
class CloudSyncSettings:
    """Runtime configuration for the batched upload to the collector."""

    interval: timedelta = timedelta(hours=24)
    batch_size: int = 100
    alarm_name: str = "cloudSync"
    collector_url: str = ""
    request_timeout: float = 30.0

    @classmethod
    def from_intervals(
        cls,
        interval_minutes: float,
        batch_size: int = 100,
        collector_url: str | None = None,
        request_timeout: float = 30.0,
    ) -> "CloudSyncSettings":
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        return cls(
            interval=timedelta(minutes=interval_minutes),
            batch_size=batch_size,
            collector_url=collector_url or "",
            request_timeout=request_timeout,
        )


@dataclass(slots=True)
class ServerSettings:
    """Where the local heartbeat service listens."""

    host: str = "127.0.0.1"
    port: int = 5600
