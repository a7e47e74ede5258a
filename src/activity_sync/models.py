"""Domain models for buffered browser activity."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class TabData:
    """What was active: the tab's URL and title plus a few tab attributes."""

    url: str
    title: str
    audible: bool = False
    incognito: bool = False
    tab_count: int = 1

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TabData":
        return cls(
            url=str(data["url"]),
            title=str(data["title"]),
            audible=bool(data.get("audible", False)),
            incognito=bool(data.get("incognito", False)),
            tab_count=int(data.get("tab_count", 1)),
        )


@dataclass(slots=True)
class ActivityEvent:
    """A contiguous session on a single URL.

    ``duration`` is kept in milliseconds, counted from ``timestamp``.
    """

    timestamp: datetime
    duration: float
    data: TabData
    email: Optional[str] = None

    @property
    def end_time(self) -> datetime:
        return self.timestamp + timedelta(milliseconds=self.duration)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "duration": self.duration,
            "data": self.data.to_dict(),
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ActivityEvent":
        return cls(
            timestamp=datetime.fromisoformat(raw["timestamp"]),
            duration=float(raw["duration"]),
            data=TabData.from_dict(raw["data"]),
            email=raw.get("email"),
        )


@dataclass(frozen=True, slots=True)
class TransportRecord:
    """Wire form of an event as accepted by the collector."""

    timestamp: str
    duration: float
    url: str
    title: str
    protocol: str
    domain: str
    email: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        if self.email is None:
            payload.pop("email")
        return payload
