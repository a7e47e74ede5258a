"""Decide whether a new heartbeat extends the buffered tail or starts a session."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Optional, Union

from .models import ActivityEvent


@dataclass(frozen=True, slots=True)
class Extend:
    """The tail absorbs the candidate; ``event`` is the updated tail."""

    event: ActivityEvent


@dataclass(frozen=True, slots=True)
class Append:
    """The candidate starts a new session and becomes the tail."""

    event: ActivityEvent


MergeResult = Union[Extend, Append]


def merge(
    last_event: Optional[ActivityEvent],
    candidate: ActivityEvent,
    pulse_window_seconds: float,
) -> MergeResult:
    """Merge ``candidate`` into ``last_event`` when both belong to one session.

    Two events belong to the same session when they share a URL and the
    candidate starts no later than ``pulse_window_seconds`` after the end of
    the last event (inclusive). The merged event keeps the original start and
    never loses duration, so late or replayed heartbeats cannot shorten it.
    Neither argument is modified.
    """
    if last_event is None or last_event.data.url != candidate.data.url:
        return Append(candidate)

    window_end = last_event.end_time + timedelta(seconds=pulse_window_seconds)
    if candidate.timestamp > window_end:
        return Append(candidate)

    elapsed = candidate.timestamp - last_event.timestamp
    proposed = elapsed / timedelta(milliseconds=1)
    return Extend(
        replace(
            last_event,
            duration=max(last_event.duration, proposed),
            email=candidate.email or last_event.email,
        )
    )
