"""Exceptions raised by the activity sync package."""

from __future__ import annotations


class ActivitySyncError(Exception):
    """Base class for errors raised by this package."""


class PreconditionError(ActivitySyncError):
    """An operation was called in a state its contract does not allow."""


class BufferCorruptError(ActivitySyncError):
    """The persisted event buffer could not be decoded."""
