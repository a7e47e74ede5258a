"""Batched upload of buffered events to the remote collector."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence, TypeVar

from .alarms import Alarm
from .buffer import EventBuffer
from .config import CloudSyncSettings
from .policy import ManagedPolicy
from .records import to_transport_records
from .state import set_sync_status
from .store import KeyValueStore
from .transport import Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncOutcome(enum.Enum):
    SKIPPED = "skipped"
    CLEARED = "cleared"
    PARTIAL_FAILURE = "partial_failure"


@dataclass(frozen=True, slots=True)
class SyncCredentials:
    tag: str
    subdomain: str
    url: str

    def headers(self) -> dict[str, str]:
        return {
            "subdomain": self.subdomain,
            "token": self.tag,
            "Content-Type": "application/json",
        }


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of ``items`` of at most ``size`` elements."""
    if size < 1:
        raise ValueError("size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start : start + size]


class SyncDispatcher:
    """Uploads the buffer in fixed-size batches and clears it on full success.

    A failed batch never aborts the cycle and is never retried within it; the
    buffer is kept as-is and the next scheduled cycle sends it again.
    """

    def __init__(
        self,
        buffer: EventBuffer,
        policy: ManagedPolicy,
        transport: Transport,
        settings: Optional[CloudSyncSettings] = None,
        status_store: Optional[KeyValueStore] = None,
    ) -> None:
        self.buffer = buffer
        self.policy = policy
        self.transport = transport
        self.settings = settings or CloudSyncSettings()
        self._status_store = status_store

    def credentials(self) -> Optional[SyncCredentials]:
        tag = self.policy.tag()
        subdomain = self.policy.subdomain()
        if not tag.strip() or not subdomain.strip():
            logger.error("Subdomain or tag not set or blank, skipping cloud sync")
            return None
        if not self.settings.collector_url.strip():
            logger.error("Collector URL not configured, skipping cloud sync")
            return None
        return SyncCredentials(tag=tag, subdomain=subdomain, url=self.settings.collector_url)

    def run_sync_cycle(self) -> SyncOutcome:
        if not self.policy.cloud_sync_enabled():
            logger.debug("CLOUD_SYNC policy disabled, skipping cloud sync")
            return SyncOutcome.SKIPPED

        credentials = self.credentials()
        if credentials is None:
            return SyncOutcome.SKIPPED

        snapshot = self.buffer.read_all()
        if not snapshot:
            logger.debug("No data to sync")
            return SyncOutcome.SKIPPED

        records = to_transport_records(snapshot)
        if not records:
            # Undeliverable events stay buffered.
            logger.debug("No valid data to sync after filtering %d events", len(snapshot))
            return SyncOutcome.SKIPPED

        any_attempted = False
        all_succeeded = True
        for index, batch in enumerate(chunked(records, self.settings.batch_size), start=1):
            any_attempted = True
            if not self._send_batch(index, [record.to_payload() for record in batch], credentials):
                all_succeeded = False

        if not any_attempted:
            return SyncOutcome.SKIPPED

        if all_succeeded:
            flushed = self.buffer.discard_flushed(snapshot)
            logger.info(
                "Cloud sync completed; flushed %d of %d snapshot events, %d still buffered",
                flushed,
                len(snapshot),
                len(self.buffer),
            )
            outcome = SyncOutcome.CLEARED
        else:
            logger.warning("Some batches failed to sync, keeping stored heartbeats for retry")
            outcome = SyncOutcome.PARTIAL_FAILURE

        if self._status_store is not None:
            set_sync_status(self._status_store, outcome is SyncOutcome.CLEARED)
        return outcome

    def _send_batch(
        self, index: int, batch: list[dict], credentials: SyncCredentials
    ) -> bool:
        try:
            success = bool(self.transport(credentials.url, credentials.headers(), batch))
        except Exception:
            logger.exception("Error posting batch %d", index)
            return False
        if success:
            logger.debug("Batch %d of %d records synced", index, len(batch))
        else:
            logger.error("Batch %d of %d records failed", index, len(batch))
        return success


def cloud_sync_alarm_listener(
    dispatcher: SyncDispatcher,
) -> Callable[[Alarm], Optional[SyncOutcome]]:
    """Build an alarm listener that runs a sync cycle for the cloud sync alarm."""

    def listener(alarm: Alarm) -> Optional[SyncOutcome]:
        if alarm.name != dispatcher.settings.alarm_name:
            return None
        try:
            return dispatcher.run_sync_cycle()
        except Exception:
            logger.exception("Cloud sync failed")
            return None

    return listener
