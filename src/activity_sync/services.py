"""Wire the store, buffer, policy, recorder and dispatcher together."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .buffer import EventBuffer
from .config import CloudSyncSettings, HeartbeatSettings
from .heartbeat import HeartbeatRecorder
from .paths import get_store_path
from .policy import ManagedPolicy
from .store import KeyValueStore
from .sync import SyncDispatcher
from .transport import HttpTransport, Transport


@dataclass(slots=True)
class Services:
    store: KeyValueStore
    buffer: EventBuffer
    policy: ManagedPolicy
    recorder: HeartbeatRecorder
    dispatcher: SyncDispatcher
    heartbeat_settings: HeartbeatSettings
    sync_settings: CloudSyncSettings

    def close(self) -> None:
        close = getattr(self.dispatcher.transport, "close", None)
        if callable(close):
            close()
        self.store.close()


def build_services(
    *,
    store_path: Optional[Union[Path, str]] = None,
    policy_path: Optional[Union[Path, str]] = None,
    heartbeat_settings: Optional[HeartbeatSettings] = None,
    sync_settings: Optional[CloudSyncSettings] = None,
    transport: Optional[Transport] = None,
) -> Services:
    heartbeat_settings = heartbeat_settings or HeartbeatSettings()
    sync_settings = sync_settings or CloudSyncSettings()
    store = KeyValueStore(store_path or get_store_path())
    buffer = EventBuffer(store)
    policy = ManagedPolicy(policy_path)
    dispatcher = SyncDispatcher(
        buffer,
        policy,
        transport or HttpTransport(timeout=sync_settings.request_timeout),
        settings=sync_settings,
        status_store=store,
    )
    return Services(
        store=store,
        buffer=buffer,
        policy=policy,
        recorder=HeartbeatRecorder(buffer, store, heartbeat_settings),
        dispatcher=dispatcher,
        heartbeat_settings=heartbeat_settings,
        sync_settings=sync_settings,
    )
