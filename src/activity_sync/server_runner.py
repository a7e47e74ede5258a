"""Helpers to launch the local heartbeat service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .config import CloudSyncSettings, HeartbeatSettings, ServerSettings
from .services import build_services
from .webapp import create_app


def run_server(
    *,
    server: Optional[ServerSettings] = None,
    store_path: Optional[Path] = None,
    policy_path: Optional[Path] = None,
    heartbeat_settings: Optional[HeartbeatSettings] = None,
    sync_settings: Optional[CloudSyncSettings] = None,
    log_level: str = "info",
) -> None:
    """Start the FastAPI service and its cloud sync alarm."""
    server = server or ServerSettings()
    services = build_services(
        store_path=store_path,
        policy_path=policy_path,
        heartbeat_settings=heartbeat_settings,
        sync_settings=sync_settings,
    )
    app = create_app(services=services)

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    try:
        uvicorn.run(app, host=server.host, port=server.port, log_level=log_level)
    finally:
        services.close()
