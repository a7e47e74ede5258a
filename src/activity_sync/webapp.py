"""FastAPI application that receives heartbeats from the browser and exposes the buffer."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from .alarms import AlarmScheduler
from .errors import ActivitySyncError
from .heartbeat import TabSnapshot
from .records import MILLISECONDS_PER_SECOND, format_timestamp
from .services import Services, build_services
from .state import get_enabled, get_sync_status, set_enabled
from .sync import cloud_sync_alarm_listener

logger = logging.getLogger(__name__)


class HeartbeatPayload(BaseModel):
    url: Optional[str] = None
    title: Optional[str] = None
    audible: Optional[bool] = None
    incognito: bool = False
    tab_count: int = Field(default=1, ge=0)
    email: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class EnabledPayload(BaseModel):
    enabled: bool

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    services: Optional[Services] = None,
    scheduler: Optional[AlarmScheduler] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved = services or build_services()
    alarm_scheduler = scheduler or AlarmScheduler()
    alarm_scheduler.add_listener(cloud_sync_alarm_listener(resolved.dispatcher))

    app = FastAPI(title="Activity Sync", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.services = resolved
    app.state.scheduler = alarm_scheduler

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        alarm_scheduler.create(
            resolved.sync_settings.alarm_name, resolved.sync_settings.interval
        )
        alarm_scheduler.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        alarm_scheduler.stop()

    @app.post("/api/heartbeat")
    def heartbeat(payload: HeartbeatPayload, request: Request) -> Dict[str, Any]:
        svc: Services = request.app.state.services
        tab = TabSnapshot(
            url=payload.url,
            title=payload.title,
            audible=payload.audible,
            incognito=payload.incognito,
        )
        try:
            tail = svc.recorder.record(tab, tab_count=payload.tab_count, email=payload.email)
        except ActivitySyncError as exc:
            logger.error("Failed to record heartbeat: %s", exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {
            "recorded": tail is not None,
            "event": _event_payload(tail) if tail is not None else None,
        }

    @app.get("/api/events")
    def events(request: Request) -> Dict[str, Any]:
        svc: Services = request.app.state.services
        try:
            buffered = svc.buffer.read_all()
        except ActivitySyncError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"count": len(buffered), "events": [_event_payload(event) for event in buffered]}

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        svc: Services = request.app.state.services
        sync_status = get_sync_status(svc.store)
        try:
            buffered = len(svc.buffer)
        except ActivitySyncError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {
            "enabled": get_enabled(svc.store),
            "cloud_sync": svc.policy.cloud_sync_enabled(),
            "scheduler_running": request.app.state.scheduler.is_running(),
            "buffered_events": buffered,
            "last_sync_success": sync_status.success,
            "last_sync": sync_status.date,
        }

    @app.post("/api/sync")
    def sync_now(request: Request) -> Dict[str, Any]:
        svc: Services = request.app.state.services
        try:
            outcome = svc.dispatcher.run_sync_cycle()
        except ActivitySyncError as exc:
            logger.error("Cloud sync failed: %s", exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"outcome": outcome.value}

    @app.put("/api/enabled")
    def update_enabled(payload: EnabledPayload, request: Request) -> Dict[str, Any]:
        svc: Services = request.app.state.services
        set_enabled(svc.store, payload.enabled)
        return {"enabled": payload.enabled}

    return app


def _event_payload(event: Any) -> Dict[str, Any]:
    return {
        "timestamp": format_timestamp(event.timestamp),
        "duration_seconds": event.duration / MILLISECONDS_PER_SECOND,
        "url": event.data.url,
        "title": event.data.title,
        "email": event.email,
    }
