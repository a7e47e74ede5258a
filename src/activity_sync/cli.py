"""Command-line interface for activity sync."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .client import PROBE_POLICY, WAIT_POLICY, probe_collector
from .config import CloudSyncSettings, HeartbeatSettings, ServerSettings
from .errors import ActivitySyncError
from .heartbeat import TabSnapshot
from .records import MILLISECONDS_PER_SECOND, format_timestamp
from .server_runner import run_server
from .services import Services, build_services
from .state import get_enabled, get_sync_status, set_enabled

app = typer.Typer(help="Buffer browser activity locally and upload it in batches.")


def _store_option() -> Optional[Path]:
    return typer.Option(
        None, "--store", path_type=Path, help="Location of the SQLite state store."
    )


def _policy_option() -> Optional[Path]:
    return typer.Option(
        None, "--policy", path_type=Path, help="Location of the managed policy JSON file."
    )


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _open(
    store_path: Optional[Path],
    policy_path: Optional[Path] = None,
    heartbeat_settings: Optional[HeartbeatSettings] = None,
    sync_settings: Optional[CloudSyncSettings] = None,
) -> Services:
    return build_services(
        store_path=store_path,
        policy_path=policy_path,
        heartbeat_settings=heartbeat_settings,
        sync_settings=sync_settings,
    )


@app.command()
def record(
    url: str = typer.Argument(..., help="URL of the active tab."),
    title: str = typer.Argument(..., help="Title of the active tab."),
    email: Optional[str] = typer.Option(None, "--email", help="User the activity belongs to."),
    tab_count: int = typer.Option(1, "--tabs", min=0, help="Number of open tabs."),
    interval: float = typer.Option(
        60.0, "--interval", min=1.0, help="Heartbeat interval in seconds."
    ),
    store_path: Optional[Path] = _store_option(),
) -> None:
    """Record a single heartbeat for the given tab."""
    services = _open(store_path, heartbeat_settings=HeartbeatSettings.from_intervals(interval))
    try:
        tail = services.recorder.record(
            TabSnapshot(url=url, title=title), tab_count=tab_count, email=email
        )
    except ActivitySyncError as exc:
        typer.echo(f"Failed to record heartbeat: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        services.close()
    if tail is None:
        typer.echo("Heartbeat ignored.")
        raise typer.Exit(code=1)
    typer.echo(f"{tail.data.url} {tail.duration / MILLISECONDS_PER_SECOND:.1f}s since {format_timestamp(tail.timestamp)}")


@app.command()
def enable(store_path: Optional[Path] = _store_option()) -> None:
    """Allow heartbeats to be recorded."""
    services = _open(store_path)
    try:
        set_enabled(services.store, True)
    finally:
        services.close()
    typer.echo("Heartbeat recording enabled.")


@app.command()
def disable(store_path: Optional[Path] = _store_option()) -> None:
    """Stop recording heartbeats."""
    services = _open(store_path)
    try:
        set_enabled(services.store, False)
    finally:
        services.close()
    typer.echo("Heartbeat recording disabled.")


@app.command()
def sync(
    store_path: Optional[Path] = _store_option(),
    policy_path: Optional[Path] = _policy_option(),
    collector_url: Optional[str] = typer.Option(None, "--url", help="Collector endpoint."),
    batch_size: int = typer.Option(100, "--batch-size", min=1, help="Events per request."),
) -> None:
    """Run one cloud sync cycle now."""
    settings = CloudSyncSettings.from_intervals(
        interval_minutes=24 * 60, batch_size=batch_size, collector_url=collector_url
    )
    services = _open(store_path, policy_path, sync_settings=settings)
    try:
        outcome = services.dispatcher.run_sync_cycle()
    except ActivitySyncError as exc:
        typer.echo(f"Sync failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        services.close()
    typer.echo(f"Sync outcome: {outcome.value}")


@app.command()
def show(store_path: Optional[Path] = _store_option()) -> None:
    """Print the buffered events."""
    services = _open(store_path)
    try:
        events = services.buffer.read_all()
    except ActivitySyncError as exc:
        typer.echo(f"Failed to read buffer: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        services.close()
    if not events:
        typer.echo("No buffered activity.")
        return
    for event in events:
        seconds = event.duration / MILLISECONDS_PER_SECOND
        typer.echo(
            f"{format_timestamp(event.timestamp)}  {seconds:>9.1f}s  "
            f"{event.data.url}  {event.data.title[:45]}"
        )


@app.command()
def clear(
    store_path: Optional[Path] = _store_option(),
    yes: bool = typer.Option(False, "--yes", help="Do not ask for confirmation."),
) -> None:
    """Discard every buffered event without uploading it."""
    if not yes:
        typer.confirm("Discard all buffered activity?", abort=True)
    services = _open(store_path)
    try:
        services.buffer.clear()
    finally:
        services.close()
    typer.echo("Buffer cleared.")


@app.command()
def status(
    store_path: Optional[Path] = _store_option(),
    policy_path: Optional[Path] = _policy_option(),
) -> None:
    """Show recording, policy and last sync state."""
    services = _open(store_path, policy_path)
    try:
        sync_status = get_sync_status(services.store)
        typer.echo(f"Recording enabled: {get_enabled(services.store)}")
        typer.echo(f"Cloud sync policy: {services.policy.cloud_sync_enabled()}")
        typer.echo(f"Buffered events:   {len(services.buffer)}")
    except ActivitySyncError as exc:
        typer.echo(f"Failed to read buffer: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    else:
        if sync_status.success is None:
            typer.echo("Last sync:         never")
        else:
            result = "ok" if sync_status.success else "failed"
            typer.echo(f"Last sync:         {result} at {sync_status.date}")
    finally:
        services.close()


@app.command()
def probe(
    url: str = typer.Argument(..., help="Collector info URL to check."),
    wait: bool = typer.Option(
        False, "--wait", help="Keep retrying until the collector answers."
    ),
) -> None:
    """Check that the collector answers, retrying until it does with --wait."""
    info = probe_collector(url, policy=WAIT_POLICY if wait else PROBE_POLICY)
    if info is None:
        typer.echo("Collector unreachable.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Collector reachable: {info}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the service."),
    port: int = typer.Option(5600, "--port", min=1, max=65535, help="TCP port for the service."),
    store_path: Optional[Path] = _store_option(),
    policy_path: Optional[Path] = _policy_option(),
    interval: float = typer.Option(
        60.0, "--interval", min=1.0, help="Heartbeat interval in seconds."
    ),
    sync_minutes: float = typer.Option(
        24 * 60, "--sync-interval", min=1.0, help="Minutes between cloud sync cycles."
    ),
    collector_url: Optional[str] = typer.Option(None, "--url", help="Collector endpoint."),
    batch_size: int = typer.Option(100, "--batch-size", min=1, help="Events per request."),
) -> None:
    """Receive heartbeats over HTTP and upload them on a schedule."""
    run_server(
        server=ServerSettings(host=host, port=port),
        store_path=store_path,
        policy_path=policy_path,
        heartbeat_settings=HeartbeatSettings.from_intervals(interval),
        sync_settings=CloudSyncSettings.from_intervals(
            interval_minutes=sync_minutes,
            batch_size=batch_size,
            collector_url=collector_url,
        ),
    )
