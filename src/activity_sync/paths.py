"""Helpers for locating application directories."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "ActivitySync"
APP_AUTHOR = "ActivitySync"


def _dirs() -> PlatformDirs:
    return PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)


def get_data_dir() -> Path:
    """Return the base directory for persistent data."""
    path = Path(_dirs().user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_store_path() -> Path:
    return get_data_dir() / "storage.sqlite3"


def get_policy_path() -> Path:
    """Location of the administrator-managed policy file."""
    return Path(_dirs().site_config_path) / "policy.json"
