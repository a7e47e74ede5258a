"""Administrator-managed policy: whether to sync, and with which credentials."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from .paths import get_policy_path

logger = logging.getLogger(__name__)


class ManagedPolicy:
    """Reads policy values from a JSON file.

    The file is read on every call so that an administrator's edits take
    effect without a restart. A missing or unreadable file behaves like an
    empty policy.
    """

    def __init__(self, path: Optional[Union[Path, str]] = None) -> None:
        self.path = Path(path) if path is not None else get_policy_path()

    def cloud_sync_enabled(self) -> bool:
        return bool(self._get("CLOUD_SYNC"))

    def tag(self) -> str:
        return self._get_str("TAG")

    def subdomain(self) -> str:
        return self._get_str("SUBDOMAIN")

    def _get_str(self, name: str) -> str:
        value = self._get(name)
        return value if isinstance(value, str) else ""

    def _get(self, name: str) -> Any:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug("No managed policy at %s; %s unset", self.path, name)
            return None
        except (OSError, ValueError) as exc:
            logger.debug("Managed policy unreadable (%s); %s unset", exc, name)
            return None
        if not isinstance(data, dict):
            logger.debug("Managed policy at %s is not an object; %s unset", self.path, name)
            return None
        return data.get(name)
