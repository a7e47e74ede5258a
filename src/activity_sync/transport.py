"""HTTP transport that posts activity records to the collector."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol, Sequence

import requests

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def __call__(
        self, url: str, headers: Mapping[str, str], records: Sequence[dict[str, Any]]
    ) -> bool: ...


class HttpTransport:
    """Single POST per call; no retry and no batching."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    def __call__(
        self, url: str, headers: Mapping[str, str], records: Sequence[dict[str, Any]]
    ) -> bool:
        try:
            response = self._session.post(
                url,
                headers=dict(headers),
                json={"activity": list(records)},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("Error posting batch data: %s", exc)
            return False
        if not response.ok:
            logger.error("Failed to post data: %s %s", response.status_code, response.reason)
            return False
        logger.debug("Successfully synced batch of %d items", len(records))
        return True

    def close(self) -> None:
        self._session.close()
