"""One-shot calls against the collector that are worth retrying."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from .retry import FailedAttempt, RetryPolicy, with_retry

logger = logging.getLogger(__name__)

PROBE_POLICY = RetryPolicy(retries=3, min_delay=1.0)
WAIT_POLICY = RetryPolicy(forever=True, min_delay=0.5, max_delay=10.0)


def probe_collector(
    url: str,
    session: Optional[requests.Session] = None,
    policy: RetryPolicy = PROBE_POLICY,
    timeout: float = 10.0,
) -> Optional[dict[str, Any]]:
    """Fetch the collector's info document, or None once every attempt failed."""
    http = session or requests.Session()

    def fetch() -> dict[str, Any]:
        logger.debug("Requesting collector info from %s", url)
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
        return response.json()

    def log_failure(attempt: FailedAttempt) -> None:
        total = "unbounded" if attempt.retries_left is None else attempt.attempt_number + attempt.retries_left
        logger.warning(
            "Failed to reach collector (attempt %d/%s): %s",
            attempt.attempt_number,
            total,
            attempt.error,
        )

    try:
        info = with_retry(fetch, policy, on_failed_attempt=log_failure)
    except (requests.RequestException, ValueError) as exc:
        logger.error("All attempts to reach the collector failed: %s", exc)
        return None
    finally:
        if session is None:
            http.close()
    logger.info("Collector reachable at %s", url)
    return info
