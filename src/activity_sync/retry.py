"""Retry helper for one-shot remote calls.

The upload dispatcher does not use this: a failed batch waits for the next
scheduled sync instead.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How often and how patiently to retry.

    ``retries`` counts attempts after the first one. With ``forever`` set the
    operation is retried until it succeeds; reserve that for idempotent setup
    calls.
    """

    retries: int = 3
    min_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 30.0
    forever: bool = False

    def delay_for(self, attempt_number: int) -> float:
        return min(self.max_delay, self.min_delay * self.factor ** (attempt_number - 1))


@dataclass(frozen=True, slots=True)
class FailedAttempt:
    attempt_number: int
    retries_left: Optional[int]
    error: Exception


def with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy = RetryPolicy(),
    on_failed_attempt: Optional[Callable[[FailedAttempt], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` until it returns, retrying failures per ``policy``.

    The observer sees every failed attempt, including the last one, before the
    final error is raised.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except Exception as exc:
            retries_left = None if policy.forever else max(policy.retries + 1 - attempt, 0)
            if on_failed_attempt is not None:
                on_failed_attempt(FailedAttempt(attempt, retries_left, exc))
            if retries_left == 0:
                logger.debug("Giving up after %d attempts: %s", attempt, exc)
                raise
            delay = policy.delay_for(attempt)
            logger.debug("Attempt %d failed, retrying in %.1fs: %s", attempt, delay, exc)
            sleep(delay)
