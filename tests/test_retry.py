"""Tests for the retry helper and the collector probe built on it."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from activity_sync.client import probe_collector
from activity_sync.retry import FailedAttempt, RetryPolicy, with_retry


class Flaky:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls}")
        return "ok"


class TestWithRetry:
    def test_success_first_time(self):
        sleeps: list[float] = []
        assert with_retry(lambda: 1, RetryPolicy(), sleep=sleeps.append) == 1
        assert sleeps == []

    def test_recovers_after_failures(self):
        op = Flaky(failures=2)
        attempts: list[FailedAttempt] = []
        sleeps: list[float] = []
        result = with_retry(op, RetryPolicy(retries=3, min_delay=0.5), attempts.append, sleeps.append)
        assert result == "ok"
        assert op.calls == 3
        assert [a.attempt_number for a in attempts] == [1, 2]
        assert [a.retries_left for a in attempts] == [3, 2]
        assert sleeps == [0.5, 1.0]

    def test_bounded_gives_up(self):
        op = Flaky(failures=10)
        attempts: list[FailedAttempt] = []
        with pytest.raises(ConnectionError, match="attempt 4"):
            with_retry(op, RetryPolicy(retries=3), attempts.append, lambda s: None)
        assert op.calls == 4
        assert attempts[-1].retries_left == 0

    def test_forever_keeps_going(self):
        op = Flaky(failures=25)
        attempts: list[FailedAttempt] = []
        policy = RetryPolicy(forever=True, min_delay=0.5)
        assert with_retry(op, policy, attempts.append, lambda s: None) == "ok"
        assert len(attempts) == 25
        assert all(a.retries_left is None for a in attempts)

    def test_delay_is_capped(self):
        policy = RetryPolicy(min_delay=1.0, factor=2.0, max_delay=5.0)
        assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]


class TestProbeCollector:
    def test_returns_info(self):
        session = MagicMock(spec=requests.Session)
        session.get.return_value.json.return_value = {"version": "1"}
        info = probe_collector("https://c.example/info", session, RetryPolicy(retries=1, min_delay=0))
        assert info == {"version": "1"}

    def test_none_after_all_attempts(self):
        session = MagicMock(spec=requests.Session)
        session.get.side_effect = requests.ConnectionError("refused")
        info = probe_collector("https://c.example/info", session, RetryPolicy(retries=2, min_delay=0))
        assert info is None
        assert session.get.call_count == 3
