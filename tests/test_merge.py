"""Tests for the session merge rules."""
from __future__ import annotations

from activity_sync.merge import Append, Extend, merge

from conftest import T0, make_event


class TestMerge:
    """Tests for merge()."""

    def test_no_last_event_appends(self):
        candidate = make_event()
        result = merge(None, candidate, 30)
        assert result == Append(candidate)

    def test_worked_example_extends(self):
        """20s after a zero-length event with a 30s window extends it to 20s."""
        last = make_event(offset_ms=0, duration=0)
        candidate = make_event(offset_ms=20_000)
        result = merge(last, candidate, 30)
        assert isinstance(result, Extend)
        assert result.event.duration == 20_000
        assert result.event.timestamp == T0

    def test_window_boundary_is_inclusive(self):
        last = make_event(duration=5_000)
        candidate = make_event(offset_ms=5_000 + 30_000)
        result = merge(last, candidate, 30)
        assert isinstance(result, Extend)
        assert result.event.duration == 35_000

    def test_just_past_window_appends(self):
        last = make_event(duration=5_000)
        candidate = make_event(offset_ms=5_000 + 30_000 + 1)
        result = merge(last, candidate, 30)
        assert result == Append(candidate)

    def test_zero_window_allows_exact_end(self):
        last = make_event(duration=1_000)
        candidate = make_event(offset_ms=1_000)
        assert isinstance(merge(last, candidate, 0), Extend)

    def test_negative_window_shrinks_reach(self):
        last = make_event(duration=10_000)
        assert isinstance(merge(last, make_event(offset_ms=5_000), -5), Extend)
        assert isinstance(merge(last, make_event(offset_ms=5_001), -5), Append)

    def test_different_url_never_merges(self):
        last = make_event(url="https://example.com/a", duration=60_000)
        candidate = make_event(url="https://example.com/b", offset_ms=1_000)
        assert merge(last, candidate, 3600) == Append(candidate)

    def test_other_fields_do_not_block_merge(self):
        last = make_event(title="Inbox (3)")
        candidate = make_event(title="Inbox (4)", offset_ms=1_000)
        result = merge(last, candidate, 30)
        assert isinstance(result, Extend)
        assert result.event.data.title == "Inbox (3)"

    def test_duration_never_shrinks(self):
        """A late candidate inside the session keeps the longer duration."""
        last = make_event(duration=50_000)
        candidate = make_event(offset_ms=10_000)
        result = merge(last, candidate, 30)
        assert isinstance(result, Extend)
        assert result.event.duration == 50_000

    def test_duration_monotonic_over_sequence(self):
        tail = make_event()
        durations = []
        for offset in (10_000, 40_000, 25_000, 40_000, 60_000, 5_000):
            result = merge(tail, make_event(offset_ms=offset), 30)
            assert isinstance(result, Extend)
            tail = result.event
            durations.append(tail.duration)
        assert durations == sorted(durations)
        assert durations[-1] == 60_000

    def test_email_override_and_retention(self):
        last = make_event(email="old@example.com")
        newer = merge(last, make_event(offset_ms=1_000, email="new@example.com"), 30)
        assert newer.event.email == "new@example.com"
        kept = merge(last, make_event(offset_ms=1_000), 30)
        assert kept.event.email == "old@example.com"

    def test_inputs_not_modified(self):
        last = make_event(duration=0)
        merge(last, make_event(offset_ms=10_000), 30)
        assert last.duration == 0
