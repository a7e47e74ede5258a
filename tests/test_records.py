"""Tests for converting buffered events to collector records."""
from __future__ import annotations

from datetime import datetime, timezone

from activity_sync.records import format_timestamp, parse_url, to_transport_records

from conftest import make_event


class TestParseUrl:
    def test_http_url(self):
        assert parse_url("https://Docs.Example.com:8443/page?q=1") == ("https", "docs.example.com")

    def test_no_scheme(self):
        assert parse_url("example.com/page") == ("", "")

    def test_malformed_url_yields_empty_parts(self):
        assert parse_url("http://[::1") == ("", "")

    def test_special_scheme_has_no_host(self):
        assert parse_url("about:blank") == ("about", "")

    def test_whitespace_in_host_is_invalid(self):
        assert parse_url("http://exa mple.com/x") == ("", "")

    def test_percent_encoded_space_in_host_is_invalid(self):
        assert parse_url("http://exa%20mple.com/") == ("", "")

    def test_forbidden_host_characters_are_invalid(self):
        assert parse_url("https://exa<mple.com/") == ("", "")
        assert parse_url("https://a|b.example/") == ("", "")

    def test_port_out_of_range_is_invalid(self):
        assert parse_url("https://example.com:99999/") == ("", "")

    def test_international_host_is_ascii(self):
        assert parse_url("https://bücher.example/") == ("https", "xn--bcher-kva.example")

    def test_ipv6_host_keeps_brackets(self):
        assert parse_url("http://[::1]:8080/status") == ("http", "[::1]")


class TestToTransportRecords:
    def test_empty_input(self):
        assert to_transport_records([]) == []

    def test_maps_fields(self):
        event = make_event(url="https://example.com/a", duration=1500, email="u@example.com")
        (record,) = to_transport_records([event])
        assert record.timestamp == "2024-05-01T09:00:00.000Z"
        assert record.duration == 1.5
        assert record.protocol == "https"
        assert record.domain == "example.com"
        assert record.title == "Example"
        assert record.to_payload()["email"] == "u@example.com"

    def test_payload_omits_missing_email(self):
        (record,) = to_transport_records([make_event()])
        assert "email" not in record.to_payload()

    def test_drops_invalid_and_preserves_order(self):
        events = [
            make_event(url="http://one.example"),
            make_event(url="chrome://settings"),
            make_event(url="file:///tmp/x.html"),
            make_event(url="not a url"),
            make_event(url="http://exa mple.com/x"),
            make_event(url="https://two.example/path"),
        ]
        records = to_transport_records(events)
        assert [r.domain for r in records] == ["one.example", "two.example"]

    def test_all_invalid_yields_nothing(self):
        events = [make_event(url=u) for u in ("chrome://newtab", "about:blank", "ftp://x.example")]
        assert to_transport_records(events) == []


def test_format_timestamp_converts_to_utc():
    value = datetime.fromisoformat("2024-05-01T11:00:00.123456+02:00")
    assert format_timestamp(value) == "2024-05-01T09:00:00.123Z"


def test_format_timestamp_naive_is_utc():
    assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000Z"


def test_format_timestamp_aware_utc():
    assert format_timestamp(datetime(2024, 1, 2, tzinfo=timezone.utc)).endswith("Z")
