"""Convert buffered events into collector records, dropping unattributable ones."""

from __future__ import annotations

import ipaddress
import logging
import re
from datetime import datetime, timezone
from typing import Iterable
from urllib.parse import unquote, urlsplit

from .models import ActivityEvent, TransportRecord

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})
MILLISECONDS_PER_SECOND = 1000.0

# Code points a host may never contain once percent-decoded.
_FORBIDDEN_HOST_CHARS = re.compile(r"[\x00-\x20\x7f#%/:<>?@\[\\\]^|]")


def _normalize_host(host: str) -> str:
    if not host:
        return ""
    if ":" in host:
        return f"[{ipaddress.IPv6Address(host).compressed}]"
    host = unquote(host).lower()
    if _FORBIDDEN_HOST_CHARS.search(host):
        raise ValueError(f"Forbidden character in host {host!r}")
    if not host.isascii():
        host = host.encode("idna").decode("ascii")
    return host


def parse_url(url: str) -> tuple[str, str]:
    """Return ``(scheme, host)``; both empty when the URL cannot be parsed.

    A host with a forbidden character or an out-of-range port makes the URL
    invalid. Internationalized hosts come back in their ASCII form.
    """
    try:
        parts = urlsplit(url)
        parts.port  # raises for an out-of-range port
        host = _normalize_host(parts.hostname or "")
    except ValueError:
        # UnicodeError from the idna codec is a ValueError too.
        logger.warning("Invalid URL: %s", url)
        return "", ""
    return parts.scheme, host


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_record(event: ActivityEvent) -> TransportRecord:
    url = event.data.url
    scheme, host = parse_url(url)
    return TransportRecord(
        timestamp=format_timestamp(event.timestamp),
        duration=event.duration / MILLISECONDS_PER_SECOND,
        url=url,
        title=event.data.title,
        protocol=scheme,
        domain=host,
        email=event.email,
    )


def is_valid(record: TransportRecord) -> bool:
    valid = record.protocol in ALLOWED_SCHEMES and bool(record.domain)
    if not valid:
        logger.debug(
            "Filtering out heartbeat with invalid URL: scheme=%r host=%r",
            record.protocol,
            record.domain,
        )
    return valid


def to_transport_records(events: Iterable[ActivityEvent]) -> list[TransportRecord]:
    """Map events to records in order, keeping only http(s) URLs with a host."""
    return [record for record in map(to_record, events) if is_valid(record)]
