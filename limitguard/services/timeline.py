"""Instant helpers for limit windows and storage keys.

Instants are offset-aware datetimes. They keep their own offset for calendar
arithmetic (month starts) and are compared in storage through a fixed-width
UTC text key, so rows written with different offsets still order correctly.
"""

from __future__ import annotations
from datetime import datetime, timezone

# Year is padded separately; %Y is not zero-padded below 1000 on every platform
_UTC_KEY_TAIL_FORMAT = "%m-%dT%H:%M:%S.%fZ"


def _require_aware(instant: datetime) -> None:
    if instant.utcoffset() is None:
        raise ValueError(f"instant {instant.isoformat()} has no UTC offset")


def month_start(instant: datetime) -> datetime:
    """First instant of the calendar month containing ``instant``, same offset."""
    _require_aware(instant)
    return instant.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def utc_key(instant: datetime) -> str:
    _require_aware(instant)
    utc = instant.astimezone(timezone.utc)
    return f"{utc.year:04d}-{utc.strftime(_UTC_KEY_TAIL_FORMAT)}"


def parse_instant(raw: str) -> datetime:
    instant = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    _require_aware(instant)
    return instant
