"""Field checks shared by the request models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def require_offset(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.utcoffset() is None:
        raise ValueError("timestamp must include a UTC offset")
    return value


def not_in_future(value: datetime) -> datetime:
    if value > datetime.now(timezone.utc):
        raise ValueError("datetime cannot be in the future")
    return value


def currency_code(value: str) -> str:
    code = value.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError("currency must be a 3-letter code")
    return code
