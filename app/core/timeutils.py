from __future__ import annotations

from datetime import datetime, timezone
import os
from typing import Optional


def utcnow() -> datetime:
    """Return aware UTC datetime (frozen by AS_OF_DATE when set)."""
    as_of = parse_utc(os.getenv("AS_OF_DATE"))
    return as_of or datetime.now(timezone.utc)


def ensure_aware_utc(value: datetime) -> datetime:
    """
    Ensure datetime is timezone-aware in UTC.

    - If naive, assume it is UTC and attach tzinfo.
    - If aware, convert to UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_utc(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp such as '2024-08-16T19:00:00Z'; None if unparseable."""
    if not value:
        return None
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return ensure_aware_utc(datetime.fromisoformat(raw))
    except ValueError:
        return None
