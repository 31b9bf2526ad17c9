"""
Time helpers shared by the deal, commission and receipt services.

All timestamps are timezone-aware UTC. Naive values read from storage or
supplied by callers are interpreted as UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Optional, Union

Clock = Callable[[], datetime]

TimestampLike = Union[datetime, date, str, None]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: TimestampLike) -> Optional[datetime]:
    """
    Normalise a stored or user-supplied timestamp.

    Accepts datetimes, dates (midnight UTC) and ISO-8601 strings,
    including the trailing "Z" form. Empty values return None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialise a timestamp for storage."""
    if value is None:
        return None
    return parse_timestamp(value).isoformat()
