import re
from datetime import datetime, time, timedelta, timezone
from typing import Optional


_HHMM_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')


def parse_hhmm(value: str) -> time:
    """
    Parse a wall-clock string such as "09:00" into a time object.

    Args:
        value: Time in 24-hour HH:MM format.

    Returns:
        time: Parsed time of day.

    Raises:
        ValueError: If the format or range is invalid.
    """
    if not value:
        raise ValueError("Time string cannot be empty")

    match = _HHMM_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time format '{value}'. Use HH:MM")

    hour = int(match.group(1))
    minute = int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: '{value}'")

    return time(hour, minute)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Return ``value`` as an aware UTC datetime.

    Naive datetimes are taken to be UTC already; this is what SQLite hands
    back for ``DateTime(timezone=True)`` columns.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def expires_at_from(expires_in: Optional[int], default_seconds: int = 3600) -> datetime:
    """Absolute expiry for a token that lives ``expires_in`` seconds from now."""
    return utcnow() + timedelta(seconds=expires_in if expires_in is not None else default_seconds)


def to_rfc3339(value: datetime) -> str:
    """Format a datetime the way Google Calendar expects it (UTC, ``Z`` suffix)."""
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")
