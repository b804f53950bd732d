"""Helpers for the gateway's fixed timestamp pattern."""

from datetime import datetime
from typing import Optional

# yyyy-MM-dd'T'HH:mm:ss.SSSSSS
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a gateway timestamp.

    Args:
        value: Timestamp string in the fixed gateway pattern

    Returns:
        Naive datetime, or None when the string does not match the pattern
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def timestamp_or_now(value: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Parse a timestamp, falling back to the current time like the gateway's clients do."""
    parsed = parse_timestamp(value)
    if parsed is not None:
        return parsed
    return now or datetime.now()


def format_timestamp(value: datetime) -> str:
    """Render a datetime in the gateway pattern."""
    return value.strftime(TIMESTAMP_FORMAT)
