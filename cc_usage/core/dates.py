"""
Timestamp parsing and calendar formatting helpers.
"""

import re
from datetime import datetime, timezone
from typing import Optional

COMPACT_DATE_PATTERN = re.compile(r"\d{8}")


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp.

    A trailing ``Z`` is accepted as UTC. Timestamps without an offset are
    returned naive and are interpreted as local time by the helpers below.

    Returns:
        Parsed datetime, or None if the value is not a valid timestamp
    """
    if not isinstance(value, str) or not value:
        return None
    normalized = value.strip()
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def to_local(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone()


def to_utc(value: datetime) -> datetime:
    # astimezone() treats naive datetimes as local time
    return value.astimezone(timezone.utc)


def format_date(timestamp: str) -> str:
    """Format a timestamp as its local calendar date (YYYY-MM-DD).

    Raises:
        ValueError: If the timestamp cannot be parsed
    """
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {timestamp}")
    return to_local(parsed).strftime("%Y-%m-%d")


def to_compact_date(date_str: str) -> str:
    """Convert a YYYY-MM-DD (or longer ISO) string to YYYYMMDD."""
    return date_str[:10].replace("-", "")


def validate_compact_date(value: Optional[str], name: str) -> Optional[str]:
    """Check a YYYYMMDD filter value, passing None through."""
    if value is None:
        return None
    if not isinstance(value, str) or not COMPACT_DATE_PATTERN.fullmatch(value):
        raise ValueError(f"'{name}' must be a date in YYYYMMDD format, got {value!r}")
    return value
