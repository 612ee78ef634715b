"""
Time utilities for trading operations.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def get_utc_datetime() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def timestamp_to_datetime(timestamp: float) -> datetime:
    """Convert timestamp to datetime"""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def parse_venue_timestamp(value: Union[int, float, str, None]) -> Optional[datetime]:
    """
    Parse a venue timestamp that may be expressed in seconds or milliseconds.

    Venues disagree on units; anything above 1e11 is treated as milliseconds.
    """
    if value in (None, ""):
        return None
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    if numeric <= 0:
        return None
    if numeric > 1e11:
        numeric = numeric / 1000
    return timestamp_to_datetime(numeric)
