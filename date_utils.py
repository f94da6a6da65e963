"""
Centralized date and time utilities for the application.

This module provides a focused set of functions for handling dates, times,
and timestamps in a consistent and timezone-aware manner. Search documents
store timestamps as ``{"_seconds": int, "_nanoseconds": int}`` structures,
so conversions to and from epoch seconds live here too.

Key Features:
-   **Timezone-Aware Parsing**: All timestamps are handled as timezone-aware
    datetime objects, defaulting to UTC to prevent common timezone-related bugs.
-   **Epoch Conversion**: Helpers for the epoch-seconds values used in
    search-backend range filters.
-   **Dependency Abstraction**: Wraps `dateutil` to provide a stable, internal
    API for the rest of the application.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from dateutil import parser

from core.casting import safe_float

logger = logging.getLogger(__name__)


def get_current_utc_time() -> datetime:
    """Return the current time as a timezone-aware datetime object in UTC."""
    return datetime.now(UTC)


def parse_timestamp(ts: str | datetime | None) -> datetime | None:
    """
    Parse a timestamp string (or datetime object) and ensure it is
    timezone-aware, defaulting to UTC.

    Args:
        ts: The timestamp to parse, either as an ISO 8601 string or a
            datetime object.

    Returns:
        A timezone-aware datetime object, or None if parsing fails.
    """
    if not ts:
        logger.debug("Received empty timestamp; returning None.")
        return None

    if isinstance(ts, datetime):
        # If the datetime object is naive, assume UTC.
        if ts.tzinfo is None:
            return ts.replace(tzinfo=UTC)
        return ts

    try:
        return ensure_utc(parser.isoparse(ts))
    except (ValueError, TypeError) as e:
        logger.warning("Failed to parse timestamp '%s': %s", ts, e)
        return None


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Return the datetime as an explicit UTC-aware value."""

    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def to_epoch_seconds(dt: datetime) -> int:
    """Convert a datetime to whole epoch seconds (naive values are UTC)."""
    normalized = ensure_utc(dt)
    return int(normalized.timestamp())


def from_epoch_seconds(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=UTC)


def document_timestamp_seconds(value: Any) -> float | None:
    """
    Read a document timestamp as fractional epoch seconds.

    Accepts the ``{"_seconds", "_nanoseconds"}`` structure, a bare number,
    or an ISO string. Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, dict):
        seconds = value.get("_seconds", value.get("seconds"))
        if seconds is None or isinstance(seconds, bool):
            return None
        try:
            total = float(seconds)
        except (TypeError, ValueError):
            return None
        nanos = value.get("_nanoseconds", value.get("nanoseconds"))
        return total + safe_float(nanos) / 1e9
    if isinstance(value, str | datetime):
        parsed = parse_timestamp(value)
        return parsed.timestamp() if parsed else None
    return None
