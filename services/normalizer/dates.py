"""
Date and Timestamp Normalization

Scrapers for the different providers emit dates and capture timestamps in
slightly different shapes (plain days, midnight UTC datetimes, offsets,
microsecond precision...). This module coerces them into:

- calendar days as ``YYYY-MM-DD`` strings
- capture instants as UTC ISO strings with millisecond precision
  (e.g. ``2026-02-09T20:00:00.000Z``)
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

ISO_DATE_PATTERN = re.compile(r'\d{4}-\d{2}-\d{2}')


def normalize_date(value: Any) -> Optional[str]:
    """
    Coerce a date-like value to ``YYYY-MM-DD``.

    Values already in that form are returned unchanged. Longer strings such as
    ``2026-06-01T00:00:00.000Z`` are cut to their first 10 characters. No
    calendar validation is performed.

    Args:
        value: Raw date value from a provider payload

    Returns:
        Date string, or None if the value is empty or not a string

    Examples:
        >>> normalize_date("2026-06-01T00:00:00.000Z")
        '2026-06-01'
        >>> normalize_date(None) is None
        True
    """
    if not value or not isinstance(value, str):
        return None

    if ISO_DATE_PATTERN.fullmatch(value):
        return value

    return value[:10]


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp value into an aware UTC datetime.

    Supports:
    - ISO 8601 strings (e.g., "2026-02-09T20:00:00Z"); naive values are UTC
    - datetime objects
    - Unix timestamps in milliseconds since epoch, as produced by
      JavaScript scrapers (``Date.now()``)

    Args:
        value: Timestamp value to parse

    Returns:
        Aware datetime in UTC, or None if the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def format_instant(moment: datetime) -> str:
    """Render an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f'{moment.microsecond // 1000:03d}Z'


def utc_now_iso() -> str:
    """Current instant in canonical form."""
    return format_instant(datetime.now(timezone.utc))


def normalize_instant(value: Any) -> str:
    """
    Coerce a timestamp-like value to a canonical UTC instant string.

    Empty values and values that cannot be parsed fall back to the current
    instant instead of failing, so rows built from them look freshly checked.

    Args:
        value: Raw timestamp from a provider payload

    Returns:
        Canonical ISO instant string
    """
    if not value:
        return utc_now_iso()

    parsed = parse_instant(value)
    if parsed is None:
        logger.warning(
            "Failed to parse timestamp, falling back to current time",
            extra={'value': value, 'type': type(value).__name__}
        )
        return utc_now_iso()

    return format_instant(parsed)
