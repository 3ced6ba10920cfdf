"""
Availability Row Deduplication

The datastore enforces one row per (hut_id, date). Several snapshot files for
the same provider can cover the same day, so rows are merged before upload:
for each key the row with the most recent ``checked_at`` wins, and on a tie the
row seen later wins.
"""

import logging
from collections.abc import Iterable

from .dates import parse_instant
from .parsers import AvailabilityRow

logger = logging.getLogger(__name__)


def dedupe_availability_rows(rows: Iterable[AvailabilityRow]) -> list[AvailabilityRow]:
    """
    Keep exactly one row per (hut_id, date).

    An incoming row replaces the stored one when its instant is at or after the
    stored instant. If either ``checked_at`` cannot be parsed, the stored row
    is kept. Output keeps the order in which keys were first seen.

    Args:
        rows: Canonical rows, typically from one provider batch

    Returns:
        Deduplicated list of rows

    Example:
        >>> merged = dedupe_availability_rows([older, newer])
        >>> merged == [newer]
        True
    """
    by_key: dict[tuple[str, str], AvailabilityRow] = {}
    replaced = 0
    discarded = 0

    for row in rows:
        existing = by_key.get(row.key)
        if existing is None:
            by_key[row.key] = row
            continue

        existing_at = parse_instant(existing.checked_at)
        current_at = parse_instant(row.checked_at)
        if existing_at is not None and current_at is not None and current_at >= existing_at:
            by_key[row.key] = row
            replaced += 1
        else:
            discarded += 1

    if replaced or discarded:
        logger.debug(
            "Merged duplicate availability rows",
            extra={'unique': len(by_key), 'replaced': replaced, 'discarded': discarded}
        )

    return list(by_key.values())
