"""
Provider Payload Parsers

This module turns the raw JSON documents written by the scraper jobs into
canonical daily availability rows. There is one parser per provider:

- hut-reservation: one hut per payload, open/closed flags only (inferred)
- huettenholiday: many cabins per payload, exact place counts
- casablanca: a bare list of days for a single resort, exact bed counts

Every parser resolves provider ids through the identity mapping. A lookup miss
or an unusable date drops the affected rows silently; parsers never raise on
bad data.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any, Optional

from .dates import normalize_date, normalize_instant

logger = logging.getLogger(__name__)


SOURCE_HUT_RESERVATION = 'hut-reservation'
SOURCE_HUETTENHOLIDAY = 'huettenholiday'
SOURCE_CASABLANCA = 'casablanca'

DEFAULT_RESORT_ID = 'A_6511_SKIHU'

STATUS_AVAILABLE = 'available'
STATUS_UNAVAILABLE = 'unavailable'
STATUS_CLOSED = 'closed'
VALID_STATUSES = {STATUS_AVAILABLE, STATUS_UNAVAILABLE, STATUS_CLOSED}

CONFIDENCE_EXACT = 'exact'
CONFIDENCE_INFERRED = 'inferred'
VALID_CONFIDENCES = {CONFIDENCE_EXACT, CONFIDENCE_INFERRED}

HUT_STATUS_CLOSED = 'CLOSED'


@dataclass(frozen=True)
class AvailabilityRow:
    """One day of availability for one hut, in canonical form.

    Rows are keyed by (hut_id, date) in the datastore.
    """

    hut_id: str
    date: str  # YYYY-MM-DD
    available_beds: Optional[int]  # None when the provider reports no counts
    status: str  # one of VALID_STATUSES
    confidence: str  # one of VALID_CONFIDENCES
    source: str
    checked_at: str  # canonical ISO instant

    def __post_init__(self) -> None:
        if self.status not in VALID_STATUSES:
            raise ValueError(f"Invalid availability status '{self.status}'")
        if self.confidence not in VALID_CONFIDENCES:
            raise ValueError(f"Invalid confidence '{self.confidence}'")

    @property
    def key(self) -> tuple[str, str]:
        return (self.hut_id, self.date)

    def to_record(self) -> dict[str, Any]:
        """Plain dict ready for JSON encoding."""
        return asdict(self)


def resolve_hut_id(mapping: Mapping[str, str], raw_id: Any) -> Optional[str]:
    """
    Look up the canonical hut id for a provider-specific id.

    Mapping keys are strings, so numeric ids are stringified first. Integral
    floats (366.0) are looked up as "366".

    Returns:
        Canonical hut id, or None on a miss
    """
    if raw_id is None or isinstance(raw_id, bool):
        return None

    if isinstance(raw_id, float) and raw_id.is_integer():
        raw_id = int(raw_id)

    hut_id = mapping.get(str(raw_id))
    return hut_id or None


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _coerce_count(value: Any, field_name: str) -> Optional[float]:
    """
    Coerce a provider count to a number.

    Missing values count as 0. Values that cannot be read as a number are
    logged and returned as None, so they never count as a reported zero.
    """
    if value is None or value == '':
        return 0

    if isinstance(value, bool):
        return int(value)

    if isinstance(value, int):
        return value

    if isinstance(value, float) and math.isfinite(value):
        return value

    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            number = math.nan
        if math.isfinite(number):
            return number

    logger.warning(
        f"Failed to parse {field_name} as number",
        extra={'value': value, 'type': type(value).__name__}
    )
    return None


def _bed_count(value: Optional[float]) -> Optional[int]:
    if value is None:
        return None
    return int(max(0, value))


def normalize_hut_reservation_payload(
    payload: Any,
    mapping: Mapping[str, str]
) -> list[AvailabilityRow]:
    """
    Normalize one hut-reservation payload.

    Expected shape::

        {"hutId": 366, "checkedAt": "...", "allDays": [{"date": "...", "hutStatus": "OPEN"}]}

    The provider only says whether a hut is open, so open days become
    ``available`` with ``inferred`` confidence and no bed count. A payload whose
    hut id cannot be resolved produces no rows at all.

    Args:
        payload: Decoded JSON document
        mapping: Identity mapping for this provider

    Returns:
        List of AvailabilityRow
    """
    if not isinstance(payload, Mapping):
        return []

    hut_id = resolve_hut_id(mapping, payload.get('hutId'))
    if not hut_id:
        logger.debug(
            "Skipping payload with unmapped hut id",
            extra={'source': SOURCE_HUT_RESERVATION, 'raw_id': payload.get('hutId')}
        )
        return []

    checked_at = normalize_instant(payload.get('checkedAt'))

    rows = []
    for day in _as_list(payload.get('allDays')):
        if not isinstance(day, Mapping):
            continue
        date = normalize_date(day.get('date'))
        if not date:
            continue

        closed = day.get('hutStatus') == HUT_STATUS_CLOSED
        rows.append(AvailabilityRow(
            hut_id=hut_id,
            date=date,
            available_beds=None,
            status=STATUS_CLOSED if closed else STATUS_AVAILABLE,
            confidence=CONFIDENCE_INFERRED,
            source=SOURCE_HUT_RESERVATION,
            checked_at=checked_at,
        ))

    return rows


def normalize_huettenholiday_payload(
    payload: Any,
    mapping: Mapping[str, str]
) -> list[AvailabilityRow]:
    """
    Normalize one huettenholiday payload covering several cabins.

    Expected shape::

        {"scrapedAt": "...", "cabins": [{"id": 27, "availability": [
            {"date": "...", "totalPlaces": 120, "availablePlaces": 9}]}]}

    Cabins with an unmapped id are skipped one by one; the rest of the payload
    is still used. A day with no places at all is reported as ``closed``; a day
    whose counts cannot be read is ``unavailable`` with no bed count.
    """
    if not isinstance(payload, Mapping):
        return []

    checked_at = normalize_instant(payload.get('scrapedAt'))

    rows = []
    for cabin in _as_list(payload.get('cabins')):
        if not isinstance(cabin, Mapping):
            continue
        hut_id = resolve_hut_id(mapping, cabin.get('id'))
        if not hut_id:
            logger.debug(
                "Skipping cabin with unmapped id",
                extra={'source': SOURCE_HUETTENHOLIDAY, 'raw_id': cabin.get('id')}
            )
            continue

        for day in _as_list(cabin.get('availability')):
            if not isinstance(day, Mapping):
                continue
            date = normalize_date(day.get('date'))
            if not date:
                continue

            total_places = _coerce_count(day.get('totalPlaces'), 'totalPlaces')
            available_places = _coerce_count(day.get('availablePlaces'), 'availablePlaces')

            if total_places is not None and total_places <= 0:
                status = STATUS_CLOSED
            elif available_places is not None and available_places > 0:
                status = STATUS_AVAILABLE
            else:
                status = STATUS_UNAVAILABLE

            rows.append(AvailabilityRow(
                hut_id=hut_id,
                date=date,
                available_beds=_bed_count(available_places),
                status=status,
                confidence=CONFIDENCE_EXACT,
                source=SOURCE_HUETTENHOLIDAY,
                checked_at=checked_at,
            ))

    return rows


def normalize_casablanca_payload(
    payload: Any,
    mapping: Mapping[str, str],
    resort_id: str = DEFAULT_RESORT_ID
) -> list[AvailabilityRow]:
    """
    Normalize a casablanca payload: a bare list of days for one resort.

    Each day looks like
    ``{"date": "2026-06-15", "availableBeds": 5, "isAvailable": true, "checkedAt": "..."}``
    and carries its own capture timestamp. The provider has no closed state: a
    day is ``available`` only when it is flagged available and has beds left.

    Args:
        payload: Decoded JSON document (list of day objects)
        mapping: Identity mapping for this provider
        resort_id: Provider resort identifier to resolve

    Returns:
        List of AvailabilityRow, empty if the resort id is unmapped
    """
    hut_id = resolve_hut_id(mapping, resort_id)
    if not hut_id:
        logger.debug(
            "Skipping payload for unmapped resort",
            extra={'source': SOURCE_CASABLANCA, 'raw_id': resort_id}
        )
        return []

    rows = []
    for day in _as_list(payload):
        if not isinstance(day, Mapping):
            continue
        date = normalize_date(day.get('date'))
        if not date:
            continue

        available_beds = _bed_count(_coerce_count(day.get('availableBeds'), 'availableBeds'))
        is_available = (
            bool(day.get('isAvailable'))
            and available_beds is not None
            and available_beds > 0
        )

        rows.append(AvailabilityRow(
            hut_id=hut_id,
            date=date,
            available_beds=available_beds,
            status=STATUS_AVAILABLE if is_available else STATUS_UNAVAILABLE,
            confidence=CONFIDENCE_EXACT,
            source=SOURCE_CASABLANCA,
            checked_at=normalize_instant(day.get('checkedAt')),
        ))

    return rows
