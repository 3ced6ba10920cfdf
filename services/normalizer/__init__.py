"""
Normalizer Service

This service transforms the availability snapshots written by the scraper jobs
into canonical daily availability rows that can be upserted downstream.

Key responsibilities:
- Parse each provider's payload shape into AvailabilityRow objects
- Resolve provider ids to canonical hut ids through the identity mapping
- Deduplicate rows per (hut_id, date), keeping the most recently checked one
"""

from .dedupe import dedupe_availability_rows
from .normalize import UnsupportedSourceError, normalize_files, normalize_payloads
from .parsers import AvailabilityRow

__all__ = [
    "AvailabilityRow",
    "UnsupportedSourceError",
    "dedupe_availability_rows",
    "normalize_files",
    "normalize_payloads",
]
__version__ = "0.1.0"
