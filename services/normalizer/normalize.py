"""
Availability Batch Normalization

This module is the single integration point between the scraper output on disk
and the upload step. For one provider it:

- selects the matching payload parser
- reads every JSON snapshot file
- concatenates the resulting rows
- deduplicates them once over the whole batch
"""

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, Union

from .dedupe import dedupe_availability_rows
from .parsers import (
    DEFAULT_RESORT_ID,
    SOURCE_CASABLANCA,
    SOURCE_HUETTENHOLIDAY,
    SOURCE_HUT_RESERVATION,
    AvailabilityRow,
    normalize_casablanca_payload,
    normalize_huettenholiday_payload,
    normalize_hut_reservation_payload,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SUPPORTED_SOURCES = (SOURCE_HUT_RESERVATION, SOURCE_HUETTENHOLIDAY, SOURCE_CASABLANCA)


class UnsupportedSourceError(ValueError):
    """Raised when a batch is requested for a provider we have no parser for."""
    pass


def load_provider_mapping(mapping_path: PathLike) -> dict[str, dict[str, str]]:
    """
    Load the provider identity mapping from a JSON file.

    The file maps provider name -> raw provider id -> canonical hut id::

        {"hut-reservation": {"366": "braunschweiger-huette"}}

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON or not a JSON object
    """
    path = Path(mapping_path)
    with path.open('r', encoding='utf-8') as handle:
        try:
            mapping = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in provider mapping {path}: {exc}") from exc

    if not isinstance(mapping, dict):
        raise ValueError(f"Provider mapping {path} must be a JSON object")

    logger.info(
        "Loaded provider mapping",
        extra={
            'mapping_path': str(path),
            'providers': sorted(mapping.keys()),
        }
    )
    return mapping


def list_json_files(input_dir: PathLike) -> list[Path]:
    """
    List the ``*.json`` files directly inside a directory, sorted by name.

    A missing directory yields an empty list.
    """
    directory = Path(input_dir)
    if not directory.is_dir():
        return []

    return sorted(
        (path for path in directory.iterdir() if path.name.endswith('.json') and path.is_file()),
        key=lambda path: path.name
    )


def _provider_mapping(mapping: Mapping[str, Any], source: str) -> Mapping[str, str]:
    provider_mapping = mapping.get(source)
    return provider_mapping if isinstance(provider_mapping, Mapping) else {}


def _get_parser(
    source: str,
    resort_id: str
) -> Callable[[Any, Mapping[str, str]], list[AvailabilityRow]]:
    if source == SOURCE_HUT_RESERVATION:
        return normalize_hut_reservation_payload
    if source == SOURCE_HUETTENHOLIDAY:
        return normalize_huettenholiday_payload
    if source == SOURCE_CASABLANCA:
        return lambda payload, mapping: normalize_casablanca_payload(payload, mapping, resort_id)
    raise UnsupportedSourceError(f"Unsupported source '{source}'.")


def normalize_payloads(
    source: str,
    payloads: Iterable[Any],
    mapping: Mapping[str, Any],
    resort_id: str = DEFAULT_RESORT_ID
) -> list[AvailabilityRow]:
    """
    Normalize already-decoded payloads for one provider into a deduplicated batch.

    Args:
        source: Provider name (one of SUPPORTED_SOURCES)
        payloads: Decoded JSON documents, one per snapshot file
        mapping: Full identity mapping keyed by provider name
        resort_id: Resort to resolve for the casablanca provider

    Returns:
        Deduplicated list of AvailabilityRow

    Raises:
        UnsupportedSourceError: If source is not a known provider
    """
    parser = _get_parser(source, resort_id)
    provider_mapping = _provider_mapping(mapping, source)

    rows: list[AvailabilityRow] = []
    payload_count = 0
    for payload in payloads:
        rows.extend(parser(payload, provider_mapping))
        payload_count += 1

    deduped = dedupe_availability_rows(rows)

    logger.info(
        "Normalized availability batch",
        extra={
            'source': source,
            'payloads': payload_count,
            'rows': len(rows),
            'unique_rows': len(deduped),
        }
    )
    return deduped


def _read_payload(file_path: PathLike) -> Any:
    with Path(file_path).open('r', encoding='utf-8') as handle:
        return json.load(handle)


def normalize_files(
    source: str,
    file_paths: Iterable[PathLike],
    mapping: Mapping[str, Any],
    resort_id: str = DEFAULT_RESORT_ID
) -> list[AvailabilityRow]:
    """
    Read snapshot files for one provider and normalize them into one batch.

    The source is validated before any file is opened.

    Raises:
        UnsupportedSourceError: If source is not a known provider
        OSError: If a file cannot be read
        json.JSONDecodeError: If a file is not valid JSON
    """
    if source not in SUPPORTED_SOURCES:
        raise UnsupportedSourceError(f"Unsupported source '{source}'.")

    return normalize_payloads(
        source,
        (_read_payload(path) for path in file_paths),
        mapping,
        resort_id=resort_id,
    )
