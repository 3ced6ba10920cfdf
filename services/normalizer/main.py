"""
Normalizer Service - Main Entry Point

Normalizes the availability snapshots written by one provider's scraper job,
upserts the resulting rows into the datastore and records a scrape run.
It is meant to run as the step right after a scraper in CI.

Usage:
    python -m services.normalizer.main --source SOURCE [OPTIONS]

Options:
    --source TEXT           Provider name: hut-reservation, huettenholiday, casablanca
    --input-dir PATH        Directory with snapshot JSON files (default: from config)
    --run-id TEXT           Run identifier (default: GITHUB_RUN_ID or generated)
    --scraper-outcome TEXT  Outcome of the scraper step (default: success)
    --resort-id TEXT        Casablanca resort id (default: RESORT_ID or config)
    --mapping PATH          Provider identity mapping JSON (default: from config)
    --config PATH           Sources configuration YAML (default: config/sources.yml)
    --dry-run               Normalize only, do not write to the datastore
    --verbose               Enable debug logging

Examples:
    # Normalize and upload the latest hut-reservation snapshots:
    python -m services.normalizer.main --source hut-reservation

    # Record a failed run after the scraper step failed:
    python -m services.normalizer.main --source casablanca --scraper-outcome failure

Exit Codes:
    0: Success (including a recorded scraper failure or a disabled source)
    1: Normalization produced zero rows
    2: Fatal error (configuration, missing input, datastore errors)
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from services.publisher.rest_client import AvailabilityStore, SupabaseRestClient, TransportError
from services.publisher.scrape_runs import (
    RUN_STATUS_FAILED,
    RUN_STATUS_OK,
    RUN_STATUS_PARTIAL,
    ScrapeRun,
)

from .dates import utc_now_iso
from .normalize import (
    SUPPORTED_SOURCES,
    UnsupportedSourceError,
    list_json_files,
    load_provider_mapping,
    normalize_files,
)
from .parsers import DEFAULT_RESORT_ID
from .source_config import load_sources_config

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

SCRAPER_OUTCOME_SUCCESS = 'success'


class NormalizerRunError(Exception):
    """Base class for batch-level failures of a normalizer run."""
    pass


class NoInputFilesError(NormalizerRunError):
    """Raised when the input directory holds no snapshot files."""
    pass


class EmptyBatchError(NormalizerRunError):
    """Raised when normalization produced zero rows."""
    pass


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description='Normalize hut availability snapshots and upsert them',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--source',
        type=str,
        required=True,
        help=f'Provider name ({", ".join(SUPPORTED_SOURCES)})'
    )

    parser.add_argument(
        '--input-dir',
        type=str,
        default=None,
        dest='input_dir',
        help='Directory containing snapshot JSON files'
    )

    parser.add_argument(
        '--run-id',
        type=str,
        default=None,
        dest='run_id',
        help='Run identifier used for the scrape_runs record'
    )

    parser.add_argument(
        '--scraper-outcome',
        type=str,
        default=SCRAPER_OUTCOME_SUCCESS,
        dest='scraper_outcome',
        help='Outcome of the preceding scraper step'
    )

    parser.add_argument(
        '--resort-id',
        type=str,
        default=None,
        dest='resort_id',
        help='Casablanca resort identifier'
    )

    parser.add_argument(
        '--mapping',
        type=str,
        default=None,
        help='Path to the provider identity mapping JSON'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to the sources configuration YAML'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        dest='dry_run',
        help='Normalize only, without writing to the datastore'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args(argv)


def default_run_id(source: str) -> str:
    """Generate a run id such as ``casablanca-2026-02-09T200000000Z``."""
    return f"{source}-{utc_now_iso().replace(':', '').replace('.', '')}"


def _record_run(
    store: Optional[AvailabilityStore],
    source: str,
    run_id: str,
    status: str,
    started_at: str,
    error_summary: Optional[str],
    metadata: dict[str, Any],
) -> None:
    if store is None:
        logger.info(
            f"DRY RUN: Would record scrape run with status '{status}'",
            extra={'source': source, 'run_id': run_id, 'error_summary': error_summary}
        )
        return

    store.record_run(ScrapeRun(
        source=source,
        run_id=run_id,
        status=status,
        started_at=started_at,
        finished_at=utc_now_iso(),
        error_summary=error_summary,
        metadata=metadata,
    ))


def run_normalize_and_upsert(
    store: Optional[AvailabilityStore],
    source: str,
    input_dir: str,
    mapping: dict[str, Any],
    run_id: str,
    scraper_outcome: str = SCRAPER_OUTCOME_SUCCESS,
    resort_id: str = DEFAULT_RESORT_ID,
) -> dict[str, Any]:
    """
    Main normalizer logic for one provider batch.

    Args:
        store: Datastore to write to, or None for a dry run
        source: Provider name
        input_dir: Directory holding the provider's snapshot files
        mapping: Full provider identity mapping
        run_id: Identifier for the scrape_runs record
        scraper_outcome: Outcome of the scraper step that produced the files
        resort_id: Casablanca resort identifier

    Returns:
        Dictionary with statistics:
        - status: Recorded run status (ok / partial / failed)
        - files: Number of snapshot files found
        - rows: Number of rows after deduplication
        - upserted: Number of rows written to the datastore

    Raises:
        UnsupportedSourceError: If source is unknown
        NoInputFilesError: If no snapshot files were found
        EmptyBatchError: If normalization produced zero rows
        TransportError: If the datastore write fails
    """
    if source not in SUPPORTED_SOURCES:
        raise UnsupportedSourceError(f"Unsupported source '{source}'.")

    started_at = utc_now_iso()
    stats = {'status': RUN_STATUS_OK, 'files': 0, 'rows': 0, 'upserted': 0}

    file_paths = list_json_files(input_dir)
    stats['files'] = len(file_paths)
    metadata: dict[str, Any] = {'source': source, 'inputDir': input_dir, 'fileCount': len(file_paths)}

    logger.info(
        "Starting normalizer run",
        extra={
            'source': source,
            'run_id': run_id,
            'input_dir': input_dir,
            'file_count': len(file_paths),
            'dry_run': store is None,
        }
    )

    if scraper_outcome != SCRAPER_OUTCOME_SUCCESS:
        _record_run(
            store, source, run_id, RUN_STATUS_FAILED, started_at,
            f"Scraper step failed with outcome '{scraper_outcome}'.", metadata
        )
        logger.warning(f"[{source}] scraper outcome '{scraper_outcome}', wrote failed scrape_runs row.")
        stats['status'] = RUN_STATUS_FAILED
        return stats

    if not file_paths:
        message = f"No JSON files found in {input_dir}."
        _record_run(store, source, run_id, RUN_STATUS_FAILED, started_at, message, metadata)
        raise NoInputFilesError(message)

    rows = normalize_files(source, file_paths, mapping, resort_id=resort_id)
    stats['rows'] = len(rows)
    metadata['rowCount'] = len(rows)

    if not rows:
        message = "Normalization produced zero rows."
        _record_run(store, source, run_id, RUN_STATUS_PARTIAL, started_at, message, metadata)
        raise EmptyBatchError(message)

    if store is None:
        logger.info(f"DRY RUN: Would upsert {len(rows)} availability rows")
        return stats

    try:
        store.upsert(rows)
    except TransportError as e:
        try:
            _record_run(
                store, source, run_id, RUN_STATUS_FAILED, started_at,
                f"Upsert failed: {e}", metadata
            )
        except TransportError as record_error:
            logger.error(
                "Failed to record failed scrape run",
                extra={'source': source, 'run_id': run_id, 'error': str(record_error)}
            )
        raise

    stats['upserted'] = len(rows)
    _record_run(store, source, run_id, RUN_STATUS_OK, started_at, None, metadata)

    logger.info(
        f"[{source}] normalized {len(rows)} rows from {len(file_paths)} files and upserted successfully."
    )
    return stats


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the normalizer service.

    Returns:
        Exit code (0 = success, 1 = zero rows, 2 = fatal error)
    """
    args = parse_args(argv)

    # Set logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")

    source = args.source

    try:
        config = load_sources_config(args.config)

        if not config.is_enabled(source):
            logger.warning(
                f"Source '{source}' is disabled in sources configuration, skipping.",
                extra={'source': source}
            )
            return 0

        input_dir = args.input_dir or config.input_dir_for(source)
        if not input_dir:
            logger.error(f"No default input directory found for source '{source}'.")
            return 2

        mapping_path = Path(args.mapping) if args.mapping else config.resolved_mapping_path()
        if not mapping_path.exists():
            logger.error(f"Missing mapping file: {mapping_path.resolve()}")
            return 2
        mapping = load_provider_mapping(mapping_path)

        store: Optional[AvailabilityStore] = None
        if not args.dry_run:
            store = SupabaseRestClient.from_env()

        run_id = args.run_id or os.getenv('GITHUB_RUN_ID') or default_run_id(source)
        resort_id = (
            args.resort_id
            or os.getenv('RESORT_ID')
            or config.resort_id_for(source)
            or DEFAULT_RESORT_ID
        )

        run_normalize_and_upsert(
            store=store,
            source=source,
            input_dir=input_dir,
            mapping=mapping,
            run_id=run_id,
            scraper_outcome=args.scraper_outcome,
            resort_id=resort_id,
        )
        return 0

    except EmptyBatchError as e:
        logger.error(f"[{source}] {e}")
        return 1

    except (NormalizerRunError, UnsupportedSourceError, TransportError) as e:
        logger.error(f"[{source}] {e}")
        return 2

    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration or input: {e}")
        return 2

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130  # Standard Unix exit code for SIGINT

    except Exception as e:
        logger.error(
            "Unexpected fatal error",
            extra={
                'error': str(e),
                'error_type': type(e).__name__,
            },
            exc_info=True
        )
        return 2


if __name__ == '__main__':
    sys.exit(main())
