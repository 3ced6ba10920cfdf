"""
REST client for the availability datastore.

The datastore is a Supabase project exposing PostgREST. Both tables are written
with upsert semantics: rows are POSTed with `on_conflict=<unique columns>` and
`Prefer: resolution=merge-duplicates`, so the last write for a key wins.

Environment Variables:
    SUPABASE_URL: Project base URL (e.g. https://xyz.supabase.co)
    SUPABASE_SERVICE_ROLE_KEY: Service role key used for both apikey and bearer auth
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import Any, Protocol

import requests

from services.normalizer.parsers import AvailabilityRow

from .scrape_runs import ScrapeRun

logger = logging.getLogger(__name__)

# Constants
API_TIMEOUT_SECONDS = 30
AVAILABILITY_ENDPOINT = "/rest/v1/availability_daily?on_conflict=hut_id,date"
SCRAPE_RUNS_ENDPOINT = "/rest/v1/scrape_runs?on_conflict=source,run_id"


class TransportError(Exception):
    """Raised when the datastore rejects a write or cannot be reached."""
    pass


class AvailabilityStore(Protocol):
    """
    Protocol for the datastore that receives normalized batches.

    Implementations raise TransportError when a write does not succeed.
    """

    def upsert(self, rows: Sequence[AvailabilityRow]) -> None:
        """Upsert availability rows keyed by (hut_id, date)."""

    def record_run(self, run: ScrapeRun) -> None:
        """Upsert a scrape run record keyed by (source, run_id)."""


class SupabaseRestClient:
    """
    Client for the Supabase REST (PostgREST) endpoints.

    Requests are not retried; a failed write surfaces as TransportError.
    """

    def __init__(self, base_url: str, service_role_key: str):
        """
        Initialize the client.

        Args:
            base_url: Supabase project URL
            service_role_key: Service role key
        """
        if not base_url or not service_role_key:
            raise ValueError("base_url and service_role_key are required")

        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key

    @classmethod
    def from_env(cls) -> SupabaseRestClient:
        """Build a client from SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."""
        base_url = os.getenv("SUPABASE_URL")
        service_role_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        if not base_url or not service_role_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set.")
        return cls(base_url, service_role_key)

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
            "Content-Type": "application/json",
            "Prefer": "resolution=merge-duplicates,return=minimal",
        }

    def _post_json(self, endpoint: str, body: list[dict[str, Any]]) -> None:
        """
        POST a JSON array to a REST endpoint.

        Raises:
            TransportError: On a non-2xx response or a network failure
        """
        url = f"{self.base_url}{endpoint}"

        try:
            response = requests.post(
                url, headers=self._headers(), json=body, timeout=API_TIMEOUT_SECONDS
            )
        except requests.exceptions.RequestException as e:
            logger.error(
                "Datastore request failed",
                extra={"endpoint": endpoint, "error": str(e), "error_type": type(e).__name__},
            )
            raise TransportError(f"Request to {endpoint} failed: {e}") from e

        if not response.ok:
            logger.error(
                "Datastore rejected write",
                extra={"endpoint": endpoint, "status_code": response.status_code},
            )
            raise TransportError(f"{response.status_code} {response.reason}: {response.text}")

        logger.debug(
            "Datastore write succeeded",
            extra={"endpoint": endpoint, "status_code": response.status_code, "records": len(body)},
        )

    def upsert(self, rows: Sequence[AvailabilityRow]) -> None:
        """
        Upsert availability rows into `availability_daily`.

        An empty batch makes no request.
        """
        if not rows:
            return
        self._post_json(AVAILABILITY_ENDPOINT, [row.to_record() for row in rows])
        logger.info("Upserted availability rows", extra={"rows": len(rows)})

    def record_run(self, run: ScrapeRun) -> None:
        """Upsert one record into `scrape_runs`."""
        self._post_json(SCRAPE_RUNS_ENDPOINT, [run.to_record()])
        logger.info(
            "Recorded scrape run",
            extra={"source": run.source, "run_id": run.run_id, "status": run.status},
        )
