from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

RUN_STATUS_OK = "ok"
RUN_STATUS_PARTIAL = "partial"
RUN_STATUS_FAILED = "failed"
VALID_RUN_STATUSES = {RUN_STATUS_OK, RUN_STATUS_PARTIAL, RUN_STATUS_FAILED}


@dataclass
class ScrapeRun:
    """
    Outcome of one normalize-and-upsert run for a provider.

    Stored in the `scrape_runs` table keyed by (source, run_id), so re-running
    with the same run id overwrites the previous record.
    """

    source: str
    run_id: str
    status: str
    started_at: str
    finished_at: str
    error_summary: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.status not in VALID_RUN_STATUSES:
            raise ValueError(f"Invalid run status '{self.status}'")

    def to_record(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "run_id": self.run_id,
            "status": self.status,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "error_summary": self.error_summary,
            "metadata": dict(self.metadata),
        }
