"""
Publisher Service

Writes normalized availability batches and scrape run records to the remote
datastore through its REST API.
"""

from .rest_client import AvailabilityStore, SupabaseRestClient, TransportError
from .scrape_runs import ScrapeRun

__all__ = ["AvailabilityStore", "SupabaseRestClient", "TransportError", "ScrapeRun"]
__version__ = "0.1.0"
