"""Hut Availability ETL Package.

This package contains the services of the hut availability pipeline:
- normalizer: Normalizes provider snapshots into canonical availability rows
- publisher: Upserts rows and scrape run records into the REST datastore
"""

__version__ = "0.1.0"
