"""Hut Availability ETL Test Suite.

This package contains unit and integration tests for the pipeline.

Test Structure:
- unit/: Unit tests for individual functions and classes
- integration/: Tests that run the normalizer against snapshot files on disk
"""

__version__ = "0.1.0"
