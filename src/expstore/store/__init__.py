"""
Storage module for expstore.

This module provides SQLite-based persistence for experiment profiles,
trial job events and metric data, behind an asyncio future interface.

Tables:
    - ExperimentProfile: configuration revisions (params JSON, revision, times)
    - TrialJobEvent: append-only trial state transitions
    - MetricData: append-only metric samples

Layout:
    - db: schema script, SqlStore engine and open_store()
    - rows: record <-> row mapping
    - bridge: settles store futures from driver task outcomes
"""

from expstore.store.bridge import bridge, settle
from expstore.store.db import CREATE_TABLES_SQL, DB_FILE_NAME, SqlStore, open_store

__all__ = [
    "CREATE_TABLES_SQL",
    "DB_FILE_NAME",
    "SqlStore",
    "bridge",
    "open_store",
    "settle",
]
