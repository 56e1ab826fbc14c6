"""
SQLite storage for expstore.

This module persists experiment profiles, trial job events and metric data
in a single SQLite file and answers filtered queries over them.

Design Principles:
    - Append-only: rows are never updated or deleted
    - One connection: all statements go through one aiosqlite connection,
      whose worker thread runs them in submission order
    - Futures everywhere: every operation returns an asyncio future that
      resolves with data or fails with the driver's error, unchanged
    - Lazy single-flight init: concurrent init calls share one open

Tables:
    - TrialJobEvent: trial job state transitions
    - MetricData: reported metric samples
    - ExperimentProfile: experiment configuration revisions
"""

import asyncio
import logging
import sqlite3
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Any

import aiosqlite
from pydantic import ValidationError

from expstore.errors import (
    MetricEnvelopeError,
    PayloadValidationError,
    StoreDirectoryNotFoundError,
)
from expstore.schema import (
    ExperimentProfile,
    MetricDataRecord,
    MetricEnvelope,
    MetricType,
    TrialJobEvent,
    TrialJobEventRecord,
)
from expstore.store.bridge import RowLoader, bridge, settle
from expstore.store.rows import (
    dump_experiment_profile,
    dump_metric_envelope,
    dump_trial_job_event,
    load_experiment_profile,
    load_metric_data,
    load_trial_job_event,
    now_ms,
)

logger = logging.getLogger(__name__)

# File name of the store inside its directory
DB_FILE_NAME = "nni.sqlite"

# Executed once, when a new store is created
CREATE_TABLES_SQL = """
CREATE TABLE TrialJobEvent (
    timestamp INTEGER,
    trialJobId TEXT,
    event TEXT,
    data TEXT,
    logPath TEXT
);
CREATE INDEX TrialJobEvent_trialJobId ON TrialJobEvent(trialJobId);
CREATE INDEX TrialJobEvent_event ON TrialJobEvent(event);

CREATE TABLE MetricData (
    timestamp INTEGER,
    trialJobId TEXT,
    parameterId TEXT,
    type TEXT,
    sequence INTEGER,
    data TEXT
);
CREATE INDEX MetricData_trialJobId ON MetricData(trialJobId);
CREATE INDEX MetricData_type ON MetricData(type);

CREATE TABLE ExperimentProfile (
    params TEXT,
    id TEXT,
    execDuration INTEGER,
    startTime INTEGER,
    endTime INTEGER,
    revision INTEGER
);
CREATE INDEX ExperimentProfile_id ON ExperimentProfile(id);
"""


def _where(filters: dict[str, Any]) -> tuple[str, tuple[Any, ...]]:
    """Build a WHERE clause from the filters that are not None."""
    clauses = []
    params: list[Any] = []
    for column, value in filters.items():
        if value is None:
            continue
        clauses.append(f"{column} = ?")
        params.append(value.value if isinstance(value, Enum) else value)

    if not clauses:
        return "", ()
    return f" WHERE {' AND '.join(clauses)}", tuple(params)


class SqlStore:
    """
    Asynchronous SQLite store for experiment state.

    Usage:
        store = SqlStore()
        await store.init(create_new=True, directory="/path/to/experiment")
        await store.store_experiment_profile(profile)
        latest = await store.query_latest_experiment_profile("exp1")
        await store.close()

    Or use open_store() as an async context manager.

    Every method except init returns immediately with a future; the
    statement is already queued on the connection when the method returns.
    Operations issued before init resolves, or after close, are
    programming errors and are not guarded against.
    """

    def __init__(self) -> None:
        self.db_path: Path | None = None
        self._conn: aiosqlite.Connection | None = None
        self._init_future: asyncio.Future | None = None
        self._inflight: set[asyncio.Task] = set()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def init(self, create_new: bool, directory: str | Path) -> asyncio.Future:
        """
        Open the store, creating file and schema when create_new is set.

        Safe to call many times, concurrently or not: only the first call
        opens the database and every caller gets the same future.

        Args:
            create_new: Create the file and run the schema script
            directory: Existing directory that holds the store file

        Raises:
            StoreDirectoryNotFoundError: If directory does not exist. Raised
                directly, before any file is touched.
        """
        if self._init_future is not None:
            return self._init_future

        directory = Path(directory)
        if not directory.is_dir():
            raise StoreDirectoryNotFoundError(directory=str(directory))

        self.db_path = directory.resolve() / DB_FILE_NAME
        self._init_future = self._submit(self._open(self.db_path, create_new))
        return self._init_future

    async def _open(self, db_path: Path, create_new: bool) -> None:
        mode = "rwc" if create_new else "rw"
        logger.debug("Opening %s (mode=%s)", db_path, mode)
        conn = await aiosqlite.connect(
            f"{db_path.as_uri()}?mode={mode}",
            uri=True,
            isolation_level=None,
        )
        conn.row_factory = aiosqlite.Row

        if create_new:
            try:
                await conn.executescript(CREATE_TABLES_SQL)
            except sqlite3.Error:
                logger.debug("Schema creation failed for %s", db_path, exc_info=True)
                await conn.close()
                raise
            logger.info("Created experiment store schema in %s", db_path)

        self._conn = conn
        logger.info("Opened experiment store %s", db_path)

    def close(self) -> asyncio.Future:
        """Close the connection. No operation is valid afterwards."""
        return self._submit(self._close())

    async def _close(self) -> None:
        await self._conn.close()
        logger.info("Closed experiment store %s", self.db_path)

    # =========================================================================
    # Experiment Profile Operations
    # =========================================================================

    def store_experiment_profile(self, profile: ExperimentProfile) -> asyncio.Future:
        """
        Insert one profile revision.

        No uniqueness check is made; callers supply a fresh revision.
        """
        try:
            params = dump_experiment_profile(profile)
        except (TypeError, ValueError) as e:
            return self._rejected(
                PayloadValidationError(
                    operation="store_experiment_profile",
                    validation_error=str(e),
                )
            )
        return self._submit(
            self._run("INSERT INTO ExperimentProfile VALUES (?, ?, ?, ?, ?, ?)", params)
        )

    def query_experiment_profile(
        self,
        experiment_id: str,
        revision: int | None = None,
    ) -> asyncio.Future:
        """
        Query revisions of an experiment.

        Args:
            experiment_id: Experiment to look up
            revision: Exact revision to return; all revisions when omitted

        Returns:
            Future of list[ExperimentProfile], newest revision first when
            no revision is given
        """
        if revision is None:
            sql = "SELECT * FROM ExperimentProfile WHERE id = ? ORDER BY revision DESC"
            params: tuple[Any, ...] = (experiment_id,)
        else:
            sql = "SELECT * FROM ExperimentProfile WHERE id = ? AND revision = ?"
            params = (experiment_id, revision)
        return self._submit(self._all(sql, params), load_experiment_profile)

    def query_latest_experiment_profile(self, experiment_id: str) -> asyncio.Future:
        """
        Query the highest revision of an experiment.

        Returns:
            Future of ExperimentProfile, or of None when the id has no rows
        """
        return self._spawn(self._first(self.query_experiment_profile(experiment_id)))

    @staticmethod
    async def _first(pending: asyncio.Future) -> ExperimentProfile | None:
        profiles = await pending
        return profiles[0] if profiles else None

    # =========================================================================
    # Trial Job Event Operations
    # =========================================================================

    def store_trial_job_event(
        self,
        event: TrialJobEvent | str,
        trial_job_id: str,
        data: str | None = None,
        log_path: str | None = None,
    ) -> asyncio.Future:
        """
        Append a trial job event, timestamped with the current time.

        Args:
            event: Kind of transition
            trial_job_id: Trial job the event belongs to
            data: Optional free-form payload
            log_path: Optional trial log location
        """
        timestamp = now_ms()
        try:
            event = TrialJobEvent(event)
        except ValueError as e:
            return self._rejected(
                PayloadValidationError(
                    operation="store_trial_job_event",
                    validation_error=str(e),
                )
            )
        params = dump_trial_job_event(timestamp, event, trial_job_id, data, log_path)
        return self._submit(self._run("INSERT INTO TrialJobEvent VALUES (?, ?, ?, ?, ?)", params))

    def query_trial_job_event(
        self,
        trial_job_id: str | None = None,
        event: TrialJobEvent | str | None = None,
    ) -> asyncio.Future:
        """
        Query trial job events, filtered by any combination of trial and event.

        Returns:
            Future of list[TrialJobEventRecord] in the engine's row order
        """
        where, params = _where({"trialJobId": trial_job_id, "event": event})
        return self._submit(
            self._all(f"SELECT * FROM TrialJobEvent{where}", params),
            load_trial_job_event,
        )

    # =========================================================================
    # Metric Data Operations
    # =========================================================================

    def store_metric_data(self, envelope: str | bytes) -> asyncio.Future:
        """
        Append a metric sample from its serialized envelope.

        The envelope is parsed before anything is written: a malformed
        envelope fails the future with MetricEnvelopeError and inserts nothing.
        """
        timestamp = now_ms()
        try:
            parsed = MetricEnvelope.model_validate_json(envelope)
        except ValidationError as e:
            return self._rejected(MetricEnvelopeError(validation_error=str(e)))
        params = dump_metric_envelope(timestamp, parsed)
        return self._submit(self._run("INSERT INTO MetricData VALUES (?, ?, ?, ?, ?, ?)", params))

    def query_metric_data(
        self,
        trial_job_id: str | None = None,
        metric_type: MetricType | str | None = None,
    ) -> asyncio.Future:
        """
        Query metric samples, filtered by any combination of trial and type.

        Returns:
            Future of list[MetricDataRecord] in the engine's row order
        """
        where, params = _where({"trialJobId": trial_job_id, "type": metric_type})
        return self._submit(
            self._all(f"SELECT * FROM MetricData{where}", params),
            load_metric_data,
        )

    # =========================================================================
    # Driver Plumbing
    # =========================================================================

    async def _run(self, sql: str, params: tuple[Any, ...]) -> None:
        logger.debug("run: %s", sql)
        cursor = await self._conn.execute(sql, params)
        await cursor.close()

    async def _all(self, sql: str, params: tuple[Any, ...]) -> list[sqlite3.Row]:
        logger.debug("all: %s %r", sql, params)
        return list(await self._conn.execute_fetchall(sql, params))

    def _spawn(self, operation: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Start a driver task now and hold a reference until it finishes."""
        task = asyncio.get_running_loop().create_task(operation)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def _submit(
        self,
        operation: Coroutine[Any, Any, Any],
        row_loader: RowLoader | None = None,
    ) -> asyncio.Future:
        return bridge(self._spawn(operation), row_loader)

    def _rejected(self, error: Exception) -> asyncio.Future:
        logger.debug("Rejected before submission: %s", error)
        future = asyncio.get_running_loop().create_future()
        settle(future, error)
        return future


@asynccontextmanager
async def open_store(
    directory: str | Path,
    create_new: bool = False,
) -> AsyncIterator[SqlStore]:
    """
    Open a store for the duration of an async with block.

    Example:
        async with open_store(experiment_dir) as store:
            events = await store.query_trial_job_event("t1")
    """
    store = SqlStore()
    await store.init(create_new, directory)
    try:
        yield store
    finally:
        await store.close()
