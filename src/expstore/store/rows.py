"""
Mapping between domain records and flat SQLite rows.

Each record kind has one loader (row -> record) and one dumper
(record -> positional insert parameters). Driver rows are sqlite3.Row
objects; nothing outside this module looks at them.

Timestamps are stored as integer milliseconds since the epoch. Optional
columns are stored as NULL and load back as None.
"""

import json
import time
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from expstore.errors import RowLoadError
from expstore.schema import (
    ExperimentProfile,
    MetricDataRecord,
    MetricEnvelope,
    TrialJobEvent,
    TrialJobEventRecord,
)


EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def to_epoch_ms(value: datetime | None) -> int | None:
    """Convert a datetime to epoch milliseconds, keeping None as None."""
    if value is None:
        return None
    return round(value.timestamp() * 1000)


def from_epoch_ms(value: int | None) -> datetime | None:
    """Convert epoch milliseconds to an aware UTC datetime, keeping None as None."""
    if value is None:
        return None
    return EPOCH + timedelta(milliseconds=value)


# =============================================================================
# Dumpers
# =============================================================================


def dump_experiment_profile(profile: ExperimentProfile) -> tuple[Any, ...]:
    """Insert parameters for the ExperimentProfile table, in column order."""
    return (
        json.dumps(profile.params),
        profile.id,
        profile.exec_duration,
        to_epoch_ms(profile.start_time),
        to_epoch_ms(profile.end_time),
        profile.revision,
    )


def dump_trial_job_event(
    timestamp: int,
    event: TrialJobEvent,
    trial_job_id: str,
    data: str | None,
    log_path: str | None,
) -> tuple[Any, ...]:
    """Insert parameters for the TrialJobEvent table, in column order."""
    return (timestamp, trial_job_id, event.value, data, log_path)


def dump_metric_envelope(timestamp: int, envelope: MetricEnvelope) -> tuple[Any, ...]:
    """Insert parameters for the MetricData table, in column order."""
    return (
        timestamp,
        envelope.trial_job_id,
        envelope.parameter_id,
        envelope.type.value,
        envelope.sequence,
        json.dumps(envelope.data),
    )


# =============================================================================
# Loaders
# =============================================================================


def load_experiment_profile(row: Mapping[str, Any]) -> ExperimentProfile:
    """Map an ExperimentProfile row to a record, decoding the params JSON."""
    try:
        return ExperimentProfile(
            params=json.loads(row["params"]),
            id=row["id"],
            exec_duration=row["execDuration"],
            start_time=from_epoch_ms(row["startTime"]),
            end_time=from_epoch_ms(row["endTime"]),
            revision=row["revision"],
        )
    except (TypeError, ValueError) as e:
        # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors
        raise RowLoadError(table="ExperimentProfile", underlying_error=str(e)) from e


def load_trial_job_event(row: Mapping[str, Any]) -> TrialJobEventRecord:
    """Map a TrialJobEvent row to a record."""
    try:
        return TrialJobEventRecord(
            timestamp=from_epoch_ms(row["timestamp"]),
            trial_job_id=row["trialJobId"],
            event=row["event"],
            data=row["data"],
            log_path=row["logPath"],
        )
    except ValidationError as e:
        raise RowLoadError(table="TrialJobEvent", underlying_error=str(e)) from e


def load_metric_data(row: Mapping[str, Any]) -> MetricDataRecord:
    """Map a MetricData row to a record. The payload stays JSON text."""
    try:
        return MetricDataRecord(
            timestamp=from_epoch_ms(row["timestamp"]),
            trial_job_id=row["trialJobId"],
            parameter_id=row["parameterId"],
            type=row["type"],
            sequence=row["sequence"],
            data=row["data"],
        )
    except ValidationError as e:
        raise RowLoadError(table="MetricData", underlying_error=str(e)) from e
