"""
Schema definitions for expstore.

This module defines the Pydantic models that cross the store boundary:
- ExperimentProfile: one revision of an experiment's configuration
- TrialJobEventRecord: one trial-job state transition
- MetricDataRecord: one reported metric sample
- MetricEnvelope: the serialized form callers hand to store_metric_data
- StoreConfig: where the store lives, loaded from YAML

Design Decisions:
    - Records are immutable (frozen=True); an update is a new row
    - Python attributes are snake_case, aliases match the stored column
      names and the camelCase keys used in envelopes and JSON output
    - Optional columns map to None, never to a sentinel value
"""

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, ValidationError

from expstore.errors import ConfigError


# =============================================================================
# Enums
# =============================================================================


class TrialJobEvent(str, Enum):
    """Lifecycle transitions recorded for a trial job."""

    WAITING = "WAITING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    USER_CANCELED = "USER_CANCELED"
    SYS_CANCELED = "SYS_CANCELED"
    EARLY_STOPPED = "EARLY_STOPPED"
    ADD_CUSTOMIZED = "ADD_CUSTOMIZED"
    ADD_HYPERPARAMETER = "ADD_HYPERPARAMETER"
    IMPORT_DATA = "IMPORT_DATA"


class MetricType(str, Enum):
    """
    Kind of a reported metric.

    PERIODICAL metrics are intermediate results, FINAL is the trial's
    end result. CUSTOM and REQUEST_PARAMETER are emitted by trials that
    talk to the tuner directly.
    """

    PERIODICAL = "PERIODICAL"
    FINAL = "FINAL"
    CUSTOM = "CUSTOM"
    REQUEST_PARAMETER = "REQUEST_PARAMETER"


# =============================================================================
# Record Models
# =============================================================================


class ExperimentProfile(BaseModel):
    """
    A versioned snapshot of experiment configuration.

    Several rows share an id; they are told apart by revision, which the
    caller assigns. The store only guarantees that queries order by it.
    Times must carry a timezone: they are stored as epoch milliseconds
    and load back as UTC, so a naive time would not round-trip.

    Attributes:
        params: Arbitrary JSON-compatible experiment parameters
        id: Experiment identifier
        exec_duration: Cumulative run time in seconds
        start_time: When the experiment started, if it has (timezone-aware)
        end_time: When the experiment ended, if it has (timezone-aware)
        revision: Caller-assigned revision counter
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    params: Any = Field(..., description="Experiment parameters (JSON-compatible)")
    id: str = Field(..., description="Experiment identifier")
    exec_duration: int = Field(
        default=0,
        alias="execDuration",
        description="Cumulative run time in seconds",
        ge=0,
    )
    start_time: AwareDatetime | None = Field(
        default=None,
        alias="startTime",
        description="When the experiment started",
    )
    end_time: AwareDatetime | None = Field(
        default=None,
        alias="endTime",
        description="When the experiment ended",
    )
    revision: int = Field(..., description="Caller-assigned revision counter")


class TrialJobEventRecord(BaseModel):
    """
    An immutable log entry for a trial job state transition.

    The timestamp is the store's wall clock at write time, so ordering by
    it reflects write order rather than any time claimed by the caller.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    timestamp: datetime = Field(..., description="When the store recorded the event")
    trial_job_id: str = Field(..., alias="trialJobId", description="Trial job identifier")
    event: TrialJobEvent = Field(..., description="Kind of transition")
    data: str | None = Field(default=None, description="Free-form payload")
    log_path: str | None = Field(default=None, alias="logPath", description="Trial log location")


class MetricDataRecord(BaseModel):
    """A single reported metric sample, as stored."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    timestamp: datetime = Field(..., description="When the store recorded the sample")
    trial_job_id: str = Field(..., alias="trialJobId", description="Trial job identifier")
    parameter_id: str = Field(..., alias="parameterId", description="Hyperparameter set identifier")
    type: MetricType = Field(..., description="Metric kind")
    sequence: int = Field(..., description="Ordinal of this report within the trial")
    data: str = Field(..., description="JSON-encoded metric payload")

    def payload(self) -> Any:
        """Decode the JSON payload."""
        return json.loads(self.data)


class MetricEnvelope(BaseModel):
    """
    The serialized envelope accepted by store_metric_data.

    Trials report metrics as one JSON document holding the correlation
    fields next to the payload. Unknown keys are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    trial_job_id: str = Field(..., alias="trialJobId")
    parameter_id: str = Field(..., alias="parameterId")
    type: MetricType
    sequence: int
    data: Any = Field(...)


# =============================================================================
# Configuration
# =============================================================================


class StoreConfig(BaseModel):
    """
    Location of a store.

    Attributes:
        directory: Existing directory holding the store file
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    directory: Path = Field(..., description="Directory holding the store file")


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_config(path: Path | str) -> StoreConfig:
    """
    Load a store configuration from a YAML file.

    Relative directories are resolved against the file's own directory.

    Raises:
        ConfigError: If the file can't be read or doesn't match the schema
    """
    path = Path(path)
    try:
        with open(path) as f:
            config = _validate_config(yaml.safe_load(f), str(path))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(path=str(path), underlying_error=str(e)) from e

    if not config.directory.is_absolute():
        config = config.model_copy(update={"directory": path.parent / config.directory})
    return config


def load_config_from_string(content: str) -> StoreConfig:
    """Load a store configuration from a YAML string."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(path="<string>", underlying_error=str(e)) from e
    return _validate_config(data, "<string>")


def _validate_config(data: Any, source: str) -> StoreConfig:
    try:
        return StoreConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(path=source, underlying_error=str(e)) from e


def load_profile(path: Path | str) -> ExperimentProfile:
    """
    Load an experiment profile from a YAML (or JSON) file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the document doesn't match the schema
    """
    with open(path) as f:
        data = yaml.safe_load(f)

    return ExperimentProfile.model_validate(data)
