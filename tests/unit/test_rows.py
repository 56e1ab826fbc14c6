"""
Unit tests for record <-> row mapping.

Rows are plain dicts here; the loaders only need key access.
"""

import json
from datetime import UTC, datetime

import pytest

from expstore.errors import RowLoadError
from expstore.schema import (
    ExperimentProfile,
    MetricEnvelope,
    MetricType,
    TrialJobEvent,
)
from expstore.store.rows import (
    EPOCH,
    dump_experiment_profile,
    dump_metric_envelope,
    dump_trial_job_event,
    from_epoch_ms,
    load_experiment_profile,
    load_metric_data,
    load_trial_job_event,
    now_ms,
    to_epoch_ms,
)


class TestTimestamps:
    """Tests for epoch millisecond conversion."""

    def test_none_passes_through(self) -> None:
        assert to_epoch_ms(None) is None
        assert from_epoch_ms(None) is None

    def test_epoch_zero_is_not_none(self) -> None:
        assert from_epoch_ms(0) == EPOCH

    def test_millisecond_round_trip(self) -> None:
        value = datetime(2024, 1, 2, 3, 4, 5, 123000, tzinfo=UTC)
        assert from_epoch_ms(to_epoch_ms(value)) == value

    def test_known_value(self) -> None:
        assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC)) == 1000

    def test_now_ms_is_recent(self) -> None:
        now = datetime.now(UTC)
        assert abs(now_ms() - to_epoch_ms(now)) < 5000


class TestDumpers:
    """Tests for insert parameter builders."""

    def test_dump_profile(self) -> None:
        profile = ExperimentProfile(
            params={"lr": 0.1},
            id="exp1",
            exec_duration=7,
            start_time=datetime(1970, 1, 1, 0, 0, 2, tzinfo=UTC),
            revision=4,
        )
        params_json, exp_id, duration, start, end, revision = dump_experiment_profile(profile)
        assert json.loads(params_json) == {"lr": 0.1}
        assert exp_id == "exp1"
        assert duration == 7
        assert start == 2000
        assert end is None
        assert revision == 4

    def test_dump_event(self) -> None:
        assert dump_trial_job_event(5, TrialJobEvent.RUNNING, "t1", None, "/log") == (
            5,
            "t1",
            "RUNNING",
            None,
            "/log",
        )

    def test_dump_metric_reserializes_data(self) -> None:
        envelope = MetricEnvelope(
            trial_job_id="t1",
            parameter_id="0",
            type=MetricType.FINAL,
            sequence=2,
            data={"default": 0.9},
        )
        row = dump_metric_envelope(10, envelope)
        assert row[:5] == (10, "t1", "0", "FINAL", 2)
        assert json.loads(row[5]) == {"default": 0.9}


class TestLoaders:
    """Tests for row loaders."""

    def test_load_profile(self) -> None:
        profile = load_experiment_profile({
            "params": '{"layers": [1, 2, 3]}',
            "id": "exp1",
            "execDuration": 3,
            "startTime": 1000,
            "endTime": None,
            "revision": 2,
        })
        assert profile.params == {"layers": [1, 2, 3]}
        assert profile.start_time == datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC)
        assert profile.end_time is None
        assert profile.revision == 2

    def test_load_profile_bad_params(self) -> None:
        with pytest.raises(RowLoadError) as exc_info:
            load_experiment_profile({
                "params": "{not json",
                "id": "exp1",
                "execDuration": 0,
                "startTime": None,
                "endTime": None,
                "revision": 1,
            })
        assert exc_info.value.table == "ExperimentProfile"

    def test_load_profile_null_params(self) -> None:
        with pytest.raises(RowLoadError):
            load_experiment_profile({
                "params": None,
                "id": "exp1",
                "execDuration": 0,
                "startTime": None,
                "endTime": None,
                "revision": 1,
            })

    def test_load_event_nulls(self) -> None:
        record = load_trial_job_event({
            "timestamp": 1500,
            "trialJobId": "t1",
            "event": "SUCCEEDED",
            "data": None,
            "logPath": None,
        })
        assert record.event is TrialJobEvent.SUCCEEDED
        assert record.data is None
        assert record.log_path is None
        assert record.timestamp == datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=UTC)

    def test_load_event_unknown_kind(self) -> None:
        with pytest.raises(RowLoadError) as exc_info:
            load_trial_job_event({
                "timestamp": 1,
                "trialJobId": "t1",
                "event": "TELEPORTED",
                "data": None,
                "logPath": None,
            })
        assert exc_info.value.table == "TrialJobEvent"

    def test_load_metric_keeps_json_text(self) -> None:
        record = load_metric_data({
            "timestamp": 1,
            "trialJobId": "t1",
            "parameterId": "3",
            "type": "PERIODICAL",
            "sequence": 4,
            "data": '"0.25"',
        })
        assert record.data == '"0.25"'
        assert record.payload() == "0.25"
        assert record.type is MetricType.PERIODICAL

    def test_load_metric_missing_timestamp(self) -> None:
        with pytest.raises(RowLoadError):
            load_metric_data({
                "timestamp": None,
                "trialJobId": "t1",
                "parameterId": "3",
                "type": "FINAL",
                "sequence": 0,
                "data": "1",
            })
