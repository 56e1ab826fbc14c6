"""
Pytest configuration and fixtures for expstore tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path
from typing import Generator

import pytest
import pytest_asyncio

from expstore.schema import ExperimentProfile
from expstore.store import SqlStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest_asyncio.fixture
async def store(temp_dir: Path) -> AsyncGenerator[SqlStore, None]:
    """A freshly created store, closed after the test."""
    sql_store = SqlStore()
    await sql_store.init(True, temp_dir)
    yield sql_store
    await sql_store.close()


@pytest.fixture
def sample_profile() -> ExperimentProfile:
    """Return a profile with every optional field set."""
    return ExperimentProfile(
        params={"lr": 0.1, "layers": [1, 2, 3]},
        id="exp1",
        exec_duration=42,
        start_time=datetime(2024, 1, 2, 3, 4, 5, 123000, tzinfo=UTC),
        end_time=datetime(2024, 1, 2, 4, 0, 0, tzinfo=UTC),
        revision=1,
    )


@pytest.fixture
def sample_profile_yaml() -> str:
    """Return an experiment profile document in YAML."""
    return """
id: exp1
revision: 2
execDuration: 10
params:
  searchSpace:
    lr:
      _type: choice
      _value: [0.1, 0.01]
  maxTrialNum: 20
"""
