"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from bluegreen.jobs.repository import TaskHistoryRepository
from bluegreen.model.repository import EnvironmentRepository


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "bluegreen.db"


@pytest.fixture()
def environment_repository(db_path: Path) -> Iterator[EnvironmentRepository]:
    repository = EnvironmentRepository(db_path)
    repository.init_schema()
    yield repository
    repository.close()


@pytest.fixture()
def history_repository(db_path: Path) -> Iterator[TaskHistoryRepository]:
    repository = TaskHistoryRepository(db_path)
    repository.init_schema()
    yield repository
    repository.close()
