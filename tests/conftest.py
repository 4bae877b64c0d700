from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta

import pytest

from todo_core.infra.db import init_db, make_engine
from todo_core.infra.memory import MemoryStorage
from todo_core.infra.repository import SqlStorage
from todo_core.services.metrics import CounterMetrics
from todo_core.services.subtask_service import SubtaskService
from todo_core.services.task_service import TaskService
from todo_core.services.user_service import UserService


class FakeClock:
    """Deterministic clock; every call moves time forward by one second."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value

    def set(self, value: datetime) -> None:
        self.current = value


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 10, 15, 30))


@pytest.fixture()
def sql_storage() -> Iterator[SqlStorage]:
    engine = make_engine("sqlite://")
    init_db(engine, create_schema=True)
    storage = SqlStorage(engine)
    yield storage
    storage.close()


@pytest.fixture(params=["memory", "sql"])
def storage(request: pytest.FixtureRequest):
    """Runs a test once against each storage adapter."""
    if request.param == "memory":
        return MemoryStorage()
    return request.getfixturevalue("sql_storage")


@pytest.fixture()
def metrics() -> CounterMetrics:
    return CounterMetrics()


@pytest.fixture()
def tasks(storage, clock: FakeClock, metrics: CounterMetrics) -> TaskService:
    return TaskService(storage, metrics=metrics, clock=clock)


@pytest.fixture()
def subtasks(storage, clock: FakeClock, metrics: CounterMetrics) -> SubtaskService:
    return SubtaskService(storage, metrics=metrics, clock=clock)


@pytest.fixture()
def users(storage, clock: FakeClock) -> UserService:
    return UserService(storage, clock=clock)
