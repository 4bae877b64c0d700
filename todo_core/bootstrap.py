from __future__ import annotations

import logging
from dataclasses import dataclass

from todo_core.config import SETTINGS, Settings
from todo_core.domain.ports import Storage
from todo_core.infra.db import init_db, make_engine
from todo_core.infra.logging import setup_logging
from todo_core.infra.repository import SqlStorage
from todo_core.services.metrics import MetricsSink
from todo_core.services.subtask_service import SubtaskService
from todo_core.services.task_service import TaskService
from todo_core.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    tasks: TaskService
    subtasks: SubtaskService
    users: UserService
    storage: Storage | None

    def close(self) -> None:
        if self.storage is not None:
            self.storage.close()


def open_storage(settings: Settings, *, create_schema: bool = False) -> Storage | None:
    if not settings.persistent:
        return None
    engine = make_engine(settings.database_url, echo=settings.sql_echo)
    init_db(engine, create_schema=create_schema)
    return SqlStorage(engine)


def build_services(
        settings: Settings = SETTINGS,
        *,
        metrics: MetricsSink | None = None,
        create_schema: bool = False,
        configure_logging: bool = False,
) -> Services:
    """Wire the managers for a front-end.

    Without ``DATABASE_URL`` every manager owns its own transient store;
    otherwise all of them share one durable store. ``configure_logging``
    installs the file and console handlers first.
    """
    if configure_logging:
        setup_logging(settings)
    storage = open_storage(settings, create_schema=create_schema)
    logger.info("Building services storage=%s", "sql" if storage is not None else "memory")
    return Services(
        tasks=TaskService(storage, metrics=metrics, legacy_user_id=settings.legacy_user_id),
        subtasks=SubtaskService(storage, metrics=metrics),
        users=UserService(storage),
        storage=storage,
    )
