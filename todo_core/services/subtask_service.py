from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from todo_core.domain.entities import Subtask
from todo_core.domain.errors import NotFoundError
from todo_core.domain.ports import SubtaskStore
from todo_core.domain.validation import validate_description
from todo_core.infra.memory import MemoryStorage

from .metrics import MetricsSink, NullMetrics, observed

logger = logging.getLogger(__name__)


class SubtaskService:
    """Subtasks of a task. The parent task is not checked for existence here."""

    def __init__(
            self,
            storage: SubtaskStore | None = None,
            *,
            metrics: MetricsSink | None = None,
            clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = storage if storage is not None else MemoryStorage()
        self._metrics = metrics or NullMetrics()
        self._clock = clock

    def create_subtask(self, task_id: int, description: str) -> int:
        with observed(self._metrics, "subtask.create"):
            now = self._clock()
            subtask = self._store.create_subtask({
                "task_id": task_id,
                "description": validate_description(description),
                "completed": False,
                "created_at": now,
                "updated_at": now,
            })
        logger.info("Subtask created id=%s task=%s", subtask.id, task_id)
        return subtask.id

    def get_subtask(self, subtask_id: int) -> Subtask:
        subtask = self._store.get_subtask(subtask_id)
        if subtask is None:
            raise NotFoundError("subtask", subtask_id)
        return subtask

    def list_subtasks(self, task_id: int) -> list[Subtask]:
        return self._store.list_subtasks(task_id)

    def toggle_complete(self, subtask_id: int) -> Subtask:
        with observed(self._metrics, "subtask.toggle"):
            subtask = self._store.toggle_subtask(subtask_id, self._clock())
            if subtask is None:
                raise NotFoundError("subtask", subtask_id)
        return subtask

    def delete_subtask(self, subtask_id: int) -> None:
        with observed(self._metrics, "subtask.delete"):
            if not self._store.delete_subtask(subtask_id):
                raise NotFoundError("subtask", subtask_id)
        logger.info("Subtask deleted id=%s", subtask_id)
