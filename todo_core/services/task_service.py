from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

from todo_core.domain.entities import LEGACY_USER_ID, Task
from todo_core.domain.enums import Priority
from todo_core.domain.errors import NotFoundError, ValidationError
from todo_core.domain.filters import TaskFilters, order_tasks, sort_by_due_date
from todo_core.domain.patch import TaskPatch
from todo_core.domain.ports import TaskStore
from todo_core.domain.tags import normalize_tags, tag_key
from todo_core.domain.validation import (
    coerce_priority,
    validate_description,
    validate_due_date,
    validate_filters,
)
from todo_core.infra.memory import MemoryStorage

from .metrics import MetricsSink, NullMetrics, observed

logger = logging.getLogger(__name__)


def _tag_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValidationError("tags", value, "must be a list of strings")
    items = list(value)
    for item in items:
        if not isinstance(item, str):
            raise ValidationError("tags", value, "must be a list of strings")
    return normalize_tags(items)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class TaskService:
    """
    Task lifecycle, validation and querying.

    The storage strategy is fixed at construction: with no storage given the
    service owns a private MemoryStorage, otherwise every call goes to the
    supplied store. Validation always happens here, never in the store.
    """

    def __init__(
            self,
            storage: TaskStore | None = None,
            *,
            metrics: MetricsSink | None = None,
            clock: Callable[[], datetime] = datetime.now,
            legacy_user_id: int = LEGACY_USER_ID,
    ) -> None:
        self._store = storage if storage is not None else MemoryStorage()
        self._metrics = metrics or NullMetrics()
        self._clock = clock
        self._legacy_user_id = legacy_user_id

    @property
    def legacy_user_id(self) -> int:
        return self._legacy_user_id

    # ---- mutations ----

    def create_task(
            self,
            user_id: int | None,
            description: str,
            tags: Iterable[str] | None = None,
            *,
            priority: Priority | str = Priority.MEDIUM,
            due_date: datetime | None = None,
    ) -> int:
        with observed(self._metrics, "task.create"):
            now = self._clock()
            data = {
                "user_id": self._legacy_user_id if user_id is None else user_id,
                "description": validate_description(description),
                "completed": False,
                "priority": coerce_priority(priority),
                "due_date": validate_due_date(due_date),
                "tags": _tag_list(tags) if tags is not None else (),
                "created_at": now,
                "updated_at": now,
            }
            task = self._store.create_task(data)
        logger.info("Task created id=%s user=%s", task.id, task.user_id)
        return task.id

    def update_task(self, task_id: int, patch: TaskPatch) -> Task:
        with observed(self._metrics, "task.update"):
            if self._store.get_task(task_id) is None:
                raise NotFoundError("task", task_id)
            changes = self._validated_changes(patch)
            changes["updated_at"] = self._clock()
            task = self._store.update_task(task_id, changes)
            if task is None:
                raise NotFoundError("task", task_id)
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))
        return task

    def delete_task(self, task_id: int) -> None:
        with observed(self._metrics, "task.delete"):
            if not self._store.delete_task(task_id):
                raise NotFoundError("task", task_id)
        logger.info("Task deleted id=%s", task_id)

    def toggle_complete(self, task_id: int) -> Task:
        with observed(self._metrics, "task.toggle"):
            task = self._store.toggle_task(task_id, self._clock())
            if task is None:
                raise NotFoundError("task", task_id)
        return task

    def attach_legacy_tasks(self, user_id: int) -> int:
        """Move every task owned by the legacy placeholder user to ``user_id``."""
        if user_id == self._legacy_user_id:
            return 0
        moved = self._store.reassign_tasks(self._legacy_user_id, user_id, self._clock())
        logger.info("Attached %s legacy tasks to user=%s", moved, user_id)
        return moved

    # ---- queries ----

    def get_task(self, task_id: int) -> Task:
        task = self._store.get_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    def list_tasks(self) -> list[Task]:
        return self.filter_tasks(TaskFilters())

    def list_tasks_for_user(self, user_id: int) -> list[Task]:
        return self.filter_tasks(TaskFilters(user_id=user_id))

    def filter_tasks(self, filters: TaskFilters) -> list[Task]:
        filters = validate_filters(filters)
        return order_tasks(self._store.list_tasks(filters), filters)

    def upcoming_tasks(self, days: int, *, user_id: int | None = None) -> list[Task]:
        """Open tasks due from the start of today through the end of day ``today + days``."""
        if isinstance(days, bool) or not isinstance(days, int) or days < 0:
            raise ValidationError("days", days, "must be a non-negative integer")
        start = start_of_day(self._clock())
        end = start + timedelta(days=days + 1)
        candidates = self._store.list_tasks(
            TaskFilters(user_id=user_id, completed=False, due_from=start, due_to=end)
        )
        return sort_by_due_date(task for task in candidates if task.due_date < end)

    def all_tags(self, *, user_id: int | None = None) -> list[str]:
        seen: dict[str, str] = {}
        for task in self.filter_tasks(TaskFilters(user_id=user_id)):
            for tag in task.tags:
                seen.setdefault(tag_key(tag), tag)
        return [seen[key] for key in sorted(seen)]

    @staticmethod
    def _validated_changes(patch: TaskPatch) -> dict[str, Any]:
        changes = patch.changes()
        if "description" in changes:
            validate_description(changes["description"])
        if "completed" in changes and not isinstance(changes["completed"], bool):
            raise ValidationError("completed", changes["completed"], "must be a boolean")
        if "priority" in changes:
            changes["priority"] = coerce_priority(changes["priority"])
        if "due_date" in changes:
            changes["due_date"] = validate_due_date(changes["due_date"])
        if "tags" in changes:
            changes["tags"] = _tag_list(changes["tags"])
        return changes
