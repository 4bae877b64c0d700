from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .entities import Task
from .enums import Priority
from .tags import normalize_tags, tag_key


@dataclass(frozen=True)
class TaskFilters:
    """Predicates are ANDed together; ``tags`` matches if a task carries any of them."""

    user_id: int | None = None
    completed: bool | None = None
    priority: Optional[Priority] = None
    tags: tuple[str, ...] = ()
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    has_due_date: bool | None = None
    sort_by_due: bool = False

    @property
    def tag_keys(self) -> frozenset[str]:
        return frozenset(tag_key(tag) for tag in normalize_tags(self.tags))

    @property
    def date_aware(self) -> bool:
        return (
            self.sort_by_due
            or self.due_from is not None
            or self.due_to is not None
            or self.has_due_date is True
        )


def matches_tags(task: Task, filters: TaskFilters) -> bool:
    wanted = filters.tag_keys
    if not wanted:
        return True
    return any(tag_key(tag) in wanted for tag in task.tags)


def matches(task: Task, filters: TaskFilters) -> bool:
    if filters.user_id is not None and task.user_id != filters.user_id:
        return False
    if filters.completed is not None and task.completed != filters.completed:
        return False
    if filters.priority is not None and task.priority != filters.priority:
        return False
    if filters.has_due_date is not None and task.has_due_date != filters.has_due_date:
        return False
    if filters.due_from is not None or filters.due_to is not None:
        if task.due_date is None:
            return False
        if filters.due_from is not None and task.due_date < filters.due_from:
            return False
        if filters.due_to is not None and task.due_date > filters.due_to:
            return False
    return matches_tags(task, filters)


def _due_sort_key(task: Task) -> tuple[bool, datetime, int]:
    return (task.due_date is None, task.due_date or datetime.min, task.id)


def sort_by_due_date(tasks: Iterable[Task]) -> list[Task]:
    """Earliest due first; tasks without a due date always come last, by id."""
    return sorted(tasks, key=_due_sort_key)


def order_tasks(tasks: Iterable[Task], filters: TaskFilters) -> list[Task]:
    if filters.date_aware:
        return sort_by_due_date(tasks)
    return sorted(tasks, key=lambda task: task.id)


def apply_filters(tasks: Iterable[Task], filters: TaskFilters) -> list[Task]:
    return order_tasks((task for task in tasks if matches(task, filters)), filters)
