"""
Storage port used by the services.

Adapters are plain persistence: they return ``None``/``False`` on a miss and
never validate. Durable adapters raise ``StorageError`` when the backend fails.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from .entities import Subtask, Task, User
from .filters import TaskFilters


class TaskStore(Protocol):
    def create_task(self, data: dict[str, Any]) -> Task: ...
    def get_task(self, task_id: int) -> Task | None: ...
    def update_task(self, task_id: int, data: dict[str, Any]) -> Task | None: ...
    def toggle_task(self, task_id: int, updated_at: datetime) -> Task | None: ...
    def delete_task(self, task_id: int) -> bool: ...
    def list_tasks(self, filters: TaskFilters) -> list[Task]: ...
    def reassign_tasks(self, from_user_id: int, to_user_id: int, updated_at: datetime) -> int: ...


class SubtaskStore(Protocol):
    def create_subtask(self, data: dict[str, Any]) -> Subtask: ...
    def get_subtask(self, subtask_id: int) -> Subtask | None: ...
    def list_subtasks(self, task_id: int) -> list[Subtask]: ...
    def toggle_subtask(self, subtask_id: int, updated_at: datetime) -> Subtask | None: ...
    def delete_subtask(self, subtask_id: int) -> bool: ...


class UserStore(Protocol):
    def create_user(self, data: dict[str, Any]) -> User: ...
    def get_user(self, user_id: int) -> User | None: ...
    def find_user(
            self,
            *,
            device_id: str | None = None,
            telegram_id: int | None = None,
    ) -> User | None: ...
    def update_user(self, user_id: int, data: dict[str, Any]) -> User | None: ...


class Storage(TaskStore, SubtaskStore, UserStore, Protocol):
    def close(self) -> None: ...
