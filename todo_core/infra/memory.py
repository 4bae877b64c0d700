from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Any

from todo_core.domain.entities import Subtask, Task, User
from todo_core.domain.filters import TaskFilters, apply_filters


class MemoryStorage:
    """
    Transient storage kept in process memory.

    Maps and id counters are guarded by a single lock held for one call.
    Ids start at 1 and are never reused while the instance lives.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: dict[int, Task] = {}
        self._subtasks: dict[int, Subtask] = {}
        self._users: dict[int, User] = {}
        self._next_task_id = 1
        self._next_subtask_id = 1
        self._next_user_id = 1

    def close(self) -> None:
        return

    # ---- tasks ----

    def create_task(self, data: dict[str, Any]) -> Task:
        with self._lock:
            task = Task(id=self._next_task_id, **data)
            self._tasks[task.id] = task
            self._next_task_id += 1
            return task

    def get_task(self, task_id: int) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def update_task(self, task_id: int, data: dict[str, Any]) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task = replace(task, **data)
            self._tasks[task_id] = task
            return task

    def toggle_task(self, task_id: int, updated_at: datetime) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task = replace(task, completed=not task.completed, updated_at=updated_at)
            self._tasks[task_id] = task
            return task

    def delete_task(self, task_id: int) -> bool:
        with self._lock:
            return self._tasks.pop(task_id, None) is not None

    def list_tasks(self, filters: TaskFilters) -> list[Task]:
        with self._lock:
            snapshot = list(self._tasks.values())
        return apply_filters(snapshot, filters)

    def reassign_tasks(self, from_user_id: int, to_user_id: int, updated_at: datetime) -> int:
        with self._lock:
            moved = [task for task in self._tasks.values() if task.user_id == from_user_id]
            for task in moved:
                self._tasks[task.id] = replace(task, user_id=to_user_id, updated_at=updated_at)
            return len(moved)

    # ---- subtasks ----

    def create_subtask(self, data: dict[str, Any]) -> Subtask:
        with self._lock:
            subtask = Subtask(id=self._next_subtask_id, **data)
            self._subtasks[subtask.id] = subtask
            self._next_subtask_id += 1
            return subtask

    def get_subtask(self, subtask_id: int) -> Subtask | None:
        with self._lock:
            return self._subtasks.get(subtask_id)

    def list_subtasks(self, task_id: int) -> list[Subtask]:
        with self._lock:
            found = [s for s in self._subtasks.values() if s.task_id == task_id]
        return sorted(found, key=lambda s: s.id)

    def toggle_subtask(self, subtask_id: int, updated_at: datetime) -> Subtask | None:
        with self._lock:
            subtask = self._subtasks.get(subtask_id)
            if subtask is None:
                return None
            subtask = replace(subtask, completed=not subtask.completed, updated_at=updated_at)
            self._subtasks[subtask_id] = subtask
            return subtask

    def delete_subtask(self, subtask_id: int) -> bool:
        with self._lock:
            return self._subtasks.pop(subtask_id, None) is not None

    # ---- users ----

    def create_user(self, data: dict[str, Any]) -> User:
        with self._lock:
            user = User(id=self._next_user_id, **data)
            self._users[user.id] = user
            self._next_user_id += 1
            return user

    def get_user(self, user_id: int) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    def find_user(
            self,
            *,
            device_id: str | None = None,
            telegram_id: int | None = None,
    ) -> User | None:
        with self._lock:
            for user in self._users.values():
                if device_id is not None and user.device_id == device_id:
                    return user
                if telegram_id is not None and user.telegram_id == telegram_id:
                    return user
        return None

    def update_user(self, user_id: int, data: dict[str, Any]) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            user = replace(user, **data)
            self._users[user_id] = user
            return user
