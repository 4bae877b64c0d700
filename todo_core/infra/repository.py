from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext
from datetime import datetime
from typing import Any

from sqlalchemy import delete, not_, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from todo_core.domain.entities import Subtask, Task, User
from todo_core.domain.enums import Priority
from todo_core.domain.errors import StorageError
from todo_core.domain.filters import TaskFilters, matches_tags

from .db import make_session_factory
from .models import SubtaskModel, TaskModel, UserModel

logger = logging.getLogger(__name__)


def _to_task(model: TaskModel) -> Task:
    return Task(
        id=model.id,
        user_id=model.user_id,
        description=model.description,
        completed=bool(model.completed),
        priority=Priority(model.priority),
        due_date=model.due_date,
        tags=tuple(model.tags or ()),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _to_subtask(model: SubtaskModel) -> Subtask:
    return Subtask(
        id=model.id,
        task_id=model.task_id,
        description=model.description,
        completed=bool(model.completed),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _to_user(model: UserModel) -> User:
    return User(
        id=model.id,
        device_id=model.device_id,
        telegram_id=model.telegram_id,
        push_token=model.push_token,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _task_columns(data: dict[str, Any]) -> dict[str, Any]:
    columns = dict(data)
    if "tags" in columns:
        columns["tags"] = list(columns["tags"])
    if "priority" in columns:
        columns["priority"] = Priority(columns["priority"]).value
    return columns


def _apply_filters(stmt, filters: TaskFilters) -> object:
    if filters.user_id is not None:
        stmt = stmt.where(TaskModel.user_id == filters.user_id)
    if filters.completed is not None:
        stmt = stmt.where(TaskModel.completed == filters.completed)
    if filters.priority is not None:
        stmt = stmt.where(TaskModel.priority == Priority(filters.priority).value)

    if filters.has_due_date is True:
        stmt = stmt.where(TaskModel.due_date.is_not(None))
    elif filters.has_due_date is False:
        stmt = stmt.where(TaskModel.due_date.is_(None))

    if filters.due_from is not None:
        stmt = stmt.where(TaskModel.due_date.is_not(None), TaskModel.due_date >= filters.due_from)
    if filters.due_to is not None:
        stmt = stmt.where(TaskModel.due_date.is_not(None), TaskModel.due_date <= filters.due_to)

    return stmt


class SqlStorage:
    """
    Durable storage on top of SQLAlchemy.

    Each call runs in its own session. Backend failures surface as StorageError.
    An engine with a StaticPool has one connection for every thread, so calls
    on it are serialized.
    Tag membership is checked in Python since tags are stored as a JSON list.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = make_session_factory(engine)
        self._serial = threading.RLock() if isinstance(engine.pool, StaticPool) else nullcontext()
        logger.info("SqlStorage ready url=%s", engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._serial, self._sessions() as session:
                yield session
        except SQLAlchemyError as exc:
            raise StorageError(f"storage operation failed: {exc}") from exc

    # ---- tasks ----

    def create_task(self, data: dict[str, Any]) -> Task:
        with self._session() as session:
            task = TaskModel(**_task_columns(data))
            session.add(task)
            session.commit()
            session.refresh(task)
            return _to_task(task)

    def get_task(self, task_id: int) -> Task | None:
        with self._session() as session:
            task = session.get(TaskModel, task_id)
            return _to_task(task) if task else None

    def update_task(self, task_id: int, data: dict[str, Any]) -> Task | None:
        with self._session() as session:
            task = session.get(TaskModel, task_id)
            if not task:
                return None
            for key, value in _task_columns(data).items():
                setattr(task, key, value)
            session.commit()
            session.refresh(task)
            return _to_task(task)

    def toggle_task(self, task_id: int, updated_at: datetime) -> Task | None:
        with self._session() as session:
            result = session.execute(
                update(TaskModel)
                .where(TaskModel.id == task_id)
                .values(completed=not_(TaskModel.completed), updated_at=updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.rollback()
                return None
            task = session.get(TaskModel, task_id, populate_existing=True)
            toggled = _to_task(task)
            session.commit()
            return toggled

    def delete_task(self, task_id: int) -> bool:
        with self._session() as session:
            result = session.execute(delete(TaskModel).where(TaskModel.id == task_id))
            session.commit()
            return result.rowcount > 0

    def list_tasks(self, filters: TaskFilters) -> list[Task]:
        with self._session() as session:
            stmt = _apply_filters(select(TaskModel), filters).order_by(TaskModel.id.asc())
            tasks = [_to_task(task) for task in session.scalars(stmt)]
        return [task for task in tasks if matches_tags(task, filters)]

    def reassign_tasks(self, from_user_id: int, to_user_id: int, updated_at: datetime) -> int:
        with self._session() as session:
            result = session.execute(
                update(TaskModel)
                .where(TaskModel.user_id == from_user_id)
                .values(user_id=to_user_id, updated_at=updated_at)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount

    # ---- subtasks ----

    def create_subtask(self, data: dict[str, Any]) -> Subtask:
        with self._session() as session:
            subtask = SubtaskModel(**data)
            session.add(subtask)
            session.commit()
            session.refresh(subtask)
            return _to_subtask(subtask)

    def get_subtask(self, subtask_id: int) -> Subtask | None:
        with self._session() as session:
            subtask = session.get(SubtaskModel, subtask_id)
            return _to_subtask(subtask) if subtask else None

    def list_subtasks(self, task_id: int) -> list[Subtask]:
        with self._session() as session:
            stmt = (
                select(SubtaskModel)
                .where(SubtaskModel.task_id == task_id)
                .order_by(SubtaskModel.id.asc())
            )
            return [_to_subtask(subtask) for subtask in session.scalars(stmt)]

    def toggle_subtask(self, subtask_id: int, updated_at: datetime) -> Subtask | None:
        with self._session() as session:
            result = session.execute(
                update(SubtaskModel)
                .where(SubtaskModel.id == subtask_id)
                .values(completed=not_(SubtaskModel.completed), updated_at=updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.rollback()
                return None
            subtask = session.get(SubtaskModel, subtask_id, populate_existing=True)
            toggled = _to_subtask(subtask)
            session.commit()
            return toggled

    def delete_subtask(self, subtask_id: int) -> bool:
        with self._session() as session:
            result = session.execute(delete(SubtaskModel).where(SubtaskModel.id == subtask_id))
            session.commit()
            return result.rowcount > 0

    # ---- users ----

    def create_user(self, data: dict[str, Any]) -> User:
        with self._session() as session:
            user = UserModel(**data)
            session.add(user)
            session.commit()
            session.refresh(user)
            return _to_user(user)

    def get_user(self, user_id: int) -> User | None:
        with self._session() as session:
            user = session.get(UserModel, user_id)
            return _to_user(user) if user else None

    def find_user(
            self,
            *,
            device_id: str | None = None,
            telegram_id: int | None = None,
    ) -> User | None:
        conditions = []
        if device_id is not None:
            conditions.append(UserModel.device_id == device_id)
        if telegram_id is not None:
            conditions.append(UserModel.telegram_id == telegram_id)
        if not conditions:
            return None
        with self._session() as session:
            user = session.scalars(
                select(UserModel).where(or_(*conditions)).order_by(UserModel.id.asc()).limit(1)
            ).first()
            return _to_user(user) if user else None

    def update_user(self, user_id: int, data: dict[str, Any]) -> User | None:
        with self._session() as session:
            user = session.get(UserModel, user_id)
            if not user:
                return None
            for key, value in data.items():
                setattr(user, key, value)
            session.commit()
            session.refresh(user)
            return _to_user(user)
