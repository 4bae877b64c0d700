from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import Priority

LEGACY_USER_ID = 1
LEGACY_DEVICE_ID = "default_legacy_user"
MAX_DESCRIPTION_LENGTH = 1000


@dataclass(frozen=True)
class Task:
    id: int
    user_id: int
    description: str
    completed: bool
    priority: Priority
    due_date: Optional[datetime]
    tags: tuple[str, ...]
    created_at: datetime
    updated_at: datetime

    @property
    def has_due_date(self) -> bool:
        return self.due_date is not None


@dataclass(frozen=True)
class Subtask:
    id: int
    task_id: int
    description: str
    completed: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class User:
    id: int
    device_id: str
    telegram_id: int | None
    push_token: str | None
    created_at: datetime
    updated_at: datetime
