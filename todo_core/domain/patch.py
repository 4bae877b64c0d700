from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from .enums import Priority


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset.UNSET


@dataclass(frozen=True)
class TaskPatch:
    """Partial task update.

    A field left at ``UNSET`` is not touched. Any other value, including ``None``
    for ``due_date`` or ``""`` for ``description``, is applied and validated.
    """

    description: str | _Unset = UNSET
    completed: bool | _Unset = UNSET
    priority: Priority | str | _Unset = UNSET
    due_date: datetime | None | _Unset = UNSET
    tags: Iterable[str] | None | _Unset = UNSET

    def changes(self) -> dict[str, Any]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.changes()
