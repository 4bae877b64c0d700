from __future__ import annotations

from typing import Any


class TodoCoreError(Exception):
    """Base class for every error raised by the task core."""


class ValidationError(TodoCoreError):
    def __init__(self, field: str, value: Any, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.value = value
        self.message = message


class NotFoundError(TodoCoreError):
    def __init__(self, kind: str, key: Any) -> None:
        super().__init__(f"{kind} {key!r} not found")
        self.kind = kind
        self.key = key


class StorageError(TodoCoreError):
    """The backing store failed; the original exception is chained as __cause__."""
