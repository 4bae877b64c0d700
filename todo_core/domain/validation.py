from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from .entities import MAX_DESCRIPTION_LENGTH
from .enums import Priority
from .errors import ValidationError
from .filters import TaskFilters


def validate_description(value: Any, field: str = "description") -> str:
    if not isinstance(value, str):
        raise ValidationError(field, value, "must be a string")
    if not value.strip():
        raise ValidationError(field, value, "must not be empty")
    if len(value) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            field,
            value,
            f"must be at most {MAX_DESCRIPTION_LENGTH} characters, got {len(value)}",
        )
    return value


def coerce_priority(value: Any, field: str = "priority") -> Priority:
    try:
        return Priority(value)
    except ValueError:
        allowed = ", ".join(p.value for p in Priority)
        raise ValidationError(field, value, f"must be one of: {allowed}") from None


def validate_due_date(value: Any, field: str = "due_date") -> datetime | None:
    if value is not None and not isinstance(value, datetime):
        raise ValidationError(field, value, "must be a datetime or None")
    if value is not None and value.tzinfo is not None:
        # due dates are compared as naive local time
        value = value.astimezone().replace(tzinfo=None)
    return value


def validate_filters(filters: TaskFilters) -> TaskFilters:
    if isinstance(filters.tags, str):
        raise ValidationError("tags", filters.tags, "must be a list of strings")
    if filters.priority is not None:
        coerce_priority(filters.priority)
    filters = replace(
        filters,
        due_from=validate_due_date(filters.due_from, "due_from"),
        due_to=validate_due_date(filters.due_to, "due_to"),
    )
    if (
        filters.due_from is not None
        and filters.due_to is not None
        and filters.due_from > filters.due_to
    ):
        raise ValidationError("due_from", filters.due_from, "must not be after due_to")
    return filters
