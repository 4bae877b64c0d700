from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from todo_core.domain.entities import Task
from todo_core.domain.enums import Priority
from todo_core.domain.errors import ValidationError
from todo_core.domain.filters import TaskFilters, matches, sort_by_due_date
from todo_core.domain.patch import TaskPatch
from todo_core.services.task_service import TaskService

TODAY = datetime(2026, 3, 10)


def _ids(tasks: list[Task]) -> list[int]:
    return [task.id for task in tasks]


def _task(task_id: int, due: datetime | None, **overrides) -> Task:
    values = dict(
        id=task_id,
        user_id=1,
        description=f"task {task_id}",
        completed=False,
        priority=Priority.MEDIUM,
        due_date=due,
        tags=(),
        created_at=TODAY,
        updated_at=TODAY,
    )
    values.update(overrides)
    return Task(**values)


def test_tags_are_or_and_categories_are_and(tasks: TaskService) -> None:
    only_a = tasks.create_task(1, "a", ["a"])
    only_b = tasks.create_task(1, "b", ["b"], priority="high")
    both = tasks.create_task(1, "ab", ["a", "b"], priority="high")
    tasks.create_task(1, "none", ["c"], priority="high")

    assert _ids(tasks.filter_tasks(TaskFilters(tags=("a", "b")))) == [only_a, only_b, both]
    assert _ids(
        tasks.filter_tasks(TaskFilters(tags=("a", "b"), priority=Priority.HIGH))
    ) == [only_b, both]


def test_tag_filter_is_case_insensitive(tasks: TaskService) -> None:
    work = tasks.create_task(1, "work", ["Work"])
    tasks.create_task(1, "home", ["home"])

    assert _ids(tasks.filter_tasks(TaskFilters(tags=(" WORK ",)))) == [work]


def test_empty_tag_list_does_not_filter(tasks: TaskService) -> None:
    tasks.create_task(1, "one", ["x"])
    tasks.create_task(1, "two")
    assert len(tasks.filter_tasks(TaskFilters(tags=()))) == 2


def test_completed_and_priority_filters(tasks: TaskService) -> None:
    done = tasks.create_task(1, "done", priority="low")
    tasks.toggle_complete(done)
    open_low = tasks.create_task(1, "open low", priority="low")
    tasks.create_task(1, "open high", priority="high")

    assert _ids(tasks.filter_tasks(TaskFilters(completed=True))) == [done]
    assert _ids(
        tasks.filter_tasks(TaskFilters(completed=False, priority=Priority.LOW))
    ) == [open_low]


def test_due_interval_is_inclusive_and_sorted(tasks: TaskService) -> None:
    start = datetime(2026, 3, 12)
    end = datetime(2026, 3, 14)
    at_end = tasks.create_task(1, "end", due_date=end)
    at_start = tasks.create_task(1, "start", due_date=start)
    tasks.create_task(1, "before", due_date=start - timedelta(seconds=1))
    tasks.create_task(1, "after", due_date=end + timedelta(seconds=1))
    tasks.create_task(1, "undated")

    found = tasks.filter_tasks(TaskFilters(due_from=start, due_to=end))

    assert _ids(found) == [at_start, at_end]


def test_open_ended_due_interval(tasks: TaskService) -> None:
    early = tasks.create_task(1, "early", due_date=datetime(2026, 1, 1))
    late = tasks.create_task(1, "late", due_date=datetime(2026, 6, 1))
    tasks.create_task(1, "undated")

    assert _ids(tasks.filter_tasks(TaskFilters(due_from=datetime(2026, 3, 1)))) == [late]
    assert _ids(tasks.filter_tasks(TaskFilters(due_to=datetime(2026, 3, 1)))) == [early]


def test_has_due_date_flag(tasks: TaskService) -> None:
    later = tasks.create_task(1, "later", due_date=datetime(2026, 5, 1))
    sooner = tasks.create_task(1, "sooner", due_date=datetime(2026, 4, 1))
    undated = tasks.create_task(1, "undated")

    assert _ids(tasks.filter_tasks(TaskFilters(has_due_date=True))) == [sooner, later]
    assert _ids(tasks.filter_tasks(TaskFilters(has_due_date=False))) == [undated]


def test_sort_by_due_puts_undated_last(tasks: TaskService) -> None:
    undated_first = tasks.create_task(1, "undated 1")
    late = tasks.create_task(1, "late", due_date=datetime(2026, 9, 1))
    undated_second = tasks.create_task(1, "undated 2")
    early = tasks.create_task(1, "early", due_date=datetime(2026, 3, 11))

    found = tasks.filter_tasks(TaskFilters(sort_by_due=True))

    assert _ids(found) == [early, late, undated_first, undated_second]


def test_sort_by_due_date_never_treats_missing_as_earliest() -> None:
    epoch = datetime(1970, 1, 1)
    tasks = [_task(3, None), _task(1, None), _task(2, datetime(2030, 1, 1)), _task(4, epoch)]

    assert _ids(sort_by_due_date(tasks)) == [4, 2, 1, 3]


def test_matches_rejects_undated_task_for_any_bound() -> None:
    undated = _task(1, None)
    assert not matches(undated, TaskFilters(due_to=datetime(2100, 1, 1)))
    assert not matches(undated, TaskFilters(due_from=datetime.min))
    assert matches(undated, TaskFilters(has_due_date=False))


@pytest.mark.parametrize(
    "filters",
    [
        TaskFilters(priority="urgent"),
        TaskFilters(due_from=datetime(2026, 3, 2), due_to=datetime(2026, 3, 1)),
        TaskFilters(due_from="2026-03-01"),
        TaskFilters(tags="work"),
    ],
)
def test_invalid_filters_raise(tasks: TaskService, filters: TaskFilters) -> None:
    with pytest.raises(ValidationError):
        tasks.filter_tasks(filters)


def test_user_scope_combines_with_other_filters(tasks: TaskService) -> None:
    mine = tasks.create_task(2, "mine", ["a"])
    tasks.create_task(3, "theirs", ["a"])

    assert _ids(tasks.filter_tasks(TaskFilters(user_id=2, tags=("a",)))) == [mine]


def test_upcoming_window_boundaries(tasks: TaskService, clock) -> None:
    clock.set(datetime(2026, 3, 10, 15, 30))
    seventh_day = tasks.create_task(1, "day 7", due_date=datetime(2026, 3, 17, 23, 59))
    tasks.create_task(1, "day 8", due_date=datetime(2026, 3, 18, 0, 0))
    earlier_today = tasks.create_task(1, "earlier today", due_date=datetime(2026, 3, 10, 0, 1))
    tomorrow = tasks.create_task(1, "tomorrow", due_date=datetime(2026, 3, 11, 9, 0))
    done = tasks.create_task(1, "done tomorrow", due_date=datetime(2026, 3, 11, 8, 0))
    tasks.toggle_complete(done)
    tasks.create_task(1, "yesterday", due_date=datetime(2026, 3, 9, 23, 59))
    tasks.create_task(1, "undated")

    upcoming = tasks.upcoming_tasks(7)

    assert _ids(upcoming) == [earlier_today, tomorrow, seventh_day]


def test_upcoming_zero_days_means_today_only(tasks: TaskService, clock) -> None:
    clock.set(datetime(2026, 3, 10, 23, 0))
    late_today = tasks.create_task(1, "late today", due_date=datetime(2026, 3, 10, 23, 59))
    tasks.create_task(1, "tomorrow", due_date=datetime(2026, 3, 11, 0, 1))

    assert _ids(tasks.upcoming_tasks(0)) == [late_today]


def test_upcoming_rejects_negative_days(tasks: TaskService) -> None:
    with pytest.raises(ValidationError):
        tasks.upcoming_tasks(-1)


def test_all_tags_distinct_and_sorted(tasks: TaskService) -> None:
    tasks.create_task(1, "one", ["work", "Zeta"])
    tasks.create_task(1, "two", ["Work", "alpha"])
    other = tasks.create_task(1, "three", ["beta"])
    tasks.update_task(other, TaskPatch(tags=["Beta", "gamma"]))

    assert tasks.all_tags() == ["alpha", "Beta", "gamma", "work", "Zeta"]


def test_all_tags_empty_store(tasks: TaskService) -> None:
    assert tasks.all_tags() == []


def test_aware_due_dates_are_stored_as_local_naive(tasks: TaskService) -> None:
    aware = datetime(2026, 3, 11, 12, 0, tzinfo=timezone.utc)
    local = aware.astimezone().replace(tzinfo=None)
    aware_id = tasks.create_task(1, "aware", due_date=aware)
    naive_id = tasks.create_task(1, "naive", due_date=datetime(2026, 3, 20))
    undated_id = tasks.create_task(1, "undated")

    assert tasks.get_task(aware_id).due_date == local
    assert _ids(tasks.filter_tasks(TaskFilters(sort_by_due=True))) == [aware_id, naive_id, undated_id]
    assert _ids(tasks.upcoming_tasks(7)) == [aware_id]

    tasks.update_task(naive_id, TaskPatch(due_date=datetime(2026, 3, 12, tzinfo=timezone.utc)))
    assert tasks.get_task(naive_id).due_date.tzinfo is None


def test_aware_filter_bounds_compare_with_naive_tasks(tasks: TaskService) -> None:
    inside = tasks.create_task(1, "inside", due_date=datetime(2026, 6, 15))
    tasks.create_task(1, "outside", due_date=datetime(2026, 9, 1))

    found = tasks.filter_tasks(
        TaskFilters(
            due_from=datetime(2026, 6, 1, tzinfo=timezone.utc),
            due_to=datetime(2026, 7, 1, tzinfo=timezone.utc),
        )
    )

    assert _ids(found) == [inside]
