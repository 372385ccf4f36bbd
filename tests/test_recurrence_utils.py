"""
Tests for recurring task expansion and the calendar merge.
"""
from datetime import date, datetime

import pytest
from pytz import UTC

from billable.exceptions import ValidationError
from billable.models.tasks import Task
from billable.utils.recurrence_utils import (add_months, expand, get_calendar_tasks, merge_calendar,
                                             validate_pattern)


def seed(pattern, due=datetime(2024, 3, 4, 10, 0, tzinfo=UTC), task_id="seed-1", **kwargs):
    return Task(
        id=task_id,
        name="Payroll run",
        client_id=kwargs.pop("client_id", "client-acme"),
        assigned_to=["emp-alice"],
        due_date=due,
        is_recurring=True,
        recurring_pattern=pattern,
        **kwargs,
    )


def dates(occurrences):
    return [occurrence.date for occurrence in occurrences]


def test_weekly_days_across_window_boundary():
    # Monday anchor, Monday + Wednesday schedule, window Saturday to the following Monday
    task = seed({"frequency": "WEEKLY", "days_of_week": [1, 3]})
    occurrences = expand(task, date(2024, 3, 2), date(2024, 3, 11))

    assert dates(occurrences) == [date(2024, 3, 4), date(2024, 3, 6), date(2024, 3, 11)]
    assert [o.id for o in occurrences] == ["seed-1_2024-03-04", "seed-1_2024-03-06", "seed-1_2024-03-11"]
    assert all(o.source_seed_id == "seed-1" for o in occurrences)
    assert all(o.kind == "occurrence" for o in occurrences)


def test_expansion_is_idempotent():
    task = seed({"frequency": "WEEKLY", "days_of_week": [1, 3]})
    first = expand(task, date(2024, 3, 1), date(2024, 5, 31))
    second = expand(task, date(2024, 3, 1), date(2024, 5, 31))
    assert [o.model_dump() for o in first] == [o.model_dump() for o in second]


def test_occurrence_projects_seed_fields():
    task = seed({"frequency": "DAILY"}, description="Run payroll", category="PAYROLL", priority="HIGH")
    occurrence = expand(task, date(2024, 3, 5), date(2024, 3, 5))[0]

    assert occurrence.name == "Payroll run"
    assert occurrence.description == "Run payroll"
    assert occurrence.category == "PAYROLL"
    assert occurrence.priority == "HIGH"
    assert occurrence.assigned_to == ["emp-alice"]
    assert occurrence.client_id == "client-acme"
    assert occurrence.due_date == datetime(2024, 3, 5, 10, 0, tzinfo=UTC)


def test_daily_interval_fast_forwards_into_window():
    task = seed({"frequency": "DAILY", "interval": 2}, due=datetime(2024, 1, 1, tzinfo=UTC))
    occurrences = expand(task, date(2024, 1, 10), date(2024, 1, 15))
    assert dates(occurrences) == [date(2024, 1, 11), date(2024, 1, 13), date(2024, 1, 15)]


def test_pattern_end_date_stops_generation():
    task = seed(
        {"frequency": "DAILY", "end_date": datetime(2024, 1, 5, tzinfo=UTC)},
        due=datetime(2024, 1, 1, tzinfo=UTC),
    )
    occurrences = expand(task, date(2024, 1, 1), date(2024, 1, 31))
    assert dates(occurrences)[-1] == date(2024, 1, 5)
    assert len(occurrences) == 5


def test_pattern_ended_before_window_is_empty():
    task = seed(
        {"frequency": "WEEKLY", "end_date": datetime(2024, 2, 1, tzinfo=UTC)},
        due=datetime(2024, 1, 1, tzinfo=UTC),
    )
    assert expand(task, date(2024, 3, 1), date(2024, 3, 31)) == []


def test_weekly_without_days_steps_whole_weeks():
    task = seed({"frequency": "WEEKLY", "interval": 2})
    occurrences = expand(task, date(2024, 3, 1), date(2024, 4, 1))
    assert dates(occurrences) == [date(2024, 3, 4), date(2024, 3, 18), date(2024, 4, 1)]


def test_weekly_days_with_interval_take_the_next_matching_weekday():
    task = seed({"frequency": "WEEKLY", "interval": 2, "days_of_week": [1, 3]})
    occurrences = expand(task, date(2024, 3, 1), date(2024, 3, 14))
    assert dates(occurrences) == [date(2024, 3, 4), date(2024, 3, 6), date(2024, 3, 11), date(2024, 3, 13)]


def test_monthly_clamps_to_month_end():
    task = seed({"frequency": "MONTHLY"}, due=datetime(2024, 1, 31, tzinfo=UTC))
    occurrences = expand(task, date(2024, 1, 1), date(2024, 4, 30))
    assert dates(occurrences) == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]


def test_monthly_pins_day_of_month():
    task = seed({"frequency": "MONTHLY", "day_of_month": 15}, due=datetime(2024, 1, 10, tzinfo=UTC))
    occurrences = expand(task, date(2024, 1, 1), date(2024, 3, 31))
    assert dates(occurrences) == [date(2024, 1, 10), date(2024, 2, 15), date(2024, 3, 15)]


def test_yearly_leap_day_clamps():
    task = seed({"frequency": "YEARLY"}, due=datetime(2024, 2, 29, tzinfo=UTC))
    occurrences = expand(task, date(2024, 1, 1), date(2026, 12, 31))
    assert dates(occurrences) == [date(2024, 2, 29), date(2025, 2, 28), date(2026, 2, 28)]


def test_creation_date_anchors_when_no_due_date():
    task = seed({"frequency": "DAILY", "interval": 7}, due=None, created_at=datetime(2024, 3, 1, tzinfo=UTC))
    assert dates(expand(task, date(2024, 3, 1), date(2024, 3, 20))) == [
        date(2024, 3, 1), date(2024, 3, 8), date(2024, 3, 15),
    ]


def test_occurrence_cap():
    task = seed({"frequency": "DAILY"}, due=datetime(2024, 1, 1, tzinfo=UTC))
    assert len(expand(task, date(2024, 1, 1), date(2030, 1, 1), max_occurrences=3)) == 3


def test_add_months_across_year_end():
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
    assert add_months(date(2024, 5, 31), -3) == date(2024, 2, 29)


@pytest.mark.parametrize("raw", [
    {"frequency": "HOURLY"},
    {"frequency": "DAILY", "interval": 0},
    {"frequency": "WEEKLY", "days_of_week": [7]},
    {"frequency": "MONTHLY", "day_of_month": 32},
    None,
])
def test_validate_pattern_rejects_bad_rules(raw):
    with pytest.raises(ValidationError):
        validate_pattern(raw)


def test_validate_pattern_normalises_days():
    pattern = validate_pattern({"frequency": "WEEKLY", "days_of_week": [3, 1, 3]})
    assert pattern.days_of_week == [1, 3]
    assert pattern.interval == 1


def test_merge_calendar_orders_tasks_and_occurrences():
    one_off = Task(id="task-1", name="Year end accounts", client_id="client-acme",
                   due_date=datetime(2024, 3, 5, 12, 0, tzinfo=UTC))
    other_client = Task(id="task-2", name="Audit", client_id="client-globex",
                        due_date=datetime(2024, 3, 5, 12, 0, tzinfo=UTC))
    recurring = seed({"frequency": "WEEKLY", "days_of_week": [1, 3]})

    items = merge_calendar(
        [one_off, other_client, recurring], [recurring], date(2024, 3, 4), date(2024, 3, 6),
        client_id="client-acme",
    )

    assert [(item.kind, item.id) for item in items] == [
        ("occurrence", "seed-1_2024-03-04"),
        ("task", "task-1"),
        ("occurrence", "seed-1_2024-03-06"),
    ]


@pytest.mark.asyncio
async def test_get_calendar_tasks_reads_stores(stores):
    await stores.tasks.insert(seed({"frequency": "WEEKLY", "days_of_week": [5]}))
    await stores.tasks.insert(seed(
        {"frequency": "DAILY", "end_date": datetime(2024, 2, 1, tzinfo=UTC)},
        due=datetime(2024, 1, 1, tzinfo=UTC), task_id="seed-ended",
    ))

    items = await get_calendar_tasks(stores, date(2024, 3, 1), date(2024, 3, 10))

    # the seed itself only shows up through its occurrences; the ended seed yields nothing
    assert [(item.kind, item.id) for item in items] == [
        ("occurrence", "seed-1_2024-03-04"),
        ("occurrence", "seed-1_2024-03-08"),
        ("task", "task-books"),
    ]


@pytest.mark.asyncio
async def test_get_calendar_tasks_rejects_inverted_window(stores):
    with pytest.raises(ValidationError):
        await get_calendar_tasks(stores, date(2024, 3, 10), date(2024, 3, 1))
