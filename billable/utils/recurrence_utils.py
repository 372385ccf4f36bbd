import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from pytz import UTC

from billable.config import settings
from billable.exceptions import ValidationError
from billable.models.tasks import Frequency, RecurrencePattern, Task
from billable.schemas.calendar import CalendarTask, TaskOccurrence
from billable.stores.base import Stores, TaskQuery

logger = logging.getLogger(__name__)


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def _js_weekday(day: date) -> int:
    # 0 = Sunday ... 6 = Saturday
    return (day.weekday() + 1) % 7


def add_months(day: date, months: int, day_of_month: Optional[int] = None) -> date:
    """Shift by whole months, landing on `day_of_month` (or the same day), clamped to month end."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day_of_month or day.day, last_day))


def add_years(day: date, years: int) -> date:
    year = day.year + years
    last_day = calendar.monthrange(year, day.month)[1]
    return date(year, day.month, min(day.day, last_day))


def validate_pattern(raw) -> RecurrencePattern:
    if isinstance(raw, RecurrencePattern):
        return raw
    if not raw:
        raise ValidationError("Recurring task has no recurrence pattern")
    try:
        return RecurrencePattern.model_validate(raw)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise ValidationError(f"Invalid recurrence pattern - {problems}")


def _occurrence_dates(anchor: date, pattern: RecurrencePattern) -> Iterator[date]:
    """Endless schedule starting at the anchor itself."""
    interval = pattern.interval
    frequency = pattern.frequency

    if frequency == Frequency.MONTHLY.value:
        step = 0
        while True:
            yield anchor if step == 0 else add_months(anchor, step * interval, pattern.day_of_month)
            step += 1

    if frequency == Frequency.YEARLY.value:
        step = 0
        while True:
            yield add_years(anchor, step * interval)
            step += 1

    current = anchor
    while True:
        yield current
        if frequency == Frequency.WEEKLY.value and pattern.days_of_week:
            # next matching weekday; the interval only bounds the scan
            for _ in range(7 * interval):
                current += timedelta(days=1)
                if _js_weekday(current) in pattern.days_of_week:
                    break
        elif frequency == Frequency.WEEKLY.value:
            current += timedelta(days=7 * interval)
        else:
            current += timedelta(days=interval)


def expand(
    seed: Task,
    window_start: Union[date, datetime],
    window_end: Union[date, datetime],
    max_occurrences: Optional[int] = None,
) -> List[TaskOccurrence]:
    """Project a recurring task onto every scheduled date inside [window_start, window_end].

    The schedule is anchored on the seed's due date (or its creation date) and
    stops at the pattern's end date. Output is ordered by date and depends only
    on the arguments.
    """
    pattern = validate_pattern(seed.recurring_pattern)
    start = _as_date(window_start)
    end = _as_date(window_end)
    pattern_end = _as_date(pattern.end_date) if pattern.end_date else None
    limit = max_occurrences if max_occurrences is not None else settings.RECURRENCE_MAX_OCCURRENCES

    anchor_at = seed.due_date or seed.created_at
    anchor = _as_date(anchor_at)

    occurrences = []
    for day in _occurrence_dates(anchor, pattern):
        if pattern_end and day > pattern_end:
            break
        if day > end:
            break
        if day < start:
            continue
        if len(occurrences) >= limit:
            logger.warning("Recurring task %s hit the %s occurrence cap", seed.id, limit)
            break
        occurrences.append(_project(seed, day, anchor_at))
    return occurrences


def _project(seed: Task, day: date, anchor_at: datetime) -> TaskOccurrence:
    return TaskOccurrence(
        id=f"{seed.id}_{day.isoformat()}",
        source_seed_id=seed.id,
        name=seed.name,
        description=seed.description,
        category=seed.category,
        status=seed.status,
        priority=seed.priority,
        assigned_to=list(seed.assigned_to),
        client_id=seed.client_id,
        package_id=seed.package_id,
        date=day,
        due_date=datetime.combine(day, anchor_at.time(), tzinfo=anchor_at.tzinfo or UTC),
    )


def expand_many(seeds: Iterable[Task], window_start, window_end) -> List[TaskOccurrence]:
    occurrences = []
    for seed in seeds:
        try:
            occurrences.extend(expand(seed, window_start, window_end))
        except ValidationError as e:
            logger.warning("Skipping recurring task %s: %s", seed.id, e.message)
    occurrences.sort(key=lambda occurrence: (occurrence.date, occurrence.id))
    return occurrences


def is_seed(task: Task) -> bool:
    return bool(task.is_recurring and task.recurring_pattern)


def merge_calendar(
    tasks: Iterable[Task],
    seeds: Iterable[Task],
    window_start,
    window_end,
    client_id: Optional[str] = None,
) -> List[Union[CalendarTask, TaskOccurrence]]:
    """Real tasks due in the window plus the occurrences of every seed, ordered by date."""
    start = _as_date(window_start)
    end = _as_date(window_end)

    items: List[Union[CalendarTask, TaskOccurrence]] = []
    for task in tasks:
        if is_seed(task) or task.due_date is None:
            continue
        if client_id and task.client_id != client_id:
            continue
        if not start <= task.due_date.date() <= end:
            continue
        items.append(CalendarTask(
            id=task.id,
            name=task.name,
            description=task.description,
            category=task.category,
            status=task.status,
            priority=task.priority,
            assigned_to=list(task.assigned_to),
            client_id=task.client_id,
            package_id=task.package_id,
            date=task.due_date.date(),
            due_date=task.due_date,
        ))

    seeds = [seed for seed in seeds if is_seed(seed) and (not client_id or seed.client_id == client_id)]
    items.extend(expand_many(seeds, start, end))
    items.sort(key=lambda item: (item.date, item.due_date))
    return items


async def get_calendar_tasks(
    stores: Stores,
    window_start: date,
    window_end: date,
    client_id: Optional[str] = None,
) -> List[Union[CalendarTask, TaskOccurrence]]:
    if window_end < window_start:
        raise ValidationError("end must not be before start")

    range_start = datetime.combine(window_start, time.min).replace(tzinfo=UTC)
    range_end = datetime.combine(window_end, time.max).replace(tzinfo=UTC)

    tasks = await stores.tasks.find(TaskQuery(client_id=client_id, due_from=range_start, due_to=range_end))
    seeds = await stores.tasks.find(
        TaskQuery(client_id=client_id, is_recurring=True, pattern_active_from=range_start)
    )
    items = merge_calendar(tasks, seeds, window_start, window_end, client_id)
    logger.debug("Calendar %s..%s: %d tasks, %d seeds, %d items",
                 window_start, window_end, len(tasks), len(seeds), len(items))
    return items
