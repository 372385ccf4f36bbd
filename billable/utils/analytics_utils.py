import calendar
import logging
import math
from collections import defaultdict
from datetime import date, datetime, time
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

from pytz import UTC

from billable.config import settings
from billable.exceptions import NotFoundError, ValidationError
from billable.models.clients import Client
from billable.models.employees import Employee
from billable.models.packages import Package
from billable.models.tasks import TaskStatus
from billable.models.time_entries import TimeEntry
from billable.schemas.analytics import AnalyticsFilters, Dimension, ProfitabilityStatus
from billable.stores.base import NamedQuery, PackageQuery, Stores, TaskQuery, TimeEntryQuery
from billable.utils.billing_utils import (aggregate_cost, cycle_metrics, employee_hourly_rate,
                                          monthly_revenue, profitability)

logger = logging.getLogger(__name__)

# cost above 120% of revenue means the client pays too little for the work
UNDERPAYING_COST_RATIO = 1.2
OVERPAYING_MARGIN = 50

TOP_N = 5


class MonthBucket(NamedTuple):
    label: str
    start: datetime
    end: datetime


def _month_end(year: int, month: int) -> datetime:
    return datetime(year, month, calendar.monthrange(year, month)[1], 23, 59, 59, 999999, tzinfo=UTC)


def _to_datetime(value: Union[date, datetime], end_of_day: bool = False) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    return datetime.combine(value, time.max if end_of_day else time.min).replace(tzinfo=UTC)


def month_buckets(
    start: Optional[Union[date, datetime]] = None,
    end: Optional[Union[date, datetime]] = None,
    now: Optional[datetime] = None,
    trailing_months: Optional[int] = None,
) -> List[MonthBucket]:
    """Calendar-month buckets over [start, end], or the trailing months up to `now`.

    Custom ranges are clipped so the first and last buckets may be partial months.
    """
    if (start is None) != (end is None):
        raise ValidationError("start and end must be given together")

    if start is None:
        now = now or datetime.now(UTC)
        trailing_months = trailing_months or settings.ANALYTICS_TREND_MONTHS
        first_year, first_month = divmod(now.year * 12 + now.month - 1 - (trailing_months - 1), 12)
        range_start = datetime(first_year, first_month + 1, 1, tzinfo=UTC)
        range_end = _month_end(now.year, now.month)
    else:
        range_start = _to_datetime(start)
        range_end = _to_datetime(end, end_of_day=True)

    if range_end < range_start:
        raise ValidationError("end must not be before start")

    buckets = []
    year, month = range_start.year, range_start.month
    while (year, month) <= (range_end.year, range_end.month):
        buckets.append(MonthBucket(
            label=f"{calendar.month_abbr[month]} {year}",
            start=max(range_start, datetime(year, month, 1, tzinfo=UTC)),
            end=min(range_end, _month_end(year, month)),
        ))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return buckets


def status_label(revenue: float, cost: float, margin: float) -> str:
    if revenue <= 0:
        return ProfitabilityStatus.UNDERPAYING.value if cost > 0 else ProfitabilityStatus.HEALTHY.value
    if cost / revenue > UNDERPAYING_COST_RATIO:
        return ProfitabilityStatus.UNDERPAYING.value
    if margin > OVERPAYING_MARGIN:
        return ProfitabilityStatus.OVERPAYING.value
    return ProfitabilityStatus.HEALTHY.value


def utilization(hours: float, monthly_capacity_hours: Optional[float], months: int) -> float:
    if not monthly_capacity_hours or months <= 0:
        return 0.0
    return round(hours / (monthly_capacity_hours * months) * 100, 2)


def total_hours(records: Iterable[TimeEntry]) -> float:
    return sum(record.hours for record in records)


def _summary(revenue: float, cost: float) -> Dict:
    result = profitability(revenue, cost)
    return {
        "revenue": round(result["revenue"], 2),
        "cost": round(result["cost"], 2),
        "profit": round(result["profit"], 2),
        "margin": result["margin"],
        "status": status_label(revenue, cost, result["margin"]),
    }


def _package_monthly_revenue(package: Package) -> float:
    return monthly_revenue(package.contract_value, package.billing_frequency, package.type)


def _in_bucket(record: TimeEntry, bucket: MonthBucket) -> bool:
    return bucket.start <= _to_datetime(record.date) <= bucket.end


def monthly_trend(
    buckets: List[MonthBucket],
    records: List[TimeEntry],
    rates: Dict[str, float],
    period_revenue: float,
) -> List[Dict]:
    """Per-month cost from the records, revenue spread evenly across the buckets."""
    bucket_revenue = period_revenue / len(buckets) if buckets else 0.0
    trend = []
    for bucket in buckets:
        bucket_records = [record for record in records if _in_bucket(record, bucket)]
        result = profitability(bucket_revenue, aggregate_cost(bucket_records, rates))
        trend.append({
            "month": bucket.label,
            "start": bucket.start,
            "end": bucket.end,
            "revenue": round(result["revenue"], 2),
            "cost": round(result["cost"], 2),
            "profit": round(result["profit"], 2),
            "margin": result["margin"],
            "hours": round(total_hours(bucket_records), 2),
        })
    return trend


def paginate(results: List[Dict], page: int, limit: int) -> Dict:
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")
    total = len(results)
    skip = (page - 1) * limit
    return {
        "results": results[skip:skip + limit],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


async def load_rates(stores: Stores, records: Iterable[TimeEntry]) -> Tuple[Dict[str, Employee], Dict[str, float]]:
    """Employees behind `records` and their hourly cost, keyed by employee id."""
    employee_ids = sorted({record.employee_id for record in records})
    if not employee_ids:
        return {}, {}
    employees = await stores.employees.find(NamedQuery(ids=employee_ids))
    by_id = {employee.id: employee for employee in employees}
    return by_id, {employee_id: employee_hourly_rate(employee) for employee_id, employee in by_id.items()}


async def _get_package(stores: Stores, package_id: str) -> Package:
    package = await stores.packages.get(package_id)
    if package is None:
        raise NotFoundError("Package not found")
    return package


async def _get_client(stores: Stores, client_id: str) -> Client:
    client = await stores.clients.get(client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client


async def _get_employee(stores: Stores, employee_id: str) -> Employee:
    employee = await stores.employees.get(employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


async def _attributed_revenue(
    stores: Stores,
    records: List[TimeEntry],
    window_start: datetime,
    window_end: datetime,
    months: int,
) -> Tuple[float, Dict[str, float]]:
    """Revenue an employee earns: each package's revenue times their share of its cost."""
    package_ids = sorted({record.package_id for record in records if record.package_id})
    if not package_ids:
        _, rates = await load_rates(stores, records)
        return 0.0, rates

    packages = await stores.packages.find(PackageQuery(ids=package_ids))
    package_records = await stores.time_entries.find(
        TimeEntryQuery(package_ids=package_ids, start_date=window_start, end_date=window_end)
    )
    _, rates = await load_rates(stores, package_records + records)

    revenue = 0.0
    for package in packages:
        package_cost = aggregate_cost([r for r in package_records if r.package_id == package.id], rates)
        own_cost = aggregate_cost([r for r in records if r.package_id == package.id], rates)
        if package_cost > 0:
            revenue += _package_monthly_revenue(package) * months * own_cost / package_cost
    return revenue, rates


async def compute_profitability(
    stores: Stores,
    dimension: str,
    key: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    filters: Optional[AnalyticsFilters] = None,
    now: Optional[datetime] = None,
) -> Dict:
    """Revenue, cost, profit and margin for one package, client or employee over a window.

    Without an explicit range the window is the trailing trend period. Revenue
    is the monthly-normalised figure times the months covered; the `months`
    list spreads it evenly and costs each month from its own records.
    """
    try:
        dimension = Dimension(dimension).value
    except ValueError:
        raise ValidationError(f"Unknown dimension '{dimension}'")

    filters = filters or AnalyticsFilters()
    buckets = month_buckets(start, end, now)
    window_start, window_end = buckets[0].start, buckets[-1].end
    months = len(buckets)
    extra = {}

    if dimension == Dimension.PACKAGE.value:
        package = await _get_package(stores, key)
        records = await stores.time_entries.find(TimeEntryQuery(
            package_id=key, employee_id=filters.employee_id,
            start_date=window_start, end_date=window_end,
        ))
        _, rates = await load_rates(stores, records)
        period_revenue = _package_monthly_revenue(package) * months

    elif dimension == Dimension.CLIENT.value:
        await _get_client(stores, key)
        packages = await stores.packages.find(PackageQuery(
            client_id=key, type=filters.package_type, billing_frequency=filters.billing_frequency,
        ))
        query = TimeEntryQuery(
            client_id=key, employee_id=filters.employee_id,
            start_date=window_start, end_date=window_end,
        )
        if filters.package_type or filters.billing_frequency:
            query.package_ids = [package.id for package in packages]
        records = await stores.time_entries.find(query)
        _, rates = await load_rates(stores, records)
        period_revenue = sum(_package_monthly_revenue(package) for package in packages) * months

    else:
        employee = await _get_employee(stores, key)
        records = await stores.time_entries.find(TimeEntryQuery(
            employee_id=key, client_id=filters.client_id, package_id=filters.package_id,
            start_date=window_start, end_date=window_end,
        ))
        period_revenue, rates = await _attributed_revenue(stores, records, window_start, window_end, months)
        extra["utilization"] = utilization(total_hours(records), employee.monthly_working_hours, months)

    logger.debug("Profitability for %s %s over %d months from %d records", dimension, key, months, len(records))
    return {
        "dimension": dimension,
        "key": key,
        "start": window_start,
        "end": window_end,
        **_summary(period_revenue, aggregate_cost(records, rates)),
        "hours": round(total_hours(records), 2),
        **extra,
        "months": monthly_trend(buckets, records, rates, period_revenue),
    }


async def package_profitability(
    stores: Stores, filters: AnalyticsFilters, page: int = 1, limit: int = 10, now: Optional[datetime] = None
) -> Dict:
    """Every matching package with monthly-normalised figures and billing-cycle metrics."""
    buckets = month_buckets(filters.start, filters.end, now)
    window_start, window_end = buckets[0].start, buckets[-1].end
    months = len(buckets)

    packages = await stores.packages.find(PackageQuery(
        ids=[filters.package_id] if filters.package_id else None,
        client_id=filters.client_id,
        type=filters.package_type,
        billing_frequency=filters.billing_frequency,
    ))
    clients = await stores.clients.find(NamedQuery(ids=sorted({p.client_id for p in packages})))
    client_names = {client.id: client.name for client in clients}

    records = await stores.time_entries.find(TimeEntryQuery(
        package_ids=[package.id for package in packages], employee_id=filters.employee_id,
        start_date=window_start, end_date=window_end,
    ))
    _, rates = await load_rates(stores, records)

    search = (filters.search or "").lower()
    results = []
    for package in packages:
        client_name = client_names.get(package.client_id)
        if search and search not in package.name.lower() and search not in (client_name or "").lower():
            continue
        package_records = [record for record in records if record.package_id == package.id]
        window_cost = aggregate_cost(package_records, rates)
        results.append({
            "package_id": package.id,
            "package_name": package.name,
            "client_id": package.client_id,
            "client_name": client_name,
            "type": package.type,
            "billing_frequency": package.billing_frequency,
            "contract_value": package.contract_value,
            **_summary(_package_monthly_revenue(package), window_cost / months),
            **cycle_metrics(
                package.type, package.billing_frequency, package.contract_value, window_cost,
                window_start, window_end, package.start_date,
            ),
            "time_entries_count": len(package_records),
            "total_hours": round(total_hours(package_records), 2),
        })
    return paginate(results, page, limit)


async def client_profitability(
    stores: Stores, filters: AnalyticsFilters, page: int = 1, limit: int = 10, now: Optional[datetime] = None
) -> Dict:
    buckets = month_buckets(filters.start, filters.end, now)
    window_start, window_end = buckets[0].start, buckets[-1].end
    months = len(buckets)

    clients = await stores.clients.find(NamedQuery(
        ids=[filters.client_id] if filters.client_id else None, search=filters.search,
    ))
    packages = await stores.packages.find(PackageQuery(
        client_ids=[client.id for client in clients],
        type=filters.package_type,
        billing_frequency=filters.billing_frequency,
    ))
    records = await stores.time_entries.find(TimeEntryQuery(
        package_ids=[package.id for package in packages], employee_id=filters.employee_id,
        start_date=window_start, end_date=window_end,
    ))
    _, rates = await load_rates(stores, records)

    results = []
    for client in clients:
        breakdown = []
        revenue = cost = hours = 0.0
        for package in (p for p in packages if p.client_id == client.id):
            package_records = [record for record in records if record.package_id == package.id]
            package_revenue = _package_monthly_revenue(package) * months
            package_cost = aggregate_cost(package_records, rates)
            package_hours = total_hours(package_records)
            revenue += package_revenue
            cost += package_cost
            hours += package_hours
            breakdown.append({
                "package_id": package.id,
                "package_name": package.name,
                "type": package.type,
                **_summary(package_revenue, package_cost),
                "hours": round(package_hours, 2),
            })
        results.append({
            "client_id": client.id,
            "client_name": client.name,
            "packages_count": len(breakdown),
            **_summary(revenue, cost),
            "hours": round(hours, 2),
            "packages": breakdown,
        })
    return paginate(results, page, limit)


async def employee_utilization(
    stores: Stores, filters: AnalyticsFilters, page: int = 1, limit: int = 10, now: Optional[datetime] = None
) -> Dict:
    """Hours, cost contribution and utilization for every employee with logged time."""
    buckets = month_buckets(filters.start, filters.end, now)
    months = len(buckets)

    records = await stores.time_entries.find(TimeEntryQuery(
        employee_id=filters.employee_id, client_id=filters.client_id, package_id=filters.package_id,
        start_date=buckets[0].start, end_date=buckets[-1].end,
    ))
    employees, rates = await load_rates(stores, records)
    clients = await stores.clients.find(NamedQuery(ids=sorted({r.client_id for r in records if r.client_id})))
    packages = await stores.packages.find(PackageQuery(ids=sorted({r.package_id for r in records if r.package_id})))
    client_names = {client.id: client.name for client in clients}
    package_names = {package.id: package.name for package in packages}

    by_employee: Dict[str, List[TimeEntry]] = defaultdict(list)
    for record in records:
        by_employee[record.employee_id].append(record)

    search = (filters.search or "").lower()
    results = []
    for employee_id, employee_records in by_employee.items():
        employee = employees.get(employee_id)
        if employee is None:
            logger.warning("Time entries reference unknown employee %s", employee_id)
            continue
        if search and search not in employee.name.lower():
            continue

        rate = rates.get(employee_id, 0.0)
        breakdown: Dict[Tuple, Dict] = {}
        for record in employee_records:
            key = (record.client_id, record.package_id)
            if key not in breakdown:
                breakdown[key] = {
                    "client_id": record.client_id,
                    "client_name": client_names.get(record.client_id, "Unknown Client"),
                    "package_id": record.package_id,
                    "package_name": package_names.get(record.package_id, "No Package"),
                    "hours": 0.0,
                    "cost": 0.0,
                }
            breakdown[key]["hours"] += record.hours
            breakdown[key]["cost"] += record.hours * rate

        hours = total_hours(employee_records)
        results.append({
            "employee_id": employee_id,
            "employee_name": employee.name,
            "monthly_cost": employee.monthly_cost,
            "monthly_working_hours": employee.monthly_working_hours,
            "hourly_cost": round(rate, 2),
            "hours_logged": round(hours, 2),
            "cost_contribution": round(hours * rate, 2),
            "utilization": utilization(hours, employee.monthly_working_hours, months),
            "time_entries_count": len(employee_records),
            "breakdown": [
                {**item, "hours": round(item["hours"], 2), "cost": round(item["cost"], 2)}
                for item in breakdown.values()
            ],
        })
    results.sort(key=lambda item: item["hours_logged"], reverse=True)
    return paginate(results, page, limit)


async def client_dashboard(
    stores: Stores, client_id: str, start: Optional[date] = None, end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Dict:
    client = await _get_client(stores, client_id)
    buckets = month_buckets(start, end, now)
    months = len(buckets)

    packages = await stores.packages.find(PackageQuery(client_id=client_id))
    records = await stores.time_entries.find(TimeEntryQuery(
        client_id=client_id, start_date=buckets[0].start, end_date=buckets[-1].end,
    ))
    employees, rates = await load_rates(stores, records)

    revenue = 0.0
    package_breakdown = []
    for package in packages:
        package_records = [record for record in records if record.package_id == package.id]
        package_revenue = _package_monthly_revenue(package) * months
        package_cost = aggregate_cost(package_records, rates)
        revenue += package_revenue
        package_breakdown.append({
            "package_id": package.id,
            "package_name": package.name,
            "type": package.type,
            "contract_value": package.contract_value,
            "revenue": round(package_revenue, 2),
            "cost": round(package_cost, 2),
            "profit": round(package_revenue - package_cost, 2),
            "efficiency": round(package_revenue / package_cost * 100, 2) if package_cost > 0 else 0.0,
            "hours": round(total_hours(package_records), 2),
        })

    cost = aggregate_cost(records, rates)
    summary = _summary(revenue, cost)

    tasks = await stores.tasks.find(TaskQuery(client_id=client_id))
    completed = sum(1 for task in tasks if task.status == TaskStatus.DONE.value)

    per_employee: Dict[str, List[TimeEntry]] = defaultdict(list)
    for record in records:
        per_employee[record.employee_id].append(record)

    top_employees = sorted(
        (
            {
                "employee_id": employee_id,
                "employee_name": employees[employee_id].name if employee_id in employees else None,
                "hours": round(total_hours(items), 2),
                "tasks": len({record.task_id for record in items if record.task_id}),
                "cost": round(aggregate_cost(items, rates), 2),
            }
            for employee_id, items in per_employee.items()
        ),
        key=lambda item: item["hours"],
        reverse=True,
    )[:TOP_N]

    return {
        "client_id": client.id,
        "client_name": client.name,
        "kpis": {
            "total_revenue": summary["revenue"],
            "total_cost": summary["cost"],
            "total_profit": summary["profit"],
            "profit_margin": summary["margin"],
            "total_hours": round(total_hours(records), 2),
            "packages_count": len(packages),
            "open_tasks": len(tasks) - completed,
            "completed_tasks": completed,
            "completion_rate": round(completed / len(tasks) * 100, 2) if tasks else 0.0,
        },
        "status": summary["status"],
        "package_breakdown": package_breakdown,
        "monthly_trend": monthly_trend(buckets, records, rates, revenue),
        "top_packages": sorted(package_breakdown, key=lambda item: item["profit"], reverse=True)[:TOP_N],
        "top_employees": top_employees,
    }


async def task_status_by_month(
    stores: Stores, now: datetime, months: int = 4, client_id: Optional[str] = None
) -> List[Dict]:
    """TODO / IN_PROGRESS / DONE counts of tasks due from `now` through the end of the
    `months`-th calendar month, one row per month starting with the current one.

    Recurring seeds are counted once, on their own due date.
    """
    if months < 1:
        raise ValidationError("months must be at least 1")

    now = _to_datetime(now)
    rows = []
    year, month = now.year, now.month
    for _ in range(months):
        rows.append({
            "year": year,
            "month": month,
            "label": f"{calendar.month_abbr[month]} {year}",
            "todo": 0,
            "in_progress": 0,
            "done": 0,
            "total": 0,
        })
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)

    window_end = _month_end(rows[-1]["year"], rows[-1]["month"])
    tasks = await stores.tasks.find(TaskQuery(client_id=client_id, due_from=now, due_to=window_end))

    by_month = {(row["year"], row["month"]): row for row in rows}
    for task in tasks:
        if task.due_date is None:
            continue
        due = _to_datetime(task.due_date)
        row = by_month.get((due.year, due.month))
        if row is None:
            continue
        row[TaskStatus(task.status).value.lower()] += 1
        row["total"] += 1
    return rows


async def package_analytics(
    stores: Stores, package_id: str, start: Optional[date] = None, end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Dict:
    package = await _get_package(stores, package_id)
    client = await stores.clients.get(package.client_id)
    buckets = month_buckets(start, end, now)
    window_start, window_end = buckets[0].start, buckets[-1].end
    months = len(buckets)

    records = await stores.time_entries.find(TimeEntryQuery(
        package_id=package_id, start_date=window_start, end_date=window_end,
    ))
    employees, rates = await load_rates(stores, records)
    revenue = _package_monthly_revenue(package) * months
    cost = aggregate_cost(records, rates)

    per_employee: Dict[str, List[TimeEntry]] = defaultdict(list)
    per_task: Dict[Optional[str], List[TimeEntry]] = defaultdict(list)
    for record in records:
        per_employee[record.employee_id].append(record)
        per_task[record.task_id].append(record)

    top_employees = sorted(
        (
            {
                "employee_id": employee_id,
                "employee_name": employees[employee_id].name if employee_id in employees else None,
                "hours": round(total_hours(items), 2),
                "cost": round(aggregate_cost(items, rates), 2),
            }
            for employee_id, items in per_employee.items()
        ),
        key=lambda item: item["hours"],
        reverse=True,
    )[:TOP_N]

    task_names = {}
    for task_id in per_task:
        if task_id:
            task = await stores.tasks.get(task_id)
            task_names[task_id] = task.name if task else None

    task_breakdown = sorted(
        (
            {
                "task_id": task_id,
                "task_name": task_names.get(task_id) if task_id else "Unassigned",
                "hours": round(total_hours(items), 2),
                "cost": round(aggregate_cost(items, rates), 2),
                "time_entries_count": len(items),
            }
            for task_id, items in per_task.items()
        ),
        key=lambda item: item["hours"],
        reverse=True,
    )

    return {
        "package_id": package.id,
        "package_name": package.name,
        "client_id": package.client_id,
        "client_name": client.name if client else None,
        "summary": {
            "type": package.type,
            "billing_frequency": package.billing_frequency,
            "contract_value": package.contract_value,
            **_summary(revenue, cost),
            "hours": round(total_hours(records), 2),
            "time_entries_count": len(records),
            **cycle_metrics(
                package.type, package.billing_frequency, package.contract_value, cost,
                window_start, window_end, package.start_date,
            ),
        },
        "monthly_trend": monthly_trend(buckets, records, rates, revenue),
        "top_employees": top_employees,
        "task_breakdown": task_breakdown,
    }


async def employee_analytics(
    stores: Stores, employee_id: str, start: Optional[date] = None, end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Dict:
    employee = await _get_employee(stores, employee_id)
    rollup = await compute_profitability(stores, Dimension.EMPLOYEE.value, employee_id, start, end, now=now)

    records = await stores.time_entries.find(TimeEntryQuery(
        employee_id=employee_id, start_date=rollup["start"], end_date=rollup["end"],
    ))
    rate = employee_hourly_rate(employee)

    per_client: Dict[Optional[str], List[TimeEntry]] = defaultdict(list)
    for record in records:
        per_client[record.client_id].append(record)
    clients = await stores.clients.find(NamedQuery(ids=sorted(c for c in per_client if c)))
    client_names = {client.id: client.name for client in clients}

    top_clients = sorted(
        (
            {
                "client_id": client_id,
                "client_name": client_names.get(client_id, "Unknown Client"),
                "hours": round(total_hours(items), 2),
                "cost": round(total_hours(items) * rate, 2),
            }
            for client_id, items in per_client.items()
        ),
        key=lambda item: item["hours"],
        reverse=True,
    )[:TOP_N]

    return {
        "employee_id": employee.id,
        "employee_name": employee.name,
        "summary": {
            "hours_logged": rollup["hours"],
            "hourly_cost": round(rate, 2),
            "monthly_cost": employee.monthly_cost,
            "monthly_working_hours": employee.monthly_working_hours,
            "cost_contribution": rollup["cost"],
            "attributed_revenue": rollup["revenue"],
            "profit": rollup["profit"],
            "margin": rollup["margin"],
            "utilization": rollup["utilization"],
            "time_entries_count": len(records),
        },
        "monthly_trend": [
            {
                **month,
                "utilization": utilization(month["hours"], employee.monthly_working_hours, 1),
            }
            for month in rollup["months"]
        ],
        "top_clients": top_clients,
    }
