"""Cost and revenue normalisation.

Everything here is a pure function of its arguments so the rollups in
`analytics_utils` can be recomputed from stored records at any time.
"""
from datetime import datetime
from typing import Dict, Iterable, Optional

from billable.models.employees import Employee
from billable.models.packages import BillingFrequency, PackageType
from billable.models.time_entries import TimeEntry


def hourly_cost(monthly_cost: Optional[float], monthly_capacity_hours: Optional[float]) -> float:
    if not monthly_cost or not monthly_capacity_hours:
        return 0.0
    return monthly_cost / monthly_capacity_hours


def employee_hourly_rate(employee: Employee) -> float:
    """Explicit hourly rate when one is set, otherwise cost over capacity."""
    if employee.hourly_rate and employee.hourly_rate > 0:
        return employee.hourly_rate
    return hourly_cost(employee.monthly_cost, employee.monthly_working_hours)


def monthly_revenue(contract_value: Optional[float], billing_frequency: Optional[str], package_type: str) -> float:
    if not contract_value or contract_value <= 0:
        return 0.0

    if package_type == PackageType.ONE_TIME.value:
        return contract_value / 12

    if billing_frequency == BillingFrequency.MONTHLY.value:
        return float(contract_value)
    elif billing_frequency == BillingFrequency.QUARTERLY.value:
        return contract_value / 3
    elif billing_frequency == BillingFrequency.YEARLY.value:
        return contract_value / 12
    return 0.0


def aggregate_cost(records: Iterable[TimeEntry], employee_cost_index: Dict[str, float]) -> float:
    total = 0.0
    for record in records:
        rate = employee_cost_index.get(record.employee_id)
        if not rate:
            continue
        total += (record.elapsed_seconds / 3600) * rate
    return total


def profitability(revenue: float, cost: float) -> Dict[str, float]:
    profit = revenue - cost
    margin = (profit / revenue) * 100 if revenue > 0 else 0.0
    return {
        "revenue": revenue,
        "cost": cost,
        "profit": profit,
        "margin": round(margin, 2),
    }


def months_in_period(start: datetime, end: datetime) -> int:
    """Calendar months touched by [start, end], counting both ends."""
    if end < start:
        return 0
    return (end.year - start.year) * 12 + (end.month - start.month) + 1


def cycles_in_period(
    billing_frequency: Optional[str],
    start: Optional[datetime],
    end: Optional[datetime],
    package_start: Optional[datetime] = None,
) -> int:
    if start is None or end is None or not billing_frequency:
        return 1

    effective_start = package_start if package_start and package_start > start else start
    if effective_start > end:
        return 0

    months = (end.year - effective_start.year) * 12 + (end.month - effective_start.month)
    if billing_frequency == BillingFrequency.MONTHLY.value:
        return max(1, months + 1)
    elif billing_frequency == BillingFrequency.QUARTERLY.value:
        return max(1, months // 3 + 1)
    elif billing_frequency == BillingFrequency.YEARLY.value:
        return max(1, end.year - effective_start.year + 1)
    return 1


def cycle_metrics(
    package_type: str,
    billing_frequency: Optional[str],
    contract_value: float,
    total_cost: float,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    package_start: Optional[datetime] = None,
) -> Dict[str, float]:
    """Per-billing-cycle revenue, cost, profit and margin, plus totals over the window.

    A one-time package is a single cycle worth the whole contract value.
    Recurring packages bill `contract_value` per cycle and the window's cost is
    spread evenly over the cycles falling inside it.
    """
    cycle_revenue = contract_value if contract_value and contract_value > 0 else 0.0

    if package_type == PackageType.ONE_TIME.value:
        cycles = 1
    else:
        cycles = cycles_in_period(billing_frequency, start, end, package_start)

    cycle_cost = total_cost / cycles if cycles > 0 else total_cost
    cycle_profit = cycle_revenue - cycle_cost
    cycle_margin = (cycle_profit / cycle_revenue) * 100 if cycle_revenue > 0 else 0.0
    total_revenue = cycle_revenue * cycles

    return {
        "cycle_revenue": round(cycle_revenue, 2),
        "cycle_cost": round(cycle_cost, 2),
        "cycle_profit": round(cycle_profit, 2),
        "cycle_margin": round(cycle_margin, 2),
        "cycles_in_period": cycles,
        "total_cycle_revenue": round(total_revenue, 2),
        "total_cycle_cost": round(total_cost, 2),
        "total_cycle_profit": round(total_revenue - total_cost, 2),
    }
