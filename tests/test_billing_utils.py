"""
Tests for cost and revenue normalisation.
"""
from datetime import datetime

import pytest
from pytz import UTC

from billable.models.employees import Employee
from billable.models.time_entries import TimeEntry
from billable.utils.billing_utils import (aggregate_cost, cycle_metrics, cycles_in_period,
                                          employee_hourly_rate, hourly_cost, monthly_revenue,
                                          months_in_period, profitability)


def entry(employee_id, seconds):
    return TimeEntry(employee_id=employee_id, date=datetime(2024, 3, 1, tzinfo=UTC), elapsed_seconds=seconds)


def test_hourly_cost():
    assert hourly_cost(4000, 160) == 25


@pytest.mark.parametrize("monthly_cost,capacity", [(4000, 0), (4000, None), (0, 160), (None, 160)])
def test_hourly_cost_guards_missing_inputs(monthly_cost, capacity):
    assert hourly_cost(monthly_cost, capacity) == 0


def test_explicit_hourly_rate_wins():
    employee = Employee(name="Carol", monthly_cost=4000, monthly_working_hours=160, hourly_rate=40)
    assert employee_hourly_rate(employee) == 40

    employee = Employee(name="Dan", monthly_cost=4000, monthly_working_hours=160, hourly_rate=0)
    assert employee_hourly_rate(employee) == 25


@pytest.mark.parametrize("value,frequency,package_type,expected", [
    (1200, "MONTHLY", "RECURRING", 1200),
    (1200, "QUARTERLY", "RECURRING", 400),
    (1200, "YEARLY", "RECURRING", 100),
    (1200, None, "ONE_TIME", 100),
    (1200, "MONTHLY", "ONE_TIME", 100),
    (1200, None, "RECURRING", 0),
    (0, "MONTHLY", "RECURRING", 0),
    (-50, "MONTHLY", "RECURRING", 0),
])
def test_monthly_revenue(value, frequency, package_type, expected):
    assert monthly_revenue(value, frequency, package_type) == expected


def test_aggregate_cost_skips_unknown_and_free_employees():
    records = [entry("alice", 3600), entry("bob", 1800), entry("ghost", 7200), entry("intern", 3600)]
    rates = {"alice": 25.0, "bob": 50.0, "intern": 0.0}
    assert aggregate_cost(records, rates) == 50.0


def test_aggregate_cost_of_nothing():
    assert aggregate_cost([], {"alice": 25.0}) == 0


def test_profitability_loss():
    result = profitability(8000, 10000)
    assert result == {"revenue": 8000, "cost": 10000, "profit": -2000, "margin": -25.0}


def test_profitability_rounds_margin():
    assert profitability(3000, 1000)["margin"] == 66.67


def test_profitability_without_revenue():
    assert profitability(0, 500) == {"revenue": 0, "cost": 500, "profit": -500, "margin": 0.0}


def test_months_in_period():
    assert months_in_period(datetime(2024, 1, 15, tzinfo=UTC), datetime(2024, 3, 1, tzinfo=UTC)) == 3
    assert months_in_period(datetime(2023, 12, 1, tzinfo=UTC), datetime(2024, 1, 31, tzinfo=UTC)) == 2
    assert months_in_period(datetime(2024, 3, 1, tzinfo=UTC), datetime(2024, 2, 1, tzinfo=UTC)) == 0


def test_cycles_in_period():
    start = datetime(2024, 1, 1, tzinfo=UTC)
    end = datetime(2024, 12, 31, tzinfo=UTC)
    assert cycles_in_period("MONTHLY", start, end) == 12
    assert cycles_in_period("QUARTERLY", start, end) == 4
    assert cycles_in_period("YEARLY", datetime(2023, 6, 1, tzinfo=UTC), datetime(2024, 5, 31, tzinfo=UTC)) == 2
    assert cycles_in_period("MONTHLY", start, end, package_start=datetime(2024, 10, 1, tzinfo=UTC)) == 3
    assert cycles_in_period("MONTHLY", start, end, package_start=datetime(2025, 2, 1, tzinfo=UTC)) == 0
    assert cycles_in_period(None, start, end) == 1
    assert cycles_in_period("MONTHLY", None, None) == 1


def test_cycle_metrics_one_time():
    metrics = cycle_metrics("ONE_TIME", None, 12000, 3000)
    assert metrics["cycles_in_period"] == 1
    assert metrics["cycle_revenue"] == 12000
    assert metrics["cycle_profit"] == 9000
    assert metrics["cycle_margin"] == 75.0
    assert metrics["total_cycle_profit"] == 9000


def test_cycle_metrics_recurring():
    metrics = cycle_metrics(
        "RECURRING", "MONTHLY", 3000, 6000,
        datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 3, 31, tzinfo=UTC),
        datetime(2023, 6, 1, tzinfo=UTC),
    )
    assert metrics["cycles_in_period"] == 3
    assert metrics["cycle_cost"] == 2000
    assert metrics["cycle_profit"] == 1000
    assert metrics["cycle_margin"] == 33.33
    assert metrics["total_cycle_revenue"] == 9000
    assert metrics["total_cycle_cost"] == 6000
    assert metrics["total_cycle_profit"] == 3000
