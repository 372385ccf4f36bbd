from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from billable.db import get_stores
from billable.exceptions import PermissionDeniedError
from billable.schemas.analytics import AnalyticsFilters, Dimension
from billable.stores.base import Stores
from billable.utils.analytics_utils import (client_dashboard, client_profitability, compute_profitability,
                                            employee_analytics, employee_utilization, package_analytics,
                                            package_profitability, task_status_by_month)
from billable.utils.app_utils import Actor, Clock, get_clock, get_current_user

router = APIRouter()


def _require_administrative(actor: Actor):
    if not actor.is_administrative:
        raise PermissionDeniedError("Only administrators can view this report")


def _require_self_or_administrative(actor: Actor, employee_id: str):
    if not actor.is_administrative and employee_id != actor.employee_id:
        raise PermissionDeniedError("Employees can only view their own analytics")


def get_filters(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    client_id: Optional[str] = Query(None),
    package_id: Optional[str] = Query(None),
    employee_id: Optional[str] = Query(None),
    package_type: Optional[str] = Query(None),
    billing_frequency: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
) -> AnalyticsFilters:
    return AnalyticsFilters(
        start=start, end=end, client_id=client_id, package_id=package_id, employee_id=employee_id,
        package_type=package_type, billing_frequency=billing_frequency, search=search,
    )


@router.get("/profitability", response_model=dict)
async def get_profitability(
    dimension: Dimension = Query(...),
    key: str = Query(...),
    filters: AnalyticsFilters = Depends(get_filters),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    """
    Computes revenue, cost, profit and margin for one package, client or employee.
    Args:
        dimension (Dimension): package, client or employee.
        key (str): Id of the package, client or employee.
        filters (AnalyticsFilters): start/end (both or neither; defaults to the trailing trend
                                    window) and narrowing filters.
    Returns:
        dict: {revenue, cost, profit, margin, status, hours, months: [...]} and, for
              employees, utilization.
    Raises:
        NotFoundError (404): Unknown key.
        PermissionDeniedError (403): Employees may only query their own employee dimension.
    """
    if dimension == Dimension.EMPLOYEE:
        _require_self_or_administrative(actor, key)
    else:
        _require_administrative(actor)
    return await compute_profitability(
        stores, dimension.value, key, filters.start, filters.end, filters, now=clock()
    )


@router.get("/packages", response_model=dict)
async def get_package_profitability(
    filters: AnalyticsFilters = Depends(get_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    """
    Package profitability list: monthly-normalised revenue and cost, billing-cycle metrics,
    hours and entry counts. Searchable by package or client name.
    """
    _require_administrative(actor)
    return await package_profitability(stores, filters, page, limit, now=clock())


@router.get("/clients", response_model=dict)
async def get_client_profitability(
    filters: AnalyticsFilters = Depends(get_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    """Client profitability list with a per-package breakdown."""
    _require_administrative(actor)
    return await client_profitability(stores, filters, page, limit, now=clock())


@router.get("/employees", response_model=dict)
async def get_employee_utilization(
    filters: AnalyticsFilters = Depends(get_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    """
    Employee utilization list. Employees only ever see their own row.
    """
    if not actor.is_administrative:
        _require_self_or_administrative(actor, filters.employee_id or actor.employee_id)
        filters = filters.model_copy(update={"employee_id": actor.employee_id})
    return await employee_utilization(stores, filters, page, limit, now=clock())


@router.get("/clients/{client_id}/dashboard", response_model=dict)
async def get_client_dashboard(
    client_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    """
    Client dashboard: KPIs, profitability status, package breakdown and monthly trend.
    Raises:
        NotFoundError (404): Unknown client.
    """
    _require_administrative(actor)
    return await client_dashboard(stores, client_id, start, end, now=clock())


@router.get("/packages/{package_id}", response_model=dict)
async def get_package_analytics(
    package_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    _require_administrative(actor)
    return await package_analytics(stores, package_id, start, end, now=clock())


@router.get("/employees/{employee_id}", response_model=dict)
async def get_employee_analytics(
    employee_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    """
    Employee analytics: summary, utilization, monthly trend and top clients by hours.
    """
    _require_self_or_administrative(actor, employee_id)
    return await employee_analytics(stores, employee_id, start, end, now=clock())


@router.get("/tasks/status-by-month", response_model=dict)
async def get_task_status_by_month(
    months: int = Query(4, ge=1, le=12),
    client_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    """
    Task workload ahead: counts of TODO, IN_PROGRESS and DONE tasks due from now until the
    end of the last month, grouped by due month.
    Returns:
        dict: {months: [{year, month, label, todo, in_progress, done, total}, ...]}
    """
    _require_administrative(actor)
    return {"months": await task_status_by_month(stores, clock(), months, client_id)}
