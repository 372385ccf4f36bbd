from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from billable.db import get_stores
from billable.models.time_entries import TimeEntry
from billable.schemas.time_entries import CreateTimeEntry, EditTimeEntry, TimeEntryPage
from billable.stores.base import Stores
from billable.utils.app_utils import Actor, Clock, get_clock, get_current_user
from billable.utils.time_entry_utils import (delete_time_entry, get_time_entry, list_time_entries,
                                             log_time_entry, update_time_entry)

router = APIRouter()


@router.get("", response_model=TimeEntryPage)
async def get_time_entries(
    employee_id: Optional[str] = Query(None),
    client_id: Optional[str] = Query(None),
    package_id: Optional[str] = Query(None),
    task_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    is_miscellaneous: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    """
    Lists time entries, newest first.
    Employees only see their own entries; administrators may filter by any employee.
    Args:
        employee_id, client_id, package_id, task_id (str, optional): Exact-match filters.
        start_date, end_date (datetime, optional): Inclusive bounds on the entry date.
        is_miscellaneous (bool, optional): Only (or never) miscellaneous work.
        page (int): 1-based page number.
        limit (int): Page size.
    Returns:
        TimeEntryPage: {"time_entries": [...], "pagination": {"page", "limit", "total", "pages"}}
    """
    return await list_time_entries(
        stores, actor,
        employee_id=employee_id, client_id=client_id, package_id=package_id, task_id=task_id,
        start_date=start_date, end_date=end_date, is_miscellaneous=is_miscellaneous,
        page=page, limit=limit,
    )


@router.post("", response_model=TimeEntry, status_code=status.HTTP_201_CREATED)
async def create_time_entry(
    payload: CreateTimeEntry,
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    """
    Logs finished work with a fixed duration, without running a timer.
    Raises:
        NotFoundError (404): A referenced task, package or client does not exist.
        ValidationError (422): Task, package and client do not belong together.
        PermissionDeniedError (403): An employee logging time for someone else.
    """
    return await log_time_entry(stores, actor, payload, clock)


@router.get("/{entry_id}", response_model=TimeEntry)
async def get_single_time_entry(
    entry_id: str,
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    return await get_time_entry(stores, entry_id, actor)


@router.put("/{entry_id}", response_model=TimeEntry)
async def edit_time_entry(
    entry_id: str,
    changes: EditTimeEntry,
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
    clock: Clock = Depends(get_clock),
):
    """
    Edits a finished time entry.
    Raises:
        InvalidStateError (409): The entry is a running or paused timer.
        PermissionDeniedError (403): Not the owner, or an employee re-assigning the entry.
    """
    return await update_time_entry(stores, actor, entry_id, changes, clock)


@router.delete("/{entry_id}")
async def remove_time_entry(
    entry_id: str,
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    await delete_time_entry(stores, actor, entry_id)
    return {"message": "Time entry deleted successfully", "id": entry_id}
