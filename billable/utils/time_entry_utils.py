import logging
import math
from datetime import datetime, timedelta
from typing import Optional, Tuple

from billable.exceptions import (InvalidStateError, NotFoundError, PermissionDeniedError,
                                 ValidationError)
from billable.models.time_entries import TimeEntry
from billable.schemas.time_entries import (CreateTimeEntry, EditTimeEntry, Pagination,
                                           TimeEntryPage)
from billable.stores.base import Stores, TimeEntryQuery
from billable.utils.app_utils import Actor, Clock, as_utc, utc_now

logger = logging.getLogger(__name__)


async def resolve_relationships(
    stores: Stores,
    task_id: Optional[str],
    package_id: Optional[str],
    client_id: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """Check that task, package and client agree and fill in the missing parents.

    Returns the (client_id, package_id) pair the entry should carry.
    """
    if task_id:
        task = await stores.tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        if package_id and task.package_id and task.package_id != package_id:
            raise ValidationError("Task does not belong to the specified package")
        package_id = package_id or task.package_id
        client_id = client_id or task.client_id

    if package_id:
        package = await stores.packages.get(package_id)
        if package is None:
            raise NotFoundError("Package not found")
        if client_id and package.client_id != client_id:
            raise ValidationError("Package does not belong to the specified client")
        client_id = client_id or package.client_id

    if client_id and await stores.clients.get(client_id) is None:
        raise NotFoundError("Client not found")

    return client_id, package_id


def _check_owner(actor: Actor, entry: TimeEntry, action: str):
    if not actor.is_administrative and entry.employee_id != actor.employee_id:
        raise PermissionDeniedError(f"Employees can only {action} their own time entries")


async def log_time_entry(
    stores: Stores, actor: Actor, payload: CreateTimeEntry, clock: Clock = utc_now
) -> TimeEntry:
    """Record finished work directly, without running a timer."""
    employee_id = payload.employee_id or actor.employee_id
    if not actor.is_administrative and employee_id != actor.employee_id:
        raise PermissionDeniedError("Employees can only log time for themselves")

    client_id, package_id = await resolve_relationships(
        stores, payload.task_id, payload.package_id, payload.client_id
    )
    start_time = payload.start_time or payload.date
    end_time = payload.end_time or start_time + timedelta(seconds=payload.elapsed_seconds)
    if end_time < start_time:
        raise ValidationError("end_time must not be before start_time")

    entry = TimeEntry(
        employee_id=employee_id,
        client_id=client_id,
        package_id=package_id,
        task_id=payload.task_id,
        date=payload.date,
        elapsed_seconds=payload.elapsed_seconds,
        description=payload.description,
        start_time=start_time,
        end_time=end_time,
        is_miscellaneous=payload.is_miscellaneous,
        miscellaneous_description=payload.miscellaneous_description,
        created_at=clock(),
    )
    entry = await stores.time_entries.insert(entry)
    logger.info("Logged %s seconds for employee %s as entry %s", entry.elapsed_seconds, employee_id, entry.id)
    return entry


async def get_time_entry(stores: Stores, entry_id: str, actor: Optional[Actor] = None) -> TimeEntry:
    entry = await stores.time_entries.get(entry_id)
    if entry is None:
        raise NotFoundError("Time entry not found")
    if actor is not None:
        _check_owner(actor, entry, "view")
    return entry


async def update_time_entry(
    stores: Stores, actor: Actor, entry_id: str, changes: EditTimeEntry, clock: Clock = utc_now
) -> TimeEntry:
    current = await get_time_entry(stores, entry_id)
    _check_owner(actor, current, "update")
    if current.is_active:
        raise InvalidStateError("Active timers cannot be edited, stop the timer first")

    data = changes.model_dump(exclude_unset=True)
    for required in ("date", "elapsed_seconds"):
        if data.get(required, 0) is None:
            del data[required]
    new_employee = data.get("employee_id")
    if "employee_id" in data and not new_employee:
        raise ValidationError("employee_id cannot be empty")
    if not actor.is_administrative and new_employee and new_employee != current.employee_id:
        raise PermissionDeniedError("Employees cannot change the employee ID")

    if {"task_id", "package_id", "client_id"} & data.keys():
        task_id = data.get("task_id", current.task_id)
        package_id = data.get("package_id", current.package_id)
        client_id = data.get("client_id", current.client_id)
        data["client_id"], data["package_id"] = await resolve_relationships(
            stores, task_id, package_id, client_id
        )

    data["updated_at"] = clock()
    updated = await stores.time_entries.update(entry_id, data, expected={"is_active": False})
    if updated is None:
        if await stores.time_entries.get(entry_id) is None:
            raise NotFoundError("Time entry not found")
        raise InvalidStateError("Active timers cannot be edited, stop the timer first")
    return updated


async def delete_time_entry(stores: Stores, actor: Actor, entry_id: str) -> TimeEntry:
    entry = await get_time_entry(stores, entry_id)
    _check_owner(actor, entry, "delete")
    if not await stores.time_entries.delete(entry_id):
        raise NotFoundError("Time entry not found")
    logger.info("Deleted time entry %s", entry_id)
    return entry


async def list_time_entries(
    stores: Stores,
    actor: Actor,
    employee_id: Optional[str] = None,
    client_id: Optional[str] = None,
    package_id: Optional[str] = None,
    task_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    is_miscellaneous: Optional[bool] = None,
    page: int = 1,
    limit: int = 10,
) -> TimeEntryPage:
    """Filtered entries, newest first. Employees only ever see their own."""
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")
    if not actor.is_administrative:
        if employee_id and employee_id != actor.employee_id:
            raise PermissionDeniedError("Employees can only view their own time entries")
        employee_id = actor.employee_id

    query = TimeEntryQuery(
        employee_id=employee_id,
        client_id=client_id,
        package_id=package_id,
        task_id=task_id,
        start_date=as_utc(start_date),
        end_date=as_utc(end_date),
        is_miscellaneous=is_miscellaneous,
    )
    skip = (page - 1) * limit
    entries = await stores.time_entries.find(query, skip=skip, limit=limit)
    total = await stores.time_entries.count(query)

    return TimeEntryPage(
        time_entries=entries,
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )
