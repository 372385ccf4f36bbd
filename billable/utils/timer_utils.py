"""Work timer lifecycle: Idle -> Running <-> Paused -> Stopped.

Each employee owns at most one active (running or paused) entry. The store
enforces that on insert, and every transition below is written as a
compare-and-set on the state this service observed, so two racing requests
for the same timer cannot both succeed.
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel

from billable.exceptions import (BillableError, ConflictError, InvalidStateError, NotFoundError,
                                 PermissionDeniedError, ValidationError)
from billable.models.tasks import Task, TaskStatus
from billable.models.time_entries import TimeEntry
from billable.schemas.timer import StartTimer
from billable.stores.base import DuplicateActiveTimer, Stores
from billable.utils.app_utils import Actor, Clock, utc_now

logger = logging.getLogger(__name__)

MISCELLANEOUS_TASK_NAME = "Miscellaneous work"


def elapsed_between(since: Optional[datetime], now: datetime) -> int:
    """Whole seconds from `since` to `now`, floored and never negative."""
    if since is None:
        return 0
    return max(0, math.floor((now - since).total_seconds()))


def current_elapsed_seconds(entry: TimeEntry, now: datetime) -> int:
    if entry.is_running:
        return entry.accumulated_seconds + elapsed_between(entry.timer_started_at, now)
    if entry.is_paused:
        return entry.accumulated_seconds
    return entry.elapsed_seconds


class StopResult(BaseModel):
    entry: TimeEntry
    task: Optional[Task] = None
    task_error: Optional[str] = None


class TimerService:

    def __init__(self, stores: Stores, clock: Clock = utc_now):
        self.stores = stores
        self.clock = clock

    async def start(self, actor: Actor, request: StartTimer) -> TimeEntry:
        employee_id = request.employee_id or actor.employee_id
        if not actor.is_administrative and employee_id != actor.employee_id:
            raise PermissionDeniedError("Employees can only start timers for themselves")

        client_id, package_id = request.client_id, request.package_id
        if request.task_id:
            task = await self.stores.tasks.get(request.task_id)
            if task is None:
                raise NotFoundError("Task not found")
            if not actor.is_administrative and actor.employee_id not in task.assigned_to:
                raise PermissionDeniedError("Task is not assigned to you")
            if package_id and task.package_id and package_id != task.package_id:
                raise ValidationError("Task does not belong to the specified package")
            if client_id and task.client_id and client_id != task.client_id:
                raise ValidationError("Task does not belong to the specified client")
            client_id, package_id = task.client_id, task.package_id

        now = self.clock()
        entry = TimeEntry(
            employee_id=employee_id,
            client_id=client_id,
            package_id=package_id,
            task_id=request.task_id,
            date=request.date or now,
            description=request.description,
            start_time=now,
            timer_started_at=now,
            is_running=True,
            is_active=True,
            accumulated_seconds=0,
            is_miscellaneous=request.is_miscellaneous,
            miscellaneous_description=request.miscellaneous_description,
            created_at=now,
        )
        try:
            entry = await self.stores.time_entries.insert(entry)
        except DuplicateActiveTimer:
            existing = await self.stores.time_entries.find_active(employee_id)
            if existing is not None and existing.is_paused:
                raise ConflictError("A timer is already paused. Resume or stop it before starting a new one.")
            raise ConflictError("A timer is already running. Stop it before starting a new one.")

        logger.info("Timer %s started for employee %s", entry.id, employee_id)
        return entry

    async def pause(self, actor: Actor, entry_id: str) -> TimeEntry:
        entry = await self._load(actor, entry_id)
        if not entry.is_running:
            raise InvalidStateError("Timer is not running")

        now = self.clock()
        banked = entry.accumulated_seconds + elapsed_between(entry.timer_started_at, now)
        updated = await self._transition(
            entry_id,
            {
                "is_running": False,
                "is_paused": True,
                "paused_at": now,
                "accumulated_seconds": banked,
                "updated_at": now,
            },
            expected={"is_running": True, "timer_started_at": entry.timer_started_at},
            failure="Timer is not running",
        )
        logger.debug("Timer %s paused with %s seconds banked", entry_id, banked)
        return updated

    async def resume(self, actor: Actor, entry_id: str) -> TimeEntry:
        entry = await self._load(actor, entry_id)
        if not entry.is_paused:
            raise InvalidStateError("Timer is not paused")

        now = self.clock()
        updated = await self._transition(
            entry_id,
            {
                "is_running": True,
                "is_paused": False,
                "timer_started_at": now,
                "paused_at": None,
                "updated_at": now,
            },
            expected={"is_paused": True, "paused_at": entry.paused_at},
            failure="Timer is not paused",
        )
        logger.debug("Timer %s resumed", entry_id)
        return updated

    async def stop(self, actor: Actor, entry_id: str, mark_task_complete: bool = False) -> StopResult:
        entry = await self._load(actor, entry_id)
        if not entry.is_active:
            raise InvalidStateError("Timer is not running or paused")

        now = self.clock()
        total = current_elapsed_seconds(entry, now)
        if entry.is_running:
            expected = {"is_running": True, "timer_started_at": entry.timer_started_at}
        else:
            expected = {"is_paused": True, "paused_at": entry.paused_at}

        entry = await self._transition(
            entry_id,
            {
                "elapsed_seconds": total,
                "end_time": now,
                "is_running": False,
                "is_paused": False,
                "is_active": False,
                "paused_at": None,
                "accumulated_seconds": 0,
                "updated_at": now,
            },
            expected=expected,
            failure="Timer is not running or paused",
        )
        logger.info("Timer %s stopped at %s seconds", entry_id, total)

        # The entry is final from here on; follow-up failures are reported, not raised.
        result = StopResult(entry=entry)
        try:
            if entry.is_miscellaneous and not entry.task_id:
                result.task, result.entry = await self._synthesize_task(entry, now)
            if mark_task_complete:
                result.task = await self._complete_task(result.entry)
        except Exception as e:
            message = e.message if isinstance(e, BillableError) else str(e)
            logger.exception("Post-stop step failed for timer %s", entry_id)
            result.task_error = message
        return result

    async def get_active(self, actor: Actor, employee_id: Optional[str] = None) -> Optional[TimeEntry]:
        employee_id = employee_id or actor.employee_id
        if not actor.is_administrative and employee_id != actor.employee_id:
            raise PermissionDeniedError("Employees can only view their own timers")
        return await self.stores.time_entries.find_active(employee_id)

    async def _load(self, actor: Actor, entry_id: str) -> TimeEntry:
        entry = await self.stores.time_entries.get(entry_id)
        if entry is None:
            raise NotFoundError("Timer not found")
        if not actor.is_administrative and entry.employee_id != actor.employee_id:
            raise PermissionDeniedError("Employees can only manage their own timers")
        return entry

    async def _transition(
        self, entry_id: str, changes: Dict[str, Any], expected: Dict[str, Any], failure: str
    ) -> TimeEntry:
        updated = await self.stores.time_entries.update(entry_id, changes, expected=expected)
        if updated is None:
            # lost a race: report against whatever the entry looks like now
            if await self.stores.time_entries.get(entry_id) is None:
                raise NotFoundError("Timer not found")
            raise InvalidStateError(failure)
        return updated

    async def _synthesize_task(self, entry: TimeEntry, now: datetime) -> Tuple[Task, TimeEntry]:
        task = await self.stores.tasks.insert(Task(
            client_id=entry.client_id,
            package_id=entry.package_id,
            name=entry.miscellaneous_description or MISCELLANEOUS_TASK_NAME,
            description=entry.description,
            status=TaskStatus.DONE,
            assigned_to=[entry.employee_id],
            due_date=entry.date,
            is_miscellaneous=True,
            created_at=now,
        ))
        linked = await self.stores.time_entries.update(entry.id, {"task_id": task.id, "updated_at": now})
        if linked is None:
            raise NotFoundError("Timer not found")
        logger.info("Created miscellaneous task %s for timer %s", task.id, entry.id)
        return task, linked

    async def _complete_task(self, entry: TimeEntry) -> Task:
        if not entry.task_id:
            raise InvalidStateError("Timer has no linked task to complete")
        task = await self.stores.tasks.update(entry.task_id, {"status": TaskStatus.DONE.value})
        if task is None:
            raise NotFoundError("Task not found")
        return task
