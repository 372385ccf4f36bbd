from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from billable.db import get_stores
from billable.models.time_entries import TimeEntry
from billable.schemas.timer import StartTimer, StopTimerResponse, TimerResponse
from billable.stores.base import Stores
from billable.utils.app_utils import Actor, Clock, get_clock, get_current_user
from billable.utils.timer_utils import TimerService, current_elapsed_seconds

router = APIRouter()


def get_timer_service(stores: Stores = Depends(get_stores), clock: Clock = Depends(get_clock)) -> TimerService:
    return TimerService(stores, clock)


def _timer_response(entry: TimeEntry, now: datetime) -> TimerResponse:
    return TimerResponse(entry=entry, state=entry.state.value, current_elapsed_seconds=current_elapsed_seconds(entry, now))


@router.post("/start", response_model=TimerResponse, status_code=status.HTTP_201_CREATED)
async def start_timer(
    request: StartTimer,
    actor: Actor = Depends(get_current_user),
    service: TimerService = Depends(get_timer_service),
):
    """
    Starts a work timer for an employee.
    The timer is created in the running state. When it references a task, the entry inherits
    the task's client and package; a miscellaneous timer carries no task until it is stopped.
    Args:
        request (StartTimer): Task reference or miscellaneous flag, plus optional employee_id
                              (administrators only may start timers for other employees).
        actor (Actor): The authenticated caller, from get_current_user.
    Returns:
        TimerResponse: The new entry, its state and the seconds elapsed so far.
    Raises:
        ConflictError (409): The employee already has a running or paused timer.
        NotFoundError (404): The referenced task does not exist.
        PermissionDeniedError (403): The task is not assigned to the caller, or the caller
                                     is starting a timer for someone else.
    """
    entry = await service.start(actor, request)
    return _timer_response(entry, service.clock())


@router.get("/active", response_model=Optional[TimerResponse])
async def get_active_timer(
    employee_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_user),
    service: TimerService = Depends(get_timer_service),
):
    """
    Returns the running or paused timer of an employee, or null when there is none.
    Args:
        employee_id (str, optional): Defaults to the caller.
    Raises:
        PermissionDeniedError (403): An employee asked for someone else's timer.
    """
    entry = await service.get_active(actor, employee_id)
    if entry is None:
        return None
    return _timer_response(entry, service.clock())


@router.post("/{entry_id}/pause", response_model=TimerResponse)
async def pause_timer(
    entry_id: str,
    actor: Actor = Depends(get_current_user),
    service: TimerService = Depends(get_timer_service),
):
    """
    Pauses a running timer, banking the seconds of the current interval.
    Raises:
        NotFoundError (404): Unknown timer.
        InvalidStateError (409): The timer is not running.
    """
    entry = await service.pause(actor, entry_id)
    return _timer_response(entry, service.clock())


@router.post("/{entry_id}/resume", response_model=TimerResponse)
async def resume_timer(
    entry_id: str,
    actor: Actor = Depends(get_current_user),
    service: TimerService = Depends(get_timer_service),
):
    """
    Resumes a paused timer. Banked seconds are kept.
    Raises:
        NotFoundError (404): Unknown timer.
        InvalidStateError (409): The timer is not paused.
    """
    entry = await service.resume(actor, entry_id)
    return _timer_response(entry, service.clock())


@router.post("/{entry_id}/stop", response_model=StopTimerResponse)
async def stop_timer(
    entry_id: str,
    mark_task_complete: bool = Query(False),
    actor: Actor = Depends(get_current_user),
    service: TimerService = Depends(get_timer_service),
):
    """
    Stops a running or paused timer and freezes its elapsed seconds.
    Args:
        entry_id (str): The timer's time entry id.
        mark_task_complete (bool): Also move the linked task to DONE.
    Returns:
        StopTimerResponse: The finalised entry, the task that was created or completed, and
                           task_error when that follow-up step failed. The entry stays stopped
                           either way.
    Raises:
        NotFoundError (404): Unknown timer.
        InvalidStateError (409): The timer is already stopped.
    """
    result = await service.stop(actor, entry_id, mark_task_complete=mark_task_complete)
    return StopTimerResponse(
        entry=result.entry,
        state=result.entry.state.value,
        current_elapsed_seconds=result.entry.elapsed_seconds,
        task=result.task,
        task_error=result.task_error,
    )
