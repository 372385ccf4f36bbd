from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from billable.db import get_stores
from billable.schemas.calendar import CalendarResponse
from billable.stores.base import Stores
from billable.utils.app_utils import Actor, get_current_user
from billable.utils.recurrence_utils import get_calendar_tasks

router = APIRouter()


@router.get("/tasks", response_model=CalendarResponse)
async def get_calendar(
    start: date = Query(...),
    end: date = Query(...),
    client_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    """
    Returns the tasks due between start and end (inclusive), with recurring tasks expanded
    into one virtual occurrence per scheduled date.
    Args:
        start (date): First day of the window.
        end (date): Last day of the window.
        client_id (str, optional): Only tasks of this client.
    Returns:
        CalendarResponse: Items ordered by date. Each item has kind "task" or "occurrence";
                          occurrences carry an id of the form "<task id>_<YYYY-MM-DD>" and
                          source_seed_id pointing at the recurring task.
    Raises:
        ValidationError (422): end is before start.
    """
    items = await get_calendar_tasks(stores, start, end, client_id)
    return CalendarResponse(start=start, end=end, total=len(items), items=items)
