from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class CalendarItem(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    status: str
    priority: str
    assigned_to: List[str] = []
    client_id: Optional[str] = None
    package_id: Optional[str] = None
    date: date
    due_date: datetime


class CalendarTask(CalendarItem):
    """A real task due inside the requested window."""
    kind: Literal["task"] = "task"


class TaskOccurrence(CalendarItem):
    """A virtual instance of a recurring task. Never persisted."""
    kind: Literal["occurrence"] = "occurrence"
    source_seed_id: str


CalendarEntry = Annotated[Union[CalendarTask, TaskOccurrence], Field(discriminator="kind")]


class CalendarResponse(BaseModel):
    start: date
    end: date
    total: int
    items: List[CalendarEntry]
