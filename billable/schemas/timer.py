from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from billable.models.tasks import Task
from billable.models.time_entries import TimeEntry
from billable.utils.app_utils import as_utc


class StartTimer(BaseModel):
    employee_id: Optional[str] = None  # defaults to the caller
    task_id: Optional[str] = None
    client_id: Optional[str] = None
    package_id: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    is_miscellaneous: bool = False
    miscellaneous_description: Optional[str] = None

    @field_validator("date")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @model_validator(mode="after")
    def check_task_or_miscellaneous(self):
        if self.task_id and self.is_miscellaneous:
            raise ValueError("a miscellaneous timer cannot reference a task")
        if not self.task_id and not self.is_miscellaneous:
            raise ValueError("either task_id or is_miscellaneous is required")
        return self


class TimerResponse(BaseModel):
    entry: TimeEntry
    state: str
    current_elapsed_seconds: int


class StopTimerResponse(TimerResponse):
    task: Optional[Task] = None
    task_error: Optional[str] = None
