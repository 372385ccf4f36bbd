from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from billable.models.time_entries import TimeEntry
from billable.utils.app_utils import as_utc


class CreateTimeEntry(BaseModel):
    employee_id: Optional[str] = None  # defaults to the caller
    client_id: Optional[str] = None
    package_id: Optional[str] = None
    task_id: Optional[str] = None
    date: datetime
    elapsed_seconds: int = Field(..., ge=0)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_miscellaneous: bool = False
    miscellaneous_description: Optional[str] = None

    @field_validator("date", "start_time", "end_time")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class EditTimeEntry(BaseModel):
    employee_id: Optional[str] = None
    client_id: Optional[str] = None
    package_id: Optional[str] = None
    task_id: Optional[str] = None
    date: Optional[datetime] = None
    elapsed_seconds: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    miscellaneous_description: Optional[str] = None

    @field_validator("date", "start_time", "end_time")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TimeEntryPage(BaseModel):
    time_entries: List[TimeEntry]
    pagination: Pagination
