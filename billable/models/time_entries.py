from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from pytz import UTC


class TimerState(str, Enum):
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    STOPPED = "STOPPED"


class TimeEntry(BaseModel):
    """One logged work interval.

    `elapsed_seconds` is only meaningful once the entry is finalised; while the
    timer is active, `accumulated_seconds` holds time banked by earlier pauses
    and the in-flight interval is derived from `timer_started_at`.
    """
    id: Optional[str] = None
    employee_id: str
    client_id: Optional[str] = None
    package_id: Optional[str] = None
    task_id: Optional[str] = None
    date: datetime
    elapsed_seconds: int = 0
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_running: bool = False
    is_paused: bool = False
    is_active: bool = False  # is_running or is_paused, backs the one-active-timer index
    timer_started_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    accumulated_seconds: int = 0
    is_miscellaneous: bool = False
    miscellaneous_description: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: Optional[datetime] = None

    @property
    def state(self) -> TimerState:
        if self.is_running:
            return TimerState.RUNNING
        if self.is_paused:
            return TimerState.PAUSED
        return TimerState.STOPPED

    @property
    def hours(self) -> float:
        return self.elapsed_seconds / 3600
