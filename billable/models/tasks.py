from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pytz import UTC


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class Frequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class RecurrencePattern(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    frequency: Frequency
    interval: int = Field(1, ge=1)
    days_of_week: List[int] = Field(default_factory=list)  # 0 = Sunday ... 6 = Saturday
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    end_date: Optional[datetime] = None

    @field_validator("days_of_week")
    @classmethod
    def check_days_of_week(cls, value: List[int]) -> List[int]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError(f"day of week must be between 0 and 6, got {day}")
        return sorted(set(value))


class Task(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    client_id: Optional[str] = None
    package_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: str = "MEDIUM"
    assigned_to: List[str] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    is_recurring: bool = False
    recurring_pattern: Optional[dict] = None
    is_miscellaneous: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
