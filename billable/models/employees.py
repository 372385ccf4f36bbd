from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pytz import UTC


class Employee(BaseModel):
    id: Optional[str] = None
    name: str
    email: Optional[str] = None
    designation: Optional[str] = None
    monthly_cost: float = Field(0, ge=0)
    monthly_working_hours: Optional[float] = Field(None, ge=0, le=744)
    hourly_rate: Optional[float] = Field(None, ge=0)
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
