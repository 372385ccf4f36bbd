from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pytz import UTC


class Client(BaseModel):
    id: Optional[str] = None
    name: str
    status: str = "ACTIVE"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
