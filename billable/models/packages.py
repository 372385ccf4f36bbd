from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pytz import UTC


class PackageType(str, Enum):
    RECURRING = "RECURRING"
    ONE_TIME = "ONE_TIME"


class BillingFrequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class Package(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    client_id: str
    name: str
    type: PackageType
    billing_frequency: Optional[BillingFrequency] = None
    contract_value: float = Field(..., ge=0)
    start_date: datetime
    end_date: Optional[datetime] = None
    status: str = "ACTIVE"  # or INACTIVE or COMPLETED
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def check_billing_frequency(self):
        if self.type == PackageType.RECURRING and self.billing_frequency is None:
            raise ValueError("billing_frequency is required for recurring packages")
        return self
