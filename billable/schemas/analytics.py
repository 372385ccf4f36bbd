from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Dimension(str, Enum):
    PACKAGE = "package"
    CLIENT = "client"
    EMPLOYEE = "employee"


class ProfitabilityStatus(str, Enum):
    HEALTHY = "HEALTHY"
    UNDERPAYING = "UNDERPAYING"
    OVERPAYING = "OVERPAYING"


class AnalyticsFilters(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None
    client_id: Optional[str] = None
    package_id: Optional[str] = None
    employee_id: Optional[str] = None
    package_type: Optional[str] = None
    billing_frequency: Optional[str] = None
    search: Optional[str] = None
