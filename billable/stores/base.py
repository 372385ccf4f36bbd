"""Store interfaces consumed by the timer, calendar and analytics code.

Two implementations exist: `billable.stores.mongo` (motor collections) and
`billable.stores.memory` (in-process, used for local development and tests).
Both must enforce the one-active-timer-per-employee rule atomically on
`TimeEntryStore.insert`, and apply `update(..., expected=...)` as a single
compare-and-set.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from billable.models.clients import Client
from billable.models.employees import Employee
from billable.models.packages import Package
from billable.models.tasks import Task
from billable.models.time_entries import TimeEntry


class DuplicateActiveTimer(Exception):
    """Raised by a store when an insert would give an employee a second active timer."""

    def __init__(self, employee_id: str):
        super().__init__(f"employee {employee_id} already has an active timer")
        self.employee_id = employee_id


class TimeEntryQuery(BaseModel):
    employee_id: Optional[str] = None
    client_id: Optional[str] = None
    package_id: Optional[str] = None
    package_ids: Optional[List[str]] = None
    task_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_miscellaneous: Optional[bool] = None
    is_active: Optional[bool] = None


class TaskQuery(BaseModel):
    client_id: Optional[str] = None
    package_id: Optional[str] = None
    is_recurring: Optional[bool] = None
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    # recurring seeds whose pattern has no end date or ends on/after this date
    pattern_active_from: Optional[datetime] = None


class PackageQuery(BaseModel):
    ids: Optional[List[str]] = None
    client_id: Optional[str] = None
    client_ids: Optional[List[str]] = None
    type: Optional[str] = None
    billing_frequency: Optional[str] = None
    search: Optional[str] = None


class NamedQuery(BaseModel):
    ids: Optional[List[str]] = None
    search: Optional[str] = None


class TimeEntryStore(ABC):

    @abstractmethod
    async def insert(self, entry: TimeEntry) -> TimeEntry:
        """Persist a new entry and return it with its id.

        Raises DuplicateActiveTimer when `entry.is_active` and the employee
        already owns an active entry.
        """

    @abstractmethod
    async def get(self, entry_id: str) -> Optional[TimeEntry]:
        ...

    @abstractmethod
    async def find_active(self, employee_id: str) -> Optional[TimeEntry]:
        ...

    @abstractmethod
    async def update(
        self,
        entry_id: str,
        changes: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[TimeEntry]:
        """Apply `changes` if every field in `expected` still holds.

        Returns the updated entry, or None when the entry is missing or the
        expectation no longer matches.
        """

    @abstractmethod
    async def delete(self, entry_id: str) -> bool:
        ...

    @abstractmethod
    async def find(
        self, query: TimeEntryQuery, skip: int = 0, limit: Optional[int] = None
    ) -> List[TimeEntry]:
        """Entries matching `query`, newest `date` first."""

    @abstractmethod
    async def count(self, query: TimeEntryQuery) -> int:
        ...


class TaskStore(ABC):

    @abstractmethod
    async def insert(self, task: Task) -> Task:
        ...

    @abstractmethod
    async def get(self, task_id: str) -> Optional[Task]:
        ...

    @abstractmethod
    async def update(self, task_id: str, changes: Dict[str, Any]) -> Optional[Task]:
        ...

    @abstractmethod
    async def find(self, query: TaskQuery) -> List[Task]:
        """Tasks matching `query`, ordered by due date."""


class PackageStore(ABC):

    @abstractmethod
    async def get(self, package_id: str) -> Optional[Package]:
        ...

    @abstractmethod
    async def find(self, query: PackageQuery) -> List[Package]:
        ...


class EmployeeStore(ABC):

    @abstractmethod
    async def get(self, employee_id: str) -> Optional[Employee]:
        ...

    @abstractmethod
    async def find(self, query: NamedQuery) -> List[Employee]:
        ...


class ClientStore(ABC):

    @abstractmethod
    async def get(self, client_id: str) -> Optional[Client]:
        ...

    @abstractmethod
    async def find(self, query: NamedQuery) -> List[Client]:
        ...


@dataclass
class Stores:
    time_entries: TimeEntryStore
    tasks: TaskStore
    packages: PackageStore
    employees: EmployeeStore
    clients: ClientStore
