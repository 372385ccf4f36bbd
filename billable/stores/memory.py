"""In-process stores for local development (STORAGE_BACKEND=memory) and tests."""
import asyncio
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pytz import UTC

from billable.models.clients import Client
from billable.models.employees import Employee
from billable.models.packages import Package
from billable.models.tasks import Task
from billable.models.time_entries import TimeEntry
from billable.stores.base import (ClientStore, DuplicateActiveTimer, EmployeeStore, NamedQuery,
                                  PackageQuery, PackageStore, Stores, TaskQuery, TaskStore,
                                  TimeEntryQuery, TimeEntryStore)


def _with_id(model):
    if model.id is None:
        return model.model_copy(update={"id": str(ObjectId())})
    return model


def _matches_name(name: str, search: Optional[str]) -> bool:
    return not search or search.lower() in (name or "").lower()


class InMemoryTimeEntryStore(TimeEntryStore):

    def __init__(self, entries: Iterable[TimeEntry] = ()):
        self._entries: Dict[str, TimeEntry] = {}
        for entry in entries:
            entry = _with_id(entry)
            self._entries[entry.id] = entry
        # guards every check-and-write on the active flag
        self._lock = asyncio.Lock()

    async def insert(self, entry: TimeEntry) -> TimeEntry:
        async with self._lock:
            if entry.is_active and self._active_for(entry.employee_id) is not None:
                raise DuplicateActiveTimer(entry.employee_id)
            entry = _with_id(entry)
            self._entries[entry.id] = entry
            return entry

    async def get(self, entry_id: str) -> Optional[TimeEntry]:
        return self._entries.get(entry_id)

    async def find_active(self, employee_id: str) -> Optional[TimeEntry]:
        return self._active_for(employee_id)

    async def update(
        self,
        entry_id: str,
        changes: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[TimeEntry]:
        async with self._lock:
            current = self._entries.get(entry_id)
            if current is None:
                return None
            for field, value in (expected or {}).items():
                if getattr(current, field) != value:
                    return None
            updated = current.model_copy(update=changes)
            if updated.is_active and not current.is_active:
                other = self._active_for(updated.employee_id)
                if other is not None and other.id != entry_id:
                    raise DuplicateActiveTimer(updated.employee_id)
            self._entries[entry_id] = updated
            return updated

    async def delete(self, entry_id: str) -> bool:
        async with self._lock:
            return self._entries.pop(entry_id, None) is not None

    async def find(
        self, query: TimeEntryQuery, skip: int = 0, limit: Optional[int] = None
    ) -> List[TimeEntry]:
        matched = [entry for entry in self._entries.values() if self._matches(entry, query)]
        matched.sort(key=lambda e: (e.date, e.created_at), reverse=True)
        end = None if limit is None else skip + limit
        return matched[skip:end]

    async def count(self, query: TimeEntryQuery) -> int:
        return sum(1 for entry in self._entries.values() if self._matches(entry, query))

    def _active_for(self, employee_id: str) -> Optional[TimeEntry]:
        for entry in self._entries.values():
            if entry.employee_id == employee_id and entry.is_active:
                return entry
        return None

    @staticmethod
    def _matches(entry: TimeEntry, query: TimeEntryQuery) -> bool:
        if query.employee_id and entry.employee_id != query.employee_id:
            return False
        if query.client_id and entry.client_id != query.client_id:
            return False
        if query.package_id and entry.package_id != query.package_id:
            return False
        if query.package_ids is not None and entry.package_id not in query.package_ids:
            return False
        if query.task_id and entry.task_id != query.task_id:
            return False
        if query.start_date and entry.date < query.start_date:
            return False
        if query.end_date and entry.date > query.end_date:
            return False
        if query.is_miscellaneous is not None and entry.is_miscellaneous != query.is_miscellaneous:
            return False
        if query.is_active is not None and entry.is_active != query.is_active:
            return False
        return True


class InMemoryTaskStore(TaskStore):

    def __init__(self, tasks: Iterable[Task] = ()):
        self._tasks: Dict[str, Task] = {}
        for task in tasks:
            task = _with_id(task)
            self._tasks[task.id] = task

    async def insert(self, task: Task) -> Task:
        task = _with_id(task)
        self._tasks[task.id] = task
        return task

    async def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    async def update(self, task_id: str, changes: Dict[str, Any]) -> Optional[Task]:
        current = self._tasks.get(task_id)
        if current is None:
            return None
        updated = current.model_copy(update=changes)
        self._tasks[task_id] = updated
        return updated

    async def find(self, query: TaskQuery) -> List[Task]:
        matched = [task for task in self._tasks.values() if self._matches(task, query)]
        far_future = datetime.max.replace(tzinfo=UTC)
        matched.sort(key=lambda t: t.due_date or far_future)
        return matched

    @staticmethod
    def _matches(task: Task, query: TaskQuery) -> bool:
        if query.client_id and task.client_id != query.client_id:
            return False
        if query.package_id and task.package_id != query.package_id:
            return False
        if query.is_recurring is not None and task.is_recurring != query.is_recurring:
            return False
        if query.due_from or query.due_to:
            if task.due_date is None:
                return False
            if query.due_from and task.due_date < query.due_from:
                return False
            if query.due_to and task.due_date > query.due_to:
                return False
        if query.pattern_active_from is not None:
            end_date = (task.recurring_pattern or {}).get("end_date")
            if end_date is not None and end_date < query.pattern_active_from:
                return False
        return True


class InMemoryPackageStore(PackageStore):

    def __init__(self, packages: Iterable[Package] = ()):
        self._packages: Dict[str, Package] = {}
        for package in packages:
            package = _with_id(package)
            self._packages[package.id] = package

    async def get(self, package_id: str) -> Optional[Package]:
        return self._packages.get(package_id)

    async def find(self, query: PackageQuery) -> List[Package]:
        results = []
        for package in self._packages.values():
            if query.ids is not None and package.id not in query.ids:
                continue
            if query.client_id and package.client_id != query.client_id:
                continue
            if query.client_ids is not None and package.client_id not in query.client_ids:
                continue
            if query.type and package.type != query.type:
                continue
            if query.billing_frequency and package.billing_frequency != query.billing_frequency:
                continue
            if not _matches_name(package.name, query.search):
                continue
            results.append(package)
        return results


class InMemoryEmployeeStore(EmployeeStore):

    def __init__(self, employees: Iterable[Employee] = ()):
        self._employees: Dict[str, Employee] = {}
        for employee in employees:
            employee = _with_id(employee)
            self._employees[employee.id] = employee

    async def get(self, employee_id: str) -> Optional[Employee]:
        return self._employees.get(employee_id)

    async def find(self, query: NamedQuery) -> List[Employee]:
        return [
            employee for employee in self._employees.values()
            if (query.ids is None or employee.id in query.ids) and _matches_name(employee.name, query.search)
        ]


class InMemoryClientStore(ClientStore):

    def __init__(self, clients: Iterable[Client] = ()):
        self._clients: Dict[str, Client] = {}
        for client in clients:
            client = _with_id(client)
            self._clients[client.id] = client

    async def get(self, client_id: str) -> Optional[Client]:
        return self._clients.get(client_id)

    async def find(self, query: NamedQuery) -> List[Client]:
        return [
            client for client in self._clients.values()
            if (query.ids is None or client.id in query.ids) and _matches_name(client.name, query.search)
        ]


def build_memory_stores(
    time_entries: Iterable[TimeEntry] = (),
    tasks: Iterable[Task] = (),
    packages: Iterable[Package] = (),
    employees: Iterable[Employee] = (),
    clients: Iterable[Client] = (),
) -> Stores:
    return Stores(
        time_entries=InMemoryTimeEntryStore(time_entries),
        tasks=InMemoryTaskStore(tasks),
        packages=InMemoryPackageStore(packages),
        employees=InMemoryEmployeeStore(employees),
        clients=InMemoryClientStore(clients),
    )
