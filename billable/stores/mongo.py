"""MongoDB (motor) implementations of the store interfaces."""
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from billable.models.clients import Client
from billable.models.employees import Employee
from billable.models.packages import Package
from billable.models.tasks import Task
from billable.models.time_entries import TimeEntry
from billable.stores.base import (ClientStore, DuplicateActiveTimer, EmployeeStore, NamedQuery,
                                  PackageQuery, PackageStore, Stores, TaskQuery, TaskStore,
                                  TimeEntryQuery, TimeEntryStore)


def _object_id(value: str) -> Optional[ObjectId]:
    if value and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _object_ids(values: List[str]) -> List[ObjectId]:
    return [ObjectId(value) for value in values if ObjectId.is_valid(value)]


def _to_document(model) -> dict:
    return model.model_dump(exclude={"id"})


def _from_document(model_cls, document: dict):
    document = dict(document)
    document["id"] = str(document.pop("_id"))
    return model_cls.model_validate(document)


def _name_filter(query: NamedQuery) -> dict:
    mongo_filter = {}
    if query.ids is not None:
        mongo_filter["_id"] = {"$in": _object_ids(query.ids)}
    if query.search:
        mongo_filter["name"] = {"$regex": re.escape(query.search), "$options": "i"}
    return mongo_filter


def _time_entry_filter(query: TimeEntryQuery) -> dict:
    mongo_filter: Dict[str, Any] = {}
    if query.employee_id:
        mongo_filter["employee_id"] = query.employee_id
    if query.client_id:
        mongo_filter["client_id"] = query.client_id
    if query.package_id:
        mongo_filter["package_id"] = query.package_id
    elif query.package_ids is not None:
        mongo_filter["package_id"] = {"$in": query.package_ids}
    if query.task_id:
        mongo_filter["task_id"] = query.task_id
    if query.start_date or query.end_date:
        mongo_filter["date"] = {}
        if query.start_date:
            mongo_filter["date"]["$gte"] = query.start_date
        if query.end_date:
            mongo_filter["date"]["$lte"] = query.end_date
    if query.is_miscellaneous is not None:
        mongo_filter["is_miscellaneous"] = query.is_miscellaneous
    if query.is_active is not None:
        mongo_filter["is_active"] = query.is_active
    return mongo_filter


class MongoTimeEntryStore(TimeEntryStore):

    def __init__(self, collection):
        self.collection = collection

    async def insert(self, entry: TimeEntry) -> TimeEntry:
        document = _to_document(entry)
        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError:
            # one_active_timer_per_employee partial unique index
            raise DuplicateActiveTimer(entry.employee_id)
        return entry.model_copy(update={"id": str(result.inserted_id)})

    async def get(self, entry_id: str) -> Optional[TimeEntry]:
        oid = _object_id(entry_id)
        if oid is None:
            return None
        document = await self.collection.find_one({"_id": oid})
        return _from_document(TimeEntry, document) if document else None

    async def find_active(self, employee_id: str) -> Optional[TimeEntry]:
        document = await self.collection.find_one({"employee_id": employee_id, "is_active": True})
        return _from_document(TimeEntry, document) if document else None

    async def update(
        self,
        entry_id: str,
        changes: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[TimeEntry]:
        oid = _object_id(entry_id)
        if oid is None:
            return None
        try:
            document = await self.collection.find_one_and_update(
                {"_id": oid, **(expected or {})},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            current = await self.get(entry_id)
            raise DuplicateActiveTimer(current.employee_id if current else "")
        return _from_document(TimeEntry, document) if document else None

    async def delete(self, entry_id: str) -> bool:
        oid = _object_id(entry_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid})
        return result.deleted_count == 1

    async def find(
        self, query: TimeEntryQuery, skip: int = 0, limit: Optional[int] = None
    ) -> List[TimeEntry]:
        cursor = self.collection.find(_time_entry_filter(query)).sort(
            [("date", DESCENDING), ("created_at", DESCENDING)]
        ).skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        documents = await cursor.to_list(length=None)
        return [_from_document(TimeEntry, document) for document in documents]

    async def count(self, query: TimeEntryQuery) -> int:
        return await self.collection.count_documents(_time_entry_filter(query))


class MongoTaskStore(TaskStore):

    def __init__(self, collection):
        self.collection = collection

    async def insert(self, task: Task) -> Task:
        result = await self.collection.insert_one(_to_document(task))
        return task.model_copy(update={"id": str(result.inserted_id)})

    async def get(self, task_id: str) -> Optional[Task]:
        oid = _object_id(task_id)
        if oid is None:
            return None
        document = await self.collection.find_one({"_id": oid})
        return _from_document(Task, document) if document else None

    async def update(self, task_id: str, changes: Dict[str, Any]) -> Optional[Task]:
        oid = _object_id(task_id)
        if oid is None:
            return None
        document = await self.collection.find_one_and_update(
            {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        return _from_document(Task, document) if document else None

    async def find(self, query: TaskQuery) -> List[Task]:
        mongo_filter: Dict[str, Any] = {}
        if query.client_id:
            mongo_filter["client_id"] = query.client_id
        if query.package_id:
            mongo_filter["package_id"] = query.package_id
        if query.is_recurring is not None:
            mongo_filter["is_recurring"] = query.is_recurring
        if query.due_from or query.due_to:
            mongo_filter["due_date"] = {}
            if query.due_from:
                mongo_filter["due_date"]["$gte"] = query.due_from
            if query.due_to:
                mongo_filter["due_date"]["$lte"] = query.due_to
        if query.pattern_active_from is not None:
            mongo_filter["$or"] = [
                {"recurring_pattern.end_date": None},
                {"recurring_pattern.end_date": {"$gte": query.pattern_active_from}},
            ]
        documents = await self.collection.find(mongo_filter).sort(
            [("due_date", ASCENDING)]
        ).to_list(length=None)
        return [_from_document(Task, document) for document in documents]


class MongoPackageStore(PackageStore):

    def __init__(self, collection):
        self.collection = collection

    async def get(self, package_id: str) -> Optional[Package]:
        oid = _object_id(package_id)
        if oid is None:
            return None
        document = await self.collection.find_one({"_id": oid})
        return _from_document(Package, document) if document else None

    async def find(self, query: PackageQuery) -> List[Package]:
        mongo_filter = _name_filter(NamedQuery(ids=query.ids, search=query.search))
        if query.client_id:
            mongo_filter["client_id"] = query.client_id
        elif query.client_ids is not None:
            mongo_filter["client_id"] = {"$in": query.client_ids}
        if query.type:
            mongo_filter["type"] = query.type
        if query.billing_frequency:
            mongo_filter["billing_frequency"] = query.billing_frequency
        documents = await self.collection.find(mongo_filter).to_list(length=None)
        return [_from_document(Package, document) for document in documents]


class MongoEmployeeStore(EmployeeStore):

    def __init__(self, collection):
        self.collection = collection

    async def get(self, employee_id: str) -> Optional[Employee]:
        oid = _object_id(employee_id)
        if oid is None:
            return None
        document = await self.collection.find_one({"_id": oid})
        return _from_document(Employee, document) if document else None

    async def find(self, query: NamedQuery) -> List[Employee]:
        documents = await self.collection.find(_name_filter(query)).to_list(length=None)
        return [_from_document(Employee, document) for document in documents]


class MongoClientStore(ClientStore):

    def __init__(self, collection):
        self.collection = collection

    async def get(self, client_id: str) -> Optional[Client]:
        oid = _object_id(client_id)
        if oid is None:
            return None
        document = await self.collection.find_one({"_id": oid})
        return _from_document(Client, document) if document else None

    async def find(self, query: NamedQuery) -> List[Client]:
        documents = await self.collection.find(_name_filter(query)).to_list(length=None)
        return [_from_document(Client, document) for document in documents]


def build_mongo_stores(
    time_entries_collection,
    tasks_collection,
    packages_collection,
    employees_collection,
    clients_collection,
) -> Stores:
    return Stores(
        time_entries=MongoTimeEntryStore(time_entries_collection),
        tasks=MongoTaskStore(tasks_collection),
        packages=MongoPackageStore(packages_collection),
        employees=MongoEmployeeStore(employees_collection),
        clients=MongoClientStore(clients_collection),
    )
