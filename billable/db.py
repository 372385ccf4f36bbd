import logging

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

from billable.config import settings
from billable.stores.base import Stores

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
db = client[settings.DATABASE_NAME]


time_entries_collection = db.time_entries
tasks_collection = db.tasks
packages_collection = db.packages
employees_collection = db.employees
clients_collection = db.clients


async def ensure_indexes():
    """Create the indexes the timer and analytics queries rely on."""
    await time_entries_collection.create_index(
        [("employee_id", ASCENDING)],
        unique=True,
        partialFilterExpression={"is_active": True},
        name="one_active_timer_per_employee",
    )
    await time_entries_collection.create_index([("employee_id", ASCENDING), ("date", DESCENDING)])
    await time_entries_collection.create_index([("package_id", ASCENDING), ("date", DESCENDING)])
    await time_entries_collection.create_index([("client_id", ASCENDING), ("date", DESCENDING)])
    await tasks_collection.create_index([("is_recurring", ASCENDING), ("due_date", ASCENDING)])
    await packages_collection.create_index([("client_id", ASCENDING)])
    logger.info("MongoDB indexes ensured on %s", settings.DATABASE_NAME)


_stores = None


def get_stores() -> Stores:
    """FastAPI dependency returning the configured store backend."""
    global _stores
    if _stores is None:
        if settings.STORAGE_BACKEND == "memory":
            from billable.stores.memory import build_memory_stores
            _stores = build_memory_stores()
        else:
            from billable.stores.mongo import build_mongo_stores
            _stores = build_mongo_stores(
                time_entries_collection,
                tasks_collection,
                packages_collection,
                employees_collection,
                clients_collection,
            )
        logger.info("Using %s store backend", settings.STORAGE_BACKEND)
    return _stores
