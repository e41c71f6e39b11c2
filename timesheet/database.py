"""Database connection and store selection."""
import logging
from datetime import timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from timesheet.config import settings
from timesheet.store.base import TimesheetStore
from timesheet.store.memory import InMemoryStore
from timesheet.store.mongo import MongoStore

logger = logging.getLogger(__name__)


class Database:
    """Owns the store the API and the change trigger work against."""

    client: Optional[AsyncIOMotorClient] = None
    store: Optional[TimesheetStore] = None

    async def connect(self) -> None:
        """Connect to the configured backend."""
        if settings.store_backend == "memory":
            self.store = InMemoryStore(
                ledger_ttl=timedelta(days=settings.processed_event_ttl_days)
            )
            logger.info("Using in-memory store")
            return

        if settings.store_backend != "mongodb":
            raise RuntimeError(f"Unknown store backend: {settings.store_backend}")

        self.client = AsyncIOMotorClient(settings.mongodb_url)
        store = MongoStore(self.client, self.client[settings.mongodb_db_name])
        await store.ensure_collections(
            ledger_ttl_seconds=settings.processed_event_ttl_days * 24 * 60 * 60
        )
        self.store = store
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")
        self.client = None
        self.store = None


# Global database instance
database = Database()


async def get_store() -> TimesheetStore:
    """Dependency to get the store instance."""
    if database.store is None:
        raise RuntimeError("Database not connected")
    return database.store
