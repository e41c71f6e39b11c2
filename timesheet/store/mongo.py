"""MongoDB store using Motor (async driver)."""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument, UpdateOne
from pymongo.errors import PyMongoError

from timesheet.store.base import (
    StoreError,
    SummaryKey,
    SummaryTransaction,
    SummaryWrite,
    TimesheetStore,
    TransactionFunction,
    summary_document,
)

logger = logging.getLogger(__name__)

ENTRIES = "entries"
SUMMARIES = "monthly_summaries"
USERS = "users"
PROCESSED_EVENTS = "processed_entry_events"
CHECKPOINTS = "change_stream_checkpoints"

DEFAULT_LEDGER_TTL_SECONDS = 30 * 24 * 60 * 60


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _with_str_id(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    doc["_id"] = str(doc["_id"])
    return doc


class MongoTransaction(SummaryTransaction):
    """Summary reads and writes bound to one client session."""

    def __init__(self, db: AsyncIOMotorDatabase, session):
        self.summaries = db[SUMMARIES]
        self.processed_events = db[PROCESSED_EVENTS]
        self.session = session

    async def get_summary_total(self, key: SummaryKey) -> float:
        doc = await self.summaries.find_one(
            {"_id": key.document_id}, session=self.session
        )
        if not doc:
            return 0.0
        return float(doc.get("total_hours") or 0)

    async def set_summary_total(self, key: SummaryKey, total_hours: float) -> None:
        doc = summary_document(key, total_hours)
        await self.summaries.update_one(
            {"_id": doc.pop("_id")},
            {"$set": doc},
            upsert=True,
            session=self.session,
        )

    async def is_event_processed(self, event_key: str) -> bool:
        doc = await self.processed_events.find_one(
            {"_id": event_key}, session=self.session
        )
        return doc is not None

    async def mark_event_processed(self, event_key: str) -> None:
        # created_at drives the TTL index that expires old ledger records
        await self.processed_events.insert_one(
            {"_id": event_key, "created_at": datetime.now(timezone.utc)},
            session=self.session,
        )


class MongoStore(TimesheetStore):
    """Store backed by a MongoDB replica set (transactions need one)."""

    def __init__(self, client: AsyncIOMotorClient, db: AsyncIOMotorDatabase):
        self.client = client
        self.db = db
        self.entries = db[ENTRIES]
        self.summaries = db[SUMMARIES]
        self.users = db[USERS]
        self.processed_events = db[PROCESSED_EVENTS]
        self.checkpoints = db[CHECKPOINTS]

    async def ensure_collections(
        self, ledger_ttl_seconds: int = DEFAULT_LEDGER_TTL_SECONDS
    ) -> None:
        """
        Create indexes and enable change stream pre/post images on entries.

        Pre-images are what lets the trigger see the before-state of updates
        and deletes (MongoDB 6.0+). Processed-event records expire after
        ``ledger_ttl_seconds``; that must outlast any redelivery, which is
        bounded by the oplog window the change stream can resume from.
        """
        existing = await self.db.list_collection_names()
        if ENTRIES in existing:
            await self.db.command(
                "collMod", ENTRIES, changeStreamPreAndPostImages={"enabled": True}
            )
        else:
            await self.db.create_collection(
                ENTRIES, changeStreamPreAndPostImages={"enabled": True}
            )

        await self.entries.create_index(
            [("year", ASCENDING), ("month", ASCENDING), ("user_id", ASCENDING)]
        )
        await self.summaries.create_index(
            [("year_month", ASCENDING), ("user_id", ASCENDING)], unique=True
        )
        await self.users.create_index("email", unique=True)
        await self.processed_events.create_index(
            "created_at", expireAfterSeconds=ledger_ttl_seconds
        )
        logger.info("MongoDB collections and indexes ready")

    # Entries

    async def insert_entry(self, entry_doc: dict) -> str:
        try:
            result = await self.entries.insert_one(dict(entry_doc))
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return str(result.inserted_id)

    async def get_entry(self, entry_id: str) -> Optional[dict]:
        object_id = _object_id(entry_id)
        if object_id is None:
            return None
        try:
            doc = await self.entries.find_one({"_id": object_id})
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return _with_str_id(doc)

    async def update_entry(self, entry_id: str, fields: dict) -> Optional[dict]:
        object_id = _object_id(entry_id)
        if object_id is None:
            return None

        fields = {key: value for key, value in fields.items() if key != "version"}
        try:
            updated = await self.entries.find_one_and_update(
                {"_id": object_id},
                {"$set": fields, "$inc": {"version": 1}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return _with_str_id(updated)

    async def delete_entry(self, entry_id: str) -> bool:
        object_id = _object_id(entry_id)
        if object_id is None:
            return False
        try:
            result = await self.entries.delete_one({"_id": object_id})
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return result.deleted_count > 0

    async def query_entries(
        self,
        year: int,
        month: int,
        user_id: Optional[str] = None,
    ) -> list[dict]:
        query: dict[str, Any] = {"year": year, "month": month}
        if user_id:
            query["user_id"] = user_id

        try:
            cursor = self.entries.find(query).sort(
                [("date", DESCENDING), ("start_time", DESCENDING)]
            )
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return [_with_str_id(doc) for doc in docs]

    # Summaries

    async def read_summary(self, key: SummaryKey) -> Optional[dict]:
        try:
            return await self.summaries.find_one({"_id": key.document_id})
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    async def list_summaries(self, year_month: str) -> list[dict]:
        try:
            cursor = self.summaries.find({"year_month": year_month})
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    async def run_transaction(self, fn: TransactionFunction) -> Any:
        async def callback(session):
            return await fn(MongoTransaction(self.db, session))

        try:
            async with await self.client.start_session() as session:
                # with_transaction retries on transient write conflicts
                return await session.with_transaction(callback)
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    async def batch_write(self, writes: list[SummaryWrite]) -> None:
        operations = []
        for write in writes:
            doc = summary_document(write.key, write.total_hours)
            operations.append(UpdateOne({"_id": doc.pop("_id")}, {"$set": doc}, upsert=True))

        if not operations:
            return

        try:
            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    await self.summaries.bulk_write(
                        operations, ordered=True, session=session
                    )
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    # Users

    async def insert_user(self, user_doc: dict) -> str:
        try:
            result = await self.users.insert_one(dict(user_doc))
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return str(result.inserted_id)

    async def find_user_by_email(self, email: str) -> Optional[dict]:
        try:
            doc = await self.users.find_one({"email": email})
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return _with_str_id(doc)

    async def get_user(self, user_id: str) -> Optional[dict]:
        object_id = _object_id(user_id)
        if object_id is None:
            return None
        try:
            doc = await self.users.find_one({"_id": object_id})
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return _with_str_id(doc)

    async def list_users(self) -> list[dict]:
        try:
            cursor = self.users.find({}).sort("name", ASCENDING)
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return [_with_str_id(doc) for doc in docs]

    async def set_user_role(self, user_id: str, role: str) -> bool:
        object_id = _object_id(user_id)
        if object_id is None:
            return False
        try:
            result = await self.users.update_one(
                {"_id": object_id}, {"$set": {"role": role}}
            )
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return result.matched_count > 0

    # Change stream checkpoints

    async def load_resume_token(self, stream_name: str) -> Optional[dict]:
        try:
            doc = await self.checkpoints.find_one({"_id": stream_name})
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return doc["resume_token"] if doc else None

    async def save_resume_token(self, stream_name: str, resume_token: dict) -> None:
        try:
            await self.checkpoints.update_one(
                {"_id": stream_name},
                {"$set": {"resume_token": resume_token}},
                upsert=True,
            )
        except PyMongoError as e:
            raise StoreError(str(e)) from e
