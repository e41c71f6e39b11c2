"""In-memory store with emulated change triggers.

Used by the test-suite and for local development (``STORE_BACKEND=memory``).
Entry writes are delivered to subscribed listeners as ``EntryChange``
snapshots, the same shape the MongoDB change stream produces.
"""
import asyncio
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from bson import ObjectId

from timesheet.store.base import (
    EntryChange,
    EntryChangeListener,
    StoreError,
    SummaryKey,
    SummaryTransaction,
    SummaryWrite,
    TimesheetStore,
    TransactionFunction,
    summary_document,
)


class _MemoryTransaction(SummaryTransaction):
    """Buffers writes until the owning store commits them."""

    def __init__(self, store: "InMemoryStore"):
        self._store = store
        self._summary_writes: dict[SummaryKey, float] = {}
        self._ledger_writes: set[str] = set()

    async def get_summary_total(self, key: SummaryKey) -> float:
        if key in self._summary_writes:
            return self._summary_writes[key]
        doc = self._store.summaries.get(key.document_id)
        return float(doc.get("total_hours") or 0) if doc else 0.0

    async def set_summary_total(self, key: SummaryKey, total_hours: float) -> None:
        self._summary_writes[key] = total_hours

    async def is_event_processed(self, event_key: str) -> bool:
        return event_key in self._ledger_writes or event_key in self._store.processed_events

    async def mark_event_processed(self, event_key: str) -> None:
        self._ledger_writes.add(event_key)

    def commit(self) -> None:
        for key, total in self._summary_writes.items():
            self._store.summaries[key.document_id] = summary_document(key, total)
        self._store.record_processed_events(self._ledger_writes)


class InMemoryStore(TimesheetStore):
    """Dictionary-backed store; transactions are serialised by one lock."""

    def __init__(self, ledger_ttl: timedelta = timedelta(days=30)):
        self.entries: dict[str, dict] = {}
        self.summaries: dict[str, dict] = {}
        self.users: dict[str, dict] = {}
        # Processed-event key -> time it was recorded
        self.processed_events: dict[str, datetime] = {}
        self.ledger_ttl = ledger_ttl
        # Number of upcoming commits (transactions or batches) to fail.
        self.failing_commits = 0
        self._lock = asyncio.Lock()
        self._listeners: list[EntryChangeListener] = []

    def record_processed_events(self, event_keys: set[str]) -> None:
        """Add keys to the ledger and drop records older than the TTL."""
        now = datetime.now(timezone.utc)
        cutoff = now - self.ledger_ttl
        self.processed_events = {
            key: recorded_at
            for key, recorded_at in self.processed_events.items()
            if recorded_at > cutoff
        }
        for key in event_keys:
            self.processed_events[key] = now

    def subscribe(self, listener: EntryChangeListener) -> None:
        """Register a coroutine called after every entry write."""
        self._listeners.append(listener)

    async def _emit(self, entry_id: str, before: Optional[dict], after: Optional[dict]) -> None:
        change = EntryChange(
            entry_id=entry_id,
            before=copy.deepcopy(before),
            after=copy.deepcopy(after),
        )
        for listener in self._listeners:
            await listener(change)

    def _check_commit(self) -> None:
        if self.failing_commits > 0:
            self.failing_commits -= 1
            raise StoreError("Simulated commit failure")

    # Entries

    async def insert_entry(self, entry_doc: dict) -> str:
        entry_id = str(ObjectId())
        stored = copy.deepcopy(entry_doc)
        stored["_id"] = entry_id
        self.entries[entry_id] = stored
        await self._emit(entry_id, None, stored)
        return entry_id

    async def get_entry(self, entry_id: str) -> Optional[dict]:
        doc = self.entries.get(entry_id)
        return copy.deepcopy(doc) if doc else None

    async def update_entry(self, entry_id: str, fields: dict) -> Optional[dict]:
        existing = self.entries.get(entry_id)
        if existing is None:
            return None
        before = copy.deepcopy(existing)
        existing.update(
            copy.deepcopy({key: value for key, value in fields.items() if key != "version"})
        )
        existing["version"] = existing.get("version", 0) + 1
        await self._emit(entry_id, before, existing)
        return copy.deepcopy(existing)

    async def delete_entry(self, entry_id: str) -> bool:
        existing = self.entries.pop(entry_id, None)
        if existing is None:
            return False
        await self._emit(entry_id, existing, None)
        return True

    async def query_entries(
        self,
        year: int,
        month: int,
        user_id: Optional[str] = None,
    ) -> list[dict]:
        matches = [
            copy.deepcopy(doc)
            for doc in self.entries.values()
            if doc.get("year") == year
            and doc.get("month") == month
            and (user_id is None or doc.get("user_id") == user_id)
        ]
        matches.sort(
            key=lambda doc: (doc.get("date") or "", doc.get("start_time") or ""),
            reverse=True,
        )
        return matches

    # Summaries

    async def read_summary(self, key: SummaryKey) -> Optional[dict]:
        doc = self.summaries.get(key.document_id)
        return copy.deepcopy(doc) if doc else None

    async def list_summaries(self, year_month: str) -> list[dict]:
        return [
            copy.deepcopy(doc)
            for doc in self.summaries.values()
            if doc["year_month"] == year_month
        ]

    async def run_transaction(self, fn: TransactionFunction) -> Any:
        async with self._lock:
            transaction = _MemoryTransaction(self)
            result = await fn(transaction)
            self._check_commit()
            transaction.commit()
            return result

    async def batch_write(self, writes: list[SummaryWrite]) -> None:
        async with self._lock:
            self._check_commit()
            for write in writes:
                self.summaries[write.key.document_id] = summary_document(
                    write.key, write.total_hours
                )

    # Users

    async def insert_user(self, user_doc: dict) -> str:
        user_id = str(ObjectId())
        stored = copy.deepcopy(user_doc)
        stored["_id"] = user_id
        self.users[user_id] = stored
        return user_id

    async def find_user_by_email(self, email: str) -> Optional[dict]:
        for doc in self.users.values():
            if doc.get("email") == email:
                return copy.deepcopy(doc)
        return None

    async def get_user(self, user_id: str) -> Optional[dict]:
        doc = self.users.get(user_id)
        return copy.deepcopy(doc) if doc else None

    async def list_users(self) -> list[dict]:
        return [copy.deepcopy(doc) for doc in self.users.values()]

    async def set_user_role(self, user_id: str, role: str) -> bool:
        if user_id not in self.users:
            return False
        self.users[user_id]["role"] = role
        return True
