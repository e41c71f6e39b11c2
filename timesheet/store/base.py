"""Storage interface shared by the MongoDB and in-memory backends."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, NamedTuple, Optional


class StoreError(Exception):
    """Raised when the underlying store fails (connection, conflict, commit)."""


class SummaryKey(NamedTuple):
    """Identifies one monthly summary document."""

    year_month: str
    user_id: str

    @property
    def document_id(self) -> str:
        return f"{self.year_month}:{self.user_id}"


@dataclass(frozen=True)
class SummaryWrite:
    """A full replacement of a summary total."""

    key: SummaryKey
    total_hours: float


@dataclass(frozen=True)
class EntryChange:
    """
    One entry mutation as delivered by a change trigger.

    ``before`` is None for a creation, ``after`` is None for a deletion.
    """

    entry_id: str
    before: Optional[dict] = None
    after: Optional[dict] = None


EntryChangeListener = Callable[[EntryChange], Awaitable[Any]]


def summary_document(key: SummaryKey, total_hours: float) -> dict:
    """Build the stored form of a summary."""
    return {
        "_id": key.document_id,
        "year_month": key.year_month,
        "user_id": key.user_id,
        "total_hours": total_hours,
    }


class SummaryTransaction(ABC):
    """Read/write view of summaries inside one store transaction."""

    @abstractmethod
    async def get_summary_total(self, key: SummaryKey) -> float:
        """Current committed total, 0.0 when the summary does not exist."""

    @abstractmethod
    async def set_summary_total(self, key: SummaryKey, total_hours: float) -> None:
        """Upsert the total; applied only if the transaction commits."""

    @abstractmethod
    async def is_event_processed(self, event_key: str) -> bool:
        """Check the processed-event ledger."""

    @abstractmethod
    async def mark_event_processed(self, event_key: str) -> None:
        """Record an event in the ledger; applied only if the transaction commits."""


TransactionFunction = Callable[[SummaryTransaction], Awaitable[Any]]


class TimesheetStore(ABC):
    """Entries, summaries and users, behind one injectable client."""

    # Entries

    @abstractmethod
    async def insert_entry(self, entry_doc: dict) -> str:
        """Insert an entry and return its ID."""

    @abstractmethod
    async def get_entry(self, entry_id: str) -> Optional[dict]:
        """Fetch an entry by ID, None if missing."""

    @abstractmethod
    async def update_entry(self, entry_id: str, fields: dict) -> Optional[dict]:
        """
        Set fields on an entry and return the updated document.

        The entry's ``version`` is incremented by the store in the same write;
        a ``version`` in ``fields`` is ignored.
        """

    @abstractmethod
    async def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry, returning whether it existed."""

    @abstractmethod
    async def query_entries(
        self,
        year: int,
        month: int,
        user_id: Optional[str] = None,
    ) -> list[dict]:
        """Entries for a month, newest first, optionally for one user."""

    # Summaries

    @abstractmethod
    async def read_summary(self, key: SummaryKey) -> Optional[dict]:
        """Fetch one summary document, None if missing."""

    @abstractmethod
    async def list_summaries(self, year_month: str) -> list[dict]:
        """All summary documents of a month."""

    @abstractmethod
    async def run_transaction(self, fn: TransactionFunction) -> Any:
        """
        Run ``fn`` inside a transaction and commit.

        Either every write made through the transaction lands or none does.

        Raises:
            StoreError: If the transaction cannot be committed
        """

    @abstractmethod
    async def batch_write(self, writes: list[SummaryWrite]) -> None:
        """
        Overwrite several summary totals as one atomic unit.

        Raises:
            StoreError: If the batch cannot be committed
        """

    # Users

    @abstractmethod
    async def insert_user(self, user_doc: dict) -> str:
        """Insert a user and return its ID."""

    @abstractmethod
    async def find_user_by_email(self, email: str) -> Optional[dict]:
        """Fetch a user by email, None if missing."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[dict]:
        """Fetch a user by ID, None if missing."""

    @abstractmethod
    async def list_users(self) -> list[dict]:
        """All users."""

    @abstractmethod
    async def set_user_role(self, user_id: str, role: str) -> bool:
        """Change a user's role, returning whether the user exists."""

    async def get_user_role(self, user_id: str) -> Optional[str]:
        """Role of a user, None if the user does not exist."""
        user_doc = await self.get_user(user_id)
        if not user_doc:
            return None
        return user_doc.get("role")
