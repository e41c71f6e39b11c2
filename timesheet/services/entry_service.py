"""Entry service - logging, editing and listing work sessions."""
from datetime import date, datetime, timezone
from typing import Callable, Optional

from timesheet.models.entry import Entry, EntryCreate, EntryUpdate
from timesheet.models.user import ROLE_ADMIN
from timesheet.store.base import TimesheetStore
from timesheet.utils.dates import parse_entry_date, session_hours


class EntryService:
    """Service for handling entry operations.

    Entries only ever change through here; the monthly summaries follow
    through the change trigger, never through this service.
    """

    def __init__(self, store: TimesheetStore, today: Callable[[], date] = date.today):
        """Initialize service with the store and a local-date source."""
        self.store = store
        self.today = today

    def _doc_to_entry(self, doc: dict) -> Entry:
        return Entry(
            _id=doc["_id"],
            user_id=doc["user_id"],
            date=doc["date"],
            start_time=doc["start_time"],
            end_time=doc["end_time"],
            hours=doc["hours"],
            year=doc["year"],
            month=doc["month"],
            notes=doc.get("notes", ""),
            is_overnight=doc.get("is_overnight", False),
            version=doc.get("version", 1),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    def _derived_fields(
        self,
        entry_date: str,
        start_time: str,
        end_time: str,
        is_overnight: bool,
    ) -> dict:
        """
        Validate a session and compute the fields derived from it.

        Raises:
            ValueError: If the session is invalid or dated in the future
        """
        day = parse_entry_date(entry_date)
        if day > self.today():
            raise ValueError("Cannot log time for a future date")

        return {
            "date": entry_date,
            "start_time": start_time,
            "end_time": end_time,
            "is_overnight": is_overnight,
            "hours": session_hours(entry_date, start_time, end_time, is_overnight),
            "year": day.year,
            "month": day.month,
        }

    async def _is_admin(self, user_id: str) -> bool:
        return await self.store.get_user_role(user_id) == ROLE_ADMIN

    async def _get_editable(self, caller_id: str, entry_id: str) -> dict:
        doc = await self.store.get_entry(entry_id)
        if not doc:
            raise ValueError("Time entry not found")

        if doc.get("user_id") != caller_id and not await self._is_admin(caller_id):
            # Hide other users' entries from non-admins
            raise ValueError("Time entry not found")

        return doc

    async def create_entry(self, user_id: str, entry_create: EntryCreate) -> Entry:
        """
        Log a work session for the caller.

        Raises:
            ValueError: If the session is invalid
        """
        entry_doc = self._derived_fields(
            entry_create.date,
            entry_create.start_time,
            entry_create.end_time,
            entry_create.is_overnight,
        )
        now = datetime.now(timezone.utc)
        entry_doc.update({
            "user_id": user_id,
            "notes": entry_create.notes,
            "version": 1,
            "created_at": now,
            "updated_at": now,
        })

        entry_doc["_id"] = await self.store.insert_entry(entry_doc)
        return self._doc_to_entry(entry_doc)

    async def get_entry(self, caller_id: str, entry_id: str) -> Entry:
        """
        Get one entry the caller may see.

        Raises:
            ValueError: If entry not found
        """
        return self._doc_to_entry(await self._get_editable(caller_id, entry_id))

    async def list_entries(
        self,
        caller_id: str,
        year: int,
        month: int,
        user_id: Optional[str] = None,
    ) -> list[Entry]:
        """
        Entries of a month, most recent first.

        Non-admins always get their own entries; admins get the requested
        user's entries, or everyone's when no user is given.
        """
        if not await self._is_admin(caller_id):
            user_id = caller_id

        docs = await self.store.query_entries(year, month, user_id=user_id)
        return [self._doc_to_entry(doc) for doc in docs]

    async def update_entry(
        self,
        caller_id: str,
        entry_id: str,
        entry_update: EntryUpdate,
    ) -> Entry:
        """
        Edit an entry as its owner or an admin.

        Derived fields are recomputed from the merged session.

        Raises:
            ValueError: If entry not found or the edited session is invalid
        """
        existing = await self._get_editable(caller_id, entry_id)

        changes = entry_update.model_dump(exclude_none=True)
        merged = {**existing, **changes}

        update_doc = self._derived_fields(
            merged["date"],
            merged["start_time"],
            merged["end_time"],
            merged.get("is_overnight", False),
        )
        if "notes" in changes:
            update_doc["notes"] = changes["notes"]
        update_doc["updated_at"] = datetime.now(timezone.utc)

        updated_doc = await self.store.update_entry(entry_id, update_doc)
        if not updated_doc:
            raise ValueError("Time entry not found")

        return self._doc_to_entry(updated_doc)

    async def delete_entry(self, caller_id: str, entry_id: str) -> dict:
        """
        Delete an entry (admins only).

        Raises:
            PermissionError: If the caller is not an admin
            ValueError: If entry not found
        """
        if not await self._is_admin(caller_id):
            raise PermissionError("Only administrators can delete entries")

        if not await self.store.delete_entry(entry_id):
            raise ValueError("Time entry not found")

        return {"deleted_count": 1}
