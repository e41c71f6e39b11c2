"""Tests for EntryService."""
import pytest
from datetime import date


def _service(store):
    from timesheet.services.entry_service import EntryService

    return EntryService(store, today=lambda: date(2024, 6, 30))


async def _users(store):
    owner = await store.insert_user({"email": "owner@example.com", "role": "user"})
    other = await store.insert_user({"email": "other@example.com", "role": "user"})
    admin = await store.insert_user({"email": "admin@example.com", "role": "admin"})
    return owner, other, admin


@pytest.mark.asyncio
class TestEntryServiceCreate:
    """Tests for logging work sessions."""

    async def test_create_derives_fields(self, store):
        """Test hours, year and month are computed from the session."""
        from timesheet.models.entry import EntryCreate

        owner, _, _ = await _users(store)
        entry = await _service(store).create_entry(
            owner,
            EntryCreate(date="2024-03-10", start_time="09:00", end_time="17:45", notes="Sprint"),
        )

        assert entry.user_id == owner
        assert entry.hours == 8.75
        assert entry.year == 2024
        assert entry.month == 3
        assert entry.version == 1
        assert entry.notes == "Sprint"

    async def test_create_updates_summary(self, store):
        """Test the change trigger adds the new hours to the month."""
        from timesheet.models.entry import EntryCreate
        from timesheet.store.base import SummaryKey

        owner, _, _ = await _users(store)
        await _service(store).create_entry(
            owner, EntryCreate(date="2024-03-10", start_time="22:00", end_time="01:30", is_overnight=True)
        )

        summary = await store.read_summary(SummaryKey("2024-03", owner))
        assert summary["total_hours"] == 3.5

    async def test_create_future_date(self, store):
        """Test sessions after today are rejected."""
        from timesheet.models.entry import EntryCreate

        owner, _, _ = await _users(store)

        with pytest.raises(ValueError, match="future"):
            await _service(store).create_entry(
                owner, EntryCreate(date="2024-07-01", start_time="09:00", end_time="10:00")
            )

    async def test_create_end_before_start(self, store):
        """Test an end before the start is rejected."""
        from timesheet.models.entry import EntryCreate

        owner, _, _ = await _users(store)

        with pytest.raises(ValueError, match="after start"):
            await _service(store).create_entry(
                owner, EntryCreate(date="2024-03-10", start_time="17:00", end_time="09:00")
            )
        assert store.entries == {}


@pytest.mark.asyncio
class TestEntryServiceUpdate:
    """Tests for editing entries."""

    async def _create(self, store, owner, **fields):
        from timesheet.models.entry import EntryCreate

        data = {"date": "2024-01-15", "start_time": "09:00", "end_time": "14:00"}
        data.update(fields)
        return await _service(store).create_entry(owner, EntryCreate(**data))

    async def test_owner_moves_entry_to_another_month(self, store):
        """Test an edit recomputes fields and moves hours between months."""
        from timesheet.models.entry import EntryUpdate
        from timesheet.store.base import SummaryKey

        owner, _, _ = await _users(store)
        entry = await self._create(store, owner)

        updated = await _service(store).update_entry(
            owner, entry.id, EntryUpdate(date="2024-02-01", end_time="12:00")
        )

        assert updated.hours == 3.0
        assert updated.month == 2
        assert updated.version == 2
        assert (await store.read_summary(SummaryKey("2024-01", owner)))["total_hours"] == 0.0
        assert (await store.read_summary(SummaryKey("2024-02", owner)))["total_hours"] == 3.0

    async def test_admin_can_edit(self, store):
        """Test administrators may edit anyone's entry."""
        from timesheet.models.entry import EntryUpdate

        owner, _, admin = await _users(store)
        entry = await self._create(store, owner)

        updated = await _service(store).update_entry(admin, entry.id, EntryUpdate(notes="fixed"))

        assert updated.notes == "fixed"
        assert updated.user_id == owner
        assert updated.hours == 5.0

    async def test_other_user_cannot_edit(self, store):
        """Test other users see the entry as missing."""
        from timesheet.models.entry import EntryUpdate

        owner, other, _ = await _users(store)
        entry = await self._create(store, owner)

        with pytest.raises(ValueError, match="not found"):
            await _service(store).update_entry(other, entry.id, EntryUpdate(notes="mine"))

    async def test_invalid_edit_leaves_summary(self, store):
        """Test a rejected edit changes nothing."""
        from timesheet.models.entry import EntryUpdate
        from timesheet.store.base import SummaryKey

        owner, _, _ = await _users(store)
        entry = await self._create(store, owner)

        with pytest.raises(ValueError):
            await _service(store).update_entry(owner, entry.id, EntryUpdate(end_time="08:00"))

        assert (await store.read_summary(SummaryKey("2024-01", owner)))["total_hours"] == 5.0


@pytest.mark.asyncio
class TestEntryServiceDelete:
    """Tests for deleting entries."""

    async def test_admin_deletes(self, store):
        """Test deletion subtracts the hours from the summary."""
        from timesheet.models.entry import EntryCreate
        from timesheet.store.base import SummaryKey

        owner, _, admin = await _users(store)
        service = _service(store)
        entry = await service.create_entry(
            owner, EntryCreate(date="2024-03-10", start_time="08:00", end_time="12:00")
        )
        await service.create_entry(
            owner, EntryCreate(date="2024-03-11", start_time="08:00", end_time="14:00")
        )

        result = await service.delete_entry(admin, entry.id)

        assert result == {"deleted_count": 1}
        assert (await store.read_summary(SummaryKey("2024-03", owner)))["total_hours"] == 6.0

    async def test_owner_cannot_delete(self, store):
        """Test deletion is reserved for administrators."""
        from timesheet.models.entry import EntryCreate

        owner, _, _ = await _users(store)
        entry = await _service(store).create_entry(
            owner, EntryCreate(date="2024-03-10", start_time="08:00", end_time="12:00")
        )

        with pytest.raises(PermissionError):
            await _service(store).delete_entry(owner, entry.id)

    async def test_delete_missing(self, store):
        """Test deleting an unknown entry."""
        _, _, admin = await _users(store)

        with pytest.raises(ValueError, match="not found"):
            await _service(store).delete_entry(admin, "missing")


@pytest.mark.asyncio
class TestEntryServiceList:
    """Tests for listing entries."""

    async def test_visibility(self, store):
        """Test users see their own entries and admins see everyone's."""
        from timesheet.models.entry import EntryCreate

        owner, other, admin = await _users(store)
        service = _service(store)
        await service.create_entry(owner, EntryCreate(date="2024-03-10", start_time="08:00", end_time="12:00"))
        await service.create_entry(owner, EntryCreate(date="2024-03-12", start_time="08:00", end_time="09:00"))
        await service.create_entry(other, EntryCreate(date="2024-03-11", start_time="08:00", end_time="10:00"))

        own = await service.list_entries(owner, 2024, 3, user_id=other)
        everyone = await service.list_entries(admin, 2024, 3)
        filtered = await service.list_entries(admin, 2024, 3, user_id=other)

        assert [e.date for e in own] == ["2024-03-12", "2024-03-10"]
        assert [e.date for e in everyone] == ["2024-03-12", "2024-03-11", "2024-03-10"]
        assert [e.user_id for e in filtered] == [other]
