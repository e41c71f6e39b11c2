"""Entry endpoints - logging and editing work sessions."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from timesheet.database import get_store
from timesheet.models.entry import Entry, EntryCreate, EntryUpdate
from timesheet.routers.auth import get_current_user_id
from timesheet.services.entry_service import EntryService


router = APIRouter(prefix="/entries", tags=["entries"])


@router.post("", response_model=Entry, status_code=status.HTTP_201_CREATED)
async def create_entry(
    entry_create: EntryCreate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Log a work session.

    - Requires authentication
    - Hours, year and month are derived from date and times
    - No future dates, end after start, at most 24 hours
    """
    service = EntryService(store)
    try:
        return await service.create_entry(user_id=user_id, entry_create=entry_create)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[Entry])
async def list_entries(
    year: int = Query(..., ge=1),
    month: int = Query(..., ge=1, le=12),
    user_id: Optional[str] = Query(None),
    caller_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    List entries of a month.

    - Requires authentication
    - Non-admins only see their own entries; ``user_id`` is ignored for them
    - Sorted by date then start time, most recent first
    """
    service = EntryService(store)
    return await service.list_entries(
        caller_id=caller_id,
        year=year,
        month=month,
        user_id=user_id,
    )


@router.get("/{entry_id}", response_model=Entry)
async def get_entry(
    entry_id: str,
    caller_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """Get a specific entry (owner or admin)."""
    service = EntryService(store)
    try:
        return await service.get_entry(caller_id=caller_id, entry_id=entry_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{entry_id}", response_model=Entry)
async def update_entry(
    entry_id: str,
    entry_update: EntryUpdate,
    caller_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Update an entry.

    - Requires authentication
    - Owner or admin
    """
    service = EntryService(store)
    try:
        return await service.update_entry(
            caller_id=caller_id,
            entry_id=entry_id,
            entry_update=entry_update,
        )
    except ValueError as e:
        status_code = 404 if "not found" in str(e) else 400
        raise HTTPException(status_code=status_code, detail=str(e))


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: str,
    caller_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Delete an entry.

    - Admin only
    - Hard delete (permanent)
    """
    service = EntryService(store)
    try:
        return await service.delete_entry(caller_id=caller_id, entry_id=entry_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
