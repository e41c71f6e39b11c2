"""Summary endpoints - monthly totals and recalculation."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from timesheet.database import get_store
from timesheet.models.summary import MonthlySummary, RecalculateRequest
from timesheet.routers.auth import get_current_user_id, get_optional_user_id
from timesheet.services.recalculation_service import (
    RecalculationError,
    RecalculationResult,
    RecalculationService,
)
from timesheet.services.summary_service import SummaryService


router = APIRouter(prefix="/summaries", tags=["summaries"])

RECALCULATION_STATUS = {
    RecalculationError.UNAUTHENTICATED: 401,
    RecalculationError.PERMISSION_DENIED: 403,
    RecalculationError.INVALID_ARGUMENT: 400,
    RecalculationError.INTERNAL: 500,
}


@router.post("/recalculate", response_model=RecalculationResult)
async def recalculate(
    request: RecalculateRequest,
    caller_id: Optional[str] = Depends(get_optional_user_id),
    store=Depends(get_store),
):
    """
    Rebuild the summaries of a month from its entries.

    - Admin only
    - ``user_id`` null recalculates every user with entries that month
    - Errors carry ``{"code", "message"}`` in ``detail``
    """
    service = RecalculationService(store)
    try:
        return await service.recalculate(
            caller_id=caller_id,
            year_month=request.year_month,
            user_id=request.user_id,
        )
    except RecalculationError as e:
        raise HTTPException(
            status_code=RECALCULATION_STATUS[e.code],
            detail={"code": e.code, "message": e.message},
        )


@router.get("/{year_month}", response_model=list[MonthlySummary])
async def get_summaries(
    year_month: str,
    user_id: Optional[str] = Query(None),
    caller_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Monthly totals.

    - Non-admins get their own total (0 when nothing was logged)
    - Admins get one user's total, or all stored totals of the month
    """
    service = SummaryService(store)
    try:
        return await service.get_summaries(
            caller_id=caller_id,
            year_month=year_month,
            user_id=user_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
