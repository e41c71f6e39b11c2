"""Summary service - read access to monthly totals."""
from typing import Optional

from timesheet.models.summary import MonthlySummary
from timesheet.models.user import ROLE_ADMIN
from timesheet.store.base import SummaryKey, TimesheetStore
from timesheet.utils.dates import is_year_month


class SummaryService:
    """Service for reading monthly summaries."""

    def __init__(self, store: TimesheetStore):
        """Initialize service with the store."""
        self.store = store

    async def _single(self, year_month: str, user_id: str) -> MonthlySummary:
        doc = await self.store.read_summary(SummaryKey(year_month, user_id))
        total = (doc.get("total_hours") or 0.0) if doc else 0.0
        return MonthlySummary(year_month=year_month, user_id=user_id, total_hours=total)

    async def get_summaries(
        self,
        caller_id: str,
        year_month: str,
        user_id: Optional[str] = None,
    ) -> list[MonthlySummary]:
        """
        Monthly totals visible to the caller.

        A missing summary reads as zero hours. Non-admins only see their own
        total; admins see one user's or every stored summary of the month.

        Raises:
            ValueError: If year_month is not ``YYYY-MM``
        """
        if not is_year_month(year_month):
            raise ValueError("year_month must be formatted as YYYY-MM")

        if await self.store.get_user_role(caller_id) != ROLE_ADMIN:
            return [await self._single(year_month, caller_id)]

        if user_id:
            return [await self._single(year_month, user_id)]

        docs = await self.store.list_summaries(year_month)
        return [
            MonthlySummary(
                year_month=doc["year_month"],
                user_id=doc["user_id"],
                total_hours=doc.get("total_hours") or 0.0,
            )
            for doc in sorted(docs, key=lambda doc: doc["user_id"])
        ]
