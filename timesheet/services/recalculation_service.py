"""Recalculation service - rebuilds monthly totals from the entries."""
import logging
from collections import defaultdict
from typing import Optional

from pydantic import BaseModel

from timesheet.models.user import ROLE_ADMIN
from timesheet.services.aggregator import entry_hours
from timesheet.store.base import StoreError, SummaryKey, SummaryWrite, TimesheetStore
from timesheet.utils.dates import is_year_month, split_year_month

logger = logging.getLogger(__name__)


class RecalculationError(Exception):
    """Rejected or failed recalculation, with a machine-readable code."""

    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission-denied"
    INVALID_ARGUMENT = "invalid-argument"
    INTERNAL = "internal"

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class RecalculationResult(BaseModel):
    """Successful recalculation."""

    success: bool = True
    message: str


class RecalculationService:
    """Admin-only drift repair for monthly summaries."""

    def __init__(self, store: TimesheetStore):
        """Initialize service with the store."""
        self.store = store

    async def _authorize(self, caller_id: Optional[str]) -> None:
        if not caller_id:
            raise RecalculationError(
                RecalculationError.UNAUTHENTICATED,
                "You must be logged in to perform this action.",
            )

        try:
            role = await self.store.get_user_role(caller_id)
        except StoreError:
            logger.exception("Role lookup failed for %s", caller_id)
            raise RecalculationError(
                RecalculationError.INTERNAL,
                "An error occurred during recalculation.",
            )

        if role != ROLE_ADMIN:
            raise RecalculationError(
                RecalculationError.PERMISSION_DENIED,
                "You must be an admin to perform this action.",
            )

    async def recalculate(
        self,
        caller_id: Optional[str],
        year_month,
        user_id: Optional[str] = None,
    ) -> RecalculationResult:
        """
        Recompute summaries for a month from scratch.

        Totals are overwritten, not adjusted, so any earlier drift is
        discarded.

        Args:
            caller_id: Authenticated caller, None if anonymous
            year_month: Month to rebuild, ``YYYY-MM``
            user_id: Single user to rebuild; None or empty for all users

        Returns:
            Success flag and a human-readable message

        Raises:
            RecalculationError: unauthenticated, permission-denied,
                invalid-argument or internal
        """
        await self._authorize(caller_id)

        if not is_year_month(year_month):
            raise RecalculationError(
                RecalculationError.INVALID_ARGUMENT,
                'A valid year_month string (e.g., "YYYY-MM") is required.',
            )

        year, month = split_year_month(year_month)
        logger.info(
            "Recalculation triggered by admin %s for year: %s, month: %s, user_id: %s",
            caller_id,
            year,
            month,
            user_id or "All Users",
        )

        try:
            if user_id:
                return await self._recalculate_user(year_month, year, month, user_id)
            return await self._recalculate_all(year_month, year, month)
        except StoreError:
            logger.exception("Recalculation failed for %s", year_month)
            raise RecalculationError(
                RecalculationError.INTERNAL,
                "An error occurred during recalculation.",
            )

    async def _recalculate_user(
        self, year_month: str, year: int, month: int, user_id: str
    ) -> RecalculationResult:
        entries = await self.store.query_entries(year, month, user_id=user_id)
        total = round(sum(entry_hours(doc) for doc in entries), 2)

        await self.store.batch_write([SummaryWrite(SummaryKey(year_month, user_id), total)])

        logger.info(
            "Successfully recalculated hours for user %s in %s. Total: %s",
            user_id,
            year_month,
            total,
        )
        return RecalculationResult(
            message=f"Recalculated hours for user {user_id}. Total: {total}"
        )

    async def _recalculate_all(self, year_month: str, year: int, month: int) -> RecalculationResult:
        entries = await self.store.query_entries(year, month)

        totals: dict[str, float] = defaultdict(float)
        for doc in entries:
            if doc.get("user_id"):
                totals[doc["user_id"]] += entry_hours(doc)

        if not totals:
            logger.info("No entries found for any user in %s.", year_month)
            return RecalculationResult(message="No entries found for that month.")

        await self.store.batch_write(
            [
                SummaryWrite(SummaryKey(year_month, uid), round(total, 2))
                for uid, total in totals.items()
            ]
        )

        logger.info(
            "Successfully recalculated hours for %d users in %s.", len(totals), year_month
        )
        return RecalculationResult(message=f"Recalculated hours for {len(totals)} users.")
