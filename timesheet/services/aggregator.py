"""Incremental monthly-hours aggregation driven by entry changes.

Every create, update or delete of an entry produces at most two signed
deltas, one per affected (year-month, user) summary. ``compute_deltas`` is
the pure part; ``HoursAggregator`` applies the deltas inside a single store
transaction so concurrent changes for the same user commute.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Optional

from timesheet.store.base import (
    EntryChange,
    StoreError,
    SummaryKey,
    SummaryTransaction,
    TimesheetStore,
)
from timesheet.utils.dates import year_month_of

logger = logging.getLogger(__name__)


class AggregationOutcome(str, Enum):
    """What happened to one entry change."""

    APPLIED = "applied"
    NO_CHANGE = "no_change"
    SKIPPED = "skipped"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass(frozen=True)
class SummaryDelta:
    """Signed change in hours for one summary."""

    key: SummaryKey
    hours: float


def entry_hours(doc: Optional[dict]) -> float:
    """Hours an entry contributes; missing, non-numeric or negative counts as 0."""
    if not doc:
        return 0.0
    hours = doc.get("hours")
    if isinstance(hours, bool) or not isinstance(hours, Real):
        return 0.0
    return float(hours) if hours > 0 else 0.0


def entry_user_id(before: Optional[dict], after: Optional[dict]) -> Optional[str]:
    """Owner of the entry, preferring the after-state."""
    for doc in (after, before):
        if doc and doc.get("user_id"):
            return doc["user_id"]
    return None


def compute_deltas(before: Optional[dict], after: Optional[dict]) -> list[SummaryDelta]:
    """
    Deltas needed to reflect one entry mutation in the monthly summaries.

    Args:
        before: Entry state before the change, None on creation
        after: Entry state after the change, None on deletion

    Returns:
        Zero, one or two deltas; never two for the same summary

    Example:
        >>> before = {"user_id": "u1", "date": "2024-01-15", "hours": 5}
        >>> after = {"user_id": "u1", "date": "2024-02-01", "hours": 3}
        >>> [(d.key.year_month, d.hours) for d in compute_deltas(before, after)]
        [('2024-01', -5.0), ('2024-02', 3.0)]
    """
    user_id = entry_user_id(before, after)
    if not user_id:
        return []

    old_year_month = year_month_of(before.get("date")) if before else None
    new_year_month = year_month_of(after.get("date")) if after else None
    old_hours = entry_hours(before)
    new_hours = entry_hours(after)

    if old_year_month == new_year_month:
        difference = new_hours - old_hours
        if new_year_month is None or difference == 0:
            return []
        return [SummaryDelta(SummaryKey(new_year_month, user_id), difference)]

    deltas = []
    if old_year_month is not None and old_hours > 0:
        deltas.append(SummaryDelta(SummaryKey(old_year_month, user_id), -old_hours))
    if new_year_month is not None and new_hours > 0:
        deltas.append(SummaryDelta(SummaryKey(new_year_month, user_id), new_hours))
    return deltas


def _version(doc: Optional[dict]) -> Optional[str]:
    if not doc:
        return "-"
    for field in ("version", "updated_at", "created_at"):
        value = doc.get(field)
        if value is not None:
            return value.isoformat() if hasattr(value, "isoformat") else str(value)
    return None


def event_key(change: EntryChange) -> Optional[str]:
    """
    Ledger key identifying one logical state transition of an entry.

    None when a snapshot carries no version marker, since such transitions
    cannot be told apart.

    Example:
        >>> event_key(EntryChange("e1", {"version": 1}, {"version": 2}))
        'e1:1:2'
        >>> event_key(EntryChange("e1", None, {"version": 1}))
        'e1:-:1'
    """
    before = _version(change.before)
    after = _version(change.after)
    if before is None or after is None:
        return None
    return f"{change.entry_id}:{before}:{after}"


class HoursAggregator:
    """Applies entry changes to the monthly summaries."""

    def __init__(self, store: TimesheetStore, dedupe: bool = True):
        """
        Args:
            store: Injected store client
            dedupe: Record each change in the processed-event ledger and
                ignore redeliveries of the same transition
        """
        self.store = store
        self.dedupe = dedupe

    async def handle_change(self, change: EntryChange) -> AggregationOutcome:
        """
        Bring the summaries in line with one entry change.

        Store failures abort the whole transaction and are logged; nothing is
        raised to the caller.
        """
        user_id = entry_user_id(change.before, change.after)
        if not user_id:
            logger.warning(
                "No user_id found for entry %s. Skipping aggregation.", change.entry_id
            )
            return AggregationOutcome.SKIPPED

        deltas = compute_deltas(change.before, change.after)
        if not deltas:
            logger.debug("Entry %s changed without affecting totals", change.entry_id)
            return AggregationOutcome.NO_CHANGE

        key = event_key(change) if self.dedupe else None

        async def apply(transaction: SummaryTransaction) -> AggregationOutcome:
            if key is not None:
                if await transaction.is_event_processed(key):
                    return AggregationOutcome.DUPLICATE
                await transaction.mark_event_processed(key)

            for delta in deltas:
                current = await transaction.get_summary_total(delta.key)
                await transaction.set_summary_total(
                    delta.key, round(current + delta.hours, 2)
                )
            return AggregationOutcome.APPLIED

        try:
            outcome = await self.store.run_transaction(apply)
        except StoreError:
            logger.exception("Transaction failed for user %s (entry %s)", user_id, change.entry_id)
            return AggregationOutcome.FAILED

        if outcome is AggregationOutcome.DUPLICATE:
            logger.info("Entry change %s already applied. Skipping.", key)
        else:
            logger.info("Successfully updated monthly summaries for user %s.", user_id)
        return outcome
