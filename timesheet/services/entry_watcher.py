"""Change-stream trigger feeding entry changes to the aggregator."""
import asyncio
import logging
from typing import Optional

from pymongo.errors import PyMongoError

from timesheet.services.aggregator import AggregationOutcome, HoursAggregator
from timesheet.store.base import EntryChange, StoreError
from timesheet.store.mongo import MongoStore

logger = logging.getLogger(__name__)

STREAM_NAME = "entries"

WATCHED_OPERATIONS = ["insert", "update", "replace", "delete"]


def change_from_event(event: dict) -> Optional[EntryChange]:
    """
    Convert a change stream event into before/after snapshots.

    Returns None when an image the operation needs is missing (an expired or
    never recorded pre-image, or an update whose document is already gone).
    Such a change cannot be turned into a correct delta.

    Example:
        >>> event = {
        ...     "operationType": "delete",
        ...     "documentKey": {"_id": "e1"},
        ...     "fullDocumentBeforeChange": {"user_id": "u1"},
        ... }
        >>> change_from_event(event).after is None
        True
    """
    operation = event["operationType"]
    before = event.get("fullDocumentBeforeChange")
    after = None if operation == "delete" else event.get("fullDocument")

    if operation != "insert" and before is None:
        return None
    if operation != "delete" and after is None:
        return None

    return EntryChange(
        entry_id=str(event["documentKey"]["_id"]),
        before=before,
        after=after,
    )


def log_watcher_exit(task: asyncio.Task) -> None:
    """Done-callback for the watcher task: report an unexpected stop."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(
            "Entry watcher stopped; monthly summaries are no longer updated",
            exc_info=error,
        )


class EntryChangeWatcher:
    """
    Delivers every entry write to the aggregator at least once.

    Failed aggregations are redelivered a bounded number of times; the
    resume token is checkpointed after each event so a restarted watcher
    picks up where the previous one stopped. The aggregator's processed-event
    ledger makes redelivery safe.
    """

    def __init__(
        self,
        store: MongoStore,
        aggregator: HoursAggregator,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        restart_delay: float = 5.0,
    ):
        self.store = store
        self.aggregator = aggregator
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.restart_delay = restart_delay

    async def deliver(self, change: EntryChange) -> AggregationOutcome:
        """Hand one change to the aggregator, retrying failed attempts."""
        outcome = AggregationOutcome.FAILED
        for attempt in range(1, self.max_attempts + 1):
            outcome = await self.aggregator.handle_change(change)
            if outcome is not AggregationOutcome.FAILED:
                return outcome

            if attempt < self.max_attempts:
                logger.warning(
                    "Aggregation of entry %s failed (attempt %d/%d), retrying",
                    change.entry_id,
                    attempt,
                    self.max_attempts,
                )
                await asyncio.sleep(self.retry_delay)

        logger.error(
            "Giving up on entry %s after %d attempts; run a recalculation to repair",
            change.entry_id,
            self.max_attempts,
        )
        return outcome

    async def handle_event(self, event: dict) -> AggregationOutcome:
        """Deliver one raw change stream event."""
        change = change_from_event(event)
        if change is None:
            logger.error(
                "Missing document image for %s of entry %s; "
                "run a recalculation to repair",
                event["operationType"],
                event["documentKey"]["_id"],
            )
            return AggregationOutcome.SKIPPED
        return await self.deliver(change)

    async def run(self, stop: Optional[asyncio.Event] = None) -> None:
        """Consume the change stream until ``stop`` is set or the task is cancelled."""
        resume_token = await self.store.load_resume_token(STREAM_NAME)
        if resume_token:
            logger.info("Resuming entry change stream from checkpoint")

        pipeline = [{"$match": {"operationType": {"$in": WATCHED_OPERATIONS}}}]
        async with self.store.entries.watch(
            pipeline,
            full_document="whenAvailable",
            full_document_before_change="whenAvailable",
            resume_after=resume_token,
        ) as stream:
            logger.info("Watching entry changes")
            async for event in stream:
                await self.handle_event(event)
                await self.store.save_resume_token(STREAM_NAME, event["_id"])

                if stop is not None and stop.is_set():
                    break

        logger.info("Entry change stream closed")

    async def run_forever(self, stop: Optional[asyncio.Event] = None) -> None:
        """
        Keep the change stream open, reopening it after failures.

        A reopened stream resumes from the last checkpoint, so events seen
        but not checkpointed are delivered again and deduplicated by the
        ledger.
        """
        while True:
            try:
                await self.run(stop)
            except (PyMongoError, StoreError):
                logger.exception(
                    "Entry change stream failed; reopening in %.1fs", self.restart_delay
                )
                await asyncio.sleep(self.restart_delay)
                continue

            if stop is None or stop.is_set():
                return
