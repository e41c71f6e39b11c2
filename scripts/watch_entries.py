"""Run the entry change-stream trigger that keeps monthly summaries current.

Usage:
    python scripts/watch_entries.py [--mongodb-url mongodb://localhost:27017]
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

from timesheet.config import settings
from timesheet.services.aggregator import HoursAggregator
from timesheet.services.entry_watcher import EntryChangeWatcher
from timesheet.store.mongo import MongoStore


async def watch(mongodb_url: str, db_name: str) -> None:
    """Watch entries until interrupted."""
    client = AsyncIOMotorClient(mongodb_url)
    store = MongoStore(client, client[db_name])
    await store.ensure_collections(
        ledger_ttl_seconds=settings.processed_event_ttl_days * 24 * 60 * 60
    )

    watcher = EntryChangeWatcher(
        store,
        HoursAggregator(store, dedupe=settings.dedupe_entry_events),
        max_attempts=settings.trigger_max_attempts,
        retry_delay=settings.trigger_retry_delay_seconds,
        restart_delay=settings.trigger_restart_delay_seconds,
    )
    try:
        await watcher.run_forever()
    finally:
        client.close()


def main():
    parser = argparse.ArgumentParser(description="Aggregate entry changes into monthly summaries")
    parser.add_argument("--mongodb-url", default=settings.mongodb_url)
    parser.add_argument("--db-name", default=settings.mongodb_db_name)
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level)
    try:
        asyncio.run(watch(args.mongodb_url, args.db_name))
    except KeyboardInterrupt:
        print("Stopped")


if __name__ == "__main__":
    main()
