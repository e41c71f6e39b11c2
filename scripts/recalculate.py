"""Recalculate monthly summaries from the command line.

Usage:
    python scripts/recalculate.py \\
        --admin-email admin@example.com \\
        --year-month 2024-03 \\
        [--user-id <user-id>]
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
from timesheet.services.recalculation_service import RecalculationError, RecalculationService
from timesheet.store.mongo import MongoStore


async def recalculate(admin_email: str, year_month: str, user_id: str | None) -> int:
    """Run one recalculation as the given admin; returns an exit code."""
    client = AsyncIOMotorClient(settings.mongodb_url)
    store = MongoStore(client, client[settings.mongodb_db_name])

    try:
        admin = await store.find_user_by_email(admin_email)
        caller_id = admin["_id"] if admin else None
        result = await RecalculationService(store).recalculate(caller_id, year_month, user_id)
        print(result.message)
        return 0
    except RecalculationError as e:
        print(f"{e.code}: {e.message}")
        return 1
    finally:
        client.close()


def main():
    parser = argparse.ArgumentParser(description="Rebuild monthly hour summaries")
    parser.add_argument("--admin-email", required=True, help="Email of an admin user")
    parser.add_argument("--year-month", required=True, help="Month to rebuild, YYYY-MM")
    parser.add_argument("--user-id", default=None, help="Only rebuild this user")
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level)
    sys.exit(asyncio.run(recalculate(args.admin_email, args.year_month, args.user_id)))


if __name__ == "__main__":
    main()
