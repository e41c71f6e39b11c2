"""Set the role of a user (e.g. promote the first administrator)."""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

from timesheet.config import settings
from timesheet.services.auth_service import AuthService
from timesheet.store.mongo import MongoStore


async def set_role(email: str, role: str):
    """Change the role of the user with the given email."""
    client = AsyncIOMotorClient(settings.mongodb_url)
    store = MongoStore(client, client[settings.mongodb_db_name])

    try:
        user = await AuthService(store).set_role(email, role)
        print(f"{user.email} is now {user.role}")
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        client.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python set_role.py <email> <user|admin>")
        sys.exit(1)

    asyncio.run(set_role(sys.argv[1], sys.argv[2]))
