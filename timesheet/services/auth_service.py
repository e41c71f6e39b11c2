"""Authentication service - accounts, login and roles."""
from datetime import datetime, timezone

from timesheet.models.user import ROLE_ADMIN, ROLE_USER, User
from timesheet.store.base import TimesheetStore
from timesheet.utils.auth import create_access_token, hash_password, verify_password

ROLES = (ROLE_USER, ROLE_ADMIN)


def _doc_to_user(doc: dict) -> User:
    return User(
        _id=doc["_id"],
        email=doc["email"],
        name=doc["name"],
        role=doc.get("role", ROLE_USER),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )


class AuthService:
    """Service for user accounts."""

    def __init__(self, store: TimesheetStore):
        """Initialize service with the store."""
        self.store = store

    async def register_user(self, email: str, password: str, name: str) -> User:
        """
        Register a new user with the ``user`` role.

        Raises:
            ValueError: If email is already registered
        """
        if await self.store.find_user_by_email(email):
            raise ValueError("Email already registered")

        now = datetime.now(timezone.utc)
        user_doc = {
            "email": email,
            "hashed_password": hash_password(password),
            "name": name,
            "role": ROLE_USER,
            "created_at": now,
            "updated_at": now,
        }
        user_doc["_id"] = await self.store.insert_user(user_doc)

        return _doc_to_user(user_doc)

    async def login(self, email: str, password: str) -> str:
        """
        Check credentials and issue an access token.

        Raises:
            ValueError: If credentials are invalid
        """
        user_doc = await self.store.find_user_by_email(email)
        if not user_doc or not verify_password(password, user_doc["hashed_password"]):
            raise ValueError("Invalid email or password")

        return create_access_token(user_id=user_doc["_id"])

    async def get_user_by_id(self, user_id: str) -> User:
        """
        Get user by ID.

        Raises:
            ValueError: If user not found
        """
        user_doc = await self.store.get_user(user_id)
        if not user_doc:
            raise ValueError("User not found")
        return _doc_to_user(user_doc)

    async def list_users(self, caller_id: str) -> list[User]:
        """
        All users, for administrators picking a filter.

        Raises:
            PermissionError: If the caller is not an admin
        """
        if await self.store.get_user_role(caller_id) != ROLE_ADMIN:
            raise PermissionError("You must be an admin to list users")
        return [_doc_to_user(doc) for doc in await self.store.list_users()]

    async def set_role(self, email: str, role: str) -> User:
        """
        Change the role of a user.

        Raises:
            ValueError: If the role is unknown or the user does not exist
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")

        user_doc = await self.store.find_user_by_email(email)
        if not user_doc:
            raise ValueError("User not found")

        await self.store.set_user_role(user_doc["_id"], role)
        user_doc["role"] = role
        return _doc_to_user(user_doc)
