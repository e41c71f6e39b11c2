"""User model definitions."""
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class UserBase(BaseModel):
    """Base user fields."""

    email: EmailStr
    name: str


class UserCreate(UserBase):
    """User creation model with password."""

    password: str


class User(UserBase):
    """User model without password (for API responses)."""

    id: str = Field(alias="_id", serialization_alias="id")
    role: str = ROLE_USER
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
