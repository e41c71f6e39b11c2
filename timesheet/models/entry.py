"""Time entry model definitions."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class EntryCreate(BaseModel):
    """Entry creation model. Hours, year and month are derived."""

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    notes: str = ""
    is_overnight: bool = False


class EntryUpdate(BaseModel):
    """Entry update model."""

    date: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    start_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    end_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    notes: Optional[str] = None
    is_overnight: Optional[bool] = None


class Entry(BaseModel):
    """Full entry model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    date: str
    start_time: str
    end_time: str
    hours: float
    year: int
    month: int
    notes: str = ""
    is_overnight: bool = False
    version: int = 1
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}
