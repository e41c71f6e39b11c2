"""Monthly summary model definitions."""
from typing import Any, Optional

from pydantic import BaseModel


class MonthlySummary(BaseModel):
    """Total hours of one user in one month."""

    year_month: str
    user_id: str
    total_hours: float = 0.0


class RecalculateRequest(BaseModel):
    """
    Request body for a summary recalculation.

    ``year_month`` is taken as sent; the recalculation service rejects
    anything that is not a ``YYYY-MM`` string with ``invalid-argument``.
    """

    year_month: Any = None
    user_id: Optional[str] = None
