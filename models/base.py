"""
Base schemas and mixins for all models.
"""

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class TimestampMixin(BaseModel):
    """Add timestamps to response models."""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(BaseModel):
    """Pagination block returned next to list data."""
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def create(cls, total: int, page: int, limit: int) -> "Pagination":
        """Build pagination info from a total count."""
        total_pages = (total + limit - 1) // limit if limit else 1  # Ceiling division
        return cls(total=total, page=page, limit=limit, total_pages=total_pages)
