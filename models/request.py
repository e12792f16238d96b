"""
Sample request schemas.

A request stores a frozen snapshot of the products and production groups
chosen at submission time, plus an append-only status history.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema, TimestampMixin, Pagination


class RequestStatus(str, Enum):
    """
    Request lifecycle.

    Usual flow: PENDING → REVIEW → APPROVED → PREPARING → SHIPPED →
    DELIVERED → COMPLETED. CANCELLED can be set at any point. Admins may
    jump to any status from any other.
    """
    PENDING = "pending"
    REVIEW = "review"
    APPROVED = "approved"
    PREPARING = "preparing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


REQUEST_STATUSES = [s.value for s in RequestStatus]

CREATED_NOTE = "created"


# ===================
# SUBMISSION
# ===================

class ProductSelection(BaseSchema):
    """One product chosen through one production group."""

    product_id: str
    production_group_id: str


class RequestSubmit(BaseSchema):
    """
    Customer sample request form.

    Required fields are checked by the service so the caller gets a
    message naming the missing field.
    """

    company_name: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str = ""
    phone: str = ""
    address: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None
    sector_id: Optional[str] = Field(
        None,
        description="Selected sector; empty means 'other'"
    )
    products: list[ProductSelection] = Field(default_factory=list)


# ===================
# STORED REQUEST
# ===================

class ProductSnapshot(BaseSchema):
    """Names as they were when the request was submitted."""

    product_id: Optional[str] = None
    product_name: str
    production_group_id: Optional[str] = None
    production_group_name: str


class StatusHistoryEntry(BaseSchema):
    """One status change."""

    status: RequestStatus
    note: str = ""
    timestamp: datetime


class RequestResponse(BaseSchema, TimestampMixin):
    """Sample request with snapshot and history."""

    id: str
    company_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    phone: str
    address: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None
    sector_id: Optional[str] = None
    production_group_ids: list[str] = Field(default_factory=list)
    products: list[ProductSnapshot] = Field(default_factory=list)
    status: RequestStatus = RequestStatus.PENDING
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        """First and last name, or '-' when neither is given."""
        return " ".join(p for p in (self.first_name, self.last_name) if p) or "-"


class RequestStatusUpdate(BaseSchema):
    """Admin status change; status is validated by the service."""

    status: str = Field(..., min_length=1)
    note: Optional[str] = None


# ===================
# ADMIN CUSTOMER LIST
# ===================

class CustomerFilter(BaseSchema):
    """Query parameters of the admin customer list."""

    page: int = Field(1, ge=1)
    search: Optional[str] = None
    sector_id: Optional[str] = None
    production_group_id: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None


class CustomerRow(BaseSchema):
    """Flattened request for the admin table."""

    id: str
    short_id: str
    created_at: Optional[datetime] = None
    company_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    phone: str
    province: str = ""
    district: str = ""
    address: Optional[str] = None
    sector: str = ""
    production_groups: str = ""
    products: str = ""
    status: RequestStatus


class CustomerListResponse(BaseSchema):
    """Customer rows with pagination."""

    customers: list[CustomerRow]
    pagination: Pagination
