"""
Catalog schemas: sectors, production groups, products and assignments.
"""

from pydantic import Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema, TimestampMixin


class EntityKind(str, Enum):
    """Catalog records that can be protected by the dependency guard."""
    SECTOR = "sector"
    PRODUCTION_GROUP = "production_group"


# ===================
# SECTORS
# ===================

class SectorCreate(BaseSchema):
    """Create a new sector."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Sector name (unique)",
        examples=["Dairy", "Meat"]
    )
    image_url: Optional[str] = Field(None, description="Public image URL")


class SectorUpdate(BaseSchema):
    """
    Update existing sector.

    All fields optional - only provided fields are updated.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    image_url: Optional[str] = None


class SectorResponse(BaseSchema, TimestampMixin):
    """Sector with all fields."""

    id: str = Field(..., description="Sector UUID")
    name: str
    image_url: Optional[str] = None


class SectorImageResponse(BaseSchema):
    """Result of a sector image upload."""

    url: str
    key: str


# ===================
# PRODUCTION GROUPS
# ===================

class ProductionGroupCreate(BaseSchema):
    """Create a production group under a sector."""

    name: str = Field(..., min_length=1, max_length=200)
    sector_id: str = Field(..., min_length=1, description="Owning sector UUID")


class ProductionGroupUpdate(BaseSchema):
    """Update a production group; only provided fields change."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    sector_id: Optional[str] = Field(None, min_length=1)


class ProductionGroupResponse(BaseSchema, TimestampMixin):
    """Production group, optionally with its sector name."""

    id: str
    name: str
    sector_id: str
    sector_name: Optional[str] = None


# ===================
# PRODUCTS
# ===================

class ProductCreate(BaseSchema):
    """Create a new product."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Product name (unique catalog-wide)",
        examples=["Cheddar", "Sirloin"]
    )
    image_url: Optional[str] = None


class ProductUpdate(BaseSchema):
    """Update a product; only provided fields change."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    image_url: Optional[str] = None


class ProductResponse(BaseSchema, TimestampMixin):
    """Product with all fields."""

    id: str
    name: str
    image_url: Optional[str] = None


# ===================
# ASSIGNMENTS
# ===================

class ProductAssignmentResponse(BaseSchema):
    """Link saying a product is sold under a group under a sector."""

    id: str
    sector_id: str
    production_group_id: str
    product_id: str


class GroupWithProducts(BaseSchema):
    """Production group with the products assigned under it (catalog browse)."""

    id: str
    name: str
    products: list[ProductResponse] = Field(default_factory=list)


# ===================
# DEPENDENCY GUARD
# ===================

class DependentSummary(BaseSchema):
    """One record blocking a delete."""

    id: str
    name: str


class DeleteCheck(BaseSchema):
    """Outcome of a dependency check before a delete."""

    entity_kind: EntityKind
    id: str
    allowed: bool
    dependent_count: int
    dependents: list[DependentSummary] = Field(default_factory=list)
    message: str = ""
    action: str = ""
