"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
    Pagination,
)
from models.catalog import (
    EntityKind,
    SectorCreate,
    SectorUpdate,
    SectorResponse,
    SectorImageResponse,
    ProductionGroupCreate,
    ProductionGroupUpdate,
    ProductionGroupResponse,
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductAssignmentResponse,
    GroupWithProducts,
    DependentSummary,
    DeleteCheck,
)
from models.catalog_import import (
    ImportRowInput,
    ImportRunRequest,
    EntityCounts,
    SkippedRowInfo,
    ImportSamples,
    ImportPreview,
    ImportResult,
    ImportLogResponse,
)
from models.location import Location
from models.request import (
    RequestStatus,
    REQUEST_STATUSES,
    ProductSelection,
    RequestSubmit,
    ProductSnapshot,
    StatusHistoryEntry,
    RequestResponse,
    RequestStatusUpdate,
    CustomerFilter,
    CustomerRow,
    CustomerListResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",
    "Pagination",

    # Catalog
    "EntityKind",
    "SectorCreate",
    "SectorUpdate",
    "SectorResponse",
    "SectorImageResponse",
    "ProductionGroupCreate",
    "ProductionGroupUpdate",
    "ProductionGroupResponse",
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",
    "ProductAssignmentResponse",
    "GroupWithProducts",
    "DependentSummary",
    "DeleteCheck",

    # Import
    "ImportRowInput",
    "ImportRunRequest",
    "EntityCounts",
    "SkippedRowInfo",
    "ImportSamples",
    "ImportPreview",
    "ImportResult",
    "ImportLogResponse",

    # Requests
    "RequestStatus",
    "REQUEST_STATUSES",
    "ProductSelection",
    "RequestSubmit",
    "ProductSnapshot",
    "StatusHistoryEntry",
    "RequestResponse",
    "RequestStatusUpdate",
    "CustomerFilter",
    "CustomerRow",
    "CustomerListResponse",

    # Locations
    "Location",
]
