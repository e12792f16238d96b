"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    UnauthorizedError,
    ExternalServiceError,
    DatabaseError,
    InvalidIdError,

    # Sectors
    SectorNotFoundError,
    SectorNameExistsError,
    InvalidImageTypeError,
    InvalidImageKeyError,

    # Production groups
    ProductionGroupNotFoundError,
    ProductionGroupExistsError,
    ProductionGroupMoveBlockedError,

    # Products
    ProductNotFoundError,
    ProductNameExistsError,

    # Dependency guard
    DeleteBlockedError,

    # Catalog import
    ImportSourceError,
    CatalogFileParseError,

    # Requests
    RequestNotFoundError,
    MissingFieldError,
    AssignmentMismatchError,
    InvalidRequestStatusError,

    # Locations
    LocationLookupError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "UnauthorizedError",
    "ExternalServiceError",
    "DatabaseError",
    "InvalidIdError",

    # Sectors
    "SectorNotFoundError",
    "SectorNameExistsError",
    "InvalidImageTypeError",
    "InvalidImageKeyError",

    # Production groups
    "ProductionGroupNotFoundError",
    "ProductionGroupExistsError",
    "ProductionGroupMoveBlockedError",

    # Products
    "ProductNotFoundError",
    "ProductNameExistsError",

    # Dependency guard
    "DeleteBlockedError",

    # Catalog import
    "ImportSourceError",
    "CatalogFileParseError",

    # Requests
    "RequestNotFoundError",
    "MissingFieldError",
    "AssignmentMismatchError",
    "InvalidRequestStatusError",

    # Locations
    "LocationLookupError",
]
