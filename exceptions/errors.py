"""
Custom exception classes for the application.

Every error carries a machine-readable code and an HTTP status so routes
can render it without extra mapping.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "SECTOR_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper().replace(' ', '_')}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class UnauthorizedError(AppError):
    """Caller is not an admin (401)."""

    def __init__(self, message: str = "Admin access required"):
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


class InvalidIdError(ValidationError):
    """Identifier is not a UUID."""

    def __init__(self, field: str, value: str):
        super().__init__(
            code="INVALID_ID",
            message=f"{field} is not a valid id",
            details={"field": field, "provided": value}
        )


# ===================
# SECTOR ERRORS
# ===================

class SectorNotFoundError(NotFoundError):
    """Sector not found."""

    def __init__(self, sector_id: str):
        super().__init__(
            resource="Sector",
            identifier=sector_id,
            code="SECTOR_NOT_FOUND"
        )


class SectorNameExistsError(DuplicateError):
    """Sector name already exists."""

    def __init__(self, name: str):
        super().__init__(
            resource="Sector",
            field="name",
            value=name
        )


class InvalidImageTypeError(ValidationError):
    """Uploaded image has an unsupported content type."""

    def __init__(self, content_type: str, allowed: list[str]):
        super().__init__(
            code="INVALID_IMAGE_TYPE",
            message="Image must be JPEG, PNG or WebP",
            details={"provided": content_type, "valid": allowed}
        )


class InvalidImageKeyError(ValidationError):
    """Image URL points outside the sector's key namespace."""

    def __init__(self, sector_id: str, key: str):
        super().__init__(
            code="INVALID_IMAGE_KEY",
            message="Image does not belong to this sector",
            details={"sector_id": sector_id, "key": key}
        )


# ===================
# PRODUCTION GROUP ERRORS
# ===================

class ProductionGroupNotFoundError(NotFoundError):
    """Production group not found."""

    def __init__(self, group_id: str):
        super().__init__(
            resource="Production group",
            identifier=group_id,
            code="PRODUCTION_GROUP_NOT_FOUND"
        )


class ProductionGroupExistsError(ConflictError):
    """Production group name already used inside the sector."""

    def __init__(self, name: str, sector_id: str):
        super().__init__(
            code="PRODUCTION_GROUP_NAME_EXISTS",
            message="Production group already exists in this sector",
            details={"name": name, "sector_id": sector_id}
        )


class ProductionGroupMoveBlockedError(ConflictError):
    """
    Group cannot move to another sector while products are assigned to it.

    Assignments carry the sector id of their group, so a move would leave
    them pointing at the old sector.
    """

    def __init__(
        self,
        group_id: str,
        dependent_count: int,
        dependents: list[dict],
        action: str
    ):
        super().__init__(
            code="PRODUCTION_GROUP_HAS_ASSIGNMENTS",
            message=f"{dependent_count} product assignment(s) keep this group in its sector",
            details={
                "id": group_id,
                "dependent_count": dependent_count,
                "dependents": dependents,
                "action": action,
            }
        )


# ===================
# PRODUCT ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


class ProductNameExistsError(DuplicateError):
    """Product name already exists."""

    def __init__(self, name: str):
        super().__init__(
            resource="Product",
            field="name",
            value=name
        )


# ===================
# DEPENDENCY GUARD ERRORS
# ===================

class DeleteBlockedError(ConflictError):
    """
    Delete rejected because other records still depend on the target.

    Details carry the dependent count, the dependent names and the action
    the admin has to take first.
    """

    def __init__(
        self,
        entity_kind: str,
        entity_id: str,
        message: str,
        dependent_count: int,
        dependents: list[dict],
        action: str
    ):
        super().__init__(
            code=f"{entity_kind.upper()}_HAS_DEPENDENTS",
            message=message,
            details={
                "id": entity_id,
                "dependent_count": dependent_count,
                "dependents": dependents,
                "action": action,
            }
        )


# ===================
# IMPORT ERRORS
# ===================

class ImportSourceError(ExternalServiceError):
    """Catalog source could not be read; nothing was written."""

    def __init__(self, source: str, message: str):
        super().__init__(
            service="import_source",
            message=message,
            details={"source": source}
        )


class CatalogFileParseError(ValidationError):
    """Uploaded catalog file could not be parsed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="CATALOG_FILE_PARSE_ERROR",
            message=message,
            details=details
        )


# ===================
# REQUEST ERRORS
# ===================

class RequestNotFoundError(NotFoundError):
    """Sample request not found."""

    def __init__(self, request_id: str):
        super().__init__(
            resource="Request",
            identifier=request_id,
            code="REQUEST_NOT_FOUND"
        )


class MissingFieldError(ValidationError):
    """Required submission field is empty."""

    def __init__(self, field: str):
        super().__init__(
            code="MISSING_FIELD",
            message=f"{field} is required",
            details={"field": field}
        )


class AssignmentMismatchError(ValidationError):
    """Product is not sold under the selected production group (or sector)."""

    def __init__(
        self,
        product_id: str,
        production_group_id: str,
        sector_id: Optional[str] = None
    ):
        super().__init__(
            code="ASSIGNMENT_MISMATCH",
            message=(
                f"Product {product_id} is not assigned to "
                f"production group {production_group_id}"
            ),
            details={
                "product_id": product_id,
                "production_group_id": production_group_id,
                "sector_id": sector_id,
            }
        )


class InvalidRequestStatusError(ValidationError):
    """Unknown request status."""

    def __init__(self, status: str, valid: list[str]):
        super().__init__(
            code="INVALID_REQUEST_STATUS",
            message=f"Invalid status: {status}",
            details={"provided": status, "valid": valid}
        )


# ===================
# LOCATION ERRORS
# ===================

class LocationLookupError(ExternalServiceError):
    """Province / district directory could not be reached."""

    def __init__(self, message: str):
        super().__init__(
            service="location_directory",
            message=message
        )
