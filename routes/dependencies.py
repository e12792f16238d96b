"""
Shared route helpers: admin authorization and error conversion.
"""

import secrets
from typing import Optional

from fastapi import Header
from fastapi.responses import JSONResponse
import structlog

from config import settings
from exceptions import AppError, UnauthorizedError

logger = structlog.get_logger(__name__)


def require_admin(x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key")) -> None:
    """
    Reject callers without the admin API key.

    Raises:
        UnauthorizedError: Header missing, wrong, or no key configured
    """
    if not settings.admin_api_key:
        logger.warning("admin_api_key_not_configured")
        raise UnauthorizedError("Admin access is not configured")

    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.admin_api_key):
        logger.warning("admin_key_rejected", provided=bool(x_admin_key))
        raise UnauthorizedError()


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )
