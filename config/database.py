"""
Database connection management.

Provides Supabase client singleton for database operations, plus helpers
for telling PostgreSQL constraint violations apart.
"""

from supabase import create_client, Client
from postgrest.exceptions import APIError
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


# PostgreSQL SQLSTATE codes surfaced by PostgREST
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class ConnectionError(DatabaseError):
    """Failed to connect to database."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If connection fails
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_service_key or settings.supabase_key
        )

        logger.info(
            "supabase_connected",
            status="success"
        )

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


# Convenience alias
db = get_supabase_client


# ===================
# HELPER FUNCTIONS
# ===================

def error_code(error: Exception) -> Optional[str]:
    """Return the SQLSTATE code of a PostgREST error, if any."""
    if isinstance(error, APIError):
        return error.code
    return None


def is_unique_violation(error: Exception) -> bool:
    """True if the error is a duplicate-key failure."""
    return error_code(error) == UNIQUE_VIOLATION


def is_foreign_key_violation(error: Exception) -> bool:
    """True if the error is a missing/still-referenced foreign key."""
    return error_code(error) == FOREIGN_KEY_VIOLATION


def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    try:
        client = get_supabase_client()

        sectors = client.table("sectors").select("id", count="exact").execute()
        products = client.table("products").select("id", count="exact").execute()

        return {
            "status": "healthy",
            "sectors_count": sectors.count,
            "products_count": products.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }


def reset_connection():
    """
    Reset the cached database connection.

    Call this if connection becomes stale or after config changes.
    """
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
