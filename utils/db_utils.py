"""
Query helpers shared by the catalog services.
"""

from itertools import islice
from typing import Any, Iterable, Iterator, Optional, TypeVar
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client
import structlog

from config.database import is_unique_violation

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def is_uuid(value: Any) -> bool:
    """
    True if value is a UUID string.

    Every primary key is a uuid column; PostgREST rejects anything else
    with 22P02 instead of returning no rows.
    """
    if not isinstance(value, str):
        return False
    try:
        UUID(value)
    except ValueError:
        return False
    return True


def select_one(db: Client, table: str, match: dict[str, Any]) -> Optional[dict]:
    """Return the first row whose columns equal every value in match."""
    query = db.table(table).select("*")
    for column, value in match.items():
        query = query.eq(column, value)
    result = query.limit(1).execute()
    return result.data[0] if result.data else None


def find_or_create(
    db: Client,
    table: str,
    match: dict[str, Any],
    values: Optional[dict[str, Any]] = None
) -> tuple[dict, bool]:
    """
    Find a row by its natural key or insert it.

    A concurrent writer may insert the same key between our select and
    insert. The unique constraint rejects the second insert with 23505, and
    we read the winner's row instead of failing.

    Args:
        db: Supabase client
        table: Table name
        match: Natural key columns (must be covered by a unique constraint)
        values: Extra columns for the insert

    Returns:
        Tuple of (row, created)
    """
    existing = select_one(db, table, match)
    if existing:
        return existing, False

    try:
        result = db.table(table).insert({**match, **(values or {})}).execute()
        return result.data[0], True
    except APIError as e:
        if not is_unique_violation(e):
            raise
        logger.info("find_or_create_lost_race", table=table, match=match)
        existing = select_one(db, table, match)
        if existing is None:
            raise
        return existing, False


def batched(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield lists of at most size items."""
    iterator = iter(items)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return
        yield chunk
