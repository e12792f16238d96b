"""
Location lookup routes.

Public: the request form fills its province and district pickers from them.
"""

from fastapi import APIRouter, Query
from typing import Optional
import structlog

from models.location import Location
from integrations.location_directory import list_districts, list_provinces
from routes.dependencies import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/provinces", response_model=list[Location])
async def get_provinces(name: str = Query("", description="Filter by province name")):
    """
    List provinces, sorted by name.

    Raises:
        503: Location directory unavailable
    """
    try:
        return list_provinces(name)
    except Exception as e:
        return handle_error(e)


@router.get("/districts", response_model=list[Location])
async def get_districts(province: Optional[str] = Query(None, description="Province name")):
    """
    List the districts of a province; empty without a province.

    Raises:
        503: Location directory unavailable
    """
    try:
        return list_districts(province)
    except Exception as e:
        return handle_error(e)
