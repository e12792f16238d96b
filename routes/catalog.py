"""
Public catalog browse routes used by the sample request form.
"""

from fastapi import APIRouter
import structlog

from models.catalog import GroupWithProducts
from services.assignment_service import get_assignment_service
from services.sector_service import get_sector_service
from routes.dependencies import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/sectors/{sector_id}/groups", response_model=list[GroupWithProducts])
async def get_sector_catalog(sector_id: str):
    """
    Production groups of a sector, each with the products assigned under it.

    Raises:
        404: Sector not found
    """
    try:
        get_sector_service().get_by_id(sector_id)
        return get_assignment_service().get_catalog_for_sector(sector_id)
    except Exception as e:
        return handle_error(e)
