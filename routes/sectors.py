"""
Sector API routes.

Reads are public (the request form lists sectors); writes need the admin key.
"""

from fastapi import APIRouter, Depends, File, Query, UploadFile
from typing import Optional
import structlog

from models.catalog import (
    DeleteCheck,
    EntityKind,
    SectorCreate,
    SectorImageResponse,
    SectorResponse,
    SectorUpdate,
)
from services.sector_service import get_sector_service
from services.dependency_guard_service import get_dependency_guard_service
from routes.dependencies import handle_error, require_admin

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# ROUTES
# ===================

@router.get("", response_model=list[SectorResponse])
async def list_sectors():
    """List all sectors, newest first."""
    try:
        return get_sector_service().get_all()
    except Exception as e:
        return handle_error(e)


@router.get("/{sector_id}", response_model=SectorResponse)
async def get_sector(sector_id: str):
    """
    Get a single sector.

    Raises:
        404: Sector not found
    """
    try:
        return get_sector_service().get_by_id(sector_id)
    except Exception as e:
        return handle_error(e)


@router.post(
    "",
    response_model=SectorResponse,
    status_code=201,
    dependencies=[Depends(require_admin)]
)
async def create_sector(data: SectorCreate):
    """
    Create a sector.

    Raises:
        409: Name already exists
    """
    try:
        return get_sector_service().create(data)
    except Exception as e:
        return handle_error(e)


@router.patch(
    "/{sector_id}",
    response_model=SectorResponse,
    dependencies=[Depends(require_admin)]
)
async def update_sector(sector_id: str, data: SectorUpdate):
    """
    Rename a sector or change its image.

    Raises:
        404: Sector not found
        409: New name already taken
    """
    try:
        return get_sector_service().update(sector_id, data)
    except Exception as e:
        return handle_error(e)


@router.get(
    "/{sector_id}/delete-check",
    response_model=DeleteCheck,
    dependencies=[Depends(require_admin)]
)
async def check_sector_delete(sector_id: str):
    """Whether the sector can be deleted, and which groups block it."""
    try:
        return get_dependency_guard_service().can_delete(EntityKind.SECTOR, sector_id)
    except Exception as e:
        return handle_error(e)


@router.delete("/{sector_id}", dependencies=[Depends(require_admin)])
async def delete_sector(sector_id: str):
    """
    Delete a sector that has no production groups.

    Raises:
        404: Sector not found
        409: Production groups still depend on it
    """
    try:
        get_sector_service().delete(sector_id)
        return {"success": True, "id": sector_id}
    except Exception as e:
        return handle_error(e)


# ===================
# IMAGES
# ===================

@router.post(
    "/{sector_id}/image",
    response_model=SectorImageResponse,
    status_code=201,
    dependencies=[Depends(require_admin)]
)
async def upload_sector_image(sector_id: str, file: UploadFile = File(...)):
    """
    Upload a sector image (JPEG, PNG or WebP).

    The returned URL is saved on the sector with a separate update.

    Raises:
        404: Sector not found
        422: Unsupported image type
    """
    try:
        contents = await file.read()
        return get_sector_service().upload_image(
            sector_id,
            contents,
            content_type=file.content_type or "",
            file_name=file.filename or "image",
        )
    except Exception as e:
        return handle_error(e)


@router.delete("/{sector_id}/image", dependencies=[Depends(require_admin)])
async def delete_sector_image(
    sector_id: str,
    url: Optional[str] = Query(None, description="Public URL of the image")
):
    """
    Remove an uploaded image; defaults to the sector's current image.

    Raises:
        404: Sector not found
        422: URL is not one of this sector's images
    """
    try:
        removed = get_sector_service().delete_image(sector_id, url)
        return {"success": True, "url": removed}
    except Exception as e:
        return handle_error(e)
