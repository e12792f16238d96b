"""
Production group API routes.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
import structlog

from models.catalog import (
    DeleteCheck,
    EntityKind,
    ProductionGroupCreate,
    ProductionGroupResponse,
    ProductionGroupUpdate,
)
from services.production_group_service import get_production_group_service
from services.dependency_guard_service import get_dependency_guard_service
from routes.dependencies import handle_error, require_admin

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=list[ProductionGroupResponse])
async def list_production_groups(
    sector_id: Optional[str] = Query(None, description="Only groups of this sector")
):
    """List production groups sorted by name, each with its sector name."""
    try:
        return get_production_group_service().get_all(sector_id=sector_id)
    except Exception as e:
        return handle_error(e)


@router.get("/{group_id}", response_model=ProductionGroupResponse)
async def get_production_group(group_id: str):
    """
    Get a single production group.

    Raises:
        404: Group not found
    """
    try:
        return get_production_group_service().get_by_id(group_id)
    except Exception as e:
        return handle_error(e)


@router.post(
    "",
    response_model=ProductionGroupResponse,
    status_code=201,
    dependencies=[Depends(require_admin)]
)
async def create_production_group(data: ProductionGroupCreate):
    """
    Create a production group under a sector.

    Raises:
        404: Sector not found
        409: Name already used in this sector
    """
    try:
        return get_production_group_service().create(data)
    except Exception as e:
        return handle_error(e)


@router.patch(
    "/{group_id}",
    response_model=ProductionGroupResponse,
    dependencies=[Depends(require_admin)]
)
async def update_production_group(group_id: str, data: ProductionGroupUpdate):
    try:
        return get_production_group_service().update(group_id, data)
    except Exception as e:
        return handle_error(e)


@router.get(
    "/{group_id}/delete-check",
    response_model=DeleteCheck,
    dependencies=[Depends(require_admin)]
)
async def check_production_group_delete(group_id: str):
    """Whether the group can be deleted, and which products block it."""
    try:
        return get_dependency_guard_service().can_delete(EntityKind.PRODUCTION_GROUP, group_id)
    except Exception as e:
        return handle_error(e)


@router.delete("/{group_id}", dependencies=[Depends(require_admin)])
async def delete_production_group(group_id: str):
    """
    Delete a production group with no assigned products.

    Raises:
        404: Group not found
        409: Products are still assigned to it
    """
    try:
        get_production_group_service().delete(group_id)
        return {"success": True, "id": group_id}
    except Exception as e:
        return handle_error(e)
