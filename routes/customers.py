"""
Admin customer list routes.

Customers are sample requests shown as flat rows.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
import structlog

from models.request import CustomerFilter, CustomerListResponse
from services.request_service import get_request_service
from routes.dependencies import handle_error, require_admin

logger = structlog.get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    page: int = Query(1, ge=1, description="Page number"),
    search: Optional[str] = Query(None, description="Substring over contact, sector and product names"),
    sector_id: Optional[str] = Query(None, description="Sector id or 'all'"),
    production_group_id: Optional[str] = Query(None),
    province: Optional[str] = Query(None),
    district: Optional[str] = Query(None)
):
    """
    List customers, newest first.

    With search, every matching request is returned as one page.
    """
    try:
        filters = CustomerFilter(
            page=page,
            search=search or None,
            sector_id=sector_id,
            production_group_id=production_group_id,
            province=province,
            district=district,
        )
        return get_request_service().list_customers(filters)
    except Exception as e:
        return handle_error(e)


@router.delete("/{request_id}")
async def delete_customer(request_id: str):
    """
    Delete a customer request.

    Raises:
        404: Request not found
    """
    try:
        get_request_service().delete(request_id)
        return {"success": True, "id": request_id}
    except Exception as e:
        return handle_error(e)
