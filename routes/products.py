"""
Product API routes.

Products are global; they reach a sector only through assignments, which
the catalog import creates.
"""

from fastapi import APIRouter, Depends
import structlog

from models.catalog import ProductCreate, ProductResponse, ProductUpdate
from services.product_service import get_product_service
from routes.dependencies import handle_error, require_admin

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=list[ProductResponse])
async def list_products():
    """List all products by name."""
    try:
        return get_product_service().get_all()
    except Exception as e:
        return handle_error(e)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str):
    """
    Get a single product by ID.

    Raises:
        404: Product not found
    """
    try:
        return get_product_service().get_by_id(product_id)
    except Exception as e:
        return handle_error(e)


@router.post(
    "",
    response_model=ProductResponse,
    status_code=201,
    dependencies=[Depends(require_admin)]
)
async def create_product(data: ProductCreate):
    """
    Create a new product.

    Raises:
        409: Name already exists
    """
    try:
        return get_product_service().create(data)
    except Exception as e:
        return handle_error(e)


@router.patch(
    "/{product_id}",
    response_model=ProductResponse,
    dependencies=[Depends(require_admin)]
)
async def update_product(product_id: str, data: ProductUpdate):
    """
    Update a product.

    Stored requests keep the name they were submitted with.

    Raises:
        404: Product not found
        409: New name already taken
    """
    try:
        return get_product_service().update(product_id, data)
    except Exception as e:
        return handle_error(e)
