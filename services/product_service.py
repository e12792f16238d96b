"""
Product service for business logic operations.

Products are global: a name is unique catalog-wide and a product is tied to
groups only through product assignments.
"""

from typing import Optional
import structlog

from config import get_supabase_client, is_unique_violation
from models.catalog import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)
from exceptions import (
    ProductNotFoundError,
    ProductNameExistsError,
    DatabaseError
)
from utils.db_utils import find_or_create, is_uuid, select_one

logger = structlog.get_logger(__name__)


class ProductService:
    """
    Product business logic.

    Handles CRUD operations for products.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "products"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self) -> list[ProductResponse]:
        """Get all products ordered by name."""
        try:
            result = self.db.table(self.table).select("*").order("name").execute()
            return [ProductResponse(**row) for row in result.data]

        except Exception as e:
            logger.error("get_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, product_id: str) -> ProductResponse:
        """
        Get a single product by ID.

        Raises:
            ProductNotFoundError: If product doesn't exist
        """
        logger.debug("getting_product", product_id=product_id)

        if not is_uuid(product_id):
            raise ProductNotFoundError(product_id)

        try:
            row = select_one(self.db, self.table, {"id": product_id})
        except Exception as e:
            logger.error("get_product_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not row:
            raise ProductNotFoundError(product_id)

        return ProductResponse(**row)

    def get_by_name(self, name: str) -> Optional[ProductResponse]:
        """
        Get a product by exact name.

        Returns:
            ProductResponse or None if not found
        """
        try:
            row = select_one(self.db, self.table, {"name": name})
            return ProductResponse(**row) if row else None

        except Exception as e:
            logger.error("get_product_by_name_failed", name=name, error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_ids(self, product_ids: list[str]) -> dict[str, ProductResponse]:
        """
        Get multiple products in one query.

        Returns:
            Dict of id → product (ids not found are absent)
        """
        # Malformed ids can't match a row
        product_ids = [p for p in product_ids if is_uuid(p)]
        if not product_ids:
            return {}

        logger.debug("getting_products_by_ids", count=len(product_ids))

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .in_("id", list(dict.fromkeys(product_ids)))
                .execute()
            )
            return {row["id"]: ProductResponse(**row) for row in result.data}

        except Exception as e:
            logger.error("get_products_by_ids_failed", count=len(product_ids), error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: ProductCreate) -> ProductResponse:
        """
        Create a new product.

        Raises:
            ProductNameExistsError: If name already exists
        """
        logger.info("creating_product", name=data.name)

        if self.get_by_name(data.name):
            raise ProductNameExistsError(data.name)

        try:
            result = (
                self.db.table(self.table)
                .insert({"name": data.name, "image_url": data.image_url})
                .execute()
            )
            product = ProductResponse(**result.data[0])

            logger.info("product_created", product_id=product.id, name=product.name)
            return product

        except Exception as e:
            # Lost a race with a concurrent create of the same name
            if is_unique_violation(e):
                raise ProductNameExistsError(data.name)
            logger.error("create_product_failed", name=data.name, error=str(e))
            raise DatabaseError("insert", str(e))

    def find_or_create(self, name: str) -> tuple[ProductResponse, bool]:
        """
        Find a product by name or create it.

        Returns:
            Tuple of (product, created)
        """
        row, created = find_or_create(self.db, self.table, {"name": name})
        if created:
            logger.debug("product_created", product_id=row["id"], name=name)
        return ProductResponse(**row), created

    def update(self, product_id: str, data: ProductUpdate) -> ProductResponse:
        """
        Update an existing product.

        Renaming never touches requests already submitted: they keep the
        name captured in their snapshot.

        Raises:
            ProductNotFoundError: If product doesn't exist
            ProductNameExistsError: If new name already exists
        """
        logger.info("updating_product", product_id=product_id)

        existing = self.get_by_id(product_id)

        if data.name and data.name != existing.name:
            if self.get_by_name(data.name):
                raise ProductNameExistsError(data.name)

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name") is None:
            update_data.pop("name", None)
        if not update_data:
            return existing

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", product_id)
                .execute()
            )
            logger.info("product_updated", product_id=product_id, fields=list(update_data.keys()))
            return ProductResponse(**result.data[0])

        except Exception as e:
            if is_unique_violation(e):
                raise ProductNameExistsError(update_data.get("name", existing.name))
            logger.error("update_product_failed", product_id=product_id, error=str(e))
            raise DatabaseError("update", str(e))

    # ===================
    # UTILITY METHODS
    # ===================

    def count(self) -> int:
        """Count total products."""
        try:
            result = self.db.table(self.table).select("id", count="exact").execute()
            return result.count or 0
        except Exception as e:
            logger.error("count_products_failed", error=str(e))
            raise DatabaseError("count", str(e))


# Singleton instance for convenience
_product_service: Optional[ProductService] = None

def get_product_service() -> ProductService:
    """Get or create ProductService instance."""
    global _product_service
    if _product_service is None:
        _product_service = ProductService()
    return _product_service
