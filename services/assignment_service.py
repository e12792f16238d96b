"""
Product assignment service.

An assignment is the only record saying "this product is sold under this
group under this sector". The (sector, group, product) triple is unique, so
creating a link that already exists is a no-op rather than an error.
"""

from enum import Enum
from typing import Optional
import structlog

from postgrest.exceptions import APIError

from config import get_supabase_client, is_unique_violation
from models.catalog import (
    GroupWithProducts,
    ProductAssignmentResponse,
    ProductResponse,
)
from exceptions import DatabaseError, SectorNotFoundError
from utils.db_utils import is_uuid, select_one

logger = structlog.get_logger(__name__)


class LinkOutcome(str, Enum):
    """Result of one link attempt."""
    CREATED = "CREATED"
    DUPLICATE = "DUPLICATE"


class AssignmentService:
    """Product assignment business logic."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "product_assignments"

    # ===================
    # WRITE OPERATIONS
    # ===================

    def link(self, sector_id: str, production_group_id: str, product_id: str) -> LinkOutcome:
        """
        Link a product to a group under a sector.

        Returns:
            CREATED for a new link, DUPLICATE if the link already existed

        Raises:
            APIError: Any other database failure, e.g. a foreign key
                violation (23503) when a referenced record is missing
        """
        try:
            self.db.table(self.table).insert({
                "sector_id": sector_id,
                "production_group_id": production_group_id,
                "product_id": product_id,
            }).execute()
            return LinkOutcome.CREATED

        except APIError as e:
            if is_unique_violation(e):
                return LinkOutcome.DUPLICATE
            raise

    # ===================
    # READ OPERATIONS
    # ===================

    def find_for_pairs(
        self,
        pairs: list[tuple[str, str]],
        sector_id: Optional[str] = None
    ) -> set[tuple[str, str]]:
        """
        Find which (product_id, production_group_id) pairs are linked.

        One query covers all pairs; the exact pair match happens here.

        Args:
            pairs: (product_id, production_group_id) tuples
            sector_id: Also require the link to be under this sector

        Returns:
            Subset of pairs that have a matching assignment
        """
        # Malformed ids can't be linked and would fail the uuid columns
        pairs = [(p, g) for p, g in pairs if is_uuid(p) and is_uuid(g)]
        if not pairs or (sector_id and not is_uuid(sector_id)):
            return set()

        product_ids = list(dict.fromkeys(p for p, _ in pairs))
        group_ids = list(dict.fromkeys(g for _, g in pairs))

        try:
            query = (
                self.db.table(self.table)
                .select("product_id, production_group_id")
                .in_("product_id", product_ids)
                .in_("production_group_id", group_ids)
            )
            if sector_id:
                query = query.eq("sector_id", sector_id)
            result = query.execute()

        except Exception as e:
            logger.error("find_assignments_failed", pairs=len(pairs), error=str(e))
            raise DatabaseError("select", str(e))

        linked = {(row["product_id"], row["production_group_id"]) for row in result.data}
        return {pair for pair in pairs if pair in linked}

    def get_by_group(self, production_group_id: str) -> list[ProductAssignmentResponse]:
        """All assignments of one production group."""
        if not is_uuid(production_group_id):
            return []

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("production_group_id", production_group_id)
                .execute()
            )
            return [ProductAssignmentResponse(**row) for row in result.data]

        except Exception as e:
            logger.error("get_assignments_by_group_failed", group_id=production_group_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_catalog_for_sector(self, sector_id: str) -> list[GroupWithProducts]:
        """
        Groups of a sector, each with the products sold under it.

        Three queries regardless of catalog size: groups, assignments,
        products.

        Raises:
            SectorNotFoundError: If sector doesn't exist
        """
        logger.info("getting_sector_catalog", sector_id=sector_id)

        if not is_uuid(sector_id) or not select_one(self.db, "sectors", {"id": sector_id}):
            raise SectorNotFoundError(sector_id)

        try:
            groups = (
                self.db.table("production_groups")
                .select("id, name")
                .eq("sector_id", sector_id)
                .order("name")
                .execute()
            ).data

            assignments = (
                self.db.table(self.table)
                .select("production_group_id, product_id")
                .eq("sector_id", sector_id)
                .execute()
            ).data

            product_ids = list(dict.fromkeys(a["product_id"] for a in assignments))
            products = {}
            if product_ids:
                rows = (
                    self.db.table("products")
                    .select("*")
                    .in_("id", product_ids)
                    .order("name")
                    .execute()
                ).data
                products = {row["id"]: ProductResponse(**row) for row in rows}

        except Exception as e:
            logger.error("get_sector_catalog_failed", sector_id=sector_id, error=str(e))
            raise DatabaseError("select", str(e))

        by_group: dict[str, list[ProductResponse]] = {}
        for a in assignments:
            product = products.get(a["product_id"])
            if product:
                by_group.setdefault(a["production_group_id"], []).append(product)

        return [
            GroupWithProducts(
                id=g["id"],
                name=g["name"],
                products=sorted(by_group.get(g["id"], []), key=lambda p: p.name),
            )
            for g in groups
        ]


# Singleton instance for convenience
_assignment_service: Optional[AssignmentService] = None

def get_assignment_service() -> AssignmentService:
    """Get or create AssignmentService instance."""
    global _assignment_service
    if _assignment_service is None:
        _assignment_service = AssignmentService()
    return _assignment_service
