"""
Dependency guard for destructive catalog deletes.

Before a sector or production group is deleted, counts the records that
still reference it and lists them by name so the admin can see exactly what
blocks the delete. The guard never writes.

The database repeats the same rule with ON DELETE RESTRICT foreign keys,
which catches dependents created between the check and the delete.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.catalog import EntityKind, DeleteCheck, DependentSummary
from exceptions import (
    AppError,
    DeleteBlockedError,
    SectorNotFoundError,
    ProductionGroupNotFoundError,
    DatabaseError,
)
from utils.db_utils import is_uuid, select_one

logger = structlog.get_logger(__name__)


SECTOR_BLOCKED_ACTION = "Delete the production groups of this sector first."
GROUP_BLOCKED_ACTION = "Remove the product assignments of this group first."
GROUP_MOVE_BLOCKED_ACTION = "Remove the product assignments of this group before moving it to another sector."


class DependencyGuardService:
    """
    Read-only dependency checks.

    Sector      ← production_groups.sector_id
    Group       ← product_assignments.production_group_id
    """

    def __init__(self):
        self.db = get_supabase_client()

    def can_delete(self, entity_kind: EntityKind, entity_id: str) -> DeleteCheck:
        """
        Check whether a record can be deleted.

        Args:
            entity_kind: SECTOR or PRODUCTION_GROUP
            entity_id: Record UUID

        Returns:
            DeleteCheck with the dependent count and names

        Raises:
            SectorNotFoundError / ProductionGroupNotFoundError: Unknown id
        """
        try:
            if entity_kind == EntityKind.SECTOR:
                check = self._check_sector(entity_id)
            else:
                check = self._check_group(entity_id)
        except AppError:
            raise
        except Exception as e:
            logger.error(
                "dependency_check_failed",
                entity_kind=entity_kind.value,
                entity_id=entity_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

        logger.info(
            "dependency_check",
            entity_kind=entity_kind.value,
            entity_id=entity_id,
            allowed=check.allowed,
            dependent_count=check.dependent_count
        )
        return check

    def ensure_can_delete(self, entity_kind: EntityKind, entity_id: str) -> DeleteCheck:
        """
        Like can_delete, but raises when dependents exist.

        Raises:
            DeleteBlockedError: If any record still depends on the target
        """
        check = self.can_delete(entity_kind, entity_id)
        if not check.allowed:
            logger.warning(
                "delete_blocked",
                entity_kind=entity_kind.value,
                entity_id=entity_id,
                dependent_count=check.dependent_count
            )
            raise DeleteBlockedError(
                entity_kind=entity_kind.value,
                entity_id=entity_id,
                message=check.message,
                dependent_count=check.dependent_count,
                dependents=[d.model_dump() for d in check.dependents],
                action=check.action,
            )
        return check

    # ===================
    # PER-KIND CHECKS
    # ===================

    def _check_sector(self, sector_id: str) -> DeleteCheck:
        if not is_uuid(sector_id) or not select_one(self.db, "sectors", {"id": sector_id}):
            raise SectorNotFoundError(sector_id)

        result = (
            self.db.table("production_groups")
            .select("id, name", count="exact")
            .eq("sector_id", sector_id)
            .order("name")
            .execute()
        )
        dependents = [DependentSummary(id=row["id"], name=row["name"]) for row in result.data]
        count = result.count if result.count is not None else len(dependents)

        if count == 0:
            return DeleteCheck(
                entity_kind=EntityKind.SECTOR,
                id=sector_id,
                allowed=True,
                dependent_count=0,
            )

        noun = "production group depends" if count == 1 else "production groups depend"
        return DeleteCheck(
            entity_kind=EntityKind.SECTOR,
            id=sector_id,
            allowed=False,
            dependent_count=count,
            dependents=dependents,
            message=f"{count} {noun} on this sector",
            action=SECTOR_BLOCKED_ACTION,
        )

    def _check_group(self, group_id: str) -> DeleteCheck:
        if not is_uuid(group_id) or not select_one(self.db, "production_groups", {"id": group_id}):
            raise ProductionGroupNotFoundError(group_id)

        result = (
            self.db.table("product_assignments")
            .select("product_id", count="exact")
            .eq("production_group_id", group_id)
            .execute()
        )
        count = result.count if result.count is not None else len(result.data)

        if count == 0:
            return DeleteCheck(
                entity_kind=EntityKind.PRODUCTION_GROUP,
                id=group_id,
                allowed=True,
                dependent_count=0,
            )

        # One batch lookup for the product names
        product_ids = list(dict.fromkeys(row["product_id"] for row in result.data))
        products = (
            self.db.table("products")
            .select("id, name")
            .in_("id", product_ids)
            .order("name")
            .execute()
        )
        dependents = [DependentSummary(id=row["id"], name=row["name"]) for row in products.data]

        noun = "product is assigned" if count == 1 else "products are assigned"
        return DeleteCheck(
            entity_kind=EntityKind.PRODUCTION_GROUP,
            id=group_id,
            allowed=False,
            dependent_count=count,
            dependents=dependents,
            message=f"{count} {noun} to this group",
            action=GROUP_BLOCKED_ACTION,
        )


# Singleton instance for convenience
_dependency_guard_service: Optional[DependencyGuardService] = None

def get_dependency_guard_service() -> DependencyGuardService:
    """Get or create DependencyGuardService instance."""
    global _dependency_guard_service
    if _dependency_guard_service is None:
        _dependency_guard_service = DependencyGuardService()
    return _dependency_guard_service
