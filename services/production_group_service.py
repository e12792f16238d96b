"""
Production group service.

Groups belong to exactly one sector; the same group name may exist under
several sectors, so the natural key is (name, sector_id).
"""

from typing import Optional
import structlog

from config import get_supabase_client, is_foreign_key_violation, is_unique_violation
from models.catalog import (
    EntityKind,
    ProductionGroupCreate,
    ProductionGroupUpdate,
    ProductionGroupResponse,
)
from exceptions import (
    ProductionGroupNotFoundError,
    ProductionGroupExistsError,
    ProductionGroupMoveBlockedError,
    SectorNotFoundError,
    InvalidIdError,
    DatabaseError,
)
from services.dependency_guard_service import GROUP_MOVE_BLOCKED_ACTION, get_dependency_guard_service
from utils.db_utils import find_or_create, is_uuid, select_one

logger = structlog.get_logger(__name__)


class ProductionGroupService:
    """Production group business logic."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "production_groups"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self, sector_id: Optional[str] = None) -> list[ProductionGroupResponse]:
        """
        Get production groups sorted by name, each with its sector name.

        Args:
            sector_id: Only groups of this sector
        """
        logger.info("getting_production_groups", sector_id=sector_id)

        if sector_id and not is_uuid(sector_id):
            raise InvalidIdError("sector_id", sector_id)

        try:
            query = self.db.table(self.table).select("*")
            if sector_id:
                query = query.eq("sector_id", sector_id)
            result = query.order("name").execute()

            sector_ids = list({row["sector_id"] for row in result.data})
            sector_names = {}
            if sector_ids:
                sectors = (
                    self.db.table("sectors")
                    .select("id, name")
                    .in_("id", sector_ids)
                    .execute()
                )
                sector_names = {row["id"]: row["name"] for row in sectors.data}

            return [
                ProductionGroupResponse(**row, sector_name=sector_names.get(row["sector_id"]))
                for row in result.data
            ]

        except Exception as e:
            logger.error("get_production_groups_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, group_id: str) -> ProductionGroupResponse:
        """
        Get a single production group by ID.

        Raises:
            ProductionGroupNotFoundError: If group doesn't exist
        """
        if not is_uuid(group_id):
            raise ProductionGroupNotFoundError(group_id)

        try:
            row = select_one(self.db, self.table, {"id": group_id})
        except Exception as e:
            logger.error("get_production_group_failed", group_id=group_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not row:
            raise ProductionGroupNotFoundError(group_id)

        return ProductionGroupResponse(**row)

    def get_by_ids(self, group_ids: list[str]) -> dict[str, ProductionGroupResponse]:
        """Batch lookup; ids that don't exist are simply absent."""
        group_ids = [g for g in group_ids if is_uuid(g)]
        if not group_ids:
            return {}

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .in_("id", list(dict.fromkeys(group_ids)))
                .execute()
            )
            return {row["id"]: ProductionGroupResponse(**row) for row in result.data}

        except Exception as e:
            logger.error("get_production_groups_by_ids_failed", count=len(group_ids), error=str(e))
            raise DatabaseError("select", str(e))

    def exists_in_sector(self, name: str, sector_id: str) -> bool:
        """Check if a group name is already used inside a sector."""
        return select_one(self.db, self.table, {"name": name, "sector_id": sector_id}) is not None

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: ProductionGroupCreate) -> ProductionGroupResponse:
        """
        Create a production group under an existing sector.

        Raises:
            SectorNotFoundError: If the sector doesn't exist
            ProductionGroupExistsError: If the name is used in that sector
        """
        logger.info("creating_production_group", name=data.name, sector_id=data.sector_id)

        if not self._sector_exists(data.sector_id):
            raise SectorNotFoundError(data.sector_id)

        if self.exists_in_sector(data.name, data.sector_id):
            raise ProductionGroupExistsError(data.name, data.sector_id)

        try:
            result = (
                self.db.table(self.table)
                .insert({"name": data.name, "sector_id": data.sector_id})
                .execute()
            )
            group = ProductionGroupResponse(**result.data[0])

            logger.info("production_group_created", group_id=group.id, name=group.name)
            return group

        except Exception as e:
            # Lost a race with a concurrent create in the same sector
            if is_unique_violation(e):
                raise ProductionGroupExistsError(data.name, data.sector_id)
            logger.error("create_production_group_failed", name=data.name, error=str(e))
            raise DatabaseError("insert", str(e))

    def find_or_create(self, name: str, sector_id: str) -> tuple[ProductionGroupResponse, bool]:
        """
        Find a group by (name, sector) or create it.

        Returns:
            Tuple of (group, created)
        """
        row, created = find_or_create(
            self.db, self.table, {"name": name, "sector_id": sector_id}
        )
        if created:
            logger.debug("production_group_created", group_id=row["id"], name=name)
        return ProductionGroupResponse(**row), created

    def update(self, group_id: str, data: ProductionGroupUpdate) -> ProductionGroupResponse:
        """
        Rename a group or move it to another sector.

        Raises:
            ProductionGroupNotFoundError: If group doesn't exist
            SectorNotFoundError: If the new sector doesn't exist
            ProductionGroupExistsError: If the target (name, sector) is taken
            ProductionGroupMoveBlockedError: If products are assigned to the
                group and the sector changes
        """
        logger.info("updating_production_group", group_id=group_id)

        existing = self.get_by_id(group_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return existing

        new_name = update_data.get("name", existing.name)
        new_sector = update_data.get("sector_id", existing.sector_id)

        moving = new_sector != existing.sector_id
        if moving and not self._sector_exists(new_sector):
            raise SectorNotFoundError(new_sector)

        if (new_name, new_sector) != (existing.name, existing.sector_id):
            if self.exists_in_sector(new_name, new_sector):
                raise ProductionGroupExistsError(new_name, new_sector)

        if moving:
            self._ensure_can_move(group_id)

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", group_id)
                .execute()
            )
            logger.info("production_group_updated", group_id=group_id, fields=list(update_data.keys()))
            return ProductionGroupResponse(**result.data[0])

        except Exception as e:
            if is_unique_violation(e):
                raise ProductionGroupExistsError(new_name, new_sector)
            # An assignment created after the check pins the group's sector
            if moving and is_foreign_key_violation(e):
                logger.warning("production_group_move_raced_with_insert", group_id=group_id)
                self._ensure_can_move(group_id)
            logger.error("update_production_group_failed", group_id=group_id, error=str(e))
            raise DatabaseError("update", str(e))

    def delete(self, group_id: str) -> bool:
        """
        Delete a group no product assignment references.

        Raises:
            ProductionGroupNotFoundError: If group doesn't exist
            DeleteBlockedError: If products are still assigned to it
        """
        logger.info("deleting_production_group", group_id=group_id)

        guard = get_dependency_guard_service()
        guard.ensure_can_delete(EntityKind.PRODUCTION_GROUP, group_id)

        try:
            self.db.table(self.table).delete().eq("id", group_id).execute()

        except Exception as e:
            if is_foreign_key_violation(e):
                logger.warning("production_group_delete_raced_with_insert", group_id=group_id)
                guard.ensure_can_delete(EntityKind.PRODUCTION_GROUP, group_id)
            logger.error("delete_production_group_failed", group_id=group_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("production_group_deleted", group_id=group_id)
        return True

    # ===================
    # HELPERS
    # ===================

    def _sector_exists(self, sector_id: str) -> bool:
        return is_uuid(sector_id) and select_one(self.db, "sectors", {"id": sector_id}) is not None

    def _ensure_can_move(self, group_id: str) -> None:
        """Assignments pin a group to its sector; moving it would orphan them."""
        check = get_dependency_guard_service().can_delete(EntityKind.PRODUCTION_GROUP, group_id)
        if check.allowed:
            return

        logger.warning(
            "production_group_move_blocked",
            group_id=group_id,
            dependent_count=check.dependent_count
        )
        raise ProductionGroupMoveBlockedError(
            group_id=group_id,
            dependent_count=check.dependent_count,
            dependents=[d.model_dump() for d in check.dependents],
            action=GROUP_MOVE_BLOCKED_ACTION,
        )


# Singleton instance for convenience
_production_group_service: Optional[ProductionGroupService] = None

def get_production_group_service() -> ProductionGroupService:
    """Get or create ProductionGroupService instance."""
    global _production_group_service
    if _production_group_service is None:
        _production_group_service = ProductionGroupService()
    return _production_group_service
