"""
Sector service for business logic operations.

Handles sector CRUD, guarded deletes, find-or-create for imports and the
sector image stored in the blob store.
"""

from typing import Optional
import time
import structlog

from config import get_supabase_client, is_foreign_key_violation, is_unique_violation
from integrations.blob_storage import BlobStore, get_blob_store
from models.catalog import (
    EntityKind,
    SectorCreate,
    SectorUpdate,
    SectorResponse,
    SectorImageResponse,
)
from exceptions import (
    AppError,
    SectorNotFoundError,
    SectorNameExistsError,
    InvalidImageTypeError,
    InvalidImageKeyError,
    DatabaseError,
)
from services.dependency_guard_service import get_dependency_guard_service
from utils.db_utils import find_or_create, is_uuid, select_one
from utils.text_utils import sanitize_file_name

logger = structlog.get_logger(__name__)


ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]


class SectorService:
    """
    Sector business logic.

    Sectors are the root of the catalog hierarchy.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "sectors"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self) -> list[SectorResponse]:
        """Get all sectors, newest first."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
            return [SectorResponse(**row) for row in result.data]

        except Exception as e:
            logger.error("get_sectors_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, sector_id: str) -> SectorResponse:
        """
        Get a single sector by ID.

        Raises:
            SectorNotFoundError: If sector doesn't exist
        """
        logger.debug("getting_sector", sector_id=sector_id)

        if not is_uuid(sector_id):
            raise SectorNotFoundError(sector_id)

        try:
            row = select_one(self.db, self.table, {"id": sector_id})
        except Exception as e:
            logger.error("get_sector_failed", sector_id=sector_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not row:
            raise SectorNotFoundError(sector_id)

        return SectorResponse(**row)

    def get_by_name(self, name: str) -> Optional[SectorResponse]:
        """Get a sector by its exact name, or None."""
        try:
            row = select_one(self.db, self.table, {"name": name})
            return SectorResponse(**row) if row else None

        except Exception as e:
            logger.error("get_sector_by_name_failed", name=name, error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: SectorCreate) -> SectorResponse:
        """
        Create a new sector.

        Raises:
            SectorNameExistsError: If the name is taken
        """
        logger.info("creating_sector", name=data.name)

        if self.get_by_name(data.name):
            raise SectorNameExistsError(data.name)

        try:
            result = (
                self.db.table(self.table)
                .insert({"name": data.name, "image_url": data.image_url})
                .execute()
            )
            sector = SectorResponse(**result.data[0])

            logger.info("sector_created", sector_id=sector.id, name=sector.name)
            return sector

        except Exception as e:
            # Lost a race with a concurrent create of the same name
            if is_unique_violation(e):
                raise SectorNameExistsError(data.name)
            logger.error("create_sector_failed", name=data.name, error=str(e))
            raise DatabaseError("insert", str(e))

    def find_or_create(self, name: str) -> tuple[SectorResponse, bool]:
        """
        Find a sector by name or create it.

        Returns:
            Tuple of (sector, created)
        """
        row, created = find_or_create(self.db, self.table, {"name": name})
        if created:
            logger.debug("sector_created", sector_id=row["id"], name=name)
        return SectorResponse(**row), created

    def update(self, sector_id: str, data: SectorUpdate) -> SectorResponse:
        """
        Update name and/or image of a sector.

        Raises:
            SectorNotFoundError: If sector doesn't exist
            SectorNameExistsError: If the new name is taken
        """
        logger.info("updating_sector", sector_id=sector_id)

        existing = self.get_by_id(sector_id)

        if data.name and data.name != existing.name:
            if self.get_by_name(data.name):
                raise SectorNameExistsError(data.name)

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name") is None:
            update_data.pop("name", None)
        if not update_data:
            return existing

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", sector_id)
                .execute()
            )
            logger.info("sector_updated", sector_id=sector_id, fields=list(update_data.keys()))
            return SectorResponse(**result.data[0])

        except Exception as e:
            if is_unique_violation(e):
                raise SectorNameExistsError(update_data.get("name", existing.name))
            logger.error("update_sector_failed", sector_id=sector_id, error=str(e))
            raise DatabaseError("update", str(e))

    def delete(self, sector_id: str) -> bool:
        """
        Delete a sector that no production group references.

        Raises:
            SectorNotFoundError: If sector doesn't exist
            DeleteBlockedError: If production groups still reference it
        """
        logger.info("deleting_sector", sector_id=sector_id)

        guard = get_dependency_guard_service()
        guard.ensure_can_delete(EntityKind.SECTOR, sector_id)

        try:
            self.db.table(self.table).delete().eq("id", sector_id).execute()

        except Exception as e:
            # A group created after the check trips the foreign key
            if is_foreign_key_violation(e):
                logger.warning("sector_delete_raced_with_insert", sector_id=sector_id)
                guard.ensure_can_delete(EntityKind.SECTOR, sector_id)
            logger.error("delete_sector_failed", sector_id=sector_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("sector_deleted", sector_id=sector_id)
        return True

    # ===================
    # IMAGES
    # ===================

    def upload_image(
        self,
        sector_id: str,
        data: bytes,
        content_type: str,
        file_name: str,
        blob_store: Optional[BlobStore] = None
    ) -> SectorImageResponse:
        """
        Store a sector image under the sector's key namespace.

        Raises:
            InvalidImageTypeError: If content type is not JPEG/PNG/WebP
            SectorNotFoundError: If sector doesn't exist
        """
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise InvalidImageTypeError(content_type, ALLOWED_IMAGE_TYPES)

        self.get_by_id(sector_id)

        store = blob_store or get_blob_store()
        key = f"{image_key_prefix(sector_id)}{int(time.time() * 1000)}-{sanitize_file_name(file_name)}"

        try:
            url = store.put(data, content_type, key)
        except AppError:
            raise
        except Exception as e:
            logger.error("sector_image_upload_failed", sector_id=sector_id, error=str(e))
            raise DatabaseError("upload", str(e))

        logger.info("sector_image_uploaded", sector_id=sector_id, key=key, size=len(data))
        return SectorImageResponse(url=url, key=key)

    def delete_image(
        self,
        sector_id: str,
        url: Optional[str] = None,
        blob_store: Optional[BlobStore] = None
    ) -> Optional[str]:
        """
        Remove an uploaded image of a sector.

        Args:
            sector_id: Owning sector
            url: Public URL of the image; defaults to the sector's current image

        Returns:
            URL of the removed image, or None when there was nothing to remove

        Raises:
            SectorNotFoundError: If sector doesn't exist
            InvalidImageKeyError: If the URL is outside the sector's key namespace
        """
        sector = self.get_by_id(sector_id)
        url = url or sector.image_url
        if not url:
            return None

        store = blob_store or get_blob_store()
        key = store.key_from_url(url)
        if not key.startswith(image_key_prefix(sector_id)) or ".." in key.split("/"):
            logger.warning("sector_image_key_rejected", sector_id=sector_id, key=key)
            raise InvalidImageKeyError(sector_id, key)

        store.delete(key)
        logger.info("sector_image_deleted", sector_id=sector_id, key=key)
        return url


def image_key_prefix(sector_id: str) -> str:
    """Key namespace of a sector's images: 'sectors/{id}/'."""
    return f"sectors/{sector_id}/"


# Singleton instance for convenience
_sector_service: Optional[SectorService] = None

def get_sector_service() -> SectorService:
    """Get or create SectorService instance."""
    global _sector_service
    if _sector_service is None:
        _sector_service = SectorService()
    return _sector_service
