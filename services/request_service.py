"""
Sample request service.

Submission:
    1. Required fields: company name, e-mail, phone, at least one product
    2. Every (product, production group) pair must match a product
       assignment, and the sector too when one was chosen
    3. Product and group names are looked up in one batch each and frozen
       into the request as a snapshot
    4. The request starts as "pending" with one history entry

Later catalog renames or deletes never touch a stored snapshot. After
creation only status and status history change, and history is append-only.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.base import Pagination
from models.request import (
    CREATED_NOTE,
    REQUEST_STATUSES,
    CustomerFilter,
    CustomerListResponse,
    CustomerRow,
    ProductSnapshot,
    RequestResponse,
    RequestStatus,
    RequestSubmit,
)
from exceptions import (
    AssignmentMismatchError,
    DatabaseError,
    InvalidIdError,
    InvalidRequestStatusError,
    MissingFieldError,
    ProductNotFoundError,
    ProductionGroupNotFoundError,
    RequestNotFoundError,
)
from services.assignment_service import get_assignment_service
from services.product_service import get_product_service
from services.production_group_service import get_production_group_service
from utils.db_utils import is_uuid, select_one
from utils.text_utils import matches_search

logger = structlog.get_logger(__name__)


ALL_SECTORS = "all"


class RequestService:
    """
    Sample request business logic.

    Handles submission, status changes and the admin customer list.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "requests"

    # ===================
    # SUBMISSION
    # ===================

    def submit(self, data: RequestSubmit) -> RequestResponse:
        """
        Validate a submission and store it with a name snapshot.

        Raises:
            MissingFieldError: Required field empty
            InvalidIdError: sector_id is not a valid id
            AssignmentMismatchError: A pair is not sold together; nothing
                is written
            ProductNotFoundError / ProductionGroupNotFoundError: An id does
                not resolve
        """
        logger.info(
            "submitting_request",
            company_name=data.company_name,
            sector_id=data.sector_id,
            products=len(data.products)
        )

        self._check_required(data)
        sector_id = data.sector_id or None
        if sector_id and not is_uuid(sector_id):
            raise InvalidIdError("sector_id", sector_id)

        pairs = [(p.product_id, p.production_group_id) for p in data.products]
        linked = get_assignment_service().find_for_pairs(pairs, sector_id=sector_id)
        for product_id, group_id in pairs:
            if (product_id, group_id) not in linked:
                logger.warning(
                    "request_assignment_mismatch",
                    product_id=product_id,
                    production_group_id=group_id,
                    sector_id=sector_id
                )
                raise AssignmentMismatchError(product_id, group_id, sector_id)

        snapshot = self._build_snapshot(pairs)
        production_group_ids = list(dict.fromkeys(group_id for _, group_id in pairs))
        now = datetime.now(timezone.utc)

        insert_data = {
            "company_name": data.company_name,
            "first_name": data.first_name,
            "last_name": data.last_name,
            "email": data.email,
            "phone": data.phone,
            "address": data.address,
            "province": data.province,
            "district": data.district,
            "sector_id": sector_id,
            "production_group_ids": production_group_ids,
            "products": [s.model_dump() for s in snapshot],
            "status": RequestStatus.PENDING.value,
            "status_history": [{
                "status": RequestStatus.PENDING.value,
                "note": CREATED_NOTE,
                "timestamp": now.isoformat(),
            }],
        }

        try:
            result = self.db.table(self.table).insert(insert_data).execute()
            request = RequestResponse(**result.data[0])

        except Exception as e:
            logger.error("create_request_failed", company_name=data.company_name, error=str(e))
            raise DatabaseError("insert", str(e))

        logger.info("request_created", request_id=request.id, products=len(snapshot))
        return request

    def _check_required(self, data: RequestSubmit) -> None:
        for field_name in ("company_name", "email", "phone"):
            if not getattr(data, field_name):
                raise MissingFieldError(field_name)
        if not data.products:
            raise MissingFieldError("products")

    def _build_snapshot(self, pairs: list[tuple[str, str]]) -> list[ProductSnapshot]:
        products = get_product_service().get_by_ids([p for p, _ in pairs])
        groups = get_production_group_service().get_by_ids([g for _, g in pairs])

        snapshot = []
        for product_id, group_id in pairs:
            product = products.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            group = groups.get(group_id)
            if group is None:
                raise ProductionGroupNotFoundError(group_id)
            snapshot.append(ProductSnapshot(
                product_id=product.id,
                product_name=product.name,
                production_group_id=group.id,
                production_group_name=group.name,
            ))
        return snapshot

    # ===================
    # READ OPERATIONS
    # ===================

    def get_by_id(self, request_id: str) -> RequestResponse:
        """
        Get a single request.

        Raises:
            RequestNotFoundError: If request doesn't exist
        """
        if not is_uuid(request_id):
            raise RequestNotFoundError(request_id)

        try:
            row = select_one(self.db, self.table, {"id": request_id})
        except Exception as e:
            logger.error("get_request_failed", request_id=request_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not row:
            raise RequestNotFoundError(request_id)

        return RequestResponse(**row)

    def get_sector_name(self, sector_id: Optional[str]) -> Optional[str]:
        """Current name of a sector, or None for 'other' / deleted sectors."""
        if not is_uuid(sector_id):
            return None
        row = select_one(self.db, "sectors", {"id": sector_id})
        return row["name"] if row else None

    # ===================
    # STATUS
    # ===================

    def set_status(
        self,
        request_id: str,
        new_status: str,
        note: Optional[str] = None
    ) -> RequestResponse:
        """
        Set a request's status and append one history entry.

        Any known status may follow any other, including re-opening
        completed or cancelled requests. The append happens in a single
        database statement, so concurrent changes never drop entries.

        Raises:
            InvalidRequestStatusError: Unknown status
            RequestNotFoundError: If request doesn't exist
        """
        if new_status not in REQUEST_STATUSES:
            raise InvalidRequestStatusError(new_status, REQUEST_STATUSES)
        if not is_uuid(request_id):
            raise RequestNotFoundError(request_id)

        logger.info("setting_request_status", request_id=request_id, status=new_status)

        try:
            result = self.db.rpc("append_request_status", {
                "p_request_id": request_id,
                "p_status": new_status,
                "p_note": note or "",
                "p_timestamp": datetime.now(timezone.utc).isoformat(),
            }).execute()

        except Exception as e:
            logger.error("set_request_status_failed", request_id=request_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise RequestNotFoundError(request_id)

        request = RequestResponse(**result.data[0])
        logger.info(
            "request_status_set",
            request_id=request_id,
            status=new_status,
            history_length=len(request.status_history)
        )
        return request

    # ===================
    # DELETE
    # ===================

    def delete(self, request_id: str) -> bool:
        """
        Remove a customer request.

        Raises:
            RequestNotFoundError: If request doesn't exist
        """
        logger.info("deleting_request", request_id=request_id)

        if not is_uuid(request_id):
            raise RequestNotFoundError(request_id)

        try:
            result = self.db.table(self.table).delete().eq("id", request_id).execute()
        except Exception as e:
            logger.error("delete_request_failed", request_id=request_id, error=str(e))
            raise DatabaseError("delete", str(e))

        if not result.data:
            raise RequestNotFoundError(request_id)

        logger.info("request_deleted", request_id=request_id)
        return True

    # ===================
    # ADMIN CUSTOMER LIST
    # ===================

    def list_customers(self, filters: CustomerFilter) -> CustomerListResponse:
        """
        Requests as customer rows, newest first.

        Without search: one page of settings.customers_page_size rows.
        With search: every request matching the filters is scanned and
        matched by substring on contact data, sector name and the snapshot
        product / group names; the result is a single page.
        """
        limit = settings.customers_page_size
        self._check_filter_ids(filters)

        logger.info(
            "listing_customers",
            page=filters.page,
            search=filters.search,
            sector_id=filters.sector_id,
            production_group_id=filters.production_group_id
        )

        try:
            query = self.db.table(self.table).select("*", count="exact")

            if filters.sector_id and filters.sector_id != ALL_SECTORS:
                query = query.eq("sector_id", filters.sector_id)
            if filters.production_group_id:
                query = query.contains("production_group_ids", [filters.production_group_id])
            if filters.province:
                query = query.eq("province", filters.province)
            if filters.district:
                query = query.eq("district", filters.district)

            query = query.order("created_at", desc=True)

            if not filters.search:
                offset = (filters.page - 1) * limit
                query = query.range(offset, offset + limit - 1)

            result = query.execute()

        except Exception as e:
            logger.error("list_customers_failed", error=str(e))
            raise DatabaseError("select", str(e))

        requests = [RequestResponse(**row) for row in result.data]
        sector_names = self._sector_names({r.sector_id for r in requests if r.sector_id})
        rows = [self._to_customer_row(r, sector_names.get(r.sector_id, "")) for r in requests]

        if filters.search:
            rows = [row for row in rows if self._row_matches(row, filters.search)]
            return CustomerListResponse(
                customers=rows,
                pagination=Pagination(total=len(rows), page=1, limit=len(rows), total_pages=1),
            )

        total = result.count if result.count is not None else len(rows)
        return CustomerListResponse(
            customers=rows,
            pagination=Pagination.create(total=total, page=filters.page, limit=limit),
        )

    @staticmethod
    def _check_filter_ids(filters: CustomerFilter) -> None:
        if filters.sector_id and filters.sector_id != ALL_SECTORS and not is_uuid(filters.sector_id):
            raise InvalidIdError("sector_id", filters.sector_id)
        if filters.production_group_id and not is_uuid(filters.production_group_id):
            raise InvalidIdError("production_group_id", filters.production_group_id)

    def _sector_names(self, sector_ids: set[str]) -> dict[str, str]:
        if not sector_ids:
            return {}
        result = (
            self.db.table("sectors")
            .select("id, name")
            .in_("id", list(sector_ids))
            .execute()
        )
        return {row["id"]: row["name"] for row in result.data}

    @staticmethod
    def _to_customer_row(request: RequestResponse, sector_name: str) -> CustomerRow:
        group_names = dict.fromkeys(p.production_group_name for p in request.products)
        return CustomerRow(
            id=request.id,
            short_id=request.id[-6:],
            created_at=request.created_at,
            company_name=request.company_name,
            first_name=request.first_name,
            last_name=request.last_name,
            email=request.email,
            phone=request.phone,
            province=request.province or "",
            district=request.district or "",
            address=request.address,
            sector=sector_name,
            production_groups=", ".join(group_names),
            products=", ".join(p.product_name for p in request.products),
            status=request.status,
        )

    @staticmethod
    def _row_matches(row: CustomerRow, search: str) -> bool:
        return matches_search(
            [
                row.company_name,
                row.first_name,
                row.last_name,
                row.email,
                row.phone,
                row.province,
                row.district,
                row.address,
                row.sector,
                row.products,
                row.production_groups,
            ],
            search,
        )


# Singleton instance for convenience
_request_service: Optional[RequestService] = None

def get_request_service() -> RequestService:
    """Get or create RequestService instance."""
    global _request_service
    if _request_service is None:
        _request_service = RequestService()
    return _request_service
