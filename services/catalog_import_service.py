"""
Catalog import (reconciliation) service.

Reconciles an external sector / production group / product table into the
catalog:

    1. Normalize: trim cells, set aside rows with a blank cell
    2. Deduplicate: sectors by name, groups by (sector, name), products by
       name (products are global)
    3. Dry run stops here and reports unique counts and samples
    4. Real run materializes in strict order: sectors → groups → products →
       one assignment per row, each step find-or-create
    5. An import log records every real run

A run is not atomic. Every step is idempotent, so re-running after a crash
converges to the same catalog and re-importing the same source inserts
nothing.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union
import structlog

from postgrest.exceptions import APIError

from config import get_supabase_client, settings, is_foreign_key_violation
from models.catalog_import import (
    EntityCounts,
    ImportLogResponse,
    ImportPreview,
    ImportResult,
    ImportSamples,
    SkippedRowInfo,
)
from exceptions import AppError, DatabaseError
from integrations.google_sheets import GoogleSheetsClient, read_catalog_rows
from parsers.catalog_parser import CatalogParseResult, CatalogRow, normalize_rows
from services.sector_service import get_sector_service
from services.production_group_service import get_production_group_service
from services.product_service import get_product_service
from services.assignment_service import LinkOutcome, get_assignment_service
from utils.db_utils import batched

logger = structlog.get_logger(__name__)


SOURCE_GOOGLE_SHEET = "google-spreadsheet"
SOURCE_FILE_UPLOAD = "file-upload"
SOURCE_INLINE = "inline"

SAMPLE_SIZE = 5


@dataclass
class ReconciliationPlan:
    """Unique entities of a source, in order of first appearance."""
    sectors: list[str] = field(default_factory=list)
    groups: list[tuple[str, str]] = field(default_factory=list)  # (sector, group)
    products: list[str] = field(default_factory=list)
    rows: list[CatalogRow] = field(default_factory=list)


def plan_reconciliation(rows: list[CatalogRow]) -> ReconciliationPlan:
    """
    Deduplicate rows into unique sectors, groups and products.

    The same group name under two sectors yields two groups.
    """
    sectors = dict.fromkeys(row.sector for row in rows)
    groups = dict.fromkeys((row.sector, row.group) for row in rows)
    products = dict.fromkeys(row.product for row in rows)

    return ReconciliationPlan(
        sectors=list(sectors),
        groups=list(groups),
        products=list(products),
        rows=rows,
    )


class CatalogImportService:
    """
    Catalog reconciliation.

    Uses the catalog services for every write so find-or-create semantics
    are shared with admin CRUD.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.log_table = "import_logs"

    # ===================
    # ENTRY POINTS
    # ===================

    def import_from_sheet(
        self,
        dry_run: bool = False,
        client: Optional[GoogleSheetsClient] = None
    ) -> Union[ImportPreview, ImportResult]:
        """
        Import the catalog range of the configured spreadsheet.

        Raises:
            ImportSourceError: If the sheet can't be read (nothing is written)
        """
        raw_rows = read_catalog_rows(client)
        parsed = normalize_rows(raw_rows, first_row_number=2)
        return self.run_import(parsed, source=SOURCE_GOOGLE_SHEET, dry_run=dry_run)

    def run_import(
        self,
        parsed: CatalogParseResult,
        source: str,
        dry_run: bool = False
    ) -> Union[ImportPreview, ImportResult]:
        """
        Preview or apply a parsed source.

        Args:
            parsed: Normalized rows plus skipped rows
            source: Source label stored in the import log
            dry_run: Compute counts only, write nothing
        """
        logger.info(
            "import_started",
            source=source,
            dry_run=dry_run,
            row_count=parsed.row_count,
            skipped_rows=len(parsed.skipped)
        )

        plan = plan_reconciliation(parsed.rows)

        if dry_run:
            return self.preview(parsed, plan, source)

        return self.apply(parsed, plan, source)

    # ===================
    # DRY RUN
    # ===================

    def preview(
        self,
        parsed: CatalogParseResult,
        plan: ReconciliationPlan,
        source: str
    ) -> ImportPreview:
        """Report what a real run would reconcile. Never writes."""
        preview = ImportPreview(
            source=source,
            row_count=parsed.row_count,
            skipped_rows=len(parsed.skipped),
            unique=EntityCounts(
                sectors=len(plan.sectors),
                groups=len(plan.groups),
                products=len(plan.products),
                assignments=len(set(plan.rows)),
            ),
            samples=ImportSamples(
                sectors=plan.sectors[:SAMPLE_SIZE],
                groups=[group for _, group in plan.groups[:SAMPLE_SIZE]],
                products=plan.products[:SAMPLE_SIZE],
            ),
            skipped=[
                SkippedRowInfo(row_number=s.row_number, reason=s.reason, cells=s.cells)
                for s in parsed.skipped
            ],
        )

        logger.info(
            "import_dry_run_complete",
            source=source,
            sectors=preview.unique.sectors,
            groups=preview.unique.groups,
            products=preview.unique.products
        )
        return preview

    # ===================
    # REAL RUN
    # ===================

    def apply(
        self,
        parsed: CatalogParseResult,
        plan: ReconciliationPlan,
        source: str
    ) -> ImportResult:
        """
        Materialize the plan and write the import log.

        Raises:
            DatabaseError: On any failure other than duplicate or
                missing-reference assignments; earlier steps stay applied
        """
        started_at = datetime.now(timezone.utc)
        inserted = EntityCounts()
        duplicate_assignments = 0
        failed_assignments = 0

        sector_service = get_sector_service()
        group_service = get_production_group_service()
        product_service = get_product_service()
        assignment_service = get_assignment_service()

        try:
            # 1) Sectors
            sector_ids: dict[str, str] = {}
            for name in plan.sectors:
                sector, created = sector_service.find_or_create(name)
                sector_ids[name] = sector.id
                inserted.sectors += int(created)

            # 2) Groups, under the sector resolved above
            group_ids: dict[tuple[str, str], str] = {}
            for sector_name, group_name in plan.groups:
                group, created = group_service.find_or_create(group_name, sector_ids[sector_name])
                group_ids[(sector_name, group_name)] = group.id
                inserted.groups += int(created)

            # 3) Products
            product_ids: dict[str, str] = {}
            for name in plan.products:
                product, created = product_service.find_or_create(name)
                product_ids[name] = product.id
                inserted.products += int(created)

            # 4) One assignment per row
            for chunk_number, chunk in enumerate(batched(plan.rows, settings.import_chunk_size), start=1):
                for row in chunk:
                    try:
                        outcome = assignment_service.link(
                            sector_ids[row.sector],
                            group_ids[(row.sector, row.group)],
                            product_ids[row.product],
                        )
                    except APIError as e:
                        if not is_foreign_key_violation(e):
                            raise
                        # A referenced record vanished mid-run: a real problem, not idempotence
                        failed_assignments += 1
                        logger.error(
                            "assignment_reference_missing",
                            sector=row.sector,
                            group=row.group,
                            product=row.product,
                            error=str(e)
                        )
                        continue

                    if outcome == LinkOutcome.CREATED:
                        inserted.assignments += 1
                    else:
                        duplicate_assignments += 1

                logger.debug("import_chunk_linked", source=source, chunk=chunk_number, rows=len(chunk))

        except AppError:
            raise
        except Exception as e:
            logger.error(
                "import_failed",
                source=source,
                inserted=inserted.model_dump(),
                error=str(e),
                error_type=type(e).__name__
            )
            raise DatabaseError("import", str(e), details={"inserted": inserted.model_dump()})

        finished_at = datetime.now(timezone.utc)

        result = ImportResult(
            source=source,
            row_count=parsed.row_count,
            skipped_rows=len(parsed.skipped),
            inserted=inserted,
            duplicate_assignments=duplicate_assignments,
            failed_assignments=failed_assignments,
            started_at=started_at,
            finished_at=finished_at,
        )
        result.import_log_id = self._write_log(result)

        logger.info(
            "import_complete",
            source=source,
            inserted=inserted.model_dump(),
            duplicate_assignments=duplicate_assignments,
            failed_assignments=failed_assignments,
            skipped_rows=result.skipped_rows
        )
        return result

    # ===================
    # IMPORT LOG
    # ===================

    def _write_log(self, result: ImportResult) -> Optional[str]:
        try:
            response = self.db.table(self.log_table).insert({
                "source": result.source,
                "dry_run": False,
                "row_count": result.row_count,
                "skipped_rows": result.skipped_rows,
                "inserted": result.inserted.model_dump(),
                "duplicate_assignments": result.duplicate_assignments,
                "failed_assignments": result.failed_assignments,
                "started_at": result.started_at.isoformat(),
                "finished_at": result.finished_at.isoformat(),
            }).execute()
            return response.data[0]["id"]

        except Exception as e:
            logger.error("import_log_write_failed", source=result.source, error=str(e))
            raise DatabaseError("insert", str(e))

    def list_logs(self, limit: int = 20) -> list[ImportLogResponse]:
        """Most recent import runs, newest first."""
        try:
            result = (
                self.db.table(self.log_table)
                .select("*")
                .order("started_at", desc=True)
                .limit(limit)
                .execute()
            )
            return [ImportLogResponse(**row) for row in result.data]

        except Exception as e:
            logger.error("list_import_logs_failed", error=str(e))
            raise DatabaseError("select", str(e))


# Singleton instance for convenience
_catalog_import_service: Optional[CatalogImportService] = None

def get_catalog_import_service() -> CatalogImportService:
    """Get or create CatalogImportService instance."""
    global _catalog_import_service
    if _catalog_import_service is None:
        _catalog_import_service = CatalogImportService()
    return _catalog_import_service
