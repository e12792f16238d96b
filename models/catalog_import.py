"""
Catalog import schemas: request payloads, dry-run preview, run results and
the import audit log.
"""

from pydantic import Field
from typing import Optional
from datetime import datetime

from models.base import BaseSchema


class ImportRowInput(BaseSchema):
    """One raw source row posted inline (cells may be blank)."""

    sector: Optional[str] = None
    group: Optional[str] = None
    product: Optional[str] = None


class ImportRunRequest(BaseSchema):
    """
    Start an import.

    Without rows the configured Google Sheets range is read.
    """

    dry_run: bool = Field(False, description="Preview without writing")
    rows: Optional[list[ImportRowInput]] = Field(
        None,
        description="Inline rows; omit to read the catalog spreadsheet"
    )


class EntityCounts(BaseSchema):
    """Per-kind counters."""

    sectors: int = 0
    groups: int = 0
    products: int = 0
    assignments: int = 0


class SkippedRowInfo(BaseSchema):
    """Source row rejected by the adapter."""

    row_number: int
    reason: str
    cells: list[Optional[str]] = Field(default_factory=list)


class ImportSamples(BaseSchema):
    """Up to five example values per kind."""

    sectors: list[str] = Field(default_factory=list)
    groups: list[str] = Field(default_factory=list)
    products: list[str] = Field(default_factory=list)


class ImportPreview(BaseSchema):
    """Dry-run outcome: what the import would reconcile."""

    dry_run: bool = True
    source: str
    row_count: int
    skipped_rows: int
    unique: EntityCounts
    samples: ImportSamples
    skipped: list[SkippedRowInfo] = Field(default_factory=list)


class ImportResult(BaseSchema):
    """Real-run outcome."""

    dry_run: bool = False
    source: str
    row_count: int
    skipped_rows: int
    inserted: EntityCounts
    duplicate_assignments: int = 0
    failed_assignments: int = 0
    started_at: datetime
    finished_at: datetime
    import_log_id: Optional[str] = None


class ImportLogResponse(BaseSchema):
    """Immutable audit record of one real import run."""

    id: str
    source: str
    dry_run: bool
    row_count: int
    skipped_rows: int = 0
    inserted: EntityCounts
    duplicate_assignments: int = 0
    failed_assignments: int = 0
    started_at: datetime
    finished_at: datetime
