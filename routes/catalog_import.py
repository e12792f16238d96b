"""
Catalog import API routes (admin only).

POST /run     JSON body: inline rows, or none to read the catalog spreadsheet
POST /upload  .xlsx / .csv file with sector, group, product columns
GET  /logs    recent import runs
"""

from io import BytesIO
from typing import Union

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
import structlog

from models.catalog_import import (
    ImportLogResponse,
    ImportPreview,
    ImportResult,
    ImportRunRequest,
)
from parsers.catalog_parser import normalize_rows, parse_catalog_file
from services.catalog_import_service import (
    SOURCE_FILE_UPLOAD,
    SOURCE_INLINE,
    get_catalog_import_service,
)
from routes.dependencies import handle_error, require_admin

logger = structlog.get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/run", response_model=Union[ImportPreview, ImportResult])
async def run_import(data: ImportRunRequest):
    """
    Reconcile the catalog from the spreadsheet or from inline rows.

    With dry_run only unique counts and samples are returned and nothing is
    written.

    Raises:
        503: Spreadsheet unreachable (nothing written)
        500: Store failure mid-run (earlier steps stay applied; re-run)
    """
    try:
        service = get_catalog_import_service()

        if data.rows is None:
            return service.import_from_sheet(dry_run=data.dry_run)

        parsed = normalize_rows(
            ([row.sector, row.group, row.product] for row in data.rows),
            first_row_number=1
        )
        return service.run_import(parsed, source=SOURCE_INLINE, dry_run=data.dry_run)

    except Exception as e:
        return handle_error(e)


@router.post("/upload", response_model=Union[ImportPreview, ImportResult])
async def upload_import(
    file: UploadFile = File(..., description="Catalog file (.xlsx or .csv)"),
    dry_run: bool = Form(False)
):
    """
    Reconcile the catalog from an uploaded file.

    Raises:
        422: File can't be parsed
    """
    try:
        contents = await file.read()
        parsed = parse_catalog_file(BytesIO(contents), filename=file.filename)

        logger.info(
            "catalog_file_uploaded",
            filename=file.filename,
            size=len(contents),
            rows=parsed.row_count
        )

        return get_catalog_import_service().run_import(
            parsed,
            source=SOURCE_FILE_UPLOAD,
            dry_run=dry_run
        )

    except Exception as e:
        return handle_error(e)


@router.get("/logs", response_model=list[ImportLogResponse])
async def list_import_logs(limit: int = Query(20, ge=1, le=100)):
    """Most recent real import runs."""
    try:
        return get_catalog_import_service().list_logs(limit=limit)
    except Exception as e:
        return handle_error(e)
