"""
Google Sheets integration.

Two uses of the same spreadsheet:
    - the catalog range (sector / group / product) read by the importer
    - the response range new sample requests are appended to
"""

from typing import Optional
import structlog

import gspread

from config import settings
from exceptions import ImportSourceError, ExternalServiceError

logger = structlog.get_logger(__name__)


SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class GoogleSheetsClient:
    """Thin wrapper around one gspread spreadsheet."""

    def __init__(self, spreadsheet_id: str, client: gspread.Client):
        self.spreadsheet_id = spreadsheet_id
        self.client = client
        self._spreadsheet = None

    @property
    def spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            self._spreadsheet = self.client.open_by_key(self.spreadsheet_id)
        return self._spreadsheet

    def read_range(self, cell_range: str) -> list[list[str]]:
        """
        Read raw cell values of a range.

        Google omits trailing empty cells, so rows may be shorter than the
        range is wide.
        """
        response = self.spreadsheet.values_get(cell_range)
        return response.get("values", [])

    def append_row(self, cell_range: str, values: list[str]) -> None:
        """Append one row below the last filled row of the range."""
        self.spreadsheet.values_append(
            cell_range,
            params={"valueInputOption": "USER_ENTERED"},
            body={"values": [values]},
        )


def _build_gspread_client() -> gspread.Client:
    if settings.google_service_account_file:
        return gspread.service_account(
            filename=settings.google_service_account_file,
            scopes=SCOPES,
        )

    return gspread.service_account_from_dict(
        {
            "type": "service_account",
            "client_email": settings.google_client_email,
            # Keys stored in env vars carry escaped newlines
            "private_key": (settings.google_private_key or "").replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        },
        scopes=SCOPES,
    )


_sheets_client: Optional[GoogleSheetsClient] = None

def get_sheets_client() -> GoogleSheetsClient:
    """
    Get or create the spreadsheet client.

    Raises:
        ExternalServiceError: If Google Sheets is not configured
    """
    global _sheets_client
    if _sheets_client is None:
        if not settings.sheets_configured:
            raise ExternalServiceError(
                "google_sheets",
                "Google Sheets credentials or SPREADSHEET_ID not configured"
            )
        _sheets_client = GoogleSheetsClient(settings.spreadsheet_id, _build_gspread_client())
        logger.info("google_sheets_client_created", spreadsheet_id=settings.spreadsheet_id)
    return _sheets_client


def read_catalog_rows(client: Optional[GoogleSheetsClient] = None) -> list[list[str]]:
    """
    Read the catalog range.

    Raises:
        ImportSourceError: If the sheet can't be reached or read
    """
    try:
        sheets = client or get_sheets_client()
        rows = sheets.read_range(settings.catalog_sheet_range)
    except Exception as e:
        logger.error(
            "catalog_sheet_read_failed",
            range=settings.catalog_sheet_range,
            error=str(e),
            error_type=type(e).__name__
        )
        raise ImportSourceError("google-spreadsheet", f"Could not read catalog sheet: {e}")

    logger.info("catalog_sheet_read", range=settings.catalog_sheet_range, rows=len(rows))
    return rows
