"""
Catalog source parser.

Turns untyped rows of three cells (sector, production group, product) into
strict CatalogRow records. Rows with a blank cell are not dropped silently:
they become SkippedRow entries so import results can report them.

Sources:
    - Google Sheets values (lists of strings, trailing blanks omitted)
    - Uploaded .xlsx / .csv files (first three columns, header row skipped)
    - Inline rows posted as JSON
"""

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Union
import structlog

import pandas as pd

from exceptions import CatalogFileParseError
from utils.text_utils import clean_cell

logger = structlog.get_logger(__name__)


COLUMNS = ("sector", "group", "product")


@dataclass(frozen=True)
class CatalogRow:
    """One valid source row, all fields trimmed and non-empty."""
    sector: str
    group: str
    product: str

    @property
    def group_key(self) -> str:
        """Groups are scoped by sector: 'Dairy::Cheese'."""
        return f"{self.sector}::{self.group}"


@dataclass
class SkippedRow:
    """Source row rejected because a cell was missing or blank."""
    row_number: int
    reason: str
    cells: list[Optional[str]] = field(default_factory=list)


@dataclass
class CatalogParseResult:
    """Result of normalizing a catalog source."""
    rows: list[CatalogRow] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        """Source rows seen, valid or not."""
        return len(self.rows) + len(self.skipped)


def normalize_rows(
    raw_rows: Iterable[Sequence[Any]],
    first_row_number: int = 2
) -> CatalogParseResult:
    """
    Trim cells and split rows into valid and skipped.

    Args:
        raw_rows: Rows of cells; extra cells beyond the third are ignored
        first_row_number: Source row number of the first row (2 for a
            sheet range starting below the header)

    Returns:
        CatalogParseResult
    """
    result = CatalogParseResult()

    for offset, raw in enumerate(raw_rows):
        row_number = first_row_number + offset
        cells = [clean_cell(raw[i]) if i < len(raw) else None for i in range(3)]

        missing = [name for name, value in zip(COLUMNS, cells) if not value]
        if missing:
            result.skipped.append(SkippedRow(
                row_number=row_number,
                reason=f"missing {', '.join(missing)}",
                cells=cells,
            ))
            continue

        result.rows.append(CatalogRow(sector=cells[0], group=cells[1], product=cells[2]))

    if result.skipped:
        logger.info(
            "catalog_rows_skipped",
            skipped=len(result.skipped),
            valid=len(result.rows)
        )

    return result


def parse_catalog_file(
    file: Union[str, Path, BytesIO],
    filename: Optional[str] = None
) -> CatalogParseResult:
    """
    Parse an uploaded catalog file.

    The first row is treated as a header. Only the first three columns are
    read, in sector / group / product order.

    Args:
        file: File path or file-like object
        filename: Original name, used to pick CSV vs Excel

    Returns:
        CatalogParseResult

    Raises:
        CatalogFileParseError: If the file can't be read or has < 3 columns
    """
    if filename is None and isinstance(file, (str, Path)):
        filename = Path(file).name
    name = (filename or "").lower()

    try:
        if name.endswith(".csv"):
            df = pd.read_csv(file, dtype=str, keep_default_na=False, header=0)
        else:
            df = pd.read_excel(file, dtype=str, header=0, engine="openpyxl")
    except Exception as e:
        logger.error("catalog_file_read_failed", filename=filename, error=str(e))
        raise CatalogFileParseError(
            f"Could not read catalog file: {e}",
            details={"filename": filename}
        )

    if df.shape[1] < 3:
        raise CatalogFileParseError(
            "Catalog file needs sector, group and product columns",
            details={"filename": filename, "columns": [str(c) for c in df.columns]}
        )

    frame = df.iloc[:, :3]
    raw_rows = frame.where(pd.notna(frame), None).values.tolist()

    logger.info("catalog_file_parsed", filename=filename, rows=len(raw_rows))

    return normalize_rows(raw_rows, first_row_number=2)
