"""
Catalog source parsers.
"""

from parsers.catalog_parser import (
    CatalogRow,
    SkippedRow,
    CatalogParseResult,
    normalize_rows,
    parse_catalog_file,
)

__all__ = [
    "CatalogRow",
    "SkippedRow",
    "CatalogParseResult",
    "normalize_rows",
    "parse_catalog_file",
]
