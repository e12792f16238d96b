"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.sectors import router as sectors_router
from routes.production_groups import router as production_groups_router
from routes.products import router as products_router
from routes.catalog import router as catalog_router
from routes.catalog_import import router as catalog_import_router
from routes.requests import router as requests_router
from routes.customers import router as customers_router
from routes.locations import router as locations_router

__all__ = [
    "sectors_router",
    "production_groups_router",
    "products_router",
    "catalog_router",
    "catalog_import_router",
    "requests_router",
    "customers_router",
    "locations_router",
]
