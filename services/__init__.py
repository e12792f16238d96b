"""
Business logic services.

Each service handles one domain area.
"""

from services.sector_service import SectorService, get_sector_service
from services.production_group_service import ProductionGroupService, get_production_group_service
from services.product_service import ProductService, get_product_service
from services.assignment_service import AssignmentService, LinkOutcome, get_assignment_service
from services.dependency_guard_service import DependencyGuardService, get_dependency_guard_service
from services.catalog_import_service import CatalogImportService, get_catalog_import_service
from services.request_service import RequestService, get_request_service
from services.notification_service import NotificationService, get_notification_service

__all__ = [
    "SectorService",
    "get_sector_service",
    "ProductionGroupService",
    "get_production_group_service",
    "ProductService",
    "get_product_service",
    "AssignmentService",
    "LinkOutcome",
    "get_assignment_service",
    "DependencyGuardService",
    "get_dependency_guard_service",
    "CatalogImportService",
    "get_catalog_import_service",
    "RequestService",
    "get_request_service",
    "NotificationService",
    "get_notification_service",
]
