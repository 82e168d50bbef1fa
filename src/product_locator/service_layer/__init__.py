"""Service layer - use case orchestration over the catalog repositories."""

from .search_service import ProductSearchService
from .store_service import StoreService
from .tenant_scope import TenantScoper


__all__ = [
    "ProductSearchService",
    "StoreService",
    "TenantScoper",
]
