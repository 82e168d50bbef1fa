"""Health endpoint factory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from product_locator.adapters.catalog_repository import AbstractCatalogRepository
from product_locator.domain.errors import ProductSearchError


if TYPE_CHECKING:
    from starlette.requests import Request


logger = logging.getLogger(__name__)


def build_health_endpoint(catalog_repository: AbstractCatalogRepository):
    """Return a coroutine function reporting catalog health."""

    async def health_check(request: Request) -> JSONResponse:
        try:
            catalog = await catalog_repository.ping()
        except ProductSearchError as exc:
            logger.warning("Catalog health probe failed: %s", exc)
            catalog = {"status": "unhealthy", "error": exc.code}

        overall_status = "healthy" if catalog.get("status") == "healthy" else "degraded"
        return JSONResponse(
            {"status": overall_status, "catalog": catalog},
            status_code=200 if overall_status == "healthy" else 503,
        )

    return health_check
