"""Main ASGI application entry point.

Routes:
    GET /api/products/search?q=&storeId=     ranked fuzzy product search
    GET /api/products?storeId=&page=&limit=&category=   catalog browse
    GET /api/stores                          active stores with chain names
    GET /api/stores/chains                   chains with active-store counts
    GET /api/stores/{store_id}               store lookup
    GET /api/stores/chain/{chain_id}         active stores of a chain
    GET /health                              catalog health
    GET /metrics                             Prometheus exposition

Usage:
    product-locator
    # or
    python -m product_locator.app
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from product_locator.adapters.catalog_repository import AbstractCatalogRepository
from product_locator.adapters.sqlite_catalog_repository import SqliteCatalogRepository
from product_locator.config import Settings
from product_locator.domain.errors import InternalSearchError, InvalidArgumentError, ProductSearchError
from product_locator.observability import (
    TraceContextMiddleware,
    configure_logging,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    init_tracing,
    trace_request,
)
from product_locator.runtime.health import build_health_endpoint
from product_locator.service_layer.search_service import ProductSearchService
from product_locator.service_layer.store_service import StoreService


logger = logging.getLogger(__name__)


def _int_param(request: Request, name: str) -> int | None:
    raw = request.query_params.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidArgumentError(f"{name} must be an integer") from None


def _int_path_param(request: Request, name: str) -> int:
    try:
        return int(request.path_params[name])
    except ValueError:
        raise InvalidArgumentError(f"{name} must be an integer") from None


def _build_error_handler(mask_error_details: bool):
    async def handle_search_error(request: Request, exc: ProductSearchError) -> JSONResponse:
        payload = exc.to_dict()
        if mask_error_details and isinstance(exc, InternalSearchError):
            payload["message"] = "Failed to search products"
        return JSONResponse(payload, status_code=exc.http_status)

    return handle_search_error


def _build_routes(
    search_service: ProductSearchService,
    store_service: StoreService,
    catalog_repository: AbstractCatalogRepository,
) -> list[Route]:
    async def search_products(request: Request) -> JSONResponse:
        hits = await search_service.search(request.query_params.get("q"), _int_param(request, "storeId"))
        return JSONResponse([hit.to_response() for hit in hits])

    async def browse_products(request: Request) -> JSONResponse:
        page = _int_param(request, "page")
        hits = await search_service.browse(
            _int_param(request, "storeId"),
            page=1 if page is None else page,
            limit=_int_param(request, "limit"),
            category=request.query_params.get("category") or None,
        )
        return JSONResponse([hit.to_response() for hit in hits])

    async def get_store(request: Request) -> JSONResponse:
        store = await store_service.get_store(_int_path_param(request, "store_id"))
        return JSONResponse(store.to_dict())

    async def list_chain_stores(request: Request) -> JSONResponse:
        stores = await store_service.list_chain_stores(_int_path_param(request, "chain_id"))
        return JSONResponse([store.to_dict() for store in stores])

    async def list_chains(request: Request) -> JSONResponse:
        return JSONResponse([chain.to_dict() for chain in await store_service.list_chains()])

    async def list_active_stores(request: Request) -> JSONResponse:
        return JSONResponse([listing.to_dict() for listing in await store_service.list_active_stores()])

    async def metrics(request: Request) -> Response:
        return Response(get_metrics(), media_type=get_metrics_content_type())

    return [
        Route("/api/products/search", endpoint=search_products, methods=["GET"]),
        Route("/api/products", endpoint=browse_products, methods=["GET"]),
        Route("/api/stores", endpoint=list_active_stores, methods=["GET"]),
        Route("/api/stores/chains", endpoint=list_chains, methods=["GET"]),
        Route("/api/stores/chain/{chain_id}", endpoint=list_chain_stores, methods=["GET"]),
        Route("/api/stores/{store_id}", endpoint=get_store, methods=["GET"]),
        Route("/health", endpoint=build_health_endpoint(catalog_repository), methods=["GET"]),
        Route("/metrics", endpoint=metrics, methods=["GET"]),
    ]


def create_app(
    settings: Settings | None = None,
    catalog_repository: AbstractCatalogRepository | None = None,
) -> Starlette:
    """Create the ASGI application.

    Args:
        settings: Configuration (defaults to environment-driven ``Settings()``)
        catalog_repository: Catalog backend (defaults to SQLite at ``catalog_db_path``)

    Returns:
        Starlette application serving the kiosk search API
    """
    settings = settings or Settings()
    if catalog_repository is None:
        sqlite_repository = SqliteCatalogRepository(
            settings.catalog_db_path,
            similarity_enabled=settings.similarity_function_enabled,
        )
        sqlite_repository.create_schema()
        catalog_repository = sqlite_repository

    search_service = ProductSearchService.from_settings(catalog_repository, settings)
    store_service = StoreService(catalog_repository)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("Product locator ready (result limit %d)", search_service.result_limit)
        try:
            yield
        finally:
            close = getattr(catalog_repository, "close", None)
            if callable(close):
                close()

    app = Starlette(
        debug=settings.is_debug(),
        routes=_build_routes(search_service, store_service, catalog_repository),
        exception_handlers={ProductSearchError: _build_error_handler(settings.mask_error_details)},
        middleware=[
            Middleware(TraceContextMiddleware),
            Middleware(BaseHTTPMiddleware, dispatch=trace_request),
        ],
        lifespan=lifespan,
    )
    app.state.search_service = search_service
    app.state.settings = settings
    return app


def main() -> None:
    """Run the HTTP server with uvicorn."""
    import uvicorn

    settings = Settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    init_metrics(service_name="product-locator")
    init_tracing(service_name="product-locator")

    logger.info("Starting product locator on %s:%d", settings.http_host, settings.http_port)
    logger.info("Catalog database: %s", settings.catalog_db_path)

    app = create_app(settings)
    uvicorn.run(app, host=settings.http_host, port=settings.http_port, log_config=None)


if __name__ == "__main__":
    main()
