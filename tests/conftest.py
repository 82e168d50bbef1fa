"""Shared test fixtures and configuration."""

import os
from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# Complete test environment that overrides every config value
TEST_ENV = {
    "CATALOG_DB_PATH": "catalog-test.db",
    "SIMILARITY_FUNCTION_ENABLED": "true",
    "SEARCH_RESULT_LIMIT": "50",
    "NAME_SIMILARITY_THRESHOLD": "0.2",
    "DESCRIPTION_SIMILARITY_THRESHOLD": "0.15",
    "BROWSE_PAGE_SIZE": "20",
    "BROWSE_MAX_PAGE_SIZE": "200",
    "HTTP_HOST": "127.0.0.1",
    "HTTP_PORT": "8080",
    "LOG_LEVEL": "info",
    "LOG_JSON": "true",
    "MASK_ERROR_DETAILS": "true",
}


for key, value in TEST_ENV.items():
    os.environ[key] = value

from product_locator.adapters.catalog_repository import FakeCatalogRepository  # noqa: E402
from product_locator.adapters.sqlite_catalog_repository import SqliteCatalogRepository  # noqa: E402
from product_locator.service_layer.search_service import ProductSearchService  # noqa: E402
from tests.fixtures.catalog import catalog_kwargs  # noqa: E402


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset environment variables to test defaults before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("DEFAULT_STORE_ID", raising=False)


@pytest.fixture
def fake_repository() -> FakeCatalogRepository:
    """In-memory catalog loaded with the two-chain fixture."""
    return FakeCatalogRepository(**catalog_kwargs())


@pytest.fixture
def sqlite_repository(tmp_path):
    """SQLite catalog loaded with the two-chain fixture."""
    repository = SqliteCatalogRepository(tmp_path / "catalog.db")
    repository.create_schema()
    repository.load(**catalog_kwargs())
    yield repository
    repository.close()


@pytest.fixture(params=["memory", "sqlite"])
def catalog_repository(request, fake_repository, tmp_path):
    """Each repository implementation, so behaviour is asserted against both."""
    if request.param == "memory":
        yield fake_repository
        return
    repository = SqliteCatalogRepository(tmp_path / "param-catalog.db")
    repository.create_schema()
    repository.load(**catalog_kwargs())
    yield repository
    repository.close()


@pytest.fixture
def search_service(catalog_repository) -> ProductSearchService:
    return ProductSearchService(catalog_repository)
