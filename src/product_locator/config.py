"""Centralized configuration for product-locator using Pydantic Settings."""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from product_locator.search.filters import CandidateThresholds
from product_locator.search.ranking import MAX_RESULTS


class Settings(BaseSettings):
    """Service settings read from the environment or a local `.env` file.

    Field names map to upper-case variables (`CATALOG_DB_PATH`, `HTTP_PORT`,
    `DEFAULT_STORE_ID`...). Out-of-range values fail at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Catalog store
    catalog_db_path: Path = Field(default=Path("catalog.db"), description="SQLite catalog database file")
    similarity_function_enabled: bool = Field(
        default=True,
        description="Register the trigram similarity() SQL function on catalog connections",
    )

    # Search tuning
    search_result_limit: int = Field(
        default=MAX_RESULTS,
        ge=1,
        le=MAX_RESULTS,
        description="Maximum results returned per search (hard upper bound of 50)",
    )
    name_similarity_threshold: float = Field(
        default=0.20,
        ge=0.0,
        le=1.0,
        description="Minimum trigram similarity for name, sku and per-token candidates",
    )
    description_similarity_threshold: float = Field(
        default=0.15,
        ge=0.0,
        le=1.0,
        description="Minimum trigram similarity for description candidates",
    )
    default_store_id: int | None = Field(
        default=None,
        description="Store used when a request omits storeId; unset makes storeId required",
    )

    # Catalog browse
    browse_page_size: int = Field(default=20, ge=1, description="Default page size for catalog browse")
    browse_max_page_size: int = Field(default=200, ge=1, description="Largest page size a client may request")

    # Server settings
    http_host: str = Field(default="127.0.0.1", description="HTTP server host")
    http_port: int = Field(default=8080, ge=1, le=65535, description="HTTP server port")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    # Security
    mask_error_details: bool = Field(
        default=True, description="Mask internal error details in responses"
    )

    @model_validator(mode="after")
    def _check_page_sizes(self) -> "Settings":
        if self.browse_page_size > self.browse_max_page_size:
            raise ValueError(
                f"BROWSE_PAGE_SIZE ({self.browse_page_size}) must not exceed "
                f"BROWSE_MAX_PAGE_SIZE ({self.browse_max_page_size})"
            )
        return self

    def candidate_thresholds(self) -> CandidateThresholds:
        """Similarity thresholds for the recall filter."""
        return CandidateThresholds(
            name=self.name_similarity_threshold,
            description=self.description_similarity_threshold,
        )

    def is_debug(self) -> bool:
        return self.log_level.lower() == "debug"
