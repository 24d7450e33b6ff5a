"""Environment configuration for single-index mode using Pydantic Settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``INSTANTSEARCH_*`` environment variables.

    Used when no deployment.json is present: one index is served from
    ``resource_url``.
    """

    model_config = SettingsConfigDict(
        env_prefix="INSTANTSEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Index source
    resource_url: str = Field(
        default="search_index.json",
        min_length=1,
        description="HTTP(S) URL or local path of the index bundle",
    )
    fallback_path: str = Field(
        default="",
        description="Local .json or offline .js bundle used when the resource cannot be loaded",
    )
    index_name: str = Field(
        default="",
        description="Name the index is registered under (defaults to resource_url)",
    )
    http_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds for fetching the bundle")

    # Facet policy
    censor_facet_threshold: float = Field(
        default=80,
        ge=0,
        le=100,
        description="Hide facets whose distinct values exceed this percentage of the result count",
    )
    censor_basis: Literal["hits", "corpus"] = Field(
        default="hits",
        description="Result count used for censoring: query matches or corpus size",
    )

    # Routing
    strict_index_names: bool = Field(
        default=False,
        description="Reject unknown index names instead of routing them to the first index",
    )

    # Server settings
    host: str = Field(default="127.0.0.1", description="HTTP server host")
    port: int = Field(default=8000, ge=1, le=65535, description="HTTP server port")
    preload_indexes: bool = Field(default=False, description="Load indexes at startup instead of on first query")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    def get_index_name(self) -> str:
        """Registered index name, falling back to the resource URL."""
        return self.index_name.strip() or self.resource_url
