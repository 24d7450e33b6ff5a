"""Multi-index deployment configuration using Pydantic.

deployment.json declares every index served by one process plus shared
infrastructure settings. Configuration validates at startup (fail fast).
Index order is significant: the first index is the default target for
requests naming an unknown index.
"""

import json
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from local_instantsearch.config import Settings


_ALLOWED_LEVELS = {"debug", "info", "warning", "error", "critical"}


def _is_http_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


class IndexConfig(BaseModel):
    """Configuration for a single searchable index."""

    model_config = {"extra": "forbid"}

    name: Annotated[
        str,
        Field(
            min_length=1,
            description="Index name used in search requests (indexName)",
            examples=["products"],
        ),
    ]

    resource_url: Annotated[
        str,
        Field(
            min_length=1,
            description="HTTP(S) URL or local path of the index bundle",
            examples=["https://example.com/search_index.json", "data/search_index.json"],
        ),
    ]

    fallback_path: Annotated[
        str | None,
        Field(
            description="Local .json or offline .js bundle used when resource_url fails",
        ),
    ] = None

    censor_facet_threshold: Annotated[
        float,
        Field(
            ge=0,
            le=100,
            description="Hide facets whose distinct values exceed this percentage of the result count",
        ),
    ] = 80

    censor_basis: Annotated[
        Literal["hits", "corpus"],
        Field(
            description="Result count used for censoring: query matches or corpus size",
        ),
    ] = "hits"

    def resolve_paths(self, base_dir: Path) -> "IndexConfig":
        """Return a copy with relative local paths anchored at ``base_dir``."""
        updates: dict[str, Any] = {}
        if not _is_http_url(self.resource_url) and not Path(self.resource_url).is_absolute():
            updates["resource_url"] = str(base_dir / self.resource_url)
        if self.fallback_path and not Path(self.fallback_path).is_absolute():
            updates["fallback_path"] = str(base_dir / self.fallback_path)
        return self.model_copy(update=updates) if updates else self


class LogProfileConfig(BaseModel):
    """Configuration for a named logging profile.

    Profiles allow switching between production-optimized (quiet) and
    debug-focused (verbose) logging without code changes.
    """

    model_config = {"extra": "forbid"}

    level: Annotated[
        str,
        Field(
            pattern=r"^(debug|info|warning|error|critical)$",
            description="Root log level for this profile",
        ),
    ] = "info"

    json_output: Annotated[
        bool,
        Field(
            description="Emit structured JSON logs (recommended for production)",
        ),
    ] = True

    logger_levels: Annotated[
        dict[str, str],
        Field(
            description="Per-logger level overrides (logger name -> level)",
            examples=[{"local_instantsearch.worker": "debug"}],
        ),
    ] = Field(default_factory=dict)

    access_log: Annotated[
        bool,
        Field(
            description="Enable uvicorn access logging",
        ),
    ] = False

    @field_validator("logger_levels")
    @classmethod
    def validate_logger_levels(cls, value: dict[str, str]) -> dict[str, str]:
        """Validate that all logger_levels values use supported log levels."""
        invalid = {name: level for name, level in value.items() if level not in _ALLOWED_LEVELS}
        if invalid:
            details = ", ".join(f"{name}={level}" for name, level in invalid.items())
            raise ValueError(
                f"Invalid log level(s) in logger_levels; allowed levels are {sorted(_ALLOWED_LEVELS)}; got: {details}"
            )
        return value


class SharedInfraConfig(BaseModel):
    """Settings shared by every index served from one process."""

    model_config = {"extra": "forbid"}

    host: Annotated[str, Field(description="Server bind address (0.0.0.0 for containers)")] = "127.0.0.1"

    port: Annotated[int, Field(ge=1, le=65535, description="Server listen port")] = 8000

    http_timeout: Annotated[
        float,
        Field(gt=0, le=300, description="HTTP timeout in seconds for fetching index bundles"),
    ] = 30.0

    strict_index_names: Annotated[
        bool,
        Field(description="Reject unknown index names instead of routing them to the first index"),
    ] = False

    preload_indexes: Annotated[
        bool,
        Field(description="Load every index at startup instead of on first query"),
    ] = False

    log_profile: Annotated[str, Field(description="Name of the active log profile")] = "default"

    log_profiles: Annotated[
        dict[str, LogProfileConfig],
        Field(description="Named logging profiles"),
    ] = Field(default_factory=lambda: {"default": LogProfileConfig()})

    @model_validator(mode="after")
    def validate_log_profile_exists(self) -> "SharedInfraConfig":
        if self.log_profile not in self.log_profiles:
            raise ValueError(
                f"log_profile '{self.log_profile}' is not defined; available: {sorted(self.log_profiles)}"
            )
        return self

    def get_active_log_profile(self) -> LogProfileConfig:
        return self.log_profiles[self.log_profile]


class DeploymentConfig(BaseModel):
    """Complete deployment configuration.

    Example:
        {
            "infrastructure": {"host": "0.0.0.0", "port": 8000},
            "indexes": [
                {"name": "products", "resource_url": "data/products.json"},
                {"name": "articles", "resource_url": "https://example.com/articles.json",
                 "fallback_path": "data/articles.js"}
            ]
        }
    """

    model_config = {"extra": "forbid"}

    infrastructure: SharedInfraConfig = Field(default_factory=SharedInfraConfig)
    indexes: Annotated[
        list[IndexConfig],
        Field(
            min_length=1,
            description="Indexes to serve; the first is the default for unknown names",
        ),
    ]

    @model_validator(mode="after")
    def validate_unique_names(self) -> "DeploymentConfig":
        names = [index.name for index in self.indexes]
        if len(names) != len(set(names)):
            duplicates = sorted({name for name in names if names.count(name) > 1})
            raise ValueError(f"Duplicate index names found: {duplicates}")
        return self

    @classmethod
    def from_json_file(cls, path: Path) -> "DeploymentConfig":
        """Load configuration from a JSON file.

        Relative local paths in index entries are resolved against the
        directory containing the file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValidationError: If config is invalid
        """
        if not path.exists():
            raise FileNotFoundError(f"Deployment config not found: {path}")

        with path.open(encoding="utf-8") as f:
            data = json.load(f)

        config = cls.model_validate(data)
        base_dir = path.resolve().parent
        config.indexes = [index.resolve_paths(base_dir) for index in config.indexes]
        return config

    @classmethod
    def from_settings(cls, settings: Settings) -> "DeploymentConfig":
        """Single-index deployment built from environment settings."""
        profile = LogProfileConfig(level=settings.log_level.lower(), json_output=settings.json_logs)
        return cls(
            infrastructure=SharedInfraConfig(
                host=settings.host,
                port=settings.port,
                http_timeout=settings.http_timeout,
                strict_index_names=settings.strict_index_names,
                preload_indexes=settings.preload_indexes,
                log_profiles={"default": profile},
            ),
            indexes=[
                IndexConfig(
                    name=settings.get_index_name(),
                    resource_url=settings.resource_url,
                    fallback_path=settings.fallback_path.strip() or None,
                    censor_facet_threshold=settings.censor_facet_threshold,
                    censor_basis=settings.censor_basis,
                )
            ],
        )

    def get_index(self, name: str) -> IndexConfig | None:
        for index in self.indexes:
            if index.name == name:
                return index
        return None

    def list_index_names(self) -> list[str]:
        return [index.name for index in self.indexes]
