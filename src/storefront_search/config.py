"""Centralized configuration for storefront-search using Pydantic Settings."""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ObservabilityCollectorConfig(BaseModel):
    """Configuration for OTLP trace, metric and log export."""

    model_config = {"extra": "forbid"}

    enabled: Annotated[bool, Field(description="Enable OTLP export to an external collector")] = False

    otlp_protocol: Annotated[Literal["http", "grpc"], Field(description="OTLP transport protocol")] = "grpc"

    collector_endpoint: Annotated[
        str,
        Field(
            description="OTLP collector endpoint (HTTP uses /v1/traces)",
            examples=["http://localhost:4317", "http://localhost:4318/v1/traces"],
        ),
    ] = "http://localhost:4317"

    headers: dict[str, str] = Field(default_factory=dict, description="Optional headers for OTLP requests")

    timeout_seconds: Annotated[int, Field(ge=1, le=60, description="OTLP exporter timeout in seconds")] = 10

    grpc_insecure: Annotated[bool, Field(description="Allow plaintext gRPC connections")] = True

    resource_attributes: dict[str, str] = Field(
        default_factory=dict,
        description="Additional OpenTelemetry resource attributes",
    )


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``STOREFRONT_*`` environment variables.

    Nested observability settings use a double underscore, e.g.
    ``STOREFRONT_OBSERVABILITY__ENABLED=true``.
    """

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Catalog store
    catalog_db_path: Path = Field(default=Path("data/catalog.db"), description="SQLite catalog database file")

    # Server settings
    host: str = Field(default="127.0.0.1", description="HTTP server host")
    port: int = Field(default=5000, ge=1, le=65535, description="HTTP server port")
    cors_origins: str = Field(default="http://localhost:5173", description="Comma-separated allowed CORS origins")

    # Query behavior
    suggestion_limit: int = Field(default=5, ge=1, le=50, description="Maximum suggestions per query")

    # Client behavior
    api_base_url: str = Field(default="http://localhost:5000/api", description="Base URL of the query API")
    http_timeout: float = Field(default=10.0, gt=0, description="Client HTTP timeout in seconds")
    history_limit: int = Field(default=5, ge=1, description="Maximum search history entries")
    debounce_ms: int = Field(default=300, ge=0, description="Suggestion debounce delay in milliseconds")
    client_state_dir: Path | None = Field(
        default=Path("~/.storefront"),
        description="Directory for persisted client state; unset keeps state in memory",
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    # Security
    mask_error_details: bool = Field(
        default=True, description="Hide internal error details from failure responses"
    )

    observability: ObservabilityCollectorConfig = Field(default_factory=ObservabilityCollectorConfig)

    def get_cors_origins(self) -> list[str]:
        """Get list of allowed CORS origins."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0
