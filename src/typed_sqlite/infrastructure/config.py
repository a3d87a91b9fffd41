"""Configuration management for the typed SQLite layer."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """Native engine and connection defaults."""

    library_path: Path | None = Field(
        default=None, description="Explicit path to libsqlite3 (skips the search)"
    )
    threading_mode: Literal["single_thread", "multi_thread", "serialized"] | None = Field(
        default=None,
        description="Requested threading mode (default: whatever the build provides)",
    )
    busy_timeout_ms: int = Field(
        default=5000, ge=0, le=3_600_000, description="Busy handler timeout in milliseconds"
    )
    extended_result_codes: bool = Field(
        default=True, description="Report extended result codes in engine errors"
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="typed_sqlite", description="Service name for tracing")
    metrics_port: int | None = Field(
        default=None, ge=1, le=65535, description="Expose Prometheus metrics on this port"
    )


class Config(BaseSettings):
    """Main configuration for the typed SQLite layer."""

    model_config = SettingsConfigDict(
        env_prefix="TYPED_SQLITE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    engine: EngineConfig = Field(default_factory=EngineConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
