"""Configuration management for the payment service."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseModel):
    """Storage configuration."""

    path: Path = Field(default=Path("storage.bolt"), description="Store file path")
    bucket: str = Field(default="payment", min_length=1, description="Bucket holding payments")
    lock_timeout_seconds: float | None = Field(
        default=5.0,
        ge=0,
        description="How long to wait for the store file lock (None waits forever)",
    )
    sync_mode: Literal["fsync", "normal", "none"] = Field(
        default="fsync", description="Durability of committed write transactions"
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, ge=0, le=65535, description="Server port")
    metrics_port: int | None = Field(
        default=None, ge=1, le=65535, description="Prometheus metrics port (disabled if unset)"
    )
    shutdown_timeout_seconds: int = Field(
        default=10, ge=1, description="Grace period for in-flight requests on shutdown"
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
    otel_service_name: str = Field(default="expay", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration for the payment service."""

    model_config = SettingsConfigDict(
        env_prefix="EXPAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def ensure_directories(self) -> None:
        """Ensure the directory holding the store file exists."""
        self.storage.path.parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
