"""Configuration management for the record store."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisConfig(BaseModel):
    """Connection settings for the backing Redis server."""

    url: str = Field(default="redis://127.0.0.1:6379/0", description="Redis connection URL")
    socket_timeout_seconds: float | None = Field(
        default=None, gt=0, description="Per-command socket timeout (None waits forever)"
    )
    connect_timeout_seconds: float | None = Field(
        default=5.0, gt=0, description="Connection establishment timeout"
    )
    max_connections: int | None = Field(
        default=None, ge=1, description="Connection pool size (None is unbounded)"
    )
    ready_check: bool = Field(
        default=True, description="PING the server before a datastore is reported ready"
    )


class StoreConfig(BaseModel):
    """Record store behavior."""

    scan_count: int = Field(
        default=100, ge=1, le=100000, description="Keys requested per SCAN page during drop"
    )
    id_length: int = Field(
        default=16, ge=8, le=32, description="Hex characters in generated primary keys"
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
    otel_service_name: str = Field(default="redis_schema", description="Service name for tracing")
    metrics_port: int | None = Field(
        default=None, ge=1, le=65535, description="Prometheus metrics port (None disables the server)"
    )


class Config(BaseSettings):
    """Main configuration for the record store."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_SCHEMA_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    redis: RedisConfig = Field(default_factory=RedisConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
