"""
Shared configuration management for the cache gateway services.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Store backend: "memory" keeps items in-process, "redis" talks to redis_url
    store_backend: str = Field(default="memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_key_prefix: Optional[str] = Field(default=None)
    redis_socket_timeout: float = Field(default=5.0)

    # Conditional update attempts for /expire; 0 falls back to plain set
    expire_cas_attempts: int = Field(default=3, ge=0)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
