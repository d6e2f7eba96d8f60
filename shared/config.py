"""
Shared configuration management for the live-reload server.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="LIVERELOAD_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Network
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    # Health, metrics, stats and docs routes
    ops_prefix: str = Field(default="/_livereload")

    # Graceful shutdown handed to uvicorn; open event streams are cancelled after it
    shutdown_timeout: float = Field(default=1.0)


class ServiceConfig(BaseConfig):
    """Live-reload service configuration."""

    service_name: str = "livereload"

    # Static files
    root_dir: str = Field(default=".")
    inject_script: bool = Field(default=True)

    # Event stream
    sse_path: str = Field(default="/sse")
    reload_path: str = Field(default="/sse/reload")
    unique_client_keys: bool = Field(default=True)
    write_timeout: float = Field(default=5.0)


def get_config(
    root_dir: Optional[str] = None,
    port: Optional[int] = None,
    **overrides
) -> ServiceConfig:
    """Get configuration, letting explicit arguments win over the environment."""
    if root_dir is not None:
        overrides["root_dir"] = root_dir
    if port is not None:
        overrides["port"] = port
    return ServiceConfig(**overrides)
