"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use GOSP_ prefix (e.g., GOSP_MAX_TOP=2).

Settings can also be loaded from a .env file in the working directory.
Command-line flags of gosp2py and gosp-server default to these values.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use GOSP_ prefix.

    Examples:
        GOSP_MAX_TOP=3
        GOSP_ALLOWED_IMPORTS=NONE,json,datetime
        GOSP_MAX_IDLE=0
        GOSP_HTTP_HEADERS=raw
    """

    model_config = SettingsConfigDict(
        env_prefix="GOSP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Compiler configuration
    max_top: int = Field(
        default=1,
        ge=0,
        description="Maximum number of <?go:top ?> blocks allowed per page",
    )

    max_include_depth: int = Field(
        default=10,
        ge=0,
        description="Deepest allowed nesting of <?go:include ?> directives",
    )

    allowed_imports: str = Field(
        default="ALL",
        description='Comma-separated list of modules pages may import ("ALL" or "NONE" allowed)',
    )

    # Server configuration
    max_idle: float = Field(
        default=300.0,
        ge=0,
        description="Seconds without a connection before the server exits (0 = never)",
    )

    http_headers: Literal["structured", "mod_gosp", "raw", "none"] = Field(
        default="structured",
        description="Format in which response metadata is written",
    )

    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed for a client to send its service request",
    )

    metadata_capacity: int = Field(
        default=5,
        ge=1,
        description="Number of metadata events a page may queue before blocking",
    )

    change_directory: bool = Field(
        default=False,
        description="chdir into each page's directory before running it (process-wide)",
    )

    poll_interval: float = Field(
        default=0.5,
        gt=0,
        description="Seconds between checks of the shutdown flag while idle",
    )


# Singleton instance - import this in your code
appsettings = AppSettings()
