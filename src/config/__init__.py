"""
Configuration package for gosp

Compiler limits, server timing and the response format, read from GOSP_*
environment variables (or a .env file) through pydantic-settings.
"""

from .settings import appsettings, AppSettings

__all__ = ["appsettings", "AppSettings"]
