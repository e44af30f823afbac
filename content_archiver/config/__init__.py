"""
Application configuration using Pydantic settings.

Configuration comes from CONTENT_ARCHIVER_* environment variables.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
