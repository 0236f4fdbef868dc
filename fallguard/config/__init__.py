"""Configuration management module for the fall monitor."""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
