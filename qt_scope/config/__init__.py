"""Configuration module for qt-scope settings."""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
