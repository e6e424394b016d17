"""Configuration module for the App Review Intelligence client."""

from review_intel.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
