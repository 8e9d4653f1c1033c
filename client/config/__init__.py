"""Configuration module for the waterfall client."""

from .settings import Settings, get_settings, reload_settings

__all__ = ["get_settings", "reload_settings", "Settings"]
