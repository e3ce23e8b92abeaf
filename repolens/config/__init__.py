"""Configuration package."""

from repolens.config.settings import Settings, settings

__all__ = [
    "Settings",
    "settings",
]
