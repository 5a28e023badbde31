"""Core app configuration, errors and security."""

from studyshare.core.config import get_settings, settings

__all__ = ["get_settings", "settings"]
