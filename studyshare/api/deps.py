"""Dependencies that hand the per-app settings, store and file storage to route handlers."""

from fastapi import Request

from studyshare.core.config import Settings
from studyshare.repositories.base import Store
from studyshare.services.file_storage import FileStorage


def get_app_settings(request: Request) -> Settings:
    """The Settings the app was built with (may differ from the process-wide defaults)."""
    return request.app.state.settings


def get_store(request: Request) -> Store:
    """The Store built once at startup and kept on app.state."""
    return request.app.state.store


def get_file_storage(request: Request) -> FileStorage:
    return request.app.state.file_storage
