"""FastAPI dependencies for API routers."""

from pathlib import Path

from app.config import get_settings
from app.storage import MediaStorage, get_media_storage_backend

_media_storage: MediaStorage | None = None


def get_media_storage() -> MediaStorage:
    """Dependency for FastAPI routes to get the configured media storage.

    Returns:
        Media storage backend instance
    """
    global _media_storage

    if _media_storage is None:
        _media_storage = get_media_storage_backend(get_settings())

    return _media_storage


def get_upload_dir() -> Path:
    """Dependency returning the staging directory for multipart uploads."""
    return Path(get_settings().upload_tmp_dir)
