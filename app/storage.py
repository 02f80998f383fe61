"""Media storage for avatars and cover images (local or Google Cloud Storage).

Backends never raise on upload or delete: a failure is logged and reported
as ``None`` so the caller can decide which client error to surface.
"""

import logging
import mimetypes
import shutil
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from fastapi import UploadFile
from pydantic import BaseModel

from app.config import Settings

logger = logging.getLogger(__name__)


class UploadedMedia(BaseModel):
    """Where an uploaded asset can be fetched and how to delete it later."""

    url: str
    public_id: str


class MediaStorage(ABC):
    """Abstract media storage backend."""

    @abstractmethod
    async def upload(self, local_path: str | Path | None) -> UploadedMedia | None:
        """
        Upload a staged local file and remove the local copy.

        Args:
            local_path: Path of the staged file

        Returns:
            UploadedMedia, or None if there was nothing to upload or it failed
        """
        pass

    @abstractmethod
    async def delete(self, public_id: str | None) -> bool | None:
        """
        Delete a previously uploaded asset.

        Args:
            public_id: Identifier returned by upload()

        Returns:
            True if deleted, False if not found, None on failure or no id
        """
        pass

    @staticmethod
    def _new_public_id(local_path: Path) -> str:
        return f"{uuid.uuid4().hex}{local_path.suffix.lower()}"


class LocalMediaStorage(MediaStorage):
    """Local filesystem storage, served by the app under /media."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.base_path = Path(settings.media_local_path)
        self.url_base = settings.media_url_base.rstrip("/")

        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, public_id: str) -> Path | None:
        file_path = self.base_path / public_id
        # Refuse anything that escapes the media directory
        if not file_path.resolve().is_relative_to(self.base_path.resolve()):
            return None
        return file_path

    async def upload(self, local_path: str | Path | None) -> UploadedMedia | None:
        if not local_path:
            return None
        source = Path(local_path)
        try:
            public_id = self._new_public_id(source)
            shutil.copyfile(source, self.base_path / public_id)
            logger.info(f"Stored media locally: {public_id}")
            return UploadedMedia(url=f"{self.url_base}/media/{public_id}", public_id=public_id)
        except OSError:
            logger.warning(f"Local media upload failed for {source.name}", exc_info=True)
            return None
        finally:
            source.unlink(missing_ok=True)

    async def delete(self, public_id: str | None) -> bool | None:
        if not public_id:
            return None
        file_path = self._resolve(public_id)
        if file_path is None:
            logger.error(f"Attempted to delete media outside media directory: {public_id}")
            return None
        try:
            if file_path.exists():
                file_path.unlink()
                logger.info(f"Deleted local media: {public_id}")
                return True
            return False
        except OSError:
            logger.warning(f"Local media delete failed for {public_id}", exc_info=True)
            return None


class GCSMediaStorage(MediaStorage):
    """Google Cloud Storage backend serving public object URLs."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.bucket_name = settings.gcs_bucket_name
        self.credentials_file = settings.gcs_credentials_file

        if not self.bucket_name:
            raise ValueError("GCS bucket name is required when using GCS media storage")

        # Lazy import to avoid requiring google-cloud-storage for local-only deployments
        try:
            from google.cloud import storage
        except ImportError:
            raise ImportError(
                "google-cloud-storage is required for GCS backend. "
                "Install with: pip install google-cloud-storage"
            )

        if self.credentials_file:
            self.client = storage.Client.from_service_account_json(self.credentials_file)
        else:
            # Use default credentials (from GOOGLE_APPLICATION_CREDENTIALS env var or metadata)
            self.client = storage.Client()

        self.bucket = self.client.bucket(self.bucket_name)

    async def upload(self, local_path: str | Path | None) -> UploadedMedia | None:
        if not local_path:
            return None
        source = Path(local_path)
        try:
            blob_path = f"media/{self._new_public_id(source)}"
            content_type, _ = mimetypes.guess_type(source.name)
            blob = self.bucket.blob(blob_path)
            blob.upload_from_filename(
                str(source), content_type=content_type or "application/octet-stream"
            )
            logger.info(f"Stored media in GCS: gs://{self.bucket_name}/{blob_path}")
            return UploadedMedia(url=blob.public_url, public_id=blob_path)
        except Exception:
            logger.warning(f"GCS media upload failed for {source.name}", exc_info=True)
            return None
        finally:
            source.unlink(missing_ok=True)

    async def delete(self, public_id: str | None) -> bool | None:
        if not public_id:
            return None
        try:
            blob = self.bucket.blob(public_id)
            if blob.exists():
                blob.delete()
                logger.info(f"Deleted media from GCS: {public_id}")
                return True
            return False
        except Exception:
            logger.warning(f"GCS media delete failed for {public_id}", exc_info=True)
            return None


def get_media_storage_backend(settings: Settings) -> MediaStorage:
    """
    Factory function to get the configured media storage backend.

    Args:
        settings: Application settings

    Returns:
        Configured media storage instance
    """
    if settings.media_storage_backend == "local":
        return LocalMediaStorage(settings)
    elif settings.media_storage_backend == "gcs":
        return GCSMediaStorage(settings)
    else:
        raise ValueError(f"Unknown media storage backend: {settings.media_storage_backend}")


async def stage_upload(upload: UploadFile | None, tmp_dir: str | Path) -> Path | None:
    """
    Write a multipart upload to the staging directory.

    Args:
        upload: The uploaded file, if any
        tmp_dir: Staging directory

    Returns:
        Path of the staged file, or None if no file was sent
    """
    if upload is None or not upload.filename:
        return None

    staging = Path(tmp_dir)
    staging.mkdir(parents=True, exist_ok=True)
    # Only keep the extension of the client-supplied name
    staged = staging / f"{uuid.uuid4().hex}{Path(upload.filename).suffix.lower()}"
    with staged.open("wb") as out:
        shutil.copyfileobj(upload.file, out)
    await upload.close()
    return staged
