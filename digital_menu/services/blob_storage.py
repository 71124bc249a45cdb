"""
Image blob storage.

Uploads go to MinIO when credentials are configured and to a local media
directory otherwise. Callers only see ``upload -> StoredBlob(url, handle)``
and ``delete(handle)``.
"""
import io
import logging
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Protocol

from minio import Minio
from minio.error import S3Error

from digital_menu.core.config import settings
from digital_menu.core.exceptions import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


@dataclass
class StoredBlob:
    url: str
    handle: str


class BlobStore(Protocol):
    def upload(self, data: bytes, filename: str, content_type: str, folder: str) -> StoredBlob:
        ...

    def delete(self, handle: str) -> None:
        ...


def validate_image(data: bytes, content_type: Optional[str], max_bytes: int) -> None:
    """Reject non-image uploads, empty files and files above ``max_bytes``."""
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError("Please upload an image file")
    if not data:
        raise ValidationError("Uploaded image is empty")
    if len(data) > max_bytes:
        raise ValidationError(
            f"Image too large ({len(data)} bytes). Maximum is {max_bytes // (1024 * 1024)} MB"
        )


def _object_name(folder: str, filename: str, content_type: str) -> str:
    ext = _EXTENSIONS.get(content_type)
    if ext is None:
        ext = Path(filename).suffix.lstrip(".").lower() or "bin"
    return f"{folder}/{uuid.uuid4().hex}.{ext}"


class MinioBlobStore:
    """S3-compatible storage on MinIO."""

    def __init__(self, client: Optional[Minio] = None, bucket: Optional[str] = None):
        self.bucket = bucket or settings.minio_bucket
        self._client = client or Minio(
            settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
        )
        scheme = "https" if settings.minio_secure else "http"
        self.public_url = (settings.minio_public_url or f"{scheme}://{settings.minio_endpoint}").rstrip("/")
        self._bucket_ready = False

    def _ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        if not self._client.bucket_exists(self.bucket):
            self._client.make_bucket(self.bucket)
            logger.info(f"Created MinIO bucket: {self.bucket}")
        self._bucket_ready = True

    def upload(self, data: bytes, filename: str, content_type: str, folder: str) -> StoredBlob:
        object_name = _object_name(folder, filename, content_type)
        try:
            self._ensure_bucket()
            self._client.put_object(
                self.bucket,
                object_name,
                io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as e:
            logger.error(f"MinIO upload failed for {object_name}: {e}")
            raise ExternalServiceError("Blob storage", "upload failed")
        return StoredBlob(url=f"{self.public_url}/{self.bucket}/{object_name}", handle=object_name)

    def delete(self, handle: str) -> None:
        self._client.remove_object(self.bucket, handle)


class LocalBlobStore:
    """Files under ``media_root``, served from ``media_url``."""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or settings.media_root).resolve()
        self.base_url = (base_url or settings.media_url).rstrip("/")

    def _path(self, handle: str) -> Path:
        path = (self.root / handle).resolve()
        if self.root not in path.parents:
            raise ValidationError("Invalid blob handle")
        return path

    def upload(self, data: bytes, filename: str, content_type: str, folder: str) -> StoredBlob:
        handle = _object_name(folder, filename, content_type)
        path = self._path(handle)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Local upload failed for {handle}: {e}")
            raise ExternalServiceError("Blob storage", "upload failed")
        return StoredBlob(url=f"{self.base_url}/{handle}", handle=handle)

    def delete(self, handle: str) -> None:
        self._path(handle).unlink(missing_ok=True)


def delete_quietly(store: BlobStore, handle: Optional[str]) -> None:
    """Best-effort delete; a leftover blob is not worth failing a request for."""
    if not handle:
        return
    try:
        store.delete(handle)
    except Exception as e:
        logger.warning(f"Failed to delete blob {handle}: {e}")


@lru_cache
def _default_store() -> BlobStore:
    if settings.minio_enabled:
        logger.info("Blob storage: MinIO")
        return MinioBlobStore()
    logger.warning("MinIO credentials not configured, using local storage fallback")
    return LocalBlobStore()


def get_blob_store() -> BlobStore:
    """FastAPI dependency; overridden in tests."""
    return _default_store()
