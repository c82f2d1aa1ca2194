import asyncio
import logging
from pathlib import Path
from typing import Protocol

from google.cloud import storage

from listing_scraper.config import Settings
from listing_scraper.exceptions.custom import StorageError

logger = logging.getLogger(__name__)


class ImageStore(Protocol):
    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """Persist bytes under key; return an opaque handle."""
        ...

    def public_url(self, handle: str) -> str: ...


class LocalImageStore:
    """Writes images under a directory the web app serves statically."""

    def __init__(self, root: Path, public_base_url: str):
        self._root = Path(root)
        self._base = public_base_url.rstrip("/")

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._root / key
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as exc:
            raise StorageError(f"Could not write image {path}: {exc}") from exc
        logger.debug("Stored %s (%s, %d bytes)", path, content_type, len(data))
        return key

    def public_url(self, handle: str) -> str:
        return f"{self._base}/{handle}"

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


class GCSImageStore:
    """Google Cloud Storage bucket; the sync client runs in a worker thread."""

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "property-images",
        credentials_path: str = "",
        public_base_url: str = "",
        client: storage.Client | None = None,
    ):
        if client is None:
            client = (
                storage.Client.from_service_account_json(credentials_path)
                if credentials_path
                else storage.Client()
            )
        self._bucket = client.bucket(bucket_name)
        self._prefix = prefix.strip("/")
        self._public_base = public_base_url.rstrip("/")

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        blob_path = f"{self._prefix}/{key}" if self._prefix else key
        blob = self._bucket.blob(blob_path)
        try:
            await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)
        except Exception as exc:
            raise StorageError(f"GCS upload failed for {blob_path}: {exc}") from exc
        logger.info("GCS uploaded %s (%s)", blob_path, content_type)
        return blob_path

    def public_url(self, handle: str) -> str:
        if self._public_base:
            return f"{self._public_base}/{handle}"
        return self._bucket.blob(handle).public_url


def build_image_store(settings: Settings) -> ImageStore:
    if settings.storage_backend == "gcs":
        if not settings.gcs_bucket:
            raise ValueError("STORAGE_BACKEND=gcs requires GCS_BUCKET")
        return GCSImageStore(
            settings.gcs_bucket,
            prefix=settings.gcs_prefix,
            credentials_path=settings.gcs_credentials_path,
            public_base_url=settings.gcs_public_base_url,
        )
    if settings.storage_backend != "local":
        raise ValueError(f"Unknown STORAGE_BACKEND {settings.storage_backend!r}")
    return LocalImageStore(settings.image_dir, settings.image_public_base_url)
