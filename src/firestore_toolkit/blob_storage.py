from __future__ import annotations

from datetime import timedelta
import gzip
import logging
import mimetypes
from pathlib import Path
from typing import Any, Mapping

from firestore_toolkit.settings import AppSettings


LOGGER = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class BlobStorageError(RuntimeError):
    """Raised when a Cloud Storage upload or link generation fails."""


class CloudStorageUploader:
    def __init__(
        self,
        bucket: Any,
        *,
        signed_url_ttl: timedelta = timedelta(minutes=15),
        gzip_upload: bool = True,
    ) -> None:
        self._bucket = bucket
        self._signed_url_ttl = signed_url_ttl
        self._gzip_upload = gzip_upload

    def upload(
        self,
        local_file_path: str | Path,
        destination_prefix: str,
        file_name: str,
        metadata: Mapping[str, str] | None = None,
    ) -> str:
        """Upload a local file to ``destination_prefix + file_name``.

        The prefix is concatenated as-is, so it usually ends with ``/``.
        Returns the destination path.
        """

        destination = f"{destination_prefix}{file_name}"
        content_type = mimetypes.guess_type(file_name)[0] or DEFAULT_CONTENT_TYPE
        try:
            blob = self._bucket.blob(destination)
            if metadata:
                blob.metadata = dict(metadata)
            content = Path(local_file_path).read_bytes()
            if self._gzip_upload:
                blob.content_encoding = "gzip"
                content = gzip.compress(content)
            blob.upload_from_string(content, content_type=content_type)
        except Exception as exc:
            LOGGER.exception("storage upload failed: local=%s destination=%s", local_file_path, destination)
            raise BlobStorageError(f"upload failed: {destination}: {exc}") from exc
        return destination

    def get_download_link(self, destination_path: str) -> str:
        try:
            blob = self._bucket.blob(destination_path)
            return blob.generate_signed_url(
                version="v4",
                expiration=self._signed_url_ttl,
                method="GET",
            )
        except Exception as exc:
            LOGGER.exception("storage link generation failed: destination=%s", destination_path)
            raise BlobStorageError(f"download link failed: {destination_path}: {exc}") from exc


def create_storage_uploader(settings: AppSettings) -> CloudStorageUploader:
    if not settings.storage_bucket:
        raise RuntimeError("STORAGE_BUCKET is not set.")
    try:
        from google.cloud import storage
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "google-cloud-storage is not installed. Run `pip install -e .`."
        ) from exc

    client = storage.Client(project=settings.firestore_project_id or None)
    return CloudStorageUploader(
        client.bucket(settings.storage_bucket),
        signed_url_ttl=timedelta(minutes=settings.signed_url_ttl_minutes),
    )
