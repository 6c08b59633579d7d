from __future__ import annotations

from datetime import timedelta
import gzip
from pathlib import Path
from types import SimpleNamespace
import tempfile
import unittest
from unittest.mock import MagicMock

from firestore_toolkit.blob_storage import BlobStorageError, CloudStorageUploader, create_storage_uploader


class CloudStorageUploaderTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.local_file = Path(self.tmpdir.name) / "report.json"
        self.local_file.write_bytes(b'{"ok": true}')

    def test_upload_gzips_and_returns_destination(self) -> None:
        bucket = MagicMock()
        blob = bucket.blob.return_value
        uploader = CloudStorageUploader(bucket)

        destination = uploader.upload(self.local_file, "reports/2026/", "report.json", {"owner": "u1"})

        self.assertEqual(destination, "reports/2026/report.json")
        bucket.blob.assert_called_once_with("reports/2026/report.json")
        self.assertEqual(blob.metadata, {"owner": "u1"})
        self.assertEqual(blob.content_encoding, "gzip")
        content = blob.upload_from_string.call_args.args[0]
        self.assertEqual(gzip.decompress(content), b'{"ok": true}')
        self.assertEqual(blob.upload_from_string.call_args.kwargs["content_type"], "application/json")

    def test_upload_without_gzip(self) -> None:
        bucket = MagicMock()
        uploader = CloudStorageUploader(bucket, gzip_upload=False)

        uploader.upload(self.local_file, "", "blob.unknownext")

        blob = bucket.blob.return_value
        blob.upload_from_string.assert_called_once_with(
            b'{"ok": true}',
            content_type="application/octet-stream",
        )

    def test_upload_failure_is_wrapped(self) -> None:
        bucket = MagicMock()
        bucket.blob.return_value.upload_from_string.side_effect = RuntimeError("forbidden")

        with self.assertRaises(BlobStorageError) as ctx:
            CloudStorageUploader(bucket).upload(self.local_file, "reports/", "report.json")
        self.assertIn("reports/report.json", str(ctx.exception))

    def test_missing_local_file_is_wrapped(self) -> None:
        with self.assertRaises(BlobStorageError):
            CloudStorageUploader(MagicMock()).upload(Path(self.tmpdir.name) / "nope", "x/", "nope")

    def test_get_download_link_signs_url(self) -> None:
        bucket = MagicMock()
        bucket.blob.return_value.generate_signed_url.return_value = "https://signed.example.com/x"
        uploader = CloudStorageUploader(bucket, signed_url_ttl=timedelta(minutes=5))

        link = uploader.get_download_link("reports/report.json")

        self.assertEqual(link, "https://signed.example.com/x")
        bucket.blob.assert_called_once_with("reports/report.json")
        bucket.blob.return_value.generate_signed_url.assert_called_once_with(
            version="v4",
            expiration=timedelta(minutes=5),
            method="GET",
        )

    def test_get_download_link_failure_is_wrapped(self) -> None:
        bucket = MagicMock()
        bucket.blob.return_value.generate_signed_url.side_effect = AttributeError("no private key")

        with self.assertRaises(BlobStorageError):
            CloudStorageUploader(bucket).get_download_link("reports/report.json")

    def test_factory_requires_bucket(self) -> None:
        settings = SimpleNamespace(storage_bucket="", firestore_project_id="", signed_url_ttl_minutes=15)

        with self.assertRaises(RuntimeError):
            create_storage_uploader(settings)


if __name__ == "__main__":
    unittest.main()
