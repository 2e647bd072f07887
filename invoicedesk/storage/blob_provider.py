"""S3-compatible blob storage provider using MinIO.

Each upload becomes one object named after its file identifier. The original
file name and upload timestamp travel as object user metadata, so metadata
lookups need nothing but the object itself.

The MinIO SDK is blocking; every call runs in a worker thread so request
tasks never stall the event loop.

Based on MinIO Python SDK:
https://min.io/docs/minio/linux/developers/python/API.html
"""

import asyncio
import io
import logging
from datetime import datetime
from urllib.parse import quote, unquote

from minio import Minio
from minio.error import S3Error

from invoicedesk.shared.config import Settings
from invoicedesk.shared.errors import NotFoundError, StorageError
from invoicedesk.storage.base import FileMetadata, StorageProvider

logger = logging.getLogger(__name__)

_MISSING_CODES = {"NoSuchKey", "NoSuchObject", "NoSuchBucket", "ResourceNotFound"}

_META_FILE_NAME = "x-amz-meta-file-name"
_META_UPLOADED_AT = "x-amz-meta-uploaded-at"


class BlobStorageProvider(StorageProvider):
    """Object storage backed by an S3-compatible service."""

    def __init__(self, settings: Settings) -> None:
        """Initialize provider.

        Args:
            settings: Application settings with storage configuration

        Raises:
            StorageError: If storage credentials are not configured
        """
        if not settings.has_blob_credentials:
            raise StorageError(
                "Blob storage credentials are not configured. "
                "Set APP_STORAGE_ACCESS_KEY and APP_STORAGE_SECRET_KEY."
            )
        self.settings = settings
        self.bucket = settings.storage_bucket
        self._client: Minio | None = None
        self._bucket_ready = False

    @property
    def provider_name(self) -> str:
        return "blob"

    def _get_client(self) -> Minio:
        """Get or create MinIO client (lazy initialization)."""
        if self._client is None:
            self._client = Minio(
                endpoint=self.settings.storage_endpoint,
                access_key=self.settings.storage_access_key,
                secret_key=self.settings.storage_secret_key,
                secure=self.settings.storage_secure,
            )
            logger.info(f"MinIO client initialized for endpoint: {self.settings.storage_endpoint}")

        return self._client

    def _ensure_bucket(self) -> None:
        if self._bucket_ready:
            return

        client = self._get_client()
        if not client.bucket_exists(self.bucket):
            client.make_bucket(self.bucket)
            logger.info(f"Created bucket: {self.bucket}")

        self._bucket_ready = True

    @staticmethod
    def _translate(e: S3Error, action: str, file_id: str) -> Exception:
        if e.code in _MISSING_CODES:
            return NotFoundError("File not found")
        logger.error(f"S3 error during {action} of {file_id}: {e}")
        return StorageError(f"Failed to {action} file in blob storage: {e.code} - {e.message}")

    def _put(
        self, file_id: str, data: bytes, file_name: str, mime_type: str, uploaded_at: datetime
    ) -> None:
        self._ensure_bucket()
        self._get_client().put_object(
            bucket_name=self.bucket,
            object_name=file_id,
            data=io.BytesIO(data),
            length=len(data),
            content_type=mime_type,
            metadata={
                "file-name": quote(file_name),
                "uploaded-at": uploaded_at.isoformat(),
            },
        )

    def _get(self, file_id: str) -> bytes:
        response = self._get_client().get_object(bucket_name=self.bucket, object_name=file_id)
        try:
            data: bytes = response.read()
        finally:
            response.close()
            response.release_conn()
        return data

    def _stat(self, file_id: str) -> FileMetadata:
        stat = self._get_client().stat_object(bucket_name=self.bucket, object_name=file_id)
        metadata = stat.metadata or {}
        uploaded_at = metadata.get(_META_UPLOADED_AT) or stat.last_modified
        return FileMetadata(
            file_id=file_id,
            file_name=unquote(metadata.get(_META_FILE_NAME) or file_id),
            file_size=stat.size or 0,
            mime_type=stat.content_type or "application/octet-stream",
            uploaded_at=uploaded_at,
        )

    def _remove(self, file_id: str) -> None:
        client = self._get_client()
        # remove_object succeeds for missing keys; stat first so absence is reported
        client.stat_object(bucket_name=self.bucket, object_name=file_id)
        client.remove_object(bucket_name=self.bucket, object_name=file_id)

    async def upload(self, data: bytes, file_name: str, mime_type: str) -> FileMetadata:
        file_id = self.new_file_id()
        uploaded_at = self.utcnow()

        try:
            await asyncio.to_thread(self._put, file_id, data, file_name, mime_type, uploaded_at)
        except S3Error as e:
            logger.error(f"S3 error uploading {file_name}: {e}")
            raise StorageError(f"Failed to upload file to blob storage: {e.code} - {e.message}") from e
        except Exception as e:
            logger.error(f"Error uploading {file_name}: {e}")
            raise StorageError(f"Failed to upload file to blob storage: {e}") from e

        logger.info(f"Uploaded {file_name} to {self.bucket} as {file_id} ({len(data)} bytes)")

        return FileMetadata(
            file_id=file_id,
            file_name=file_name,
            file_size=len(data),
            mime_type=mime_type,
            uploaded_at=uploaded_at,
        )

    async def download(self, file_id: str) -> bytes:
        try:
            return await asyncio.to_thread(self._get, file_id)
        except S3Error as e:
            raise self._translate(e, "download", file_id) from e
        except Exception as e:
            logger.error(f"Error downloading {file_id}: {e}")
            raise StorageError(f"Failed to download file from blob storage: {e}") from e

    async def delete(self, file_id: str) -> None:
        try:
            await asyncio.to_thread(self._remove, file_id)
        except S3Error as e:
            raise self._translate(e, "delete", file_id) from e
        except Exception as e:
            logger.error(f"Error deleting {file_id}: {e}")
            raise StorageError(f"Failed to delete file from blob storage: {e}") from e

        logger.info(f"Deleted {file_id} from {self.bucket}")

    async def get_file_info(self, file_id: str) -> FileMetadata:
        try:
            return await asyncio.to_thread(self._stat, file_id)
        except S3Error as e:
            raise self._translate(e, "read", file_id) from e
        except Exception as e:
            logger.error(f"Error reading metadata of {file_id}: {e}")
            raise StorageError(f"Failed to read file in blob storage: {e}") from e
