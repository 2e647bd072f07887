"""GridFS storage provider: files stored as chunks in the document store.

Uploads land in the `uploads` GridFS bucket of the application database. The
generated UUID string is used directly as the GridFS file `_id`, so lookups
need no translation and identifiers from other providers simply miss.

Based on Motor GridFS API:
https://motor.readthedocs.io/en/stable/api-asyncio/asyncio_gridfs.html
"""

import logging
from datetime import datetime, timezone

from gridfs.errors import NoFile
from pymongo.errors import PyMongoError

from invoicedesk.shared.database import Database
from invoicedesk.shared.errors import NotFoundError, StorageError
from invoicedesk.storage.base import FileMetadata, StorageProvider

logger = logging.getLogger(__name__)


class GridFSStorageProvider(StorageProvider):
    """Chunked file storage in MongoDB GridFS."""

    def __init__(self, database: Database, bucket_name: str = "uploads") -> None:
        """Initialize provider.

        Args:
            database: Shared MongoDB handle
            bucket_name: GridFS bucket name
        """
        self.database = database
        self.bucket_name = bucket_name

    @property
    def provider_name(self) -> str:
        return "gridfs"

    def _bucket(self):  # type: ignore[no-untyped-def]
        return self.database.gridfs_bucket(self.bucket_name)

    async def upload(self, data: bytes, file_name: str, mime_type: str) -> FileMetadata:
        file_id = self.new_file_id()
        uploaded_at = self.utcnow()

        try:
            await self._bucket().upload_from_stream_with_id(
                file_id,
                file_name,
                data,
                metadata={
                    "fileId": file_id,
                    "originalName": file_name,
                    "contentType": mime_type,
                    "uploadedAt": uploaded_at.isoformat(),
                },
            )
        except PyMongoError as e:
            logger.error(f"GridFS upload of {file_name} failed: {e}")
            raise StorageError(f"Failed to upload file to GridFS: {e}") from e

        logger.info(f"Uploaded {file_name} to GridFS as {file_id} ({len(data)} bytes)")

        return FileMetadata(
            file_id=file_id,
            file_name=file_name,
            file_size=len(data),
            mime_type=mime_type,
            uploaded_at=uploaded_at,
        )

    async def download(self, file_id: str) -> bytes:
        try:
            grid_out = await self._bucket().open_download_stream(file_id)
            data: bytes = await grid_out.read()
        except NoFile as e:
            raise NotFoundError("File not found") from e
        except PyMongoError as e:
            logger.error(f"GridFS download of {file_id} failed: {e}")
            raise StorageError(f"Failed to download file from GridFS: {e}") from e

        return data

    async def delete(self, file_id: str) -> None:
        try:
            await self._bucket().delete(file_id)
        except NoFile as e:
            raise NotFoundError("File not found") from e
        except PyMongoError as e:
            logger.error(f"GridFS delete of {file_id} failed: {e}")
            raise StorageError(f"Failed to delete file from GridFS: {e}") from e

        logger.info(f"Deleted {file_id} from GridFS")

    async def get_file_info(self, file_id: str) -> FileMetadata:
        try:
            grid_out = await self._bucket().open_download_stream(file_id)
        except NoFile as e:
            raise NotFoundError("File not found") from e
        except PyMongoError as e:
            logger.error(f"GridFS lookup of {file_id} failed: {e}")
            raise StorageError(f"Failed to get file info from GridFS: {e}") from e

        metadata = grid_out.metadata or {}
        uploaded_at = metadata.get("uploadedAt") or grid_out.upload_date
        if isinstance(uploaded_at, datetime) and uploaded_at.tzinfo is None:
            uploaded_at = uploaded_at.replace(tzinfo=timezone.utc)

        return FileMetadata(
            file_id=metadata.get("fileId", file_id),
            file_name=grid_out.filename,
            file_size=grid_out.length,
            mime_type=metadata.get("contentType") or "application/octet-stream",
            uploaded_at=uploaded_at,
        )
