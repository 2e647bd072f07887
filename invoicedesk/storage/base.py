"""Abstract base class for file storage providers.

Enables switching between storage backends (GridFS chunks in the document
store, S3-compatible blob storage) behind one interface.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python

File identifiers are scoped to the provider that issued them: a file uploaded
through one implementation cannot be retrieved through another. The active
provider is chosen once at startup (see factory.py).
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FileMetadata(BaseModel):
    """Metadata describing one stored file.

    Attributes:
        file_id: Opaque identifier issued by the storage provider
        file_name: Original file name supplied at upload
        file_size: Size in bytes
        mime_type: Content type recorded at upload
        uploaded_at: Upload timestamp (UTC)
        url: Public URL, when the backend exposes one
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    file_id: str
    file_name: str
    file_size: int = Field(ge=0)
    mime_type: str
    uploaded_at: datetime
    url: str | None = None


class StorageProvider(ABC):
    """Abstract base class for binary file persistence.

    Every operation is a live round trip to the backend; nothing is cached.

    Example implementations:
    - GridFSStorageProvider: chunked storage in MongoDB
    - BlobStorageProvider: S3-compatible object storage
    """

    @abstractmethod
    async def upload(self, data: bytes, file_name: str, mime_type: str) -> FileMetadata:
        """Store a file under a newly generated identifier.

        Args:
            data: File content
            file_name: Original file name
            mime_type: Content type

        Returns:
            Metadata of the stored file

        Raises:
            StorageError: If the backend rejects the write
        """

    @abstractmethod
    async def download(self, file_id: str) -> bytes:
        """Read a file's content.

        Raises:
            NotFoundError: If the identifier is unknown to this provider
            StorageError: On backend failure
        """

    @abstractmethod
    async def delete(self, file_id: str) -> None:
        """Delete a file.

        Raises:
            NotFoundError: If the file does not exist (deleting twice is an error)
            StorageError: On backend failure
        """

    @abstractmethod
    async def get_file_info(self, file_id: str) -> FileMetadata:
        """Read a file's metadata without its content.

        Raises:
            NotFoundError: If the identifier is unknown to this provider
            StorageError: On backend failure
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier for logging/metrics (e.g., 'gridfs', 'blob')."""

    @staticmethod
    def new_file_id() -> str:
        """Generate a globally unique file identifier."""
        return str(uuid.uuid4())

    @staticmethod
    def utcnow() -> datetime:
        """Current UTC time truncated to the millisecond precision backends keep."""
        now = datetime.now(timezone.utc)
        return now.replace(microsecond=now.microsecond // 1000 * 1000)
