"""Factory for selecting the file storage provider at startup.

The provider is an environment-level choice fixed for the life of the
process: identifiers issued by one backend are meaningless to the other.
"""

import logging

from invoicedesk.shared.config import Settings
from invoicedesk.shared.database import Database
from invoicedesk.storage.base import StorageProvider
from invoicedesk.storage.blob_provider import BlobStorageProvider
from invoicedesk.storage.gridfs_provider import GridFSStorageProvider

logger = logging.getLogger(__name__)


def select_storage_backend(settings: Settings) -> str:
    """Decide which backend the settings call for.

    With `storage_provider="auto"`, blob storage is used only when both blob
    credentials are present and the deployment runs in production; every
    other combination falls back to GridFS.

    Args:
        settings: Application settings

    Returns:
        'blob' or 'gridfs'
    """
    if settings.storage_provider != "auto":
        return settings.storage_provider

    if settings.has_blob_credentials and settings.environment == "production":
        return "blob"
    return "gridfs"


def create_storage_provider(settings: Settings, database: Database) -> StorageProvider:
    """Create the storage provider selected by configuration.

    Args:
        settings: Application settings
        database: Shared MongoDB handle (used by the GridFS backend)

    Returns:
        Configured storage provider

    Raises:
        StorageError: If blob storage is selected without credentials
    """
    backend = select_storage_backend(settings)

    provider: StorageProvider
    if backend == "blob":
        provider = BlobStorageProvider(settings)
    else:
        provider = GridFSStorageProvider(database)

    logger.info(f"Created storage provider: {provider.provider_name}")
    return provider
