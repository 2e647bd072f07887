"""MongoDB connection handle shared by the invoice repository and GridFS storage.

One `Database` instance is created by the application lifespan and injected
into every component that needs the document store. The underlying motor
client keeps its own connection pool and is safe to share between concurrent
request tasks; this class only tracks whether the store is reachable and
re-establishes the connection on demand.

Based on Motor (asyncio MongoDB driver):
https://motor.readthedocs.io/
"""

import logging
from collections.abc import Callable
from typing import Any

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
    AsyncIOMotorGridFSBucket,
)
from pymongo.errors import ConnectionFailure, PyMongoError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from invoicedesk.shared.config import Settings
from invoicedesk.shared.errors import DatabaseUnavailableError

logger = logging.getLogger(__name__)


class Database:
    """Lazily connected MongoDB handle."""

    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[..., Any] = AsyncIOMotorClient,
    ) -> None:
        """Initialize the handle without opening any connection.

        Args:
            settings: Application settings with MongoDB configuration
            client_factory: Callable building the motor client (injectable for tests)
        """
        self.settings = settings
        self._client_factory = client_factory
        self._client: Any | None = None
        self._connected = False

    def _get_client(self) -> Any:
        """Get or create the motor client (lazy initialization)."""
        if self._client is None:
            self._client = self._client_factory(
                self.settings.mongodb_uri,
                serverSelectionTimeoutMS=self.settings.mongodb_server_selection_timeout_ms,
                connectTimeoutMS=self.settings.mongodb_connect_timeout_ms,
                socketTimeoutMS=self.settings.mongodb_socket_timeout_ms,
                maxPoolSize=self.settings.mongodb_max_pool_size,
                minPoolSize=0,
                maxIdleTimeMS=30000,
                retryWrites=True,
                w="majority",
                tz_aware=True,
            )
            logger.info("MongoDB client initialized")
        return self._client

    @retry(
        retry=retry_if_exception_type(ConnectionFailure),
        wait=wait_exponential_jitter(initial=0.5, max=5),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _ping(self) -> None:
        await self._get_client().admin.command("ping")

    async def connect(self) -> None:
        """Connect to MongoDB, verifying reachability with a ping.

        Raises:
            PyMongoError: If the server cannot be reached after all attempts
        """
        if self._connected:
            return

        logger.info("Connecting to MongoDB...")
        try:
            await self._ping()
        except PyMongoError as e:
            self._connected = False
            logger.error(f"MongoDB connection failed: {e}")
            raise

        self._connected = True
        logger.info(f"MongoDB connected (database: {self.settings.mongodb_database})")

    async def disconnect(self) -> None:
        """Close the client and forget it so the next connect starts fresh."""
        if self._client is None:
            return

        self._client.close()
        self._client = None
        self._connected = False
        logger.info("MongoDB disconnected")

    async def ensure_connected(self) -> None:
        """Reconnect if the handle is not currently connected.

        Raises:
            DatabaseUnavailableError: If the store cannot be reached
        """
        if self._connected:
            return

        logger.info("Database not connected, attempting to connect...")
        try:
            await self.connect()
        except PyMongoError as e:
            raise DatabaseUnavailableError(
                "Database connection failed. Please try again."
            ) from e

    def mark_disconnected(self) -> None:
        """Record that a live operation lost the connection."""
        if self._connected:
            logger.warning("MongoDB connection lost")
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    @property
    def connection_state(self) -> str:
        return "connected" if self._connected else "disconnected"

    @property
    def db(self) -> AsyncIOMotorDatabase:
        return self._get_client()[self.settings.mongodb_database]

    def collection(self, name: str) -> AsyncIOMotorCollection:
        return self.db[name]

    def gridfs_bucket(self, bucket_name: str = "uploads") -> AsyncIOMotorGridFSBucket:
        return AsyncIOMotorGridFSBucket(self.db, bucket_name=bucket_name)
