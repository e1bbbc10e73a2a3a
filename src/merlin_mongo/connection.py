"""MongoConnectionManager: Motor client lifecycle, default database, health check."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pymongo.errors import ConfigurationError, PyMongoError

from .exceptions import MongoConnectionError

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

    from .config import MerlinMongoOptions

logger = logging.getLogger("merlin.mongo.connection")


class MongoConnectionManager:
    """Wrap Motor client with lifecycle and health-check helpers."""

    def __init__(
        self,
        url: str = "mongodb://localhost:27017",
        *,
        database: str | None = None,
        server_selection_timeout_ms: int = 5000,
        connect_timeout_ms: int = 10000,
        **kwargs: Any,
    ) -> None:
        self._url = url
        self._database = database
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._connect_timeout_ms = connect_timeout_ms
        self._kwargs = kwargs
        self._client: AsyncIOMotorClient[Any] | None = None

    @classmethod
    def from_options(cls, opts: MerlinMongoOptions) -> MongoConnectionManager:
        return cls(
            opts.database_url,
            database=opts.database,
            server_selection_timeout_ms=opts.server_selection_timeout_ms,
            connect_timeout_ms=opts.connect_timeout_ms,
            **opts.client_options,
        )

    async def connect(self) -> AsyncIOMotorClient[Any]:
        """Create and cache the Motor client. Idempotent."""
        if self._client is not None:
            return self._client
        from motor.motor_asyncio import AsyncIOMotorClient

        try:
            self._client = AsyncIOMotorClient(
                self._url,
                serverSelectionTimeoutMS=self._server_selection_timeout_ms,
                connectTimeoutMS=self._connect_timeout_ms,
                **self._kwargs,
            )
        except Exception as e:
            raise MongoConnectionError(str(e)) from e
        logger.debug("Motor client created for %s", self._url)
        return self._client

    @property
    def client(self) -> AsyncIOMotorClient[Any]:
        """Return the Motor client; raises if not connected."""
        if self._client is None:
            raise MongoConnectionError("Not connected; call connect() first")
        return self._client

    @property
    def connected(self) -> bool:
        return self._client is not None

    def database(self) -> AsyncIOMotorDatabase[Any]:
        """Return the configured database, or the URL's default database."""
        client = self.client
        if self._database:
            return client.get_database(self._database)
        try:
            return client.get_default_database()
        except ConfigurationError as e:
            raise MongoConnectionError(
                "No database name configured and the URL names no default database"
            ) from e

    def close(self) -> None:
        """Close the client (synchronous; Motor client.close() is sync)."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug("Motor client closed for %s", self._url)

    async def health_check(self) -> bool:
        """Ping the server; return True if reachable."""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            logger.debug("Ping to %s failed: %s", self._url, e)
            return False
        return True
