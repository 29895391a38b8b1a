"""
MongoDB connection management.

One MongoStore holds the single client session used for a whole process
run; every batch and query goes through the same collection handle.
"""

from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ..core.exceptions import MissingConfigError, StorageError
from ..utils.logger import get_logger

logger = get_logger("dirvec.storage.mongo")


class MongoStore:
    """
    MongoDB Atlas wrapper for the synchronized user collection.

    The client is created lazily on first use and reused until close().
    """

    def __init__(
        self,
        uri: Optional[str],
        database: str = "vector_db",
        collection: str = "documents",
        server_selection_timeout_ms: int = 10000,
        client: Optional[MongoClient] = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            uri: MongoDB connection string.
            database: Database name.
            collection: Collection holding embedded documents.
            server_selection_timeout_ms: How long to wait for a reachable server.
            client: Existing client to use instead of connecting with uri.
        """
        if client is None and not uri:
            raise MissingConfigError("MongoDB connection string is not configured (MONGO_URI)")

        self.uri = uri
        self.database_name = database
        self.collection_name = collection
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self._client = client

    @property
    def client(self) -> MongoClient:
        """Get or create the MongoDB client."""
        if self._client is None:
            self._client = MongoClient(
                self.uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            )
            logger.info(
                f"MongoDB client created: {self.database_name}.{self.collection_name}"
            )
        return self._client

    @property
    def database(self) -> Database:
        return self.client[self.database_name]

    @property
    def collection(self) -> Collection:
        return self.database[self.collection_name]

    def ping(self) -> None:
        """
        Check that the server is reachable.

        Raises:
            StorageError: If the server cannot be reached.
        """
        try:
            self.client.admin.command("ping")
        except PyMongoError as e:
            raise StorageError(
                f"Failed to connect to MongoDB: {e}",
                {"database": self.database_name},
            ) from e
        logger.info("Connected to MongoDB")

    def close(self) -> None:
        """Close the MongoDB client."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("MongoDB connection closed")

    def __enter__(self) -> "MongoStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
