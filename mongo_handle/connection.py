"""
Explicit MongoDB connection owning the pymongo client.

One Connection is created at startup and passed to whatever links handles;
there is no module-level session. PyMongo pools connections internally and
is safe to share between threads.

Usage:
    with Connection.from_env() as connection:
        products = Handle(Product, "products").link(connection.database())
"""

import logging
from typing import Optional

from pymongo import MongoClient
from pymongo import errors as pymongo_errors

from .config import ConnectionConfig
from .elements.base import Databaser
from .elements.driver import Database
from .errors import store_operation

logger = logging.getLogger(__name__)

# Database used when neither the config nor the URL names one
FALLBACK_DATABASE = "test"


class Connection:
    """
    Lifecycle owner of a MongoClient.

    connect() is idempotent; disconnect() closes the client and allows a
    later connect() to open a new one.
    """

    def __init__(self, config: ConnectionConfig):
        self._config = config
        self._client: Optional[MongoClient] = None

    @classmethod
    def from_env(cls) -> "Connection":
        """Build a connection from MONGODB_URL and friends."""
        return cls(ConnectionConfig.from_env())

    @property
    def name(self) -> str:
        return self._config.database or "default"

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> MongoClient:
        """
        The live MongoClient.

        Raises:
            RuntimeError: If connect() has not been called
        """
        if self._client is None:
            raise RuntimeError("Connection not open. Call connect() first.")
        return self._client

    def connect(self) -> "Connection":
        """Create the MongoClient if not already created."""
        if self._client is None:
            self._client = MongoClient(
                self._config.url,
                serverSelectionTimeoutMS=self._config.timeout_ms,
            )
            logger.info(f"Connected to MongoDB: {self.database().name}")
        return self

    def disconnect(self) -> None:
        """Close the MongoDB connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Disconnected from MongoDB")

    def database(self, name: Optional[str] = None) -> Databaser:
        """
        Return a database by name.

        Args:
            name: Database name; defaults to the configured one, then the one
                  in the URL, then "test"
        """
        client = self.client
        name = name or self._config.database
        if name:
            return Database(client[name])
        try:
            return Database(client.get_default_database())
        except pymongo_errors.ConfigurationError:
            return Database(client[FALLBACK_DATABASE])

    @store_operation("ping")
    def ping(self) -> bool:
        """Round trip to the server; raises StoreError when unreachable."""
        self.client.admin.command("ping")
        return True

    def __enter__(self) -> "Connection":
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()
