"""
Connection configuration loaded from environment variables.

A ``.env`` file in the working directory is read first, so local
development does not need exported variables.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000


@dataclass
class ConnectionConfig:
    """
    Settings needed to open the shared MongoDB connection.

    Attributes:
        url: MongoDB connection string
        database: Database name; None means the one named in the URL
        timeout_ms: Server selection timeout handed to MongoClient
    """
    url: str
    database: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "ConnectionConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - MONGODB_URL (required): MongoDB connection string
        - MONGODB_DATABASE: Database name (default: database in the URL)
        - MONGODB_TIMEOUT_MS: Server selection timeout in milliseconds

        Args:
            dotenv_path: Optional explicit .env file to load

        Returns:
            ConnectionConfig instance

        Raises:
            ValueError: If MONGODB_URL is not set
        """
        load_dotenv(dotenv_path)

        url = os.getenv("MONGODB_URL")
        if not url:
            raise ValueError("MONGODB_URL environment variable is required")

        database = os.getenv("MONGODB_DATABASE") or None

        timeout_str = os.getenv("MONGODB_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))
        try:
            timeout_ms = int(timeout_str)
        except ValueError:
            logger.warning(
                f"Invalid MONGODB_TIMEOUT_MS '{timeout_str}', defaulting to {DEFAULT_TIMEOUT_MS}"
            )
            timeout_ms = DEFAULT_TIMEOUT_MS

        return cls(url=url, database=database, timeout_ms=timeout_ms)
