"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- MongoDB connection attempts (MongoClient would wait for server selection)
- Environment variable isolation (a developer's MONGODB_URL must not leak in)

These fixtures apply automatically to ALL tests in tests/unit/.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from fixtures.sample_products import Product  # noqa: E402
from mongo_handle import Handle, MemoryDatabase  # noqa: E402
from mongo_handle import logger as handle_logger  # noqa: E402


@pytest.fixture(autouse=True)
def mock_mongo_client():
    """
    Prevent MongoDB connection attempts in all unit tests.

    Setup chain: client["db"]["collection"]
    """
    with patch("mongo_handle.connection.MongoClient") as mock_client:
        mock_instance = MagicMock()
        mock_db = MagicMock()
        mock_collection = MagicMock()

        mock_instance.__getitem__ = MagicMock(return_value=mock_db)
        mock_db.__getitem__ = MagicMock(return_value=mock_collection)

        mock_client.return_value = mock_instance
        yield mock_client


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Remove connection settings and reset debug mode for every test."""
    for name in ("MONGODB_URL", "MONGODB_DATABASE", "MONGODB_TIMEOUT_MS", "MONGO_HANDLE_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("mongo_handle.config.load_dotenv", lambda *args, **kwargs: False)
    handle_logger.set_global_debug_mode(False)
    yield
    handle_logger.set_global_debug_mode(False)


@pytest.fixture
def memory_db():
    """Fresh in-memory database."""
    return MemoryDatabase("test")


@pytest.fixture
def products(memory_db):
    """Product handle linked to the in-memory database."""
    return Handle(Product, "products").link(memory_db)
