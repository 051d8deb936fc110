"""
Tests for ConnectionConfig and Connection.

MongoClient is patched by the autouse fixture in conftest.py.
"""

import pytest
from unittest.mock import MagicMock, patch

from pymongo import errors as pymongo_errors

from mongo_handle import Connection, ConnectionConfig, Database, StoreError
from mongo_handle.config import DEFAULT_TIMEOUT_MS


class TestConnectionConfig:
    """Tests for ConnectionConfig.from_env."""

    def test_requires_url(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="MONGODB_URL"):
                ConnectionConfig.from_env()

    def test_defaults(self):
        with patch.dict("os.environ", {"MONGODB_URL": "mongodb://localhost:27017/shop"}, clear=True):
            config = ConnectionConfig.from_env()

        assert config.url == "mongodb://localhost:27017/shop"
        assert config.database is None
        assert config.timeout_ms == DEFAULT_TIMEOUT_MS

    def test_all_variables(self):
        env = {
            "MONGODB_URL": "mongodb://db",
            "MONGODB_DATABASE": "shop",
            "MONGODB_TIMEOUT_MS": "250",
        }
        with patch.dict("os.environ", env, clear=True):
            config = ConnectionConfig.from_env()

        assert config == ConnectionConfig(url="mongodb://db", database="shop", timeout_ms=250)

    def test_invalid_timeout_falls_back(self):
        env = {"MONGODB_URL": "mongodb://db", "MONGODB_TIMEOUT_MS": "soon"}
        with patch.dict("os.environ", env, clear=True):
            config = ConnectionConfig.from_env()

        assert config.timeout_ms == DEFAULT_TIMEOUT_MS

    def test_loads_dotenv_file(self):
        with patch("mongo_handle.config.load_dotenv") as mock_load:
            with patch.dict("os.environ", {"MONGODB_URL": "mongodb://db"}, clear=True):
                ConnectionConfig.from_env(dotenv_path="/tmp/app.env")

        mock_load.assert_called_once_with("/tmp/app.env")


class TestConnection:
    """Tests for the Connection lifecycle."""

    @pytest.fixture
    def config(self):
        return ConnectionConfig(url="mongodb://test", database="shop", timeout_ms=100)

    def test_connect_creates_client_once(self, config, mock_mongo_client):
        connection = Connection(config)

        connection.connect()
        connection.connect()

        mock_mongo_client.assert_called_once_with("mongodb://test", serverSelectionTimeoutMS=100)
        assert connection.is_connected

    def test_client_before_connect(self, config):
        with pytest.raises(RuntimeError, match="connect"):
            Connection(config).client

    def test_disconnect_closes_client(self, config, mock_mongo_client):
        connection = Connection(config).connect()

        connection.disconnect()

        mock_mongo_client.return_value.close.assert_called_once_with()
        assert not connection.is_connected

    def test_disconnect_when_closed_is_noop(self, config):
        Connection(config).disconnect()

    def test_context_manager(self, config, mock_mongo_client):
        with Connection(config) as connection:
            assert connection.is_connected

        assert not connection.is_connected
        mock_mongo_client.return_value.close.assert_called_once_with()

    def test_database_uses_configured_name(self, config, mock_mongo_client):
        connection = Connection(config).connect()
        mock_mongo_client.return_value.__getitem__.reset_mock()

        database = connection.database()

        assert isinstance(database, Database)
        mock_mongo_client.return_value.__getitem__.assert_called_once_with("shop")

    def test_database_explicit_name(self, config, mock_mongo_client):
        connection = Connection(config).connect()
        mock_mongo_client.return_value.__getitem__.reset_mock()

        connection.database("other")

        mock_mongo_client.return_value.__getitem__.assert_called_once_with("other")

    def test_database_from_url(self, mock_mongo_client):
        client = mock_mongo_client.return_value
        connection = Connection(ConnectionConfig(url="mongodb://test/shop")).connect()

        database = connection.database()

        assert database.pymongo is client.get_default_database.return_value

    def test_database_fallback(self, mock_mongo_client):
        client = mock_mongo_client.return_value
        client.get_default_database.side_effect = pymongo_errors.ConfigurationError("no default")
        connection = Connection(ConnectionConfig(url="mongodb://test"))

        connection.connect()
        client.__getitem__.reset_mock()
        connection.database()

        client.__getitem__.assert_called_once_with("test")

    def test_ping(self, config, mock_mongo_client):
        connection = Connection(config).connect()

        assert connection.ping() is True
        mock_mongo_client.return_value.admin.command.assert_called_once_with("ping")

    def test_ping_failure(self, config, mock_mongo_client):
        mock_mongo_client.return_value.admin.command.side_effect = (
            pymongo_errors.ServerSelectionTimeoutError("no servers")
        )
        connection = Connection(config).connect()

        with pytest.raises(StoreError, match="ping"):
            connection.ping()

    def test_from_env(self):
        env = {"MONGODB_URL": "mongodb://db", "MONGODB_DATABASE": "shop"}
        with patch.dict("os.environ", env, clear=True):
            connection = Connection.from_env()

        assert connection.config.database == "shop"
        assert connection.name == "shop"
        assert not connection.is_connected
