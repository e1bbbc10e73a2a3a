"""Unit tests for MongoConnectionManager (without real MongoDB)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ConfigurationError

from merlin_mongo.config import MerlinMongoOptions
from merlin_mongo.connection import MongoConnectionManager
from merlin_mongo.exceptions import MongoConnectionError


def test_client_raises_before_connect() -> None:
    mgr = MongoConnectionManager(url="mongodb://localhost:27017")
    with pytest.raises(MongoConnectionError, match="Not connected"):
        _ = mgr.client


def test_close_idempotent() -> None:
    mgr = MongoConnectionManager()
    mgr.close()  # sync; idempotent when not connected
    mgr.close()
    assert not mgr.connected


def test_from_options() -> None:
    opts = MerlinMongoOptions.coerce(
        {
            "databaseUrl": "mongodb://h:1/app",
            "database": "app",
            "server_selection_timeout_ms": 100,
            "client_options": {"appname": "merlin"},
        }
    )
    mgr = MongoConnectionManager.from_options(opts)
    assert mgr._url == "mongodb://h:1/app"
    assert mgr._database == "app"
    assert mgr._server_selection_timeout_ms == 100
    assert mgr._kwargs == {"appname": "merlin"}


@pytest.mark.asyncio
async def test_connect_is_idempotent(monkeypatch) -> None:
    import motor.motor_asyncio

    created = []

    def fake_client(*args, **kwargs):
        created.append((args, kwargs))
        return MagicMock()

    monkeypatch.setattr(motor.motor_asyncio, "AsyncIOMotorClient", fake_client)

    mgr = MongoConnectionManager(url="mongodb://localhost:27017", connect_timeout_ms=7)
    first = await mgr.connect()
    second = await mgr.connect()

    assert first is second
    assert len(created) == 1
    assert created[0][1]["connectTimeoutMS"] == 7


@pytest.mark.asyncio
async def test_connect_failure_wrapped(monkeypatch) -> None:
    import motor.motor_asyncio

    def broken_client(*args, **kwargs):
        raise ConfigurationError("bad uri")

    monkeypatch.setattr(motor.motor_asyncio, "AsyncIOMotorClient", broken_client)

    mgr = MongoConnectionManager(url="mongodb://bad")
    with pytest.raises(MongoConnectionError, match="bad uri"):
        await mgr.connect()


def test_database_uses_configured_name() -> None:
    mgr = MongoConnectionManager(database="app")
    mgr._client = MagicMock()
    mgr.database()
    mgr._client.get_database.assert_called_once_with("app")


def test_database_falls_back_to_url_default() -> None:
    mgr = MongoConnectionManager()
    mgr._client = MagicMock()
    mgr.database()
    mgr._client.get_default_database.assert_called_once_with()


def test_database_without_any_name() -> None:
    mgr = MongoConnectionManager()
    mgr._client = MagicMock()
    mgr._client.get_default_database.side_effect = ConfigurationError("no default")
    with pytest.raises(MongoConnectionError, match="No database name"):
        mgr.database()


@pytest.mark.asyncio
async def test_health_check() -> None:
    mgr = MongoConnectionManager()
    assert await mgr.health_check() is False

    mgr._client = MagicMock()
    mgr._client.admin.command = AsyncMock(return_value={"ok": 1})
    assert await mgr.health_check() is True

    mgr._client.admin.command = AsyncMock(side_effect=ConfigurationError("down"))
    assert await mgr.health_check() is False
