"""Tests for the Database connection manager."""

from unittest.mock import AsyncMock, patch

import pytest

from archv.ingestion.errors import StoreError
from archv.storage.database import Database


class TestDatabase:
    """Tests for connection lifecycle and failure translation."""

    def test_defaults_from_settings(self):
        db = Database()

        assert not db.is_connected

    def test_pool_before_connect(self):
        with pytest.raises(StoreError) as exc_info:
            Database().pool

        assert exc_info.value.operation == "acquire"

    @pytest.mark.asyncio
    async def test_connect_failure_wrapped(self):
        with patch("archv.storage.database.asyncpg.create_pool", AsyncMock(side_effect=OSError("refused"))):
            with pytest.raises(StoreError) as exc_info:
                await Database("postgresql://nobody@localhost:1/none").connect()

        assert exc_info.value.operation == "connect"
        assert "refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connect_and_close(self):
        pool = AsyncMock()
        with patch("archv.storage.database.asyncpg.create_pool", AsyncMock(return_value=pool)) as create_pool:
            async with Database("postgresql://localhost/archv", min_size=1, max_size=3) as db:
                assert db.is_connected

        assert create_pool.call_args.kwargs["min_size"] == 1
        assert create_pool.call_args.kwargs["max_size"] == 3
        pool.close.assert_awaited_once()
        assert not db.is_connected

    @pytest.mark.asyncio
    async def test_health_check_when_disconnected(self):
        assert await Database().health_check() is False
