"""Tests for lazy pool initialisation."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

import database


@pytest.fixture
def no_pool(monkeypatch):
    monkeypatch.setattr(database, '_pool', None)
    monkeypatch.setattr(database, '_init_lock', None)


@pytest.mark.asyncio
async def test_concurrent_get_pool_initialises_once(no_pool, monkeypatch):
    pool = MagicMock()

    async def fake_init_db():
        # Yield so the second caller reaches get_pool before the pool exists
        await asyncio.sleep(0)
        database._pool = pool

    init_db = AsyncMock(side_effect=fake_init_db)
    monkeypatch.setattr(database, 'init_db', init_db)

    first, second = await asyncio.gather(database.get_pool(), database.get_pool())

    assert first is pool
    assert second is pool
    init_db.assert_awaited_once()


@pytest.mark.asyncio
async def test_get_pool_reuses_existing_pool(monkeypatch):
    pool = MagicMock()
    init_db = AsyncMock()
    monkeypatch.setattr(database, '_pool', pool)
    monkeypatch.setattr(database, 'init_db', init_db)

    assert await database.get_pool() is pool
    init_db.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_pool_raises_when_init_leaves_no_pool(no_pool, monkeypatch):
    monkeypatch.setattr(database, 'init_db', AsyncMock())

    with pytest.raises(RuntimeError, match="Failed to initialize database pool"):
        await database.get_pool()
