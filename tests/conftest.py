"""Shared fixtures: an asyncpg pool stand-in for manager tests."""

import uuid
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest


def make_pool():
    """Build a mock pool whose acquire() yields a single mock connection.

    conn.transaction() works as an async context manager that lets
    exceptions propagate, like asyncpg's.
    """
    conn = AsyncMock()
    conn.transaction = MagicMock()
    conn.transaction.return_value.__aenter__ = AsyncMock(return_value=None)
    conn.transaction.return_value.__aexit__ = AsyncMock(return_value=False)

    pool = MagicMock()
    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=False)
    return pool, conn


@pytest.fixture
def pool_and_conn():
    return make_pool()


@pytest.fixture
def pool(pool_and_conn):
    return pool_and_conn[0]


@pytest.fixture
def conn(pool_and_conn):
    return pool_and_conn[1]


def task_row(**overrides):
    """A tasks row as asyncpg would return it."""
    row = {
        'id': uuid.uuid4(),
        'title': 'Host a Soroban workshop',
        'description': 'Two hour intro session for local developers',
        'type': 'Workshop',
        'location': 'Lagos',
        'date': datetime(2025, 3, 1, 15, 0),
        'budget': Decimal('500'),
        'status': 'Open',
        'stream_id': None,
        'stream_duration': None,
        'max_applicants': None,
        'created_by_id': None,
        'created_at': datetime(2025, 1, 1),
        'updated_at': datetime(2025, 1, 1),
    }
    row.update(overrides)
    return row


def user_row(**overrides):
    row = {
        'id': uuid.uuid4(),
        'email': 'builder@example.com',
        'name': None,
        'wallet_address': None,
        'bio': None,
        'location': None,
        'twitter': None,
        'role': 'builder',
        'created_at': datetime(2025, 1, 1),
    }
    row.update(overrides)
    return row


def db_calls(conn, *names):
    """Ordered (method, query) pairs for the given connection methods."""
    calls = []
    for name, args, kwargs in conn.mock_calls:
        if name in names and args:
            calls.append((name, ' '.join(str(args[0]).split())))
    return calls
