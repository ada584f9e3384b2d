"""Tests for the profiles module."""

import uuid

import pytest

from profiles import (
    ProfileManager,
    InvalidProfileError,
    UserNotFoundError,
    role_for_email,
)
from conftest import user_row

def test_role_for_email():
    assert role_for_email('admin@example.com') == 'admin'
    assert role_for_email('Ops.Admin@example.com') == 'admin'
    assert role_for_email('ada@example.com') == 'builder'

@pytest.mark.asyncio
async def test_get_profile_requires_email():
    with pytest.raises(InvalidProfileError, match="Email is required"):
        await ProfileManager().get_profile('  ')

@pytest.mark.asyncio
async def test_get_existing_profile(pool, conn):
    user = user_row(name='Ada')
    conn.fetchrow.return_value = user

    profile = await ProfileManager(pool).get_profile(user['email'])

    assert profile == user
    conn.execute.assert_not_awaited()

@pytest.mark.asyncio
async def test_get_profile_creates_builder(pool, conn):
    """Test that the first lookup of an unknown email creates a builder."""
    created = user_row(email='new@example.com')
    conn.fetchrow.side_effect = [None, created]

    profile = await ProfileManager(pool).get_profile('new@example.com')

    assert profile['role'] == 'builder'
    query, email, role = conn.execute.call_args.args
    assert 'ON CONFLICT (email) DO NOTHING' in query
    assert (email, role) == ('new@example.com', 'builder')

@pytest.mark.asyncio
async def test_update_profile_stores_blanks_as_null(pool, conn):
    conn.fetchrow.return_value = user_row(name='Ada', wallet_address='GABC')

    await ProfileManager(pool).update_profile(
        'ada@example.com',
        name=' Ada ',
        wallet_address='GABC',
        bio='',
        location=None
    )

    assert conn.fetchrow.call_args.args[1:] == (
        'ada@example.com', 'builder', 'Ada', 'GABC', None, None, None
    )

@pytest.mark.asyncio
async def test_update_profile_rejects_unknown_fields(pool):
    with pytest.raises(InvalidProfileError, match="Unknown profile fields: role"):
        await ProfileManager(pool).update_profile('ada@example.com', role='admin')

@pytest.mark.asyncio
async def test_get_wallet_address(pool, conn):
    conn.fetchrow.return_value = {'wallet_address': 'GABC'}
    assert await ProfileManager(pool).get_wallet_address(str(uuid.uuid4())) == 'GABC'

@pytest.mark.asyncio
async def test_get_wallet_address_unknown_user(pool, conn):
    conn.fetchrow.return_value = None
    with pytest.raises(UserNotFoundError):
        await ProfileManager(pool).get_wallet_address(uuid.uuid4())
    with pytest.raises(UserNotFoundError):
        await ProfileManager(pool).get_wallet_address('builder-7')
