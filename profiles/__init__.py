"""Profiles module for managing user accounts.

Users are keyed by email. They are created lazily: the first profile lookup,
task creation or application for an unknown email inserts the row.
"""

import logging
from typing import Dict, Optional, Any

from database import get_pool
from database.lib.ids import parse_uuid

logger = logging.getLogger(__name__)

ROLE_ADMIN = 'admin'
ROLE_BUILDER = 'builder'
ROLE_AMBASSADOR = 'ambassador'

USER_ROLES = (ROLE_ADMIN, ROLE_BUILDER, ROLE_AMBASSADOR)

# Columns exposed through the profile endpoints
PROFILE_FIELDS = ('name', 'wallet_address', 'bio', 'location', 'twitter')

PROFILE_COLUMNS = '''
    id, email, name, wallet_address, bio, location, twitter, role, created_at
'''

class ProfileError(Exception):
    """Base exception for profile operations."""
    pass

class UserNotFoundError(ProfileError):
    """Raised when a user does not exist."""
    pass

class InvalidProfileError(ProfileError):
    """Raised when profile input is invalid."""
    pass

def role_for_email(email: str) -> str:
    """Role given to a user created on the fly from an email address."""
    return ROLE_ADMIN if 'admin' in email.lower() else ROLE_BUILDER

async def find_user_by_email(conn, email: str) -> Optional[Dict[str, Any]]:
    """Look up a user row by email on an existing connection."""
    row = await conn.fetchrow(
        f'SELECT {PROFILE_COLUMNS} FROM users WHERE email = $1',
        email
    )
    return dict(row) if row else None

async def upsert_user(conn, email: str, role: str = ROLE_BUILDER) -> Dict[str, Any]:
    """Return the user with this email, creating it with `role` if missing.

    An existing user's role is never changed.
    """
    row = await conn.fetchrow(
        f'''
        INSERT INTO users (email, role)
        VALUES ($1, $2)
        ON CONFLICT (email) DO UPDATE
        SET email = EXCLUDED.email
        RETURNING {PROFILE_COLUMNS}
        ''',
        email,
        role
    )
    return dict(row)

def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None

class ProfileManager:
    """Manager class for user profile operations."""

    def __init__(self, pool=None):
        """Initialize the profile manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def get_profile(self, email: str) -> Dict[str, Any]:
        """Get a user's profile, creating a builder account on first access.

        Args:
            email: The user's email address

        Returns:
            Dict containing the profile row

        Raises:
            InvalidProfileError: If no email is given
        """
        email = _blank_to_none(email)
        if not email:
            raise InvalidProfileError("Email is required")

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            user = await find_user_by_email(conn, email)
            if user:
                return user

            # Concurrent first visits race on the unique email index
            await conn.execute(
                '''
                INSERT INTO users (email, role)
                VALUES ($1, $2)
                ON CONFLICT (email) DO NOTHING
                ''',
                email,
                ROLE_BUILDER
            )
            logger.info(f"Created builder profile for {email}")
            return await find_user_by_email(conn, email)

    async def update_profile(self, email: str, **fields) -> Dict[str, Any]:
        """Replace a user's profile fields, creating the user if needed.

        Every field in PROFILE_FIELDS is written; omitted or blank values are
        stored as null.

        Args:
            email: The user's email address
            **fields: Profile values keyed by PROFILE_FIELDS names

        Returns:
            Dict containing the updated profile row

        Raises:
            InvalidProfileError: If no email is given or an unknown field is passed
        """
        email = _blank_to_none(email)
        if not email:
            raise InvalidProfileError("Email is required")

        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise InvalidProfileError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        values = [_blank_to_none(fields.get(name)) for name in PROFILE_FIELDS]

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f'''
                INSERT INTO users (
                    email, role, name, wallet_address, bio, location, twitter
                ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                ON CONFLICT (email) DO UPDATE
                SET name = EXCLUDED.name,
                    wallet_address = EXCLUDED.wallet_address,
                    bio = EXCLUDED.bio,
                    location = EXCLUDED.location,
                    twitter = EXCLUDED.twitter,
                    updated_at = now()
                RETURNING {PROFILE_COLUMNS}
                ''',
                email,
                ROLE_BUILDER,
                *values
            )
            logger.info(f"Updated profile for {email}")
            return dict(row)

    async def get_wallet_address(self, user_id: str) -> Optional[str]:
        """Get the wallet address registered for a user.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user_uuid = parse_uuid(user_id)
        if not user_uuid:
            raise UserNotFoundError(f"User {user_id} not found")

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                'SELECT wallet_address FROM users WHERE id = $1',
                user_uuid
            )
            if not row:
                raise UserNotFoundError(f"User {user_id} not found")
            return row['wallet_address']

__all__ = [
    'ProfileManager', 'ProfileError', 'UserNotFoundError', 'InvalidProfileError',
    'find_user_by_email', 'upsert_user', 'role_for_email',
    'ROLE_ADMIN', 'ROLE_BUILDER', 'ROLE_AMBASSADOR', 'USER_ROLES', 'PROFILE_FIELDS'
]
