"""Applications module for builder task applications.

A builder applies to a task once; the (task, builder) pair is unique. Admins
review applications by moving them to Approved, Rejected or Under Review.
"""

import logging
from typing import Dict, List, Optional, Any

import asyncpg

from database import get_pool
from database.lib.ids import parse_uuid
from profiles import upsert_user, role_for_email
from tasks import fetch_kpis

logger = logging.getLogger(__name__)

STATUS_PENDING = 'Pending'
STATUS_APPROVED = 'Approved'
STATUS_REJECTED = 'Rejected'
STATUS_UNDER_REVIEW = 'Under Review'

APPLICATION_STATUSES = (
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_UNDER_REVIEW,
)

class ApplicationError(Exception):
    """Base exception for application operations."""
    pass

class ApplicationNotFoundError(ApplicationError):
    """Raised when an application is not found."""
    pass

class ApplicationTaskNotFoundError(ApplicationError):
    """Raised when applying to a task that doesn't exist."""
    pass

class DuplicateApplicationError(ApplicationError):
    """Raised when a builder applies to the same task twice."""
    pass

class InvalidApplicationError(ApplicationError):
    """Raised when application input is invalid."""
    pass

APPLICATION_SELECT = '''
    SELECT
        a.*,
        t.title AS task_title,
        t.description AS task_description,
        t.type AS task_type,
        t.location AS task_location,
        t.date AS task_date,
        t.budget AS task_budget,
        t.status AS task_status,
        t.stream_id AS task_stream_id,
        t.created_at AS task_created_at,
        u.email AS builder_email,
        u.name AS builder_name
    FROM applications a
    JOIN tasks t ON t.id = a.task_id
    JOIN users u ON u.id = a.builder_id
'''

def _nest(row: Dict[str, Any]) -> Dict[str, Any]:
    """Fold the joined task_* and builder_* columns into nested dicts."""
    application = {}
    task = {'id': row['task_id']}
    builder = {'id': row['builder_id']}
    for key, value in row.items():
        if key.startswith('task_') and key != 'task_id':
            task[key[len('task_'):]] = value
        elif key.startswith('builder_') and key != 'builder_id':
            builder[key[len('builder_'):]] = value
        else:
            application[key] = value
    application['task'] = task
    application['builder'] = builder
    return application

class ApplicationManager:
    """Manager class for handling task applications."""

    def __init__(self, pool=None):
        """Initialize the application manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def _load(self, conn, where: str, *args) -> List[Dict[str, Any]]:
        rows = await conn.fetch(
            f'{APPLICATION_SELECT} {where} ORDER BY a.created_at DESC',
            *args
        )
        applications = [_nest(dict(row)) for row in rows]
        kpis = await fetch_kpis(conn, {a['task']['id'] for a in applications})
        for application in applications:
            application['task']['kpis'] = kpis.get(application['task']['id'], [])
        return applications

    async def list_applications(self, builder_email: Optional[str] = None) -> List[Dict[str, Any]]:
        """List applications newest first.

        Args:
            builder_email: Optional filter on the applying builder's email

        Returns:
            List of application dicts with nested 'task' (including 'kpis') and 'builder'
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            if builder_email:
                return await self._load(conn, 'WHERE u.email = $1', builder_email)
            return await self._load(conn, '')

    async def get_application(self, application_id: Any) -> Dict[str, Any]:
        """Get a single application.

        Raises:
            ApplicationNotFoundError: If the application doesn't exist
        """
        application_uuid = parse_uuid(application_id)
        if not application_uuid:
            raise ApplicationNotFoundError(f"Application {application_id} not found")

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            found = await self._load(conn, 'WHERE a.id = $1', application_uuid)
            if not found:
                raise ApplicationNotFoundError(f"Application {application_id} not found")
            return found[0]

    async def create_application(
        self,
        task_id: Any,
        builder_email: Optional[str],
        cover_letter: Optional[str]
    ) -> Dict[str, Any]:
        """Apply a builder to a task.

        The builder is created from the email when unknown.

        Args:
            task_id: UUID of the task
            builder_email: Email of the applying builder
            cover_letter: Application text

        Returns:
            Dict containing the created application with nested 'task' and 'builder'

        Raises:
            InvalidApplicationError: If a required field is missing
            ApplicationTaskNotFoundError: If the task doesn't exist
            DuplicateApplicationError: If the builder already applied
        """
        if not task_id or not builder_email or not cover_letter:
            raise InvalidApplicationError("Missing required fields")

        task_uuid = parse_uuid(task_id)
        if not task_uuid:
            raise ApplicationTaskNotFoundError(f"Task {task_id} not found")

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            task_exists = await conn.fetchval(
                'SELECT EXISTS(SELECT 1 FROM tasks WHERE id = $1)',
                task_uuid
            )
            if not task_exists:
                raise ApplicationTaskNotFoundError(f"Task {task_id} not found")

            builder = await upsert_user(conn, builder_email, role_for_email(builder_email))

            existing = await conn.fetchval(
                'SELECT id FROM applications WHERE task_id = $1 AND builder_id = $2',
                task_uuid,
                builder['id']
            )
            if existing:
                raise DuplicateApplicationError("You have already applied to this task")

            try:
                application_id = await conn.fetchval(
                    '''
                    INSERT INTO applications (
                        task_id, builder_id, cover_letter, status
                    ) VALUES ($1, $2, $3, $4)
                    RETURNING id
                    ''',
                    task_uuid,
                    builder['id'],
                    cover_letter,
                    STATUS_PENDING
                )
            except asyncpg.exceptions.UniqueViolationError:
                # Lost a race with a concurrent application
                raise DuplicateApplicationError("You have already applied to this task")

            logger.info(f"Builder {builder_email} applied to task {task_uuid}")
            return (await self._load(conn, 'WHERE a.id = $1', application_id))[0]

    async def review_application(
        self,
        application_id: Any,
        status: Optional[str],
        review_notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """Set an application's review status.

        Args:
            application_id: UUID of the application
            status: One of APPLICATION_STATUSES
            review_notes: Optional reviewer notes, blank is stored as null

        Returns:
            Dict containing the updated application

        Raises:
            InvalidApplicationError: If status is missing or unknown
            ApplicationNotFoundError: If the application doesn't exist
        """
        if not status:
            raise InvalidApplicationError("Status is required")
        if status not in APPLICATION_STATUSES:
            raise InvalidApplicationError(f"Invalid application status: {status}")

        application_uuid = parse_uuid(application_id)
        if not application_uuid:
            raise ApplicationNotFoundError(f"Application {application_id} not found")

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            updated = await conn.fetchval(
                '''
                UPDATE applications
                SET status = $2,
                    review_notes = $3,
                    reviewed_at = now(),
                    updated_at = now()
                WHERE id = $1
                RETURNING id
                ''',
                application_uuid,
                status,
                review_notes or None
            )
            if not updated:
                raise ApplicationNotFoundError(f"Application {application_id} not found")

            logger.info(f"Application {application_uuid} marked {status}")
            return (await self._load(conn, 'WHERE a.id = $1', application_uuid))[0]

    async def delete_application(self, application_id: Any) -> None:
        """Delete an application.

        Raises:
            ApplicationNotFoundError: If the application doesn't exist
        """
        application_uuid = parse_uuid(application_id)
        if not application_uuid:
            raise ApplicationNotFoundError(f"Application {application_id} not found")

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval(
                'DELETE FROM applications WHERE id = $1 RETURNING id',
                application_uuid
            )
            if not deleted:
                raise ApplicationNotFoundError(f"Application {application_id} not found")

        logger.info(f"Deleted application {application_uuid}")

__all__ = [
    'ApplicationManager', 'ApplicationError', 'ApplicationNotFoundError',
    'ApplicationTaskNotFoundError', 'DuplicateApplicationError', 'InvalidApplicationError',
    'APPLICATION_STATUSES', 'STATUS_PENDING', 'STATUS_APPROVED',
    'STATUS_REJECTED', 'STATUS_UNDER_REVIEW'
]
