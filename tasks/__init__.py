"""Tasks module for managing ambassador tasks.

This module provides functionality for:
- Creating tasks with their KPI targets
- Listing and fetching tasks with applicant counts
- Updating tasks and replacing their KPI set
- Moving tasks through the funding lifecycle
"""

import logging
from typing import Dict, List, Optional, Any, Iterable
from uuid import UUID

from database import get_pool
from database.lib.ids import parse_uuid
from profiles import upsert_user, ROLE_ADMIN
from .validation import (
    TASK_TYPES, TASK_STATUSES, LOCATION_TASK_TYPES,
    STATUS_OPEN, STATUS_IN_PROGRESS, STATUS_PENDING_STREAM_START,
    STATUS_COMPLETED, STATUS_CLOSED, STATUS_CANCELLED,
    TaskValidationError, validate_task, apply_location_rules, requires_location_date
)

logger = logging.getLogger(__name__)

# Columns written by create/update
TASK_COLUMNS = (
    'title', 'description', 'type', 'location', 'date', 'budget',
    'status', 'stream_duration', 'max_applicants'
)

class TaskError(Exception):
    """Base exception for task operations."""
    pass

class TaskNotFoundError(TaskError):
    """Raised when a task is not found."""
    pass

class InvalidTaskError(TaskError):
    """Raised when task input is invalid."""
    pass

async def fetch_kpis(conn, task_ids: Iterable[UUID]) -> Dict[UUID, List[Dict[str, Any]]]:
    """Load KPIs for several tasks at once.

    Returns:
        Dict mapping task id to its KPIs in creation order; tasks without
        KPIs map to an empty list
    """
    task_ids = list(task_ids)
    kpis: Dict[UUID, List[Dict[str, Any]]] = {task_id: [] for task_id in task_ids}
    if not task_ids:
        return kpis

    rows = await conn.fetch(
        '''
        SELECT id, task_id, name, target, description, created_at
        FROM kpis
        WHERE task_id = ANY($1::uuid[])
        ORDER BY created_at, name
        ''',
        task_ids
    )
    for row in rows:
        kpis.setdefault(row['task_id'], []).append(dict(row))
    return kpis

class TaskManager:
    """Manager class for handling task operations."""

    def __init__(self, pool=None):
        """Initialize the task manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    @staticmethod
    def _task_uuid(task_id: Any) -> UUID:
        task_uuid = parse_uuid(task_id)
        if not task_uuid:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return task_uuid

    async def list_tasks(
        self,
        status: Optional[str] = None,
        task_type: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List tasks, newest first.

        Args:
            status: Optional status filter
            task_type: Optional task type filter

        Returns:
            List of task dicts, each with 'kpis', 'kpi_count' and 'application_count'
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT
                    t.*,
                    (SELECT COUNT(*) FROM kpis k WHERE k.task_id = t.id) AS kpi_count,
                    (SELECT COUNT(*) FROM applications a WHERE a.task_id = t.id) AS application_count
                FROM tasks t
                WHERE ($1::text IS NULL OR t.status = $1)
                AND ($2::text IS NULL OR t.type = $2)
                ORDER BY t.created_at DESC
                ''',
                status,
                task_type
            )

            tasks = [dict(row) for row in rows]
            kpis = await fetch_kpis(conn, [task['id'] for task in tasks])
            for task in tasks:
                task['kpis'] = kpis.get(task['id'], [])
            return tasks

    async def get_task(self, task_id: Any) -> Dict[str, Any]:
        """Get a task with its KPIs and applications.

        Args:
            task_id: UUID of the task

        Returns:
            Task dict with 'kpis', 'applications' (each carrying builder_email
            and builder_name) and 'current_applicants'

        Raises:
            TaskNotFoundError: If the task doesn't exist
        """
        task_uuid = self._task_uuid(task_id)
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow('SELECT * FROM tasks WHERE id = $1', task_uuid)
            if not row:
                raise TaskNotFoundError(f"Task {task_id} not found")

            task = dict(row)
            task['kpis'] = (await fetch_kpis(conn, [task_uuid]))[task_uuid]

            applications = await conn.fetch(
                '''
                SELECT
                    a.id, a.task_id, a.builder_id, a.cover_letter, a.status,
                    a.review_notes, a.reviewed_at, a.created_at,
                    u.email AS builder_email,
                    u.name AS builder_name
                FROM applications a
                JOIN users u ON u.id = a.builder_id
                WHERE a.task_id = $1
                ORDER BY a.created_at DESC
                ''',
                task_uuid
            )
            task['applications'] = [dict(a) for a in applications]
            task['current_applicants'] = len(task['applications'])
            return task

    async def create_task(
        self,
        title: Optional[str] = None,
        description: Optional[str] = None,
        type: Optional[str] = None,
        budget: Any = None,
        location: Optional[str] = None,
        date: Any = None,
        status: Optional[str] = None,
        stream_duration: Any = None,
        max_applicants: Any = None,
        kpis: Optional[List[Dict[str, Any]]] = None,
        created_by_email: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create a new task.

        Args:
            title: Task title
            description: Task description
            type: One of TASK_TYPES
            budget: Budget, anything that parses to a finite number
            location: Required for Workshop, Hackathon and Meetup tasks
            date: ISO date, required for Workshop, Hackathon and Meetup tasks
            status: Initial status, defaults to Open
            stream_duration: Payment stream duration in seconds
            max_applicants: Optional applicant cap shown to builders
            kpis: List of KPI dicts with name, target and optional description
            created_by_email: Email of the creating admin, upserted as a user

        Returns:
            Dict containing the created task and its 'kpis'

        Raises:
            InvalidTaskError: If required fields are missing or invalid
        """
        try:
            fields = validate_task({
                'title': title,
                'description': description,
                'type': type,
                'budget': budget,
                'location': location,
                'date': date,
                'status': status,
                'stream_duration': stream_duration,
                'max_applicants': max_applicants,
                'kpis': kpis or [],
            })
            apply_location_rules(fields)
        except TaskValidationError as e:
            raise InvalidTaskError(str(e))

        fields.setdefault('status', STATUS_OPEN)
        kpi_rows = fields.pop('kpis')

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                creator_id = None
                if created_by_email:
                    creator = await upsert_user(conn, created_by_email, ROLE_ADMIN)
                    creator_id = creator['id']

                row = await conn.fetchrow(
                    '''
                    INSERT INTO tasks (
                        title, description, type, location, date, budget,
                        status, stream_duration, max_applicants, created_by_id
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                    RETURNING *
                    ''',
                    *[fields.get(column) for column in TASK_COLUMNS],
                    creator_id
                )
                task = dict(row)
                task['kpis'] = await self._insert_kpis(conn, task['id'], kpi_rows)

        logger.info(f"Created task {task['id']} ({task['type']}: {task['title']})")
        return task

    async def update_task(self, task_id: Any, **updates) -> Dict[str, Any]:
        """Update a task.

        Only supplied fields change. When the resulting type is not an event
        type, location and date are cleared. When 'kpis' is supplied the whole
        KPI set is replaced; the row update, KPI delete and KPI insert share
        one transaction.

        Args:
            task_id: UUID of the task
            **updates: Any of TASK_COLUMNS plus 'kpis'

        Returns:
            Dict containing the updated task and its 'kpis'

        Raises:
            TaskNotFoundError: If the task doesn't exist
            InvalidTaskError: If an update is invalid
        """
        task_uuid = self._task_uuid(task_id)

        unknown = set(updates) - set(TASK_COLUMNS) - {'kpis'}
        if unknown:
            raise InvalidTaskError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        try:
            cleaned = validate_task(updates, partial=True)
        except TaskValidationError as e:
            raise InvalidTaskError(str(e))

        kpi_rows = cleaned.pop('kpis', None)

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    'SELECT * FROM tasks WHERE id = $1 FOR UPDATE',
                    task_uuid
                )
                if not row:
                    raise TaskNotFoundError(f"Task {task_id} not found")

                merged = {column: row[column] for column in TASK_COLUMNS}
                merged.update(cleaned)
                try:
                    apply_location_rules(merged)
                except TaskValidationError as e:
                    raise InvalidTaskError(str(e))

                updated = await conn.fetchrow(
                    '''
                    UPDATE tasks
                    SET title = $2,
                        description = $3,
                        type = $4,
                        location = $5,
                        date = $6,
                        budget = $7,
                        status = $8,
                        stream_duration = $9,
                        max_applicants = $10,
                        updated_at = now()
                    WHERE id = $1
                    RETURNING *
                    ''',
                    task_uuid,
                    *[merged[column] for column in TASK_COLUMNS]
                )
                task = dict(updated)

                if kpi_rows is not None:
                    await conn.execute('DELETE FROM kpis WHERE task_id = $1', task_uuid)
                    task['kpis'] = await self._insert_kpis(conn, task_uuid, kpi_rows)
                    logger.info(f"Replaced KPIs of task {task_uuid} ({len(kpi_rows)} KPIs)")
                else:
                    task['kpis'] = (await fetch_kpis(conn, [task_uuid]))[task_uuid]

        logger.info(f"Updated task {task_uuid}")
        return task

    async def delete_task(self, task_id: Any) -> None:
        """Delete a task; KPIs, applications and submissions cascade.

        Raises:
            TaskNotFoundError: If the task doesn't exist
        """
        task_uuid = self._task_uuid(task_id)
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            deleted = await conn.fetchval(
                'DELETE FROM tasks WHERE id = $1 RETURNING id',
                task_uuid
            )
            if not deleted:
                raise TaskNotFoundError(f"Task {task_id} not found")

        logger.info(f"Deleted task {task_uuid}")

    async def fund_task(self, task_id: Any, stream_id: Optional[str]) -> Dict[str, Any]:
        """Attach a funded payment stream and mark the task In Progress.

        Raises:
            InvalidTaskError: If no stream id is given
            TaskNotFoundError: If the task doesn't exist
        """
        if not stream_id or not str(stream_id).strip():
            raise InvalidTaskError("Stream ID is required")

        return await self._set_status(
            task_id, STATUS_IN_PROGRESS, stream_id=str(stream_id).strip()
        )

    async def start_task(self, task_id: Any) -> Dict[str, Any]:
        """Mark a task as waiting for its payment stream to start.

        Raises:
            TaskNotFoundError: If the task doesn't exist
        """
        return await self._set_status(task_id, STATUS_PENDING_STREAM_START)

    async def _set_status(
        self,
        task_id: Any,
        status: str,
        stream_id: Optional[str] = None
    ) -> Dict[str, Any]:
        task_uuid = self._task_uuid(task_id)
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                '''
                UPDATE tasks
                SET status = $2,
                    stream_id = COALESCE($3, stream_id),
                    updated_at = now()
                WHERE id = $1
                RETURNING *
                ''',
                task_uuid,
                status,
                stream_id
            )
            if not row:
                raise TaskNotFoundError(f"Task {task_id} not found")

        logger.info(f"Task {task_uuid} is now {status}")
        return dict(row)

    async def _insert_kpis(
        self,
        conn,
        task_id: UUID,
        kpis: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        created = []
        for kpi in kpis:
            row = await conn.fetchrow(
                '''
                INSERT INTO kpis (task_id, name, target, description)
                VALUES ($1, $2, $3, $4)
                RETURNING id, task_id, name, target, description, created_at
                ''',
                task_id,
                kpi['name'],
                kpi['target'],
                kpi['description']
            )
            created.append(dict(row))
        return created

__all__ = [
    'TaskManager', 'TaskError', 'TaskNotFoundError', 'InvalidTaskError',
    'fetch_kpis', 'requires_location_date',
    'TASK_TYPES', 'TASK_STATUSES', 'LOCATION_TASK_TYPES',
    'STATUS_OPEN', 'STATUS_IN_PROGRESS', 'STATUS_PENDING_STREAM_START',
    'STATUS_COMPLETED', 'STATUS_CLOSED', 'STATUS_CANCELLED'
]
