"""Admin analytics: platform-wide counts and distributions."""

import logging
from typing import Dict, Any, List

from database import get_pool
from profiles import ROLE_BUILDER

logger = logging.getLogger(__name__)

RECENT_APPLICATIONS_LIMIT = 5
TOP_BUILDERS_LIMIT = 5

class AnalyticsManager:
    """Aggregates dashboard statistics for admins."""

    def __init__(self, pool=None):
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def get_overview(self) -> Dict[str, Any]:
        """Collect the admin dashboard analytics.

        Returns:
            Dict with 'overview' counts, 'recent_applications', 'top_builders',
            'tasks_by_type' and 'applications_by_status'
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            counts = await conn.fetchrow(
                '''
                SELECT
                    (SELECT COUNT(*) FROM users WHERE role = $1) AS total_builders,
                    (SELECT COUNT(*) FROM tasks) AS total_tasks,
                    (SELECT COUNT(*) FROM tasks WHERE status = 'Open') AS open_tasks,
                    (SELECT COUNT(*) FROM tasks WHERE status = 'In Progress') AS in_progress_tasks,
                    (SELECT COUNT(*) FROM applications) AS total_applications,
                    (SELECT COUNT(*) FROM applications WHERE status = 'Pending') AS pending_applications,
                    (SELECT COUNT(*) FROM submissions) AS total_submissions,
                    (SELECT COUNT(*) FROM submissions WHERE status = 'Pending Review') AS pending_submissions,
                    (SELECT COALESCE(SUM(budget), 0) FROM tasks) AS total_budget
                ''',
                ROLE_BUILDER
            )

            recent = await conn.fetch(
                '''
                SELECT
                    a.id,
                    COALESCE(u.name, u.email) AS builder_name,
                    t.title AS task_title,
                    a.status,
                    a.created_at
                FROM applications a
                JOIN users u ON u.id = a.builder_id
                JOIN tasks t ON t.id = a.task_id
                ORDER BY a.created_at DESC
                LIMIT $1
                ''',
                RECENT_APPLICATIONS_LIMIT
            )

            top_builders = await conn.fetch(
                '''
                SELECT
                    u.id,
                    COALESCE(u.name, u.email) AS name,
                    u.email,
                    (SELECT COUNT(*) FROM submissions s WHERE s.builder_id = u.id) AS total_submissions,
                    (SELECT COUNT(*) FROM submissions s
                     WHERE s.builder_id = u.id AND s.status = 'Approved') AS approved_submissions,
                    (SELECT COUNT(*) FROM applications a WHERE a.builder_id = u.id) AS total_applications,
                    (SELECT COUNT(*) FROM applications a
                     WHERE a.builder_id = u.id AND a.status = 'Approved') AS approved_applications
                FROM users u
                WHERE u.role = $1
                ORDER BY total_submissions DESC, u.created_at
                LIMIT $2
                ''',
                ROLE_BUILDER,
                TOP_BUILDERS_LIMIT
            )

            tasks_by_type = await conn.fetch(
                'SELECT type, COUNT(*) AS count FROM tasks GROUP BY type ORDER BY type'
            )

            applications_by_status = await conn.fetch(
                'SELECT status, COUNT(*) AS count FROM applications GROUP BY status ORDER BY status'
            )

        return {
            'overview': dict(counts),
            'recent_applications': _rows(recent),
            'top_builders': _rows(top_builders),
            'tasks_by_type': _rows(tasks_by_type),
            'applications_by_status': _rows(applications_by_status)
        }

def _rows(rows) -> List[Dict[str, Any]]:
    return [dict(row) for row in rows]

__all__ = ['AnalyticsManager']
