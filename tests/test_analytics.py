"""Tests for admin analytics."""

import uuid
from decimal import Decimal

import pytest

from analytics import AnalyticsManager

@pytest.mark.asyncio
async def test_get_overview(pool, conn):
    conn.fetchrow.return_value = {
        'total_builders': 3,
        'total_tasks': 4,
        'open_tasks': 2,
        'in_progress_tasks': 1,
        'total_applications': 5,
        'pending_applications': 2,
        'total_submissions': 2,
        'pending_submissions': 1,
        'total_budget': Decimal('1750'),
    }
    top_builder = {
        'id': uuid.uuid4(), 'name': 'Ada', 'email': 'ada@example.com',
        'total_submissions': 2, 'approved_submissions': 1,
        'total_applications': 3, 'approved_applications': 2,
    }
    conn.fetch.side_effect = [
        [{'id': uuid.uuid4(), 'builder_name': 'ada@example.com', 'task_title': 'Workshop',
          'status': 'Pending', 'created_at': None}],
        [top_builder],
        [{'type': 'Workshop', 'count': 3}, {'type': 'Hourly Job', 'count': 1}],
        [{'status': 'Approved', 'count': 3}, {'status': 'Pending', 'count': 2}],
    ]

    analytics = await AnalyticsManager(pool).get_overview()

    assert analytics['overview']['total_budget'] == Decimal('1750')
    assert analytics['recent_applications'][0]['builder_name'] == 'ada@example.com'
    assert analytics['top_builders'] == [top_builder]
    assert analytics['tasks_by_type'][0] == {'type': 'Workshop', 'count': 3}
    assert analytics['applications_by_status'][1] == {'status': 'Pending', 'count': 2}
    # Recent and top lists are capped at five
    assert conn.fetch.call_args_list[0].args[1] == 5
    assert conn.fetch.call_args_list[1].args[2] == 5
