"""Tests for the REST API layer.

Managers are patched where a database would be needed; validation errors are
raised before any connection is made, so those cases run against the real
managers.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from api import app
from applications import DuplicateApplicationError
from payments import MissingWalletError
from tasks import TaskNotFoundError

client = TestClient(app)

TASK_ID = uuid.uuid4()

def sample_task(**overrides):
    task = {
        'id': TASK_ID,
        'title': 'Host a Soroban workshop',
        'description': 'Two hour intro session',
        'type': 'Workshop',
        'location': 'Lagos',
        'date': datetime(2025, 3, 1, 15, 0),
        'budget': Decimal('500'),
        'status': 'Open',
        'stream_id': None,
        'stream_duration': None,
        'max_applicants': 20,
        'created_by_id': None,
        'created_at': datetime(2025, 1, 1),
        'updated_at': datetime(2025, 1, 1),
        'kpis': [{'id': uuid.uuid4(), 'task_id': TASK_ID, 'name': 'Attendees',
                  'target': '50', 'description': None, 'created_at': None}],
    }
    task.update(overrides)
    return task

@pytest.fixture
def task_manager():
    with patch('api.tasks.TaskManager') as manager_class:
        yield manager_class.return_value

def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()['status'] == 'running'

def test_list_tasks_camel_case(task_manager):
    task_manager.list_tasks = AsyncMock(
        return_value=[sample_task(kpi_count=1, application_count=3)]
    )

    response = client.get("/api/tasks", params={"status": "Open", "type": "Workshop"})

    assert response.status_code == 200
    task = response.json()[0]
    assert task['kpiCount'] == 1
    assert task['applicationCount'] == 3
    assert task['maxApplicants'] == 20
    assert task['kpis'][0]['taskId'] == str(TASK_ID)
    task_manager.list_tasks.assert_awaited_once_with(status='Open', task_type='Workshop')

def test_list_tasks_failure_is_generic_500(task_manager):
    task_manager.list_tasks = AsyncMock(side_effect=RuntimeError("connection refused"))

    response = client.get("/api/tasks")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch tasks"}

def test_create_task_missing_fields():
    response = client.post("/api/tasks", json={"title": "Only a title"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}

def test_create_task_invalid_budget():
    response = client.post("/api/tasks", json={
        "title": "t", "description": "d", "type": "Part-time Job", "budget": "a lot"
    })
    assert response.status_code == 400
    assert response.json() == {"error": "Budget must be a valid number"}

@pytest.mark.parametrize("duration, error", [
    ("Infinity", "Stream duration must be a whole number"),
    (2 ** 63, "Stream duration must be between 0 and 9223372036854775807"),
    (1.5, "Stream duration must be a whole number"),
])
def test_create_task_invalid_stream_duration(duration, error):
    response = client.post("/api/tasks", json={
        "title": "t", "description": "d", "type": "Part-time Job", "budget": 100,
        "streamDuration": duration,
    })
    assert response.status_code == 400
    assert response.json() == {"error": error}

def test_create_event_task_without_location():
    response = client.post("/api/tasks", json={
        "title": "t", "description": "d", "type": "Hackathon", "budget": 100
    })
    assert response.status_code == 400
    assert "Location and date are required" in response.json()["error"]

def test_create_task(task_manager):
    task_manager.create_task = AsyncMock(return_value=sample_task())

    response = client.post("/api/tasks", json={
        "title": "Host a Soroban workshop",
        "description": "Two hour intro session",
        "type": "Workshop",
        "budget": 500,
        "location": "Lagos",
        "date": "2025-03-01T15:00:00Z",
        "maxApplicants": 20,
        "createdByEmail": "ops@example.com",
        "kpis": [{"name": "Attendees", "target": 50}],
    })

    assert response.status_code == 201
    assert response.json()['id'] == str(TASK_ID)
    kwargs = task_manager.create_task.call_args.kwargs
    assert kwargs['created_by_email'] == 'ops@example.com'
    assert kwargs['max_applicants'] == 20
    assert kwargs['kpis'] == [{'name': 'Attendees', 'target': 50}]

def test_malformed_body_is_400():
    response = client.post("/api/tasks", json={"kpis": "not a list"})
    assert response.status_code == 400
    assert response.json()['error'] == "Invalid request body"

def test_get_task_malformed_id():
    response = client.get("/api/tasks/not-a-uuid")
    assert response.status_code == 404
    assert response.json() == {"error": "Task not found"}

def test_update_task_passes_only_supplied_fields(task_manager):
    task_manager.update_task = AsyncMock(return_value=sample_task(title='Renamed'))

    response = client.put(f"/api/tasks/{TASK_ID}", json={
        "title": "Renamed",
        "kpis": [],
        "createdByEmail": "ignored@example.com",
    })

    assert response.status_code == 200
    assert response.json()['title'] == 'Renamed'
    task_manager.update_task.assert_awaited_once_with(str(TASK_ID), title='Renamed', kpis=[])

def test_delete_task_not_found(task_manager):
    task_manager.delete_task = AsyncMock(side_effect=TaskNotFoundError("gone"))

    response = client.delete(f"/api/tasks/{TASK_ID}")

    assert response.status_code == 404
    assert response.json() == {"error": "Task not found"}

def test_fund_task_requires_stream_id():
    response = client.post(f"/api/tasks/{TASK_ID}/fund", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Stream ID is required"}

def test_fund_task(task_manager):
    task_manager.fund_task = AsyncMock(
        return_value=sample_task(status='In Progress', stream_id='stream-42')
    )

    response = client.post(f"/api/tasks/{TASK_ID}/fund", json={"streamId": "stream-42"})

    assert response.status_code == 200
    assert response.json()['status'] == 'In Progress'
    assert response.json()['streamId'] == 'stream-42'

def test_start_task(task_manager):
    task_manager.start_task = AsyncMock(return_value=sample_task(status='Pending Stream Start'))

    response = client.post(f"/api/tasks/{TASK_ID}/start")

    assert response.status_code == 200
    assert response.json()['status'] == 'Pending Stream Start'

def test_create_application_missing_fields():
    response = client.post("/api/applications", json={"taskId": str(TASK_ID)})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}

def test_duplicate_application():
    with patch('api.applications.ApplicationManager') as manager_class:
        manager_class.return_value.create_application = AsyncMock(
            side_effect=DuplicateApplicationError("You have already applied to this task")
        )
        response = client.post("/api/applications", json={
            "taskId": str(TASK_ID),
            "builderEmail": "ada@example.com",
            "coverLetter": "Again",
        })

    assert response.status_code == 400
    assert response.json() == {"error": "You have already applied to this task"}

def test_list_applications_by_builder():
    with patch('api.applications.ApplicationManager') as manager_class:
        manager = manager_class.return_value
        manager.list_applications = AsyncMock(return_value=[])
        response = client.get("/api/applications", params={"builderEmail": "ada@example.com"})

    assert response.status_code == 200
    assert response.json() == []
    manager.list_applications.assert_awaited_once_with("ada@example.com")

def test_create_submission_multipart():
    submission_id = uuid.uuid4()
    with patch('api.submissions.SubmissionManager') as manager_class:
        manager = manager_class.return_value
        manager.create_submission = AsyncMock(return_value={
            'id': submission_id,
            'work_summary': 'Ran it',
            'status': 'Pending Review',
            'kpi_results': [],
            'supporting_files': [{'name': 'deck.pdf', 'url': '/uploads/1-deck.pdf'}],
        })
        response = client.post(
            "/api/submissions",
            data={
                "taskId": str(TASK_ID),
                "builderEmail": "ada@example.com",
                "summary": "Ran it",
                "kpiResults": '[{"kpiId": "x", "achievedValue": 62}]',
            },
            files=[("files", ("deck.pdf", b"%PDF-1.7", "application/pdf"))],
        )

    assert response.status_code == 200
    body = response.json()
    assert body['workSummary'] == 'Ran it'
    assert body['supportingFiles'][0]['url'] == '/uploads/1-deck.pdf'

    kwargs = manager.create_submission.call_args.kwargs
    assert kwargs['task_id'] == str(TASK_ID)
    assert kwargs['kpi_results'] == '[{"kpiId": "x", "achievedValue": 62}]'
    assert kwargs['files'] == [
        {'name': 'deck.pdf', 'type': 'application/pdf', 'content': b"%PDF-1.7"}
    ]

def test_get_submission_includes_evaluation():
    submission_id = uuid.uuid4()
    with patch('api.submissions.SubmissionManager') as manager_class:
        manager_class.return_value.get_submission = AsyncMock(return_value={
            'id': submission_id,
            'status': 'Pending Review',
            'kpi_results': [{'name': 'Attendees', 'target': '50', 'achieved': '62',
                             'status': 'Exceeded', 'percentage_achieved': 124}],
            'evaluation': {
                'all_kpis_met': True,
                'kpi_achievement_ratio': Decimal('1.2400'),
                'auto_suggestion': 'Approved',
                'payment_multiplier': Decimal('1.00'),
                'recommended_amount': Decimal('500.00'),
            },
        })
        response = client.get(f"/api/submissions/{submission_id}")

    assert response.status_code == 200
    body = response.json()
    assert body['kpiResults'][0]['percentageAchieved'] == 124
    assert body['evaluation']['autoSuggestion'] == 'Approved'
    assert body['evaluation']['allKpisMet'] is True
    assert 'recommendedAmount' in body['evaluation']

def test_create_submission_missing_fields():
    response = client.post("/api/submissions", data={"taskId": str(TASK_ID)})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}

def test_process_payment_missing_fields():
    response = client.post("/api/payments/process", json={"submissionId": str(uuid.uuid4())})
    assert response.status_code == 400
    assert response.json() == {
        "error": "Missing required fields",
        "details": "Missing required fields: submissionId, amount, transactionHash",
    }

def test_process_payment_missing_wallet():
    with patch('api.payments.PaymentManager') as manager_class:
        manager_class.return_value.process_submission_payment = AsyncMock(
            side_effect=MissingWalletError(
                "Builder wallet address not found",
                details="Please ask builder to add wallet address in profile."
            )
        )
        response = client.post("/api/payments/process", json={
            "submissionId": str(uuid.uuid4()),
            "amount": 250,
            "transactionHash": "abc123",
        })

    assert response.status_code == 400
    assert response.json()['error'] == "Builder wallet address not found"
    assert "wallet address" in response.json()['details']

def test_process_payment():
    submission_id = str(uuid.uuid4())
    with patch('api.payments.PaymentManager') as manager_class:
        manager = manager_class.return_value
        manager.process_submission_payment = AsyncMock(return_value={
            'success': True,
            'transaction_hash': 'abc123',
            'message': 'Payment of 250 XLM sent to GBUILDER',
        })
        response = client.post("/api/payments/process", json={
            "submissionId": submission_id,
            "amount": 250,
            "transactionHash": "abc123",
            "reviewNotes": "Thanks",
        })

    assert response.status_code == 200
    assert response.json() == {
        'success': True,
        'transactionHash': 'abc123',
        'message': 'Payment of 250 XLM sent to GBUILDER',
    }
    manager.process_submission_payment.assert_awaited_once_with(
        submission_id=submission_id, amount=250, transaction_hash='abc123', review_notes='Thanks'
    )

def test_record_payment_aliases():
    with patch('api.payments.PaymentManager') as manager_class:
        manager = manager_class.return_value
        manager.record_payment = AsyncMock(return_value={'id': uuid.uuid4(), 'from': 'GA', 'to': 'GB'})
        response = client.post("/api/payments", json={
            "streamId": "stream-42", "amount": "10", "token": "XLM",
            "from": "GA", "to": "GB", "txHash": "abc", "builderEmail": "ada@example.com",
        })

    assert response.status_code == 200
    kwargs = manager.record_payment.call_args.kwargs
    assert kwargs['from_address'] == 'GA'
    assert kwargs['to_address'] == 'GB'
    assert kwargs['tx_hash'] == 'abc'

def test_get_profile_requires_email():
    response = client.get("/api/profile")
    assert response.status_code == 400
    assert response.json() == {"error": "Email is required"}

def test_update_profile():
    with patch('api.profile.ProfileManager') as manager_class:
        manager = manager_class.return_value
        manager.update_profile = AsyncMock(return_value={
            'email': 'ada@example.com', 'wallet_address': 'GABC'
        })
        response = client.put("/api/profile", json={
            "email": "ada@example.com", "walletAddress": "GABC", "twitter": "@ada"
        })

    assert response.status_code == 200
    assert response.json()['walletAddress'] == 'GABC'
    manager.update_profile.assert_awaited_once_with(
        'ada@example.com', name=None, wallet_address='GABC', bio=None, location=None, twitter='@ada'
    )

def test_builder_wallet_unknown():
    response = client.get("/api/builders/not-a-uuid/wallet")
    assert response.status_code == 404
    assert response.json() == {"error": "Builder not found"}

def test_admin_analytics():
    with patch('api.admin.AnalyticsManager') as manager_class:
        manager_class.return_value.get_overview = AsyncMock(return_value={
            'overview': {'total_builders': 3, 'total_budget': Decimal('1750')},
            'recent_applications': [],
            'top_builders': [],
            'tasks_by_type': [],
            'applications_by_status': [],
        })
        response = client.get("/api/admin/analytics")

    assert response.status_code == 200
    body = response.json()
    assert body['overview']['totalBuilders'] == 3
    assert set(body) == {
        'overview', 'recentApplications', 'topBuilders', 'tasksByType', 'applicationsByStatus'
    }

def test_system_health_reports_database_down():
    with patch('api.system.get_pool', AsyncMock(side_effect=OSError("refused"))):
        response = client.get("/api/system/health")

    assert response.status_code == 200
    body = response.json()
    assert body['database_status'] == 'disconnected'
    assert body['status'] == 'degraded'
