"""End-to-end flow against a real PostgreSQL database.

Set AMBASSADOR_HUB_TEST_DB_URL to a disposable database to run these; every
test recreates the schema.
"""

import os

import pytest
import pytest_asyncio

from database import init_db, close as close_db
from applications import ApplicationManager, DuplicateApplicationError
from payments import PaymentManager, MissingWalletError
from profiles import ProfileManager
from submissions import SubmissionManager, STATUS_APPROVED, STATUS_PENDING_REVIEW
from tasks import TaskManager, STATUS_IN_PROGRESS

TEST_DB_URL = os.environ.get('AMBASSADOR_HUB_TEST_DB_URL')

pytestmark = pytest.mark.skipif(
    not TEST_DB_URL, reason="AMBASSADOR_HUB_TEST_DB_URL not set"
)

ADMIN_EMAIL = "admin@example.com"
BUILDER_EMAIL = "ada@example.com"
SAMPLE_TASK = {
    "title": "Host a Soroban workshop",
    "description": "Two hour intro session for local developers",
    "type": "Workshop",
    "budget": "500",
    "location": "Lagos",
    "date": "2025-03-01T15:00:00Z",
    "kpis": [{"name": "Attendees", "target": "50"}],
}

@pytest_asyncio.fixture
async def db_pool():
    """Initialize a fresh schema and close the pool afterwards."""
    await init_db(TEST_DB_URL, force_recreate=True)
    yield
    await close_db()

@pytest_asyncio.fixture
async def task(db_pool):
    return await TaskManager().create_task(**SAMPLE_TASK, created_by_email=ADMIN_EMAIL)

@pytest.mark.asyncio
async def test_task_lifecycle(task):
    manager = TaskManager()

    updated = await manager.update_task(
        task['id'], kpis=[{'name': 'Signups', 'target': '100'}, {'name': 'Tweets', 'target': '5'}]
    )
    assert sorted(k['name'] for k in updated['kpis']) == ['Signups', 'Tweets']

    listed = await manager.list_tasks(status='Open')
    assert listed[0]['kpi_count'] == 2

    funded = await manager.fund_task(task['id'], 'stream-42')
    assert funded['status'] == STATUS_IN_PROGRESS
    assert funded['stream_id'] == 'stream-42'

    job = await manager.update_task(task['id'], type='Hourly Job')
    assert job['location'] is None
    assert job['date'] is None

@pytest.mark.asyncio
async def test_apply_once_per_task(task):
    manager = ApplicationManager()

    application = await manager.create_application(task['id'], BUILDER_EMAIL, "I run the local meetup")
    assert application['builder']['email'] == BUILDER_EMAIL

    with pytest.raises(DuplicateApplicationError):
        await manager.create_application(task['id'], BUILDER_EMAIL, "Applying again")

    detail = await TaskManager().get_task(task['id'])
    assert detail['current_applicants'] == 1

@pytest.mark.asyncio
async def test_submission_payout(task, tmp_path):
    await ProfileManager().get_profile(BUILDER_EMAIL)
    submissions = SubmissionManager(uploads_dir=str(tmp_path))

    submission = await submissions.create_submission(
        task['id'],
        BUILDER_EMAIL,
        "62 people attended",
        kpi_results=[{'kpiId': str(task['kpis'][0]['id']), 'achievedValue': 62}],
        files=[{'name': 'photos.zip', 'type': 'application/zip', 'content': b'PK'}]
    )
    assert submission['status'] == STATUS_PENDING_REVIEW
    assert submission['kpi_results'][0]['name'] == 'Attendees'
    assert submission['supporting_files'][0]['size'] == '2'

    payments = PaymentManager(token='XLM')
    with pytest.raises(MissingWalletError):
        await payments.process_submission_payment(submission['id'], '250', 'tx-1')
    unchanged = await submissions.get_submission(submission['id'])
    assert unchanged['status'] == STATUS_PENDING_REVIEW

    await ProfileManager().update_profile(BUILDER_EMAIL, name='Ada', wallet_address='GBUILDER')
    result = await payments.process_submission_payment(submission['id'], '250', 'tx-1')
    assert result['message'] == 'Payment of 250 XLM sent to GBUILDER'

    paid = await submissions.get_submission(submission['id'])
    assert paid['status'] == STATUS_APPROVED
    assert paid['builder']['wallet_address'] == 'GBUILDER'
