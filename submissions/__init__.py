"""Submissions module for builder deliverables.

A submission reports the results a builder achieved against a task's KPIs,
with optional supporting files, and is reviewed by an admin.
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Any

from database import get_pool
from database.lib.ids import parse_uuid
from profiles import find_user_by_email
from .evaluation import evaluate_kpis, kpi_status, recommended_payment
from .uploads import store_file, remove_file

logger = logging.getLogger(__name__)

STATUS_DRAFT = 'draft'
STATUS_PENDING_REVIEW = 'Pending Review'
STATUS_APPROVED = 'Approved'
STATUS_REJECTED = 'Rejected'
STATUS_REVISION_REQUESTED = 'Revision Requested'

SUBMISSION_STATUSES = (
    STATUS_DRAFT,
    STATUS_PENDING_REVIEW,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_REVISION_REQUESTED,
)

UNKNOWN_KPI_NAME = 'Unknown KPI'
UNKNOWN_KPI_TARGET = 'N/A'

class SubmissionError(Exception):
    """Base exception for submission operations."""
    pass

class SubmissionNotFoundError(SubmissionError):
    """Raised when a submission is not found."""
    pass

class BuilderNotFoundError(SubmissionError):
    """Raised when the submitting builder is unknown."""
    pass

class InvalidSubmissionError(SubmissionError):
    """Raised when submission input is invalid."""
    pass

def parse_amount(value: Any) -> Decimal:
    """Parse a payout amount into a finite Decimal.

    Raises:
        InvalidSubmissionError: If the value is not a finite number
    """
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidSubmissionError("Amount must be a valid number")
    if not amount.is_finite():
        raise InvalidSubmissionError("Amount must be a valid number")
    return amount

def parse_kpi_results(raw: Any) -> List[Dict[str, Any]]:
    """Parse the kpiResults form field.

    Accepts a JSON string or an already decoded list of
    {kpiId, achievedValue, notes} objects.
    """
    if raw is None or raw == '':
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise InvalidSubmissionError("kpiResults must be a JSON array")
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise InvalidSubmissionError("kpiResults must be a JSON array")
    return raw

TASK_SUMMARY_COLUMNS = '''
    t.title AS task_title,
    t.location AS task_location,
    t.date AS task_date,
    t.budget AS task_budget
'''

class SubmissionManager:
    """Manager class for handling submissions."""

    def __init__(self, pool=None, uploads_dir: Optional[str] = None):
        """Initialize the submission manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
            uploads_dir: Directory for supporting files, defaults to the uploads_dir setting
        """
        self.pool = pool
        if uploads_dir is None:
            from config import settings_conf
            uploads_dir = settings_conf['uploads_dir']
        self.uploads_dir = uploads_dir

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def _load(self, conn, where: str, *args, with_wallet: bool = False) -> List[Dict[str, Any]]:
        wallet = ', u.wallet_address AS builder_wallet_address' if with_wallet else ''
        rows = await conn.fetch(
            f'''
            SELECT
                s.*,
                {TASK_SUMMARY_COLUMNS},
                u.email AS builder_email,
                u.name AS builder_name
                {wallet}
            FROM submissions s
            JOIN tasks t ON t.id = s.task_id
            JOIN users u ON u.id = s.builder_id
            {where}
            ORDER BY s.created_at DESC
            ''',
            *args
        )

        submissions = []
        for row in rows:
            row = dict(row)
            submission = {
                key: value for key, value in row.items()
                if not (key.startswith('task_') or key.startswith('builder_'))
            }
            submission['task_id'] = row['task_id']
            submission['builder_id'] = row['builder_id']
            submission['task'] = {
                'id': row['task_id'],
                'title': row['task_title'],
                'location': row['task_location'],
                'date': row['task_date'],
                'budget': row['task_budget']
            }
            submission['builder'] = {
                'id': row['builder_id'],
                'email': row['builder_email'],
                'name': row['builder_name']
            }
            if with_wallet:
                submission['builder']['wallet_address'] = row['builder_wallet_address']
            submissions.append(submission)

        await self._attach_details(conn, submissions)
        return submissions

    async def _attach_details(self, conn, submissions: List[Dict[str, Any]]) -> None:
        """Load KPI results and supporting files for the given submissions."""
        ids = [s['id'] for s in submissions]
        by_id = {s['id']: s for s in submissions}
        for submission in submissions:
            submission['kpi_results'] = []
            submission['supporting_files'] = []
        if not ids:
            return

        results = await conn.fetch(
            '''
            SELECT id, submission_id, name, target, achieved, status
            FROM submission_kpi_results
            WHERE submission_id = ANY($1::uuid[])
            ORDER BY name
            ''',
            ids
        )
        for result in results:
            by_id[result['submission_id']]['kpi_results'].append(dict(result))

        for submission in submissions:
            evaluation = evaluate_kpis(submission['kpi_results'])
            for result, evaluated in zip(submission['kpi_results'], evaluation['results']):
                result['percentage_achieved'] = evaluated['percentage_achieved']

        files = await conn.fetch(
            '''
            SELECT id, submission_id, name, size, type, url
            FROM submission_files
            WHERE submission_id = ANY($1::uuid[])
            ORDER BY name
            ''',
            ids
        )
        for file in files:
            by_id[file['submission_id']]['supporting_files'].append(dict(file))

    async def _refresh_kpi_statuses(self, conn, submission_id) -> None:
        """Re-evaluate stored KPI results, writing back statuses that changed."""
        results = await conn.fetch(
            '''
            SELECT id, target, achieved, status
            FROM submission_kpi_results
            WHERE submission_id = $1
            ''',
            submission_id
        )
        for result in results:
            status = kpi_status(result['target'], result['achieved'])
            if status != result['status']:
                await conn.execute(
                    'UPDATE submission_kpi_results SET status = $2 WHERE id = $1',
                    result['id'],
                    status
                )

    async def create_submission(
        self,
        task_id: Any,
        builder_email: Optional[str],
        summary: Optional[str],
        status: Optional[str] = None,
        kpi_results: Any = None,
        files: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Create a submission with KPI results and supporting files.

        Args:
            task_id: UUID of the task
            builder_email: Email of an existing builder
            summary: Work summary
            status: 'draft' keeps the submission as a draft, anything else
                submits it for review
            kpi_results: JSON string or list of {kpiId, achievedValue, notes}
            files: List of dicts with 'name', 'type' and 'content' (bytes);
                empty files are skipped

        Returns:
            Dict containing the submission with 'kpi_results' and 'supporting_files'

        Raises:
            InvalidSubmissionError: If a required field is missing or kpi_results is malformed
            BuilderNotFoundError: If no user has this email
        """
        if not task_id or not builder_email or not summary:
            raise InvalidSubmissionError("Missing required fields")

        task_uuid = parse_uuid(task_id)
        if not task_uuid:
            raise InvalidSubmissionError(f"Invalid task ID: {task_id}")

        results = parse_kpi_results(kpi_results)
        status = STATUS_DRAFT if status == STATUS_DRAFT else STATUS_PENDING_REVIEW

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            builder = await find_user_by_email(conn, builder_email)
            if not builder:
                raise BuilderNotFoundError("Builder not found")

            kpi_ids = [parse_uuid(r.get('kpiId')) for r in results]
            kpi_rows = await conn.fetch(
                'SELECT id, name, target FROM kpis WHERE id = ANY($1::uuid[])',
                [kpi_id for kpi_id in kpi_ids if kpi_id]
            )
            kpis = {row['id']: row for row in kpi_rows}

            stored = []
            try:
                for file in files or []:
                    if not file.get('content'):
                        continue
                    stored.append(await store_file(
                        self.uploads_dir, file.get('name'), file['content'], file.get('type')
                    ))

                async with conn.transaction():
                    submission_id = await conn.fetchval(
                        '''
                        INSERT INTO submissions (
                            task_id, builder_id, work_summary, status
                        ) VALUES ($1, $2, $3, $4)
                        RETURNING id
                        ''',
                        task_uuid,
                        builder['id'],
                        summary,
                        status
                    )

                    for kpi_id, result in zip(kpi_ids, results):
                        kpi = kpis.get(kpi_id)
                        target = kpi['target'] if kpi else UNKNOWN_KPI_TARGET
                        achieved = str(result.get('achievedValue', ''))
                        await conn.execute(
                            '''
                            INSERT INTO submission_kpi_results (
                                submission_id, name, target, achieved, status
                            ) VALUES ($1, $2, $3, $4, $5)
                            ''',
                            submission_id,
                            kpi['name'] if kpi else UNKNOWN_KPI_NAME,
                            target,
                            achieved,
                            kpi_status(target, achieved)
                        )

                    for file in stored:
                        await conn.execute(
                            '''
                            INSERT INTO submission_files (
                                submission_id, name, size, type, url
                            ) VALUES ($1, $2, $3, $4, $5)
                            ''',
                            submission_id,
                            file['name'],
                            file['size'],
                            file['type'],
                            file['url']
                        )
            except Exception:
                for file in stored:
                    remove_file(file['path'])
                raise

            logger.info(
                f"Builder {builder_email} submitted {submission_id} for task {task_uuid} "
                f"({len(results)} KPI results, {len(stored)} files)"
            )
            return (await self._load(conn, 'WHERE s.id = $1', submission_id))[0]

    async def list_submissions(self, builder_email: Optional[str] = None) -> List[Dict[str, Any]]:
        """List submissions newest first.

        Args:
            builder_email: Optional filter on the builder's email

        Raises:
            BuilderNotFoundError: If a builder email is given but unknown
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            if not builder_email:
                return await self._load(conn, '')

            builder = await find_user_by_email(conn, builder_email)
            if not builder:
                raise BuilderNotFoundError("Builder not found")
            return await self._load(conn, 'WHERE s.builder_id = $1', builder['id'])

    async def get_submission(self, submission_id: Any) -> Dict[str, Any]:
        """Get a submission including the builder's wallet address.

        The result also carries an 'evaluation' summary of its KPI results
        and the payout they suggest.

        Raises:
            SubmissionNotFoundError: If the submission doesn't exist
        """
        submission_uuid = parse_uuid(submission_id)
        if not submission_uuid:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            found = await self._load(conn, 'WHERE s.id = $1', submission_uuid, with_wallet=True)
            if not found:
                raise SubmissionNotFoundError(f"Submission {submission_id} not found")

        submission = found[0]
        evaluation = evaluate_kpis(submission['kpi_results'])
        del evaluation['results']
        evaluation['recommended_amount'] = recommended_payment(
            submission['task']['budget'], evaluation['payment_multiplier']
        )
        submission['evaluation'] = evaluation
        return submission

    async def review_submission(
        self,
        submission_id: Any,
        status: Optional[str] = None,
        review_notes: Optional[str] = None,
        amount: Any = None
    ) -> Dict[str, Any]:
        """Update a submission's review fields.

        Only supplied values change. Setting a status also stamps reviewed_at.

        Raises:
            InvalidSubmissionError: If status is unknown or amount is not a number
            SubmissionNotFoundError: If the submission doesn't exist
        """
        if status is not None and status not in SUBMISSION_STATUSES:
            raise InvalidSubmissionError(f"Invalid submission status: {status}")

        parsed_amount = None
        if amount is not None and amount != '':
            parsed_amount = parse_amount(amount)

        submission_uuid = parse_uuid(submission_id)
        if not submission_uuid:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                updated = await conn.fetchval(
                    '''
                    UPDATE submissions
                    SET status = COALESCE($2, status),
                        review_notes = COALESCE($3, review_notes),
                        amount = COALESCE($4, amount),
                        reviewed_at = CASE WHEN $2::text IS NULL THEN reviewed_at ELSE now() END,
                        updated_at = now()
                    WHERE id = $1
                    RETURNING id
                    ''',
                    submission_uuid,
                    status,
                    review_notes,
                    parsed_amount
                )
                if not updated:
                    raise SubmissionNotFoundError(f"Submission {submission_id} not found")

                await self._refresh_kpi_statuses(conn, submission_uuid)

            logger.info(f"Reviewed submission {submission_uuid} (status={status})")
            return (await self._load(conn, 'WHERE s.id = $1', submission_uuid))[0]

__all__ = [
    'SubmissionManager', 'SubmissionError', 'SubmissionNotFoundError',
    'BuilderNotFoundError', 'InvalidSubmissionError',
    'parse_amount', 'parse_kpi_results',
    'SUBMISSION_STATUSES', 'STATUS_DRAFT', 'STATUS_PENDING_REVIEW',
    'STATUS_APPROVED', 'STATUS_REJECTED', 'STATUS_REVISION_REQUESTED'
]
