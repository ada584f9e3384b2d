"""Payments module for recording builder payouts.

Payouts happen outside this service (a wallet signs and submits the transfer
or a payment stream is withdrawn). This module records what the caller
reports: the transfer details, and for reviewed submissions the approved
amount. Transaction hashes are stored as given and are not checked against
the ledger.
"""

import logging
from typing import Dict, List, Optional, Any

from database import get_pool
from database.lib.ids import parse_uuid
from profiles import find_user_by_email
from submissions import parse_amount, InvalidSubmissionError, STATUS_APPROVED

logger = logging.getLogger(__name__)

class PaymentError(Exception):
    """Base exception for payment operations."""
    def __init__(self, message: str, details: Optional[str] = None):
        self.details = details
        super().__init__(message)

class InvalidPaymentError(PaymentError):
    """Raised when payment input is invalid."""
    pass

class PaymentSubmissionNotFoundError(PaymentError):
    """Raised when processing a payment for an unknown submission."""
    pass

class MissingWalletError(PaymentError):
    """Raised when the builder being paid has no wallet address."""
    pass

PAYMENT_SELECT = '''
    SELECT
        p.id,
        p.stream_id,
        p.amount,
        p.token,
        p.from_address AS "from",
        p.to_address AS "to",
        p.tx_hash,
        p.builder_id,
        p.created_at,
        u.name AS builder_name,
        u.email AS builder_email
    FROM payments p
    LEFT JOIN users u ON u.id = p.builder_id
'''

def _nest(row: Dict[str, Any]) -> Dict[str, Any]:
    payment = {k: v for k, v in row.items() if k not in ('builder_name', 'builder_email')}
    payment['builder'] = None
    if row['builder_id'] is not None:
        payment['builder'] = {'name': row['builder_name'], 'email': row['builder_email']}
    return payment

def _amount(value: Any) -> Any:
    try:
        return parse_amount(value)
    except InvalidSubmissionError as e:
        raise InvalidPaymentError(str(e))

class PaymentManager:
    """Manager class for recording payments."""

    def __init__(self, pool=None, token: Optional[str] = None):
        """Initialize the payment manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
            token: Token symbol for processed payments, defaults to the payment_token setting
        """
        self.pool = pool
        if token is None:
            from config import settings_conf
            token = settings_conf['payment_token']
        self.token = token

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def list_payments(self) -> List[Dict[str, Any]]:
        """List payments newest first, with the paid builder's name and email."""
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f'{PAYMENT_SELECT} ORDER BY p.created_at DESC')
            return [_nest(dict(row)) for row in rows]

    async def record_payment(
        self,
        amount: Any,
        stream_id: Optional[str] = None,
        token: Optional[str] = None,
        from_address: Optional[str] = None,
        to_address: Optional[str] = None,
        tx_hash: Optional[str] = None,
        builder_email: Optional[str] = None
    ) -> Dict[str, Any]:
        """Record a completed transfer, e.g. a stream withdrawal.

        Args:
            amount: Transferred amount, must be a finite number
            stream_id: Payment stream the transfer came from
            token: Token symbol
            from_address: Sending wallet
            to_address: Receiving wallet
            tx_hash: Transaction hash reported by the wallet
            builder_email: Links the payment to this builder when the email is known

        Returns:
            Dict containing the created payment

        Raises:
            InvalidPaymentError: If amount is missing or not a number
        """
        if amount is None or amount == '':
            raise InvalidPaymentError("Amount is required")
        parsed_amount = _amount(amount)

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            builder_id = None
            if builder_email:
                builder = await find_user_by_email(conn, builder_email)
                if builder:
                    builder_id = builder['id']

            payment_id = await conn.fetchval(
                '''
                INSERT INTO payments (
                    stream_id, amount, token, from_address, to_address, tx_hash, builder_id
                ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING id
                ''',
                stream_id,
                parsed_amount,
                token,
                from_address,
                to_address,
                tx_hash,
                builder_id
            )

            logger.info(f"Recorded payment {payment_id} of {parsed_amount} {token or ''} (tx {tx_hash})")
            row = await conn.fetchrow(f'{PAYMENT_SELECT} WHERE p.id = $1', payment_id)
            return _nest(dict(row))

    async def process_submission_payment(
        self,
        submission_id: Any,
        amount: Any,
        transaction_hash: Optional[str],
        review_notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """Approve a submission for a payout that was already sent.

        The submission is left untouched when the builder has no wallet address.

        Args:
            submission_id: UUID of the submission
            amount: Paid amount
            transaction_hash: Hash of the payout transaction
            review_notes: Optional reviewer notes

        Returns:
            Dict with success, transaction_hash and a human readable message

        Raises:
            InvalidPaymentError: If a required field is missing or amount is invalid
            PaymentSubmissionNotFoundError: If the submission doesn't exist
            MissingWalletError: If the builder has no wallet address
        """
        if not submission_id or not amount or not transaction_hash:
            raise InvalidPaymentError(
                "Missing required fields",
                details="Missing required fields: submissionId, amount, transactionHash"
            )
        parsed_amount = _amount(amount)

        submission_uuid = parse_uuid(submission_id)
        if not submission_uuid:
            raise PaymentSubmissionNotFoundError("Submission not found", details="Submission not found")

        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                submission = await conn.fetchrow(
                    '''
                    SELECT s.id, u.wallet_address, u.email, u.name
                    FROM submissions s
                    JOIN users u ON u.id = s.builder_id
                    WHERE s.id = $1
                    FOR UPDATE OF s
                    ''',
                    submission_uuid
                )
                if not submission:
                    raise PaymentSubmissionNotFoundError(
                        "Submission not found", details="Submission not found"
                    )

                wallet_address = submission['wallet_address']
                if not wallet_address:
                    raise MissingWalletError(
                        "Builder wallet address not found",
                        details=(
                            "Builder wallet address not found. "
                            "Please ask builder to add wallet address in profile."
                        )
                    )

                await conn.execute(
                    '''
                    UPDATE submissions
                    SET amount = $2,
                        status = $3,
                        review_notes = $4,
                        reviewed_at = now(),
                        updated_at = now()
                    WHERE id = $1
                    ''',
                    submission_uuid,
                    parsed_amount,
                    STATUS_APPROVED,
                    review_notes or None
                )

        logger.info(
            f"Submission {submission_uuid} approved, {parsed_amount} {self.token} "
            f"paid to {wallet_address} (tx {transaction_hash})"
        )
        return {
            'success': True,
            'transaction_hash': transaction_hash,
            'message': f"Payment of {amount} {self.token} sent to {wallet_address}"
        }

__all__ = [
    'PaymentManager', 'PaymentError', 'InvalidPaymentError',
    'PaymentSubmissionNotFoundError', 'MissingWalletError'
]
