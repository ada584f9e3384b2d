"""Payments API endpoints."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from payments import (
    PaymentManager, PaymentError, InvalidPaymentError,
    PaymentSubmissionNotFoundError, MissingWalletError
)
from ..serialize import camelize

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/payments",
    tags=["Payments"]
)

class RecordPaymentRequest(BaseModel):
    """Request model for recording a completed transfer."""
    model_config = ConfigDict(populate_by_name=True)

    stream_id: Optional[str] = Field(None, alias='streamId')
    amount: Optional[Any] = None
    token: Optional[str] = None
    from_address: Optional[str] = Field(None, alias='from')
    to_address: Optional[str] = Field(None, alias='to')
    tx_hash: Optional[str] = Field(None, alias='txHash')
    builder_email: Optional[str] = Field(None, alias='builderEmail')

class ProcessPaymentRequest(BaseModel):
    """Request model for paying out a reviewed submission."""
    model_config = ConfigDict(populate_by_name=True)

    submission_id: Optional[str] = Field(None, alias='submissionId')
    amount: Optional[Any] = None
    transaction_hash: Optional[str] = Field(None, alias='transactionHash')
    review_notes: Optional[str] = Field(None, alias='reviewNotes')

def _payment_error(status_code: int, error: PaymentError) -> HTTPException:
    detail = {"error": str(error)}
    if error.details:
        detail["details"] = error.details
    return HTTPException(status_code=status_code, detail=detail)

@router.get("")
async def list_payments():
    """List recorded payments, newest first."""
    try:
        return camelize(await PaymentManager().list_payments())
    except Exception as e:
        logger.error(f"Error fetching payments: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch payments"
        )

@router.post("")
async def record_payment(request: RecordPaymentRequest):
    """Record a completed transfer."""
    try:
        payment = await PaymentManager().record_payment(**request.model_dump())
        return camelize(payment)
    except InvalidPaymentError as e:
        raise _payment_error(status.HTTP_400_BAD_REQUEST, e)
    except Exception as e:
        logger.error(f"Error recording payment: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record payment"
        )

@router.post("/process")
async def process_payment(request: ProcessPaymentRequest):
    """Approve a submission for a payout sent from the admin wallet."""
    try:
        result = await PaymentManager().process_submission_payment(**request.model_dump())
        return camelize(result)
    except (InvalidPaymentError, MissingWalletError) as e:
        raise _payment_error(status.HTTP_400_BAD_REQUEST, e)
    except PaymentSubmissionNotFoundError as e:
        raise _payment_error(status.HTTP_404_NOT_FOUND, e)
    except Exception as e:
        logger.error(f"Error processing payment: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to process payment", "details": str(e)}
        )

__all__ = ['router']
