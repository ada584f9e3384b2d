"""Submissions API endpoints."""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, HTTPException, Query, UploadFile, File, Form, status
from pydantic import BaseModel, ConfigDict, Field

from submissions import (
    SubmissionManager, SubmissionNotFoundError, BuilderNotFoundError, InvalidSubmissionError
)
from ..serialize import camelize

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/submissions",
    tags=["Submissions"]
)

class ReviewSubmissionRequest(BaseModel):
    """Request model for reviewing a submission."""
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    review_notes: Optional[str] = Field(None, alias='reviewNotes')
    amount: Optional[Any] = None

@router.post("")
async def create_submission(
    task_id: Optional[str] = Form(None, alias="taskId"),
    builder_email: Optional[str] = Form(None, alias="builderEmail"),
    summary: Optional[str] = Form(None),
    submission_status: Optional[str] = Form(None, alias="status"),
    kpi_results: Optional[str] = Form(None, alias="kpiResults"),
    files: Optional[List[UploadFile]] = File(None)
):
    """Submit deliverables for a task (multipart form)."""
    try:
        uploads = []
        for upload in files or []:
            uploads.append({
                'name': upload.filename,
                'type': upload.content_type,
                'content': await upload.read()
            })

        submission = await SubmissionManager().create_submission(
            task_id=task_id,
            builder_email=builder_email,
            summary=summary,
            status=submission_status,
            kpi_results=kpi_results,
            files=uploads
        )
        return camelize(submission)
    except InvalidSubmissionError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except BuilderNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Builder not found"
        )
    except Exception as e:
        logger.error(f"Error creating submission: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create submission"
        )

@router.get("")
async def list_submissions(builder_email: Optional[str] = Query(None, alias="builderEmail")):
    """List all submissions, or one builder's when builderEmail is given."""
    try:
        return camelize(await SubmissionManager().list_submissions(builder_email))
    except BuilderNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Builder not found"
        )
    except Exception as e:
        logger.error(f"Error fetching submissions: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch submissions"
        )

@router.get("/{submission_id}")
async def get_submission(submission_id: str):
    """Get a submission with its KPI results and files."""
    try:
        return camelize(await SubmissionManager().get_submission(submission_id))
    except SubmissionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Submission not found"
        )
    except Exception as e:
        logger.error(f"Error fetching submission {submission_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch submission"
        )

@router.put("/{submission_id}")
async def review_submission(submission_id: str, request: ReviewSubmissionRequest):
    """Update a submission's status, review notes or amount."""
    try:
        submission = await SubmissionManager().review_submission(
            submission_id,
            status=request.status,
            review_notes=request.review_notes,
            amount=request.amount
        )
        return camelize(submission)
    except InvalidSubmissionError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except SubmissionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Submission not found"
        )
    except Exception as e:
        logger.error(f"Error updating submission {submission_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update submission"
        )

__all__ = ['router']
