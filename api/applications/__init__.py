"""Applications API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from applications import (
    ApplicationManager, ApplicationNotFoundError, ApplicationTaskNotFoundError,
    DuplicateApplicationError, InvalidApplicationError
)
from ..serialize import camelize

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/applications",
    tags=["Applications"]
)

class CreateApplicationRequest(BaseModel):
    """Request model for applying to a task."""
    model_config = ConfigDict(populate_by_name=True)

    task_id: Optional[str] = Field(None, alias='taskId')
    builder_email: Optional[str] = Field(None, alias='builderEmail')
    cover_letter: Optional[str] = Field(None, alias='coverLetter')

class ReviewApplicationRequest(BaseModel):
    """Request model for reviewing an application."""
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    review_notes: Optional[str] = Field(None, alias='reviewNotes')

@router.get("")
async def list_applications(builder_email: Optional[str] = Query(None, alias="builderEmail")):
    """List all applications, or one builder's when builderEmail is given."""
    try:
        return camelize(await ApplicationManager().list_applications(builder_email))
    except Exception as e:
        logger.error(f"Error fetching applications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch applications"
        )

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_application(request: CreateApplicationRequest):
    """Apply to a task."""
    try:
        application = await ApplicationManager().create_application(
            task_id=request.task_id,
            builder_email=request.builder_email,
            cover_letter=request.cover_letter
        )
        return camelize(application)
    except (InvalidApplicationError, DuplicateApplicationError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except ApplicationTaskNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    except Exception as e:
        logger.error(f"Error creating application: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create application"
        )

@router.get("/{application_id}")
async def get_application(application_id: str):
    """Get a single application."""
    try:
        return camelize(await ApplicationManager().get_application(application_id))
    except ApplicationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Application not found"
        )
    except Exception as e:
        logger.error(f"Error fetching application {application_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch application"
        )

@router.put("/{application_id}")
async def review_application(application_id: str, request: ReviewApplicationRequest):
    """Set an application's status and review notes."""
    try:
        application = await ApplicationManager().review_application(
            application_id,
            status=request.status,
            review_notes=request.review_notes
        )
        return camelize(application)
    except InvalidApplicationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except ApplicationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Application not found"
        )
    except Exception as e:
        logger.error(f"Error updating application {application_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update application"
        )

@router.delete("/{application_id}")
async def delete_application(application_id: str):
    """Delete an application."""
    try:
        await ApplicationManager().delete_application(application_id)
        return {"message": "Application deleted successfully"}
    except ApplicationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Application not found"
        )
    except Exception as e:
        logger.error(f"Error deleting application {application_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete application"
        )

__all__ = ['router']
