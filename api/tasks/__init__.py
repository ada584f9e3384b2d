"""Tasks API endpoints."""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from tasks import TaskManager, TaskNotFoundError, InvalidTaskError
from ..serialize import camelize

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tasks",
    tags=["Tasks"]
)

class KPIRequest(BaseModel):
    """Model for a KPI target attached to a task."""
    name: Optional[str] = None
    target: Optional[Any] = None
    description: Optional[str] = None

class TaskRequest(BaseModel):
    """Request model for creating or updating a task.

    Every field is optional at this level so that missing values are reported
    by the task validation with a specific message.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    budget: Optional[Any] = None
    location: Optional[str] = None
    date: Optional[str] = None
    status: Optional[str] = None
    stream_duration: Optional[Any] = Field(None, alias='streamDuration')
    max_applicants: Optional[Any] = Field(None, alias='maxApplicants')
    kpis: Optional[List[KPIRequest]] = None
    created_by_email: Optional[str] = Field(None, alias='createdByEmail')

class FundRequest(BaseModel):
    """Request model for funding a task."""
    model_config = ConfigDict(populate_by_name=True)

    stream_id: Optional[str] = Field(None, alias='streamId')

def _task_fields(request: TaskRequest) -> dict:
    """Only the fields present in the body, keyed by column name."""
    return request.model_dump(exclude_unset=True)

@router.get("")
async def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    task_type: Optional[str] = Query(None, alias="type")
):
    """List tasks with their KPIs and application counts."""
    try:
        tasks = await TaskManager().list_tasks(status=status_filter, task_type=task_type)
        return camelize(tasks)
    except Exception as e:
        logger.error(f"Error fetching tasks: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch tasks"
        )

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(request: TaskRequest):
    """Create a task with optional KPIs."""
    try:
        task = await TaskManager().create_task(**_task_fields(request))
        return camelize(task)
    except InvalidTaskError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error creating task: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create task"
        )

@router.get("/{task_id}")
async def get_task(task_id: str):
    """Get a task with its KPIs and applicants."""
    try:
        return camelize(await TaskManager().get_task(task_id))
    except TaskNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    except Exception as e:
        logger.error(f"Error fetching task {task_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch task"
        )

@router.put("/{task_id}")
async def update_task(task_id: str, request: TaskRequest):
    """Update a task; a supplied KPI list replaces the existing one."""
    try:
        fields = _task_fields(request)
        fields.pop('created_by_email', None)
        return camelize(await TaskManager().update_task(task_id, **fields))
    except TaskNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    except InvalidTaskError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error updating task {task_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update task"
        )

@router.delete("/{task_id}")
async def delete_task(task_id: str):
    """Delete a task."""
    try:
        await TaskManager().delete_task(task_id)
        return {"message": "Task deleted successfully"}
    except TaskNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    except Exception as e:
        logger.error(f"Error deleting task {task_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete task"
        )

@router.post("/{task_id}/fund")
async def fund_task(task_id: str, request: Optional[FundRequest] = None):
    """Attach a funded payment stream; the task moves to In Progress."""
    try:
        stream_id = request.stream_id if request else None
        return camelize(await TaskManager().fund_task(task_id, stream_id))
    except InvalidTaskError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except TaskNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    except Exception as e:
        logger.error(f"Error funding task {task_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fund task"
        )

@router.post("/{task_id}/start")
async def start_task(task_id: str):
    """Move a task to Pending Stream Start."""
    try:
        return camelize(await TaskManager().start_task(task_id))
    except TaskNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    except Exception as e:
        logger.error(f"Error starting task {task_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start task"
        )

__all__ = ['router']
