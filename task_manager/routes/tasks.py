"""Task management CRUD, lifecycle and statistics routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..deps import get_current_owner_id, get_statistics_service, get_task_service
from ..schemas import (
    StatisticsResponse,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskStatusUpdate,
    TaskUpdate,
)
from ..services.statistics_service import StatisticsService
from ..services.task_service import TaskService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _respond(task_service: TaskService, task) -> TaskResponse:
    return TaskResponse.from_task(task, task_service.clock())


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Create a new task.

    Args:
        task_data: Task creation data
        owner_id: Authenticated owner
        task_service: Task service instance

    Returns:
        Created task response
    """
    logger.info(f"Creating new task for {owner_id}: {task_data.title}")

    task = task_service.create_task(
        owner_id,
        task_data.title,
        task_data.description,
        task_data.start_date,
        task_data.deadline,
    )
    return _respond(task_service, task)


@router.get("/", response_model=TaskListResponse)
async def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> TaskListResponse:
    """List the caller's tasks, optionally filtered by status."""
    logger.debug(f"Listing tasks for {owner_id} with status={status_filter}")

    tasks = task_service.list_tasks(owner_id, status=status_filter)
    now = task_service.clock()
    return TaskListResponse(
        tasks=[TaskResponse.from_task(task, now) for task in tasks],
        total=len(tasks),
    )


@router.get("/statistics", response_model=StatisticsResponse)
async def get_task_statistics(
    owner_id: str = Depends(get_current_owner_id),
    statistics_service: StatisticsService = Depends(get_statistics_service),
) -> StatisticsResponse:
    """Get task statistics and insights for the caller."""
    logger.debug(f"Getting task statistics for {owner_id}")

    report = statistics_service.compute_statistics(owner_id)
    return StatisticsResponse.from_report(report)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Get a specific task by ID."""
    logger.debug(f"Getting task: {task_id}")

    return _respond(task_service, task_service.get_task(owner_id, task_id))


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Update a task. Only the fields sent are changed."""
    logger.info(f"Updating task: {task_id}")

    fields = task_data.model_dump(exclude_unset=True)
    task = task_service.update_task(owner_id, task_id, **fields)
    return _respond(task_service, task)


@router.patch("/{task_id}/status", response_model=TaskResponse)
async def change_task_status(
    task_id: str,
    status_data: TaskStatusUpdate,
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Change a task's status."""
    logger.info(f"Changing status of task {task_id} to {status_data.status}")

    task = task_service.change_status(owner_id, task_id, status_data.status)
    return _respond(task_service, task)


@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(
    task_id: str,
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Mark a task as in progress."""
    return _respond(task_service, task_service.start_task(owner_id, task_id))


@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: str,
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Mark a task as completed."""
    return _respond(task_service, task_service.complete_task(owner_id, task_id))


@router.post("/{task_id}/reopen", response_model=TaskResponse)
async def reopen_task(
    task_id: str,
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Reopen a task: completed work resumes in progress, anything else except failed returns to pending."""
    return _respond(task_service, task_service.reopen_task(owner_id, task_id))


@router.post("/{task_id}/cancel", response_model=TaskResponse)
async def cancel_task(
    task_id: str,
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Cancel a task (soft delete)."""
    logger.info(f"Cancelling task: {task_id}")

    return _respond(task_service, task_service.cancel_task(owner_id, task_id))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    owner_id: str = Depends(get_current_owner_id),
    task_service: TaskService = Depends(get_task_service),
) -> Response:
    """Delete a task permanently."""
    logger.info(f"Deleting task: {task_id}")

    task_service.delete_task(owner_id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
