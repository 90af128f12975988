"""API request/response schemas for the task management service."""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .models.display import TaskDisplay, describe_task
from .models.statistics import Insight, StatisticsReport
from .models.task import Task, TaskStatus
from .models.user import User


# Task-related schemas
class TaskCreate(BaseModel):
    """Schema for creating a new task."""
    title: str = Field(..., min_length=1, max_length=200, description="Task title")
    description: Optional[str] = Field(None, max_length=2000, description="Task description")
    start_date: Optional[str] = Field(None, description="Start date (ISO-8601); missing or unparsable means now")
    deadline: Optional[str] = Field(None, description="Optional deadline (ISO-8601)")


class TaskUpdate(BaseModel):
    """Schema for partially updating an existing task.

    Only fields present in the request body are applied; an explicit
    ``"deadline": null`` clears the deadline.
    Dates stay strings here so the task entity decides how to parse them.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=200, description="Task title")
    description: Optional[str] = Field(None, max_length=2000, description="Task description")
    status: Optional[str] = Field(None, description="Task status")
    start_date: Optional[str] = Field(None, description="Start date (ISO-8601)")
    deadline: Optional[str] = Field(None, description="Deadline (ISO-8601)")


class TaskStatusUpdate(BaseModel):
    """Schema for changing a task's status."""
    status: str = Field(..., min_length=1, description="New task status")


class TaskResponse(BaseModel):
    """Schema for task API responses."""
    id: str = Field(..., description="Unique task identifier")
    title: str = Field(..., description="Task title")
    description: str = Field("", description="Task description")
    status: TaskStatus = Field(..., description="Task status")
    owner_id: str = Field(..., description="Owning user identifier")
    start_date: datetime = Field(..., description="Start date")
    deadline: Optional[datetime] = Field(None, description="Deadline")
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")
    is_overdue: bool = Field(False, description="Deadline passed without completion")
    progress: Optional[int] = Field(None, description="Elapsed share of the task window, percent")
    display: TaskDisplay = Field(..., description="Presentation hints")

    @classmethod
    def from_task(cls, task: Task, now: Optional[datetime] = None) -> "TaskResponse":
        now = now or datetime.now(timezone.utc)
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            owner_id=task.owner_id,
            start_date=task.start_date,
            deadline=task.deadline,
            created_at=task.created_at,
            updated_at=task.updated_at,
            is_overdue=task.is_overdue(now),
            progress=task.progress_percentage(now),
            display=describe_task(task, now),
        )


class TaskListResponse(BaseModel):
    """Schema for task list API responses."""
    tasks: List[TaskResponse] = Field(..., description="List of tasks")
    total: int = Field(..., description="Total number of tasks")


# Statistics schemas
class StatisticsResponse(BaseModel):
    """Schema for task statistics responses."""
    total: int = Field(..., description="Tasks that are not cancelled")
    scheduled: int
    pending: int
    in_progress: int
    completed: int
    failed: int
    cancelled: int
    overdue: int
    active: int = Field(..., description="Pending plus in-progress tasks")
    completion_rate: int = Field(..., description="Percent of completable tasks completed")
    summary: Dict[str, int] = Field(..., description="Compact summary (in_progress includes pending)")
    insights: List[Insight] = Field(default_factory=list, description="Most urgent first")

    @classmethod
    def from_report(cls, report: StatisticsReport) -> "StatisticsResponse":
        snapshot = report.snapshot
        return cls(
            total=snapshot.total,
            scheduled=snapshot.scheduled_count,
            pending=snapshot.pending_count,
            in_progress=snapshot.in_progress_count,
            completed=snapshot.completed_count,
            failed=snapshot.failed_count,
            cancelled=snapshot.cancelled_count,
            overdue=snapshot.overdue_count,
            active=snapshot.active_count,
            completion_rate=snapshot.completion_rate,
            summary=snapshot.to_summary(),
            insights=report.insights,
        )


# Auth-related schemas
class RegisterRequest(BaseModel):
    """Schema for user registration."""
    username: str = Field(..., description="Username (letters, numbers, underscores)")
    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password, 6-100 characters")


class LoginRequest(BaseModel):
    """Schema for user login."""
    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class UserResponse(BaseModel):
    """Public user information."""
    id: str
    username: str
    email: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(**user.to_public())


class TokenResponse(BaseModel):
    """Schema for login responses."""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# Health check schema
class HealthResponse(BaseModel):
    """Schema for health check responses."""
    status: str = Field(default="healthy", description="Service health status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Health check timestamp")
    version: str = Field(default="1.0.0", description="Application version")
    services: Dict[str, str] = Field(default_factory=dict, description="Service initialization state")
