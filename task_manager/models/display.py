"""Presentation hints for tasks: labels, colours and allowed actions."""

from datetime import datetime
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .task import Task, TaskStatus

STATUS_LABELS: Dict[TaskStatus, str] = {
    TaskStatus.SCHEDULED: "Scheduled",
    TaskStatus.PENDING: "Pending",
    TaskStatus.IN_PROGRESS: "In progress",
    TaskStatus.COMPLETED: "Completed",
    TaskStatus.FAILED: "Failed",
    TaskStatus.CANCELLED: "Cancelled",
}

STATUS_ICONS: Dict[TaskStatus, str] = {
    TaskStatus.SCHEDULED: "📅",
    TaskStatus.PENDING: "⏸️",
    TaskStatus.IN_PROGRESS: "🔄",
    TaskStatus.COMPLETED: "✅",
    TaskStatus.FAILED: "❌",
    TaskStatus.CANCELLED: "🚫",
}

# status -> (actions, can_edit, can_delete, can_complete)
_PERMISSIONS: Dict[TaskStatus, Tuple[Tuple[str, ...], bool, bool, bool]] = {
    TaskStatus.SCHEDULED: (("edit", "delete"), True, True, False),
    TaskStatus.PENDING: (("edit", "delete", "complete"), True, True, True),
    TaskStatus.IN_PROGRESS: (("edit", "delete", "complete"), True, True, True),
    TaskStatus.COMPLETED: (("view", "delete"), False, True, False),
    TaskStatus.FAILED: (("view", "delete", "complete"), False, True, True),
    TaskStatus.CANCELLED: (("view",), False, False, False),
}


class TaskDisplay(BaseModel):
    """Display hints for a single task."""

    model_config = ConfigDict(frozen=True)

    status_label: str
    status_class: str
    progress_color: str = Field(..., description="safe, warning, danger or completed")
    overdue_message: Optional[str] = None
    available_actions: Tuple[str, ...] = ()
    can_edit: bool = False
    can_delete: bool = False
    can_complete: bool = False
    icon: str = "📋"


def status_label(status: TaskStatus) -> str:
    return STATUS_LABELS[TaskStatus.parse(status)]


def _progress_color(task: Task, progress: Optional[int]) -> str:
    if task.status == TaskStatus.COMPLETED:
        return "completed"
    if task.status == TaskStatus.FAILED:
        return "danger"
    if task.status == TaskStatus.IN_PROGRESS and progress is not None:
        if progress >= 80:
            return "danger"
        if progress >= 50:
            return "warning"
    return "safe"


def _overdue_message(task: Task, now: datetime) -> Optional[str]:
    if task.deadline is None or task.status in (TaskStatus.COMPLETED, TaskStatus.CANCELLED):
        return None
    if task.status != TaskStatus.FAILED and not task.is_overdue(now):
        return None
    days = max((now - task.deadline).days, 0)
    if days == 0:
        return "Overdue since today"
    return f"Overdue by {days} day{'s' if days != 1 else ''}"


def describe_task(task: Task, now: datetime) -> TaskDisplay:
    """Build display hints for ``task`` as of ``now``."""
    actions, can_edit, can_delete, can_complete = _PERMISSIONS[task.status]
    return TaskDisplay(
        status_label=STATUS_LABELS[task.status],
        status_class=task.status.value.replace("_", "-"),
        progress_color=_progress_color(task, task.progress_percentage(now)),
        overdue_message=_overdue_message(task, now),
        available_actions=actions,
        can_edit=can_edit,
        can_delete=can_delete,
        can_complete=can_complete,
        icon=STATUS_ICONS[task.status],
    )
