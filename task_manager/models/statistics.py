"""Statistics snapshot and insight rules derived from a user's tasks."""

from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .task import Task, TaskStatus, round_half_up


class InsightType(str, Enum):
    """Insight severity."""
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"
    INFO = "info"


_ICONS = {
    InsightType.SUCCESS: "✅",
    InsightType.WARNING: "⚠️",
    InsightType.DANGER: "🚨",
    InsightType.INFO: "ℹ️",
}


class Insight(BaseModel):
    """Immutable, prioritized observation about a user's tasks."""

    model_config = ConfigDict(frozen=True)

    type: InsightType = Field(..., description="Insight severity")
    message: str = Field(..., min_length=1, description="Human-facing message")
    icon: str = Field(..., min_length=1, description="Icon glyph")
    priority: int = Field(default=0, ge=0, description="Higher is more urgent")

    @classmethod
    def success(cls, message: str, priority: int = 1) -> "Insight":
        return cls(type=InsightType.SUCCESS, message=message, icon=_ICONS[InsightType.SUCCESS], priority=priority)

    @classmethod
    def warning(cls, message: str, priority: int = 2) -> "Insight":
        return cls(type=InsightType.WARNING, message=message, icon=_ICONS[InsightType.WARNING], priority=priority)

    @classmethod
    def danger(cls, message: str, priority: int = 3) -> "Insight":
        return cls(type=InsightType.DANGER, message=message, icon=_ICONS[InsightType.DANGER], priority=priority)

    @classmethod
    def info(cls, message: str, priority: int = 0) -> "Insight":
        return cls(type=InsightType.INFO, message=message, icon=_ICONS[InsightType.INFO], priority=priority)


class StatisticsSnapshot(BaseModel):
    """Aggregate counts over one user's tasks. Derived per request, never persisted."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0, description="Tasks that are not cancelled")
    scheduled_count: int = Field(default=0, ge=0)
    pending_count: int = Field(default=0, ge=0)
    in_progress_count: int = Field(default=0, ge=0)
    completed_count: int = Field(default=0, ge=0)
    failed_count: int = Field(default=0, ge=0)
    cancelled_count: int = Field(default=0, ge=0)
    overdue_count: int = Field(default=0, ge=0)
    completion_rate: int = Field(default=0, ge=0, le=100, description="Completed share of completable work, percent")

    @property
    def active_count(self) -> int:
        """Pending plus in-progress tasks, reported as "in progress" by the summary view."""
        return self.pending_count + self.in_progress_count

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task], now: Optional[datetime] = None) -> "StatisticsSnapshot":
        """Fold tasks into counts; ``now`` pins the overdue check to one instant."""
        counts: Dict[TaskStatus, int] = {status: 0 for status in TaskStatus}
        overdue = 0
        for task in tasks:
            counts[task.status] += 1
            if task.is_overdue(now):
                overdue += 1

        total = sum(counts.values()) - counts[TaskStatus.CANCELLED]
        return cls(
            total=total,
            scheduled_count=counts[TaskStatus.SCHEDULED],
            pending_count=counts[TaskStatus.PENDING],
            in_progress_count=counts[TaskStatus.IN_PROGRESS],
            completed_count=counts[TaskStatus.COMPLETED],
            failed_count=counts[TaskStatus.FAILED],
            cancelled_count=counts[TaskStatus.CANCELLED],
            overdue_count=overdue,
            completion_rate=completion_rate(
                counts[TaskStatus.COMPLETED], total, counts[TaskStatus.FAILED]
            ),
        )

    def counts_by_status(self) -> Dict[TaskStatus, int]:
        return {
            TaskStatus.SCHEDULED: self.scheduled_count,
            TaskStatus.PENDING: self.pending_count,
            TaskStatus.IN_PROGRESS: self.in_progress_count,
            TaskStatus.COMPLETED: self.completed_count,
            TaskStatus.FAILED: self.failed_count,
            TaskStatus.CANCELLED: self.cancelled_count,
        }

    def to_summary(self) -> Dict[str, int]:
        """Compact summary where in_progress combines pending and in-progress tasks."""
        return {
            "total": self.total,
            "pending": self.pending_count,
            "in_progress": self.active_count,
            "completed": self.completed_count,
            "completion_rate": self.completion_rate,
        }


def completion_rate(completed: int, total: int, failed: int) -> int:
    """Completed tasks as a percentage of non-cancelled, non-failed tasks."""
    completable = total - failed
    if completable <= 0:
        return 0
    return round_half_up(completed / completable * 100)


def generate_insights(snapshot: StatisticsSnapshot) -> List[Insight]:
    """Evaluate the insight rules against a snapshot, most urgent first."""
    total = snapshot.total
    if total == 0:
        return [Insight.info("You have no tasks yet. Create your first task!", 0)]

    insights: List[Insight] = []
    overdue = snapshot.overdue_count
    pending = snapshot.pending_count
    active = snapshot.active_count
    completed = snapshot.completed_count
    rate = snapshot.completion_rate

    if overdue == 1:
        insights.append(Insight.danger("You have 1 overdue task. Take care of it now!", 10))
    elif overdue > 1:
        insights.append(Insight.danger(f"You have {overdue} overdue tasks. They need urgent attention!", 10))

    if pending > 10:
        insights.append(Insight.warning(f"You have {pending} tasks not started yet. Prioritize them!", 8))
    elif pending >= 5:
        insights.append(Insight.info(f"You have {pending} tasks not started yet.", 3))

    if total >= 5 and rate >= 80:
        insights.append(Insight.success(f"Excellent! You have completed {rate}% of your tasks.", 7))
    elif total >= 5 and rate >= 50:
        insights.append(Insight.success(f"Good job! You have completed {rate}% of your tasks.", 6))

    if total >= 5 and rate < 30:
        insights.append(Insight.warning(f"Your completion rate is low ({rate}%). Keep pushing!", 5))

    if active > 5:
        insights.append(Insight.info(f"You have {active} tasks in progress. Stay focused!", 4))

    if completed == total:
        insights.append(Insight.success("Perfect! You have completed every task!", 9))

    if overdue == 0 and total >= 3 and (active + completed) > 0:
        insights.append(Insight.success("All tasks are on schedule. Keep it up!", 2))

    # sorted() is stable, so equal priorities keep rule order
    return sorted(insights, key=lambda insight: insight.priority, reverse=True)


class StatisticsReport(BaseModel):
    """Snapshot plus the insights derived from it."""

    model_config = ConfigDict(frozen=True)

    snapshot: StatisticsSnapshot
    insights: List[Insight] = Field(default_factory=list)
