"""Statistics service: lazy time-based sweep followed by aggregation and insights."""

import logging
from datetime import datetime
from typing import Iterable, Optional

from ..clock import Clock, utc_now
from ..exceptions import ValidationError
from ..models.statistics import StatisticsReport, StatisticsSnapshot, generate_insights
from ..models.task import Task, to_utc
from ..repositories.base import TaskRepository

logger = logging.getLogger(__name__)


def sweep_tasks(tasks: Iterable[Task], repository: TaskRepository, now: datetime) -> int:
    """Apply due automatic transitions and persist each changed task.

    Activation is checked before auto-fail, so a task makes at most one
    transition per sweep. Repository errors propagate to the caller.

    Args:
        tasks: Tasks to sweep, mutated in place
        repository: Where changed tasks are written back
        now: Instant every task is evaluated against

    Returns:
        Number of tasks that changed status
    """
    changed = 0
    for task in tasks:
        if task.should_activate(now):
            task.mark_activated(now)
        elif task.should_auto_fail(now):
            task.mark_failed(now)
        else:
            continue

        repository.update_task(task)
        changed += 1
        logger.info(f"Task {task.id} moved to {task.status.value} by sweep")

    return changed


class StatisticsService:
    """Computes per-user task statistics."""

    def __init__(self, repository: TaskRepository, clock: Clock = utc_now):
        """Initialize the statistics service.

        Args:
            repository: Task repository
            clock: Source of the current time
        """
        self.repository = repository
        self.clock = clock
        logger.info("Statistics service initialized")

    def compute_statistics(self, owner_id: str) -> StatisticsReport:
        """Sweep the owner's tasks, then aggregate them and derive insights.

        Args:
            owner_id: Owner whose tasks are counted

        Returns:
            Snapshot and priority-sorted insights

        Raises:
            ValidationError: If owner_id is missing
        """
        if not owner_id:
            raise ValidationError("Owner ID is required")

        now = to_utc(self.clock())
        tasks = self.repository.find_tasks_by_owner(owner_id)
        changed = sweep_tasks(tasks, self.repository, now)

        snapshot = StatisticsSnapshot.from_tasks(tasks, now)
        insights = generate_insights(snapshot)

        logger.debug(
            f"Statistics for owner {owner_id}: total={snapshot.total}, "
            f"completion_rate={snapshot.completion_rate}, swept={changed}"
        )
        return StatisticsReport(snapshot=snapshot, insights=insights)


# Global statistics service instance - will be initialized during app startup
_statistics_service: Optional[StatisticsService] = None


def get_statistics_service() -> Optional[StatisticsService]:
    """Get the global statistics service instance.

    Returns:
        Statistics service instance or None if not initialized
    """
    return _statistics_service


def initialize_statistics_service(repository: TaskRepository, clock: Clock = utc_now) -> StatisticsService:
    """Initialize the global statistics service instance."""
    global _statistics_service
    _statistics_service = StatisticsService(repository, clock)
    return _statistics_service
