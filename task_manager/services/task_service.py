"""Task service for CRUD operations and task lifecycle management."""

import logging
from typing import Any, List, Optional, Union

from ..clock import Clock, utc_now
from ..exceptions import EntityNotFoundError, ForbiddenError, ValidationError
from ..models.task import Task, TaskStatus, to_utc
from ..repositories.base import TaskRepository
from .statistics_service import sweep_tasks

logger = logging.getLogger(__name__)


class TaskService:
    """Use cases over a user's tasks. Every call is scoped to an owner."""

    def __init__(self, repository: TaskRepository, clock: Clock = utc_now):
        """Initialize the task service.

        Args:
            repository: Task repository
            clock: Source of the current time for new tasks and sweeps
        """
        self.repository = repository
        self.clock = clock
        logger.info("Task service initialized")

    def _get_owned_task(self, owner_id: str, task_id: str, action: str) -> Task:
        if not task_id or not owner_id:
            raise ValidationError("Task ID and owner ID are required")

        task = self.repository.find_task_by_id(task_id)
        if task is None:
            logger.warning(f"Task {task_id} not found for {action}")
            raise EntityNotFoundError("Task", task_id)

        if not task.belongs_to(owner_id):
            logger.warning(f"Owner {owner_id} denied {action} on task {task_id}")
            raise ForbiddenError(f"You do not have permission to {action} this task")

        return task

    def create_task(
        self,
        owner_id: str,
        title: str,
        description: Optional[str] = None,
        start_date: Any = None,
        deadline: Any = None,
    ) -> Task:
        """Create a new task.

        Args:
            owner_id: Owning user
            title: Task title
            description: Optional task description
            start_date: Optional start date (defaults to now)
            deadline: Optional deadline

        Returns:
            Created task with its assigned ID

        Raises:
            ValidationError: If any field is invalid
        """
        task = Task.create(title, description, owner_id, start_date, deadline, clock=self.clock)
        saved = self.repository.save_task(task)

        logger.info(f"Created task {saved.id} ({saved.status.value}): {saved.title}")
        return saved

    def get_task(self, owner_id: str, task_id: str) -> Task:
        """Get one of the owner's tasks.

        Raises:
            EntityNotFoundError: If the task does not exist
            ForbiddenError: If the task belongs to someone else
        """
        task = self._get_owned_task(owner_id, task_id, "view")
        logger.debug(f"Retrieved task {task_id}: {task.title}")
        return task

    def list_tasks(self, owner_id: str, status: Union[TaskStatus, str, None] = None) -> List[Task]:
        """List the owner's tasks after applying due automatic transitions.

        Args:
            owner_id: Owning user
            status: Optional status filter, applied after the sweep

        Returns:
            Tasks, newest first
        """
        if not owner_id:
            raise ValidationError("Owner ID is required")
        status_filter = TaskStatus.parse(status) if status is not None else None

        tasks = self.repository.find_tasks_by_owner(owner_id)
        sweep_tasks(tasks, self.repository, to_utc(self.clock()))

        if status_filter is not None:
            tasks = [task for task in tasks if task.status == status_filter]

        logger.debug(f"Listed {len(tasks)} tasks for owner {owner_id} (status={status_filter})")
        return tasks

    def update_task(self, owner_id: str, task_id: str, **fields: Any) -> Task:
        """Partially update a task.

        Args:
            owner_id: Owning user
            task_id: Task ID
            **fields: Any of title, description, status, start_date, deadline

        Returns:
            Updated task

        Raises:
            ValidationError: If a field is invalid
            BusinessRuleViolation: If the requested status is not allowed
        """
        allowed = {"title", "description", "status", "start_date", "deadline"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        task = self._get_owned_task(owner_id, task_id, "update")
        task.update(**fields)
        updated = self.repository.update_task(task)

        logger.info(f"Updated task {task_id}: {sorted(fields)}")
        return updated

    def change_status(self, owner_id: str, task_id: str, status: Union[TaskStatus, str]) -> Task:
        """Change a task's status under the entity's transition rules.

        Raises:
            ValidationError: If the status is not recognized
            BusinessRuleViolation: If the transition is not allowed
        """
        if status is None:
            raise ValidationError("Status is required")

        task = self._get_owned_task(owner_id, task_id, "update")
        old_status = task.status
        task.change_status(status)
        updated = self.repository.update_task(task)

        logger.info(f"Updated task {task_id} status: {old_status.value} -> {updated.status.value}")
        return updated

    def start_task(self, owner_id: str, task_id: str) -> Task:
        return self.change_status(owner_id, task_id, TaskStatus.IN_PROGRESS)

    def complete_task(self, owner_id: str, task_id: str) -> Task:
        return self.change_status(owner_id, task_id, TaskStatus.COMPLETED)

    def reopen_task(self, owner_id: str, task_id: str) -> Task:
        """Reopen a task.

        Raises:
            BusinessRuleViolation: If the task has failed
        """
        task = self._get_owned_task(owner_id, task_id, "update")
        task.reopen()
        updated = self.repository.update_task(task)

        logger.info(f"Reopened task {task_id} as {updated.status.value}")
        return updated

    def cancel_task(self, owner_id: str, task_id: str) -> Task:
        """Cancel a task (soft delete); cancelling twice is harmless."""
        task = self._get_owned_task(owner_id, task_id, "delete")
        task.cancel()
        updated = self.repository.update_task(task)

        logger.info(f"Cancelled task {task_id}")
        return updated

    def delete_task(self, owner_id: str, task_id: str) -> bool:
        """Remove a task outright.

        Returns:
            True if the task was deleted
        """
        self._get_owned_task(owner_id, task_id, "delete")
        deleted = self.repository.delete_task(task_id)

        logger.info(f"Deleted task {task_id}")
        return deleted

    def count_by_status(self, owner_id: str, status: Union[TaskStatus, str]) -> int:
        """Count the owner's tasks in one status as currently stored."""
        return self.repository.count_tasks_by_owner_and_status(owner_id, TaskStatus.parse(status))


# Global task service instance - will be initialized during app startup
_task_service: Optional[TaskService] = None


def get_task_service() -> Optional[TaskService]:
    """Get the global task service instance.

    Returns:
        Task service instance or None if not initialized
    """
    return _task_service


def initialize_task_service(repository: TaskRepository, clock: Clock = utc_now) -> TaskService:
    """Initialize the global task service instance.

    Returns:
        Initialized task service
    """
    global _task_service
    _task_service = TaskService(repository, clock)
    return _task_service
