"""Persistence contracts consumed by the task and auth services."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.task import Task, TaskStatus
from ..models.user import User


class TaskRepository(ABC):
    """Storage for task entities."""

    @abstractmethod
    def find_tasks_by_owner(self, owner_id: str, status: Optional[TaskStatus] = None) -> List[Task]:
        """Return the owner's tasks, newest first, optionally limited to one status."""

    @abstractmethod
    def find_task_by_id(self, task_id: str) -> Optional[Task]:
        """Return the task or None."""

    @abstractmethod
    def save_task(self, task: Task) -> Task:
        """Insert a new task and return it with its assigned identity."""

    @abstractmethod
    def update_task(self, task: Task) -> Task:
        """Persist a mutated task.

        Raises:
            EntityNotFoundError: If the task no longer exists
        """

    @abstractmethod
    def delete_task(self, task_id: str) -> bool:
        """Remove a task outright. Returns False if it did not exist."""

    @abstractmethod
    def count_tasks_by_owner_and_status(self, owner_id: str, status: TaskStatus) -> int:
        """Count the owner's tasks in one status."""


class UserRepository(ABC):
    """Storage for registered users."""

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]:
        """Return the user or None."""

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]:
        """Return the user with this (lower-cased) email or None."""

    @abstractmethod
    def find_by_username(self, username: str) -> Optional[User]:
        """Return the user with this username or None."""

    @abstractmethod
    def save(self, user: User) -> User:
        """Insert a new user and return it with its assigned identity."""
