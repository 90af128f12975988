"""In-memory repositories with thread-safe access."""

import logging
from itertools import count
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..clock import Clock, utc_now
from ..exceptions import EntityNotFoundError
from ..models.task import Task, TaskStatus
from ..models.user import User
from .base import TaskRepository, UserRepository

logger = logging.getLogger(__name__)


class InMemoryTaskRepository(TaskRepository):
    """Task storage backed by a dict of plain rows.

    Rows are copied in and out so callers never share state with the store.
    """

    def __init__(self, clock: Clock = utc_now):
        """Initialize the repository.

        Args:
            clock: Clock handed to every task rebuilt from storage
        """
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._sequence = count()
        self._lock = Lock()  # Thread-safe operations
        self._clock = clock
        logger.info("Task repository initialized with in-memory storage")

    def _to_row(self, task: Task, task_id: str, seq: int) -> Dict[str, Any]:
        row = task.model_dump()
        row["id"] = task_id
        row["_seq"] = seq
        return row

    def _to_domain(self, row: Dict[str, Any]) -> Task:
        return Task.reconstruct(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            status=row["status"],
            owner_id=row["owner_id"],
            start_date=row["start_date"],
            deadline=row["deadline"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            clock=self._clock,
        )

    def find_tasks_by_owner(self, owner_id: str, status: Optional[TaskStatus] = None) -> List[Task]:
        with self._lock:
            rows = [row for row in self._rows.values() if row["owner_id"] == str(owner_id)]

            if status is not None:
                rows = [row for row in rows if row["status"] == status]

            # Newest first; insertion order breaks ties
            rows.sort(key=lambda r: (r["created_at"], r["_seq"]), reverse=True)

            logger.debug(f"Found {len(rows)} tasks for owner {owner_id} (status={status})")
            return [self._to_domain(row) for row in rows]

    def find_task_by_id(self, task_id: str) -> Optional[Task]:
        with self._lock:
            row = self._rows.get(str(task_id))
            if row is None:
                logger.debug(f"Task {task_id} not found")
                return None
            return self._to_domain(row)

    def save_task(self, task: Task) -> Task:
        with self._lock:
            task_id = str(uuid4())
            self._rows[task_id] = self._to_row(task, task_id, next(self._sequence))
            logger.debug(f"Stored task {task_id} for owner {task.owner_id}")
            return self._to_domain(self._rows[task_id])

    def update_task(self, task: Task) -> Task:
        with self._lock:
            existing = self._rows.get(str(task.id)) if task.id is not None else None
            if existing is None:
                raise EntityNotFoundError("Task", task.id)

            self._rows[task.id] = self._to_row(task, task.id, existing["_seq"])
            logger.debug(f"Updated task {task.id} (status={task.status.value})")
            return self._to_domain(self._rows[task.id])

    def delete_task(self, task_id: str) -> bool:
        with self._lock:
            row = self._rows.pop(str(task_id), None)
            if row is None:
                logger.warning(f"Task {task_id} not found for deletion")
                return False
            logger.debug(f"Deleted task {task_id}")
            return True

    def count_tasks_by_owner_and_status(self, owner_id: str, status: TaskStatus) -> int:
        with self._lock:
            return sum(
                1
                for row in self._rows.values()
                if row["owner_id"] == str(owner_id) and row["status"] == status
            )

    def clear(self) -> int:
        """Remove every task (for testing/development)."""
        with self._lock:
            cleared = len(self._rows)
            self._rows.clear()
            logger.warning(f"Cleared all {cleared} tasks")
            return cleared


class InMemoryUserRepository(UserRepository):
    """User storage backed by a dict."""

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._lock = Lock()

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(str(user_id))

    def find_by_email(self, email: str) -> Optional[User]:
        needle = email.strip().lower()
        with self._lock:
            return next((u for u in self._users.values() if u.email == needle), None)

    def find_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            return next((u for u in self._users.values() if u.username == username), None)

    def save(self, user: User) -> User:
        with self._lock:
            stored = user.model_copy(update={"id": str(uuid4())})
            self._users[stored.id] = stored
            logger.debug(f"Stored user {stored.id} ({stored.username})")
            return stored
