"""Domain models for the task management system."""

import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..clock import Clock, utc_now
from ..exceptions import BusinessRuleViolation, ValidationError

TITLE_MAX_LENGTH = 200

_datetime_adapter = TypeAdapter(datetime)

# Marks a keyword that was not passed to Task.update.
_UNSET: Any = object()


class TaskStatus(str, Enum):
    """Task status enumeration, in rough lifecycle order."""
    SCHEDULED = "scheduled"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: Union["TaskStatus", str, None]) -> "TaskStatus":
        """Resolve a status from an enum member or its (case-insensitive) name/value.

        Raises:
            ValidationError: If the value is not a recognized status
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for status in cls:
                if normalized == status.value:
                    return status
        allowed = ", ".join(status.value for status in cls)
        raise ValidationError(f"Invalid task status. Must be one of: {allowed}")


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a datetime, date or ISO-8601 string.

    Returns None for None or an empty string.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    try:
        parsed = _datetime_adapter.validate_python(value)
    except PydanticValidationError as e:
        raise ValueError(f"Invalid date: {value!r}") from e
    return to_utc(parsed)


def _validate_title(title: Any) -> str:
    if title is None or not isinstance(title, str):
        raise ValidationError("Task title is required")
    title = title.strip()
    if not title:
        raise ValidationError("Task title cannot be empty")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Task title must not exceed {TITLE_MAX_LENGTH} characters")
    return title


def _validate_owner_id(owner_id: Any) -> str:
    if owner_id is None or not str(owner_id).strip():
        raise ValidationError("Owner ID is required for task")
    return str(owner_id)


def _normalize_description(description: Any) -> str:
    if description is None:
        return ""
    return str(description).strip()


def _parse_date_field(value: Any, label: str) -> Optional[datetime]:
    try:
        return parse_datetime(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {label}: {value!r}") from e


def _check_window(start_date: datetime, deadline: Optional[datetime]) -> None:
    if deadline is not None and deadline < start_date:
        raise ValidationError("Deadline cannot be earlier than the start date")


class Task(BaseModel):
    """Task entity owning its status and date rules.

    Build fresh tasks with :meth:`create` (validated) and stored ones with
    :meth:`reconstruct` (trusted). State changes go through the entity's
    methods; identity, ownership and creation time are frozen.
    """

    id: Optional[str] = Field(default=None, frozen=True, description="Identity assigned by persistence")
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH, description="Task title")
    description: str = Field(default="", description="Task description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Task status")
    owner_id: str = Field(..., frozen=True, description="Owning user identifier")
    start_date: datetime = Field(..., description="When work may begin")
    deadline: Optional[datetime] = Field(default=None, description="When work must be done")
    created_at: datetime = Field(..., frozen=True, description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")

    _clock: Clock = PrivateAttr(default=utc_now)

    @classmethod
    def create(
        cls,
        title: str,
        description: Optional[str],
        owner_id: str,
        start_date: Any = None,
        deadline: Any = None,
        *,
        clock: Clock = utc_now,
    ) -> "Task":
        """Create a new, validated task.

        Args:
            title: Task title (trimmed, 1-200 characters)
            description: Optional free text
            owner_id: Owning user identifier
            start_date: Optional start; missing or unparsable means now
            deadline: Optional deadline, not earlier than the start
            clock: Source of the current time

        Returns:
            The new task, SCHEDULED when it starts in the future, else PENDING

        Raises:
            ValidationError: If any field is missing or malformed
        """
        title = _validate_title(title)
        owner_id = _validate_owner_id(owner_id)
        now = to_utc(clock())

        try:
            start = parse_datetime(start_date)
        except ValueError:
            start = None
        start = start or now

        end = _parse_date_field(deadline, "deadline")
        _check_window(start, end)

        task = cls(
            title=title,
            description=_normalize_description(description),
            status=TaskStatus.SCHEDULED if start > now else TaskStatus.PENDING,
            owner_id=owner_id,
            start_date=start,
            deadline=end,
            created_at=now,
            updated_at=now,
        )
        task._clock = clock
        return task

    @classmethod
    def reconstruct(
        cls,
        id: Optional[str],
        title: str,
        description: Optional[str],
        status: Union[TaskStatus, str],
        owner_id: str,
        start_date: datetime,
        deadline: Optional[datetime],
        created_at: datetime,
        updated_at: datetime,
        *,
        clock: Clock = utc_now,
    ) -> "Task":
        """Rebuild a stored task without validation. Reserved for repositories."""
        task = cls.model_construct(
            id=id,
            title=title,
            description=description or "",
            status=TaskStatus(status),
            owner_id=owner_id,
            start_date=to_utc(start_date),
            deadline=to_utc(deadline) if deadline is not None else None,
            created_at=to_utc(created_at),
            updated_at=to_utc(updated_at),
        )
        task._clock = clock
        return task

    def _now(self, now: Optional[datetime] = None) -> datetime:
        return to_utc(now) if now is not None else to_utc(self._clock())

    def _touch(self, now: Optional[datetime] = None) -> None:
        self.updated_at = max(self.updated_at, self._now(now))

    def _reschedule(self, now: datetime) -> None:
        if self.status == TaskStatus.SCHEDULED and self.start_date <= now:
            self.status = TaskStatus.PENDING
        elif self.status == TaskStatus.PENDING and self.start_date > now:
            self.status = TaskStatus.SCHEDULED

    def _check_manual_transition(self, new_status: TaskStatus) -> None:
        if new_status == TaskStatus.FAILED:
            raise BusinessRuleViolation(
                "Tasks cannot be marked failed manually; they fail automatically once the deadline passes"
            )
        if new_status == TaskStatus.CANCELLED:
            raise BusinessRuleViolation("Use the cancel operation to cancel a task")
        if self.status == TaskStatus.COMPLETED and new_status == TaskStatus.PENDING:
            raise BusinessRuleViolation(
                "Cannot change completed task back to pending. Set it to in progress first."
            )

    # Ownership

    def belongs_to(self, owner_id: str) -> bool:
        return self.owner_id == str(owner_id)

    # Status transitions

    def change_status(self, new_status: Union[TaskStatus, str]) -> None:
        """Apply a caller-requested status change.

        Raises:
            ValidationError: If the status is not recognized
            BusinessRuleViolation: For completed -> pending, or a manual
                failed/cancelled status
        """
        target = TaskStatus.parse(new_status)
        self._check_manual_transition(target)
        self.status = target
        self._touch()

    def reopen(self) -> None:
        """Reopen the task: completed work resumes, anything else returns to pending."""
        if self.status == TaskStatus.FAILED:
            raise BusinessRuleViolation("Cannot reopen a failed task. Create a new task instead.")
        if self.status == TaskStatus.COMPLETED:
            self.status = TaskStatus.IN_PROGRESS
        else:
            self.status = TaskStatus.PENDING
        self._touch()

    def cancel(self) -> None:
        """Cancel the task (soft delete). Idempotent."""
        if self.status == TaskStatus.CANCELLED:
            return
        self.status = TaskStatus.CANCELLED
        self._touch()

    def mark_failed(self, now: Optional[datetime] = None) -> None:
        """Mark the task failed. No-op when already completed or failed."""
        if self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED):
            return
        self.status = TaskStatus.FAILED
        self._touch(now)

    def mark_activated(self, now: Optional[datetime] = None) -> None:
        """Move a scheduled task to pending. No-op from any other status."""
        if self.status != TaskStatus.SCHEDULED:
            return
        self.status = TaskStatus.PENDING
        self._touch(now)

    # Field updates

    def update_title(self, title: str) -> None:
        self.title = _validate_title(title)
        self._touch()

    def update_description(self, description: Optional[str]) -> None:
        self.description = _normalize_description(description)
        self._touch()

    def update_start_date(self, start_date: Any) -> None:
        """Move the start date; a scheduled/pending task follows it across "now".

        Raises:
            ValidationError: If the date is missing, unparsable or after the deadline
        """
        start = _parse_date_field(start_date, "start date")
        if start is None:
            raise ValidationError("Start date is required")
        _check_window(start, self.deadline)
        now = self._now()
        self.start_date = start
        self._reschedule(now)
        self._touch(now)

    def update_deadline(self, deadline: Any) -> None:
        """Set or clear (None) the deadline.

        Raises:
            ValidationError: If the date is unparsable or before the start date
        """
        end = _parse_date_field(deadline, "deadline")
        _check_window(self.start_date, end)
        self.deadline = end
        self._touch()

    def update(
        self,
        title: Optional[str] = _UNSET,
        description: Optional[str] = _UNSET,
        status: Union[TaskStatus, str, None] = _UNSET,
        start_date: Any = _UNSET,
        deadline: Any = _UNSET,
    ) -> None:
        """Apply a partial update; omitted fields are left untouched.

        ``title``, ``status`` and ``start_date`` given as None are ignored,
        ``description=None`` clears the description and ``deadline=None``
        clears the deadline. Every field is validated before any is applied.
        """
        changes = {}
        if title is not _UNSET and title is not None:
            changes["title"] = _validate_title(title)
        if description is not _UNSET:
            changes["description"] = _normalize_description(description)

        start, end = self.start_date, self.deadline
        if start_date is not _UNSET and start_date is not None:
            start = _parse_date_field(start_date, "start date")
            changes["start_date"] = start
        if deadline is not _UNSET:
            end = _parse_date_field(deadline, "deadline")
            changes["deadline"] = end
        if "start_date" in changes or "deadline" in changes:
            _check_window(start, end)

        target = None
        if status is not _UNSET and status is not None:
            target = TaskStatus.parse(status)
            self._check_manual_transition(target)

        now = self._now()
        for field_name, value in changes.items():
            setattr(self, field_name, value)
        if "start_date" in changes:
            self._reschedule(now)
        if target is not None:
            self.status = target
        self._touch(now)

    # Derived predicates

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Deadline passed and the task is not completed."""
        if self.deadline is None or self.status == TaskStatus.COMPLETED:
            return False
        return self._now(now) > self.deadline

    def should_auto_fail(self, now: Optional[datetime] = None) -> bool:
        """Deadline passed and the task is still open (not completed, failed or cancelled)."""
        if self.deadline is None:
            return False
        if self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED):
            return False
        return self._now(now) > self.deadline

    def should_activate(self, now: Optional[datetime] = None) -> bool:
        """Scheduled task whose start date has arrived."""
        return self.status == TaskStatus.SCHEDULED and self._now(now) >= self.start_date

    def progress_percentage(self, now: Optional[datetime] = None) -> Optional[int]:
        """Share of the start-to-deadline window elapsed, 0-100, or None without a deadline."""
        if self.deadline is None:
            return None
        current = self._now(now)
        if self.status == TaskStatus.COMPLETED or current >= self.deadline:
            return 100
        if current <= self.start_date:
            return 0
        elapsed = (current - self.start_date).total_seconds()
        window = (self.deadline - self.start_date).total_seconds()
        return round_half_up(elapsed / window * 100)
