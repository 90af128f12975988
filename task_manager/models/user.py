"""User entity backing the authentication collaborator."""

import re
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..clock import Clock, utc_now
from ..exceptions import ValidationError
from .task import to_utc

_USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_username(username: Any) -> str:
    if not username or not isinstance(username, str):
        raise ValidationError("Username is required")
    if len(username) < 3:
        raise ValidationError("Username must be at least 3 characters")
    if len(username) > 50:
        raise ValidationError("Username must not exceed 50 characters")
    if not _USERNAME_PATTERN.match(username):
        raise ValidationError("Username can only contain letters, numbers, and underscores")
    return username


def validate_email(email: Any) -> str:
    if not email or not isinstance(email, str):
        raise ValidationError("Email is required")
    email = email.strip().lower()
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")
    return email


def validate_password(password: Any) -> str:
    if not password or not isinstance(password, str):
        raise ValidationError("Password is required")
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")
    if len(password) > 100:
        raise ValidationError("Password must not exceed 100 characters")
    return password


class User(BaseModel):
    """Registered user. ``password_hash`` never leaves the service layer."""

    id: Optional[str] = Field(default=None, frozen=True)
    username: str
    email: str
    password_hash: str
    created_at: datetime = Field(..., frozen=True)
    updated_at: datetime

    @classmethod
    def create(cls, username: str, email: str, password_hash: str, *, clock: Clock = utc_now) -> "User":
        """Create a validated user from an already-hashed password."""
        now = to_utc(clock())
        return cls(
            username=validate_username(username),
            email=validate_email(email),
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def reconstruct(
        cls,
        id: str,
        username: str,
        email: str,
        password_hash: str,
        created_at: datetime,
        updated_at: datetime,
    ) -> "User":
        """Rebuild a stored user without validation. Reserved for repositories."""
        return cls.model_construct(
            id=id,
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_public(self) -> Dict[str, Any]:
        """Public view of the user, without the password hash."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": self.created_at,
        }
