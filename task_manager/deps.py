"""Dependency injection helpers for FastAPI."""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, settings
from .exceptions import UnauthorizedError
from .services import auth_service, statistics_service, task_service
from .services.auth_service import AuthService
from .services.statistics_service import StatisticsService
from .services.task_service import TaskService

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return settings


def _unavailable(name: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{name} service not initialized",
    )


def get_task_service() -> TaskService:
    """Get the task service initialized at startup."""
    service = task_service.get_task_service()
    if service is None:
        raise _unavailable("Task")
    return service


def get_statistics_service() -> StatisticsService:
    """Get the statistics service initialized at startup."""
    service = statistics_service.get_statistics_service()
    if service is None:
        raise _unavailable("Statistics")
    return service


def get_auth_service() -> AuthService:
    """Get the auth service initialized at startup."""
    service = auth_service.get_auth_service()
    if service is None:
        raise _unavailable("Auth")
    return service


def get_current_owner_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> str:
    """Resolve the bearer token to the caller's owner ID."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Token is required")
    return auth.verify(credentials.credentials).owner_id
