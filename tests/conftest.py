"""Shared test fixtures and configuration for the test suite."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to the path for imports
import sys

sys.path.append(str(Path(__file__).parent.parent))

from task_manager.config import Settings
from task_manager.main import create_app
from task_manager.models.task import Task, TaskStatus
from task_manager.repositories.memory import InMemoryTaskRepository, InMemoryUserRepository
from task_manager.services.auth_service import AuthService, PasswordHasher, TokenService
from task_manager.services.statistics_service import StatisticsService
from task_manager.services.task_service import TaskService

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
OWNER = "owner-1"
OTHER_OWNER = "owner-2"


class FakeClock:
    """Clock that stays put until a test moves it."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_task(
    status: TaskStatus = TaskStatus.PENDING,
    *,
    owner_id: str = OWNER,
    start_date: datetime = NOW - timedelta(days=1),
    deadline=None,
    task_id: str = "task-1",
    clock=None,
) -> Task:
    """Build a stored-looking task in any status."""
    return Task.reconstruct(
        id=task_id,
        title="Sample task",
        description="",
        status=status,
        owner_id=owner_id,
        start_date=start_date,
        deadline=deadline,
        created_at=start_date,
        updated_at=start_date,
        clock=clock or FakeClock(),
    )


@pytest.fixture
def clock() -> FakeClock:
    """Clock pinned at NOW."""
    return FakeClock()


@pytest.fixture
def repository(clock) -> InMemoryTaskRepository:
    """Create an empty task repository."""
    return InMemoryTaskRepository(clock)


@pytest.fixture
def task_service(repository, clock) -> TaskService:
    """Create a task service instance for testing."""
    return TaskService(repository, clock)


@pytest.fixture
def statistics_service(repository, clock) -> StatisticsService:
    """Create a statistics service sharing the task repository."""
    return StatisticsService(repository, clock)


@pytest.fixture
def token_service() -> TokenService:
    """Create a token service with a test secret."""
    return TokenService("test-secret", expire_minutes=60)


@pytest.fixture
def auth_service(token_service) -> AuthService:
    """Create an auth service with cheap bcrypt rounds."""
    return AuthService(InMemoryUserRepository(), PasswordHasher(rounds=4), token_service)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings that keep logs off disk."""
    return Settings(
        environment="test",
        log_level="DEBUG",
        log_dir=tmp_path / "logs",
        log_to_file=False,
        jwt_secret="test-secret",
        bcrypt_rounds=4,
    )


@pytest.fixture
def client(test_settings, clock) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    app = create_app(test_settings, clock)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_and_login(client) -> Callable[..., Dict[str, str]]:
    """Register a user and return bearer headers for them."""

    def _register_and_login(username: str = "alice", email: str = "alice@example.com",
                            password: str = "secret123") -> Dict[str, str]:
        response = client.post(
            "/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _register_and_login


@pytest.fixture
def auth_headers(register_and_login) -> Dict[str, str]:
    """Bearer headers for a default registered user."""
    return register_and_login()


# Test data fixtures
@pytest.fixture
def sample_task_data():
    """Sample task data for testing."""
    return {"title": "Test Task", "description": "This is a test task description"}
