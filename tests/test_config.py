"""Tests for settings validation and logging setup."""

import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from task_manager.config import DEFAULT_JWT_SECRET, Settings
from task_manager.main import status_for
from task_manager.exceptions import BusinessRuleViolation, EntityNotFoundError, ValidationError
from task_manager.utils.logging import ColoredFormatter, setup_logging


@pytest.fixture
def restore_root_logger():
    """Put the root logger's handlers back after a test reconfigures it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSettings:
    """Test Settings validation."""

    def test_defaults(self):
        """Test development defaults."""
        settings = Settings(environment="development", jwt_secret=DEFAULT_JWT_SECRET)

        assert not settings.is_production
        assert settings.jwt_expire_minutes == 1440

    def test_production_requires_secret(self):
        """Test the default JWT secret is refused in production."""
        with pytest.raises(PydanticValidationError, match="JWT_SECRET"):
            Settings(environment="production", jwt_secret=DEFAULT_JWT_SECRET)

        assert Settings(environment="Production", jwt_secret="real-secret").is_production

    def test_bcrypt_rounds_bounds(self):
        """Test the bcrypt cost factor must be at least 4."""
        with pytest.raises(PydanticValidationError):
            Settings(bcrypt_rounds=3)


class TestErrorMapping:
    """Test domain errors map onto HTTP status codes."""

    def test_status_for(self):
        """Test each error class gets its status."""
        assert status_for(ValidationError("bad")) == 400
        assert status_for(EntityNotFoundError("Task", "x")) == 404
        assert status_for(BusinessRuleViolation("no")) == 422

    def test_error_payload(self):
        """Test errors serialize with their code and message."""
        payload = EntityNotFoundError("Task", "abc").to_dict()

        assert payload["error"] == "EntityNotFoundError"
        assert payload["error_code"] == "ENTITY_NOT_FOUND"
        assert payload["message"] == "Task with ID abc not found"


class TestLogging:
    """Test logging setup."""

    def test_setup_logging_writes_files(self, tmp_path, restore_root_logger):
        """Test file logging creates the app and error logs."""
        settings = Settings(log_dir=tmp_path / "logs", log_to_file=True, log_level="INFO")

        setup_logging(settings)
        logging.getLogger("task_manager.test").error("boom")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert (tmp_path / "logs" / "app.log").exists()
        assert "boom" in (tmp_path / "logs" / "error.log").read_text(encoding="utf-8")

    def test_setup_logging_console_only(self, tmp_path, restore_root_logger):
        """Test file logging can be switched off."""
        settings = Settings(log_dir=tmp_path / "logs", log_to_file=False, log_level="DEBUG")

        setup_logging(settings)

        assert len(logging.getLogger().handlers) == 1
        assert logging.getLogger().level == logging.DEBUG
        assert not (tmp_path / "logs").exists()

    def test_colored_formatter_leaves_record_alone(self):
        """Test colouring does not leak into other handlers' output."""
        record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful", (), None)

        formatted = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[33m" in formatted
        assert record.levelname == "WARNING"
