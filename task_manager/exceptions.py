"""Domain error hierarchy for the task management service."""

from datetime import datetime, timezone
from typing import Any, Dict


class DomainError(Exception):
    """Base class for errors raised by the domain and use-case layers."""

    error_code = "DOMAIN_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API responses."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(DomainError):
    """Input is malformed or missing."""

    error_code = "VALIDATION_ERROR"


class BusinessRuleViolation(DomainError):
    """Input is well-formed but the operation is not allowed in the current state."""

    error_code = "BUSINESS_RULE_VIOLATION"


class EntityNotFoundError(DomainError):
    """Requested entity does not exist."""

    error_code = "ENTITY_NOT_FOUND"

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(f"{entity_name} with ID {entity_id} not found")
        self.entity_name = entity_name
        self.entity_id = entity_id


class UnauthorizedError(DomainError):
    """Caller could not be authenticated."""

    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message)


class ForbiddenError(DomainError):
    """Caller is authenticated but may not touch the resource."""

    error_code = "FORBIDDEN"

    def __init__(self, message: str = "You do not have permission to access this resource"):
        super().__init__(message)


class DuplicateEntityError(DomainError):
    """An entity with the same unique field already exists."""

    error_code = "DUPLICATE_ENTITY"

    def __init__(self, entity_name: str, field: str, value: Any):
        super().__init__(f"{entity_name} with {field} '{value}' already exists")
        self.entity_name = entity_name
        self.field = field
