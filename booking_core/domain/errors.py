"""Error taxonomy shared by the repository and service layers.

Repositories raise DbError (wrapping whatever the driver raised). Services
raise ServiceError subclasses internally and convert every failure into a
ServiceErrorInfo on the ServiceOutput they return, so callers never see an
exception cross the service boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ServiceErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"


class ServiceError(Exception):
    """Base class for failures that map onto a ServiceErrorCode."""

    code: ServiceErrorCode = ServiceErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InputValidationError(ServiceError):
    code = ServiceErrorCode.VALIDATION_ERROR


class NotFoundError(ServiceError):
    code = ServiceErrorCode.NOT_FOUND


class ForbiddenError(ServiceError):
    code = ServiceErrorCode.FORBIDDEN


class InternalError(ServiceError):
    code = ServiceErrorCode.INTERNAL_ERROR


class BusinessRuleError(ServiceError):
    code = ServiceErrorCode.BUSINESS_RULE_VIOLATION


class DbError(Exception):
    """A repository operation failed.

    Carries the entity name, the operation and its parameters so the failure
    can be traced back to the exact call without re-reading the driver text.
    """

    def __init__(
        self,
        entity_name: str,
        operation: str,
        params: Any,
        message: str,
    ) -> None:
        super().__init__(f"{entity_name}.{operation} failed: {message}")
        self.entity_name = entity_name
        self.operation = operation
        self.params = params
        self.message = message
