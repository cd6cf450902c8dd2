"""Domain-specific exceptions and error helpers"""

from typing import Any, Optional


class CaplingError(Exception):
    """Base exception carrying a machine code and an HTTP-style status"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details


class ValidationError(CaplingError):
    """Bad or missing input; never retried"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, "VALIDATION_ERROR", 400, {"field": field} if field else None)
        self.field = field


class AuthenticationError(CaplingError):
    """Identity missing or not allowed to touch the resource"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, "AUTH_ERROR", 401)


class NotFoundError(CaplingError):
    """Referenced entity does not exist"""

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", "NOT_FOUND", 404)
        self.resource = resource


class ConflictError(CaplingError):
    """Entity is not in the state the operation requires"""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, "CONFLICT", 409, details)


class DatabaseError(CaplingError):
    """Ledger store operation failed"""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, "DATABASE_ERROR", 500, details)


class ExternalServiceError(CaplingError):
    """Reasoning service returned an error or is unavailable"""

    def __init__(self, service: str, message: str, details: Optional[Any] = None):
        super().__init__(f"{service} error: {message}", "EXTERNAL_SERVICE_ERROR", 502, details)
        self.service = service


class OperationTimeoutError(CaplingError):
    """An awaited operation missed its deadline"""

    def __init__(self, message: str = "Operation timed out"):
        super().__init__(message, "TIMEOUT", 408)


def is_retryable(error: BaseException) -> bool:
    """Only server-side failures (status >= 500) are worth another attempt"""
    return isinstance(error, CaplingError) and error.status_code >= 500
