from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class NotFoundError(AppException):
    """Employee, application or configuration row absent. Carries no internal detail."""
    def __init__(self, message: str = "Not found"):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )


class ValidationFailed(AppException):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else None
        )


class AccessDeniedError(AppException):
    """Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )


class InvalidTransitionError(AppException):
    def __init__(self, current_status: str, action: str):
        super().__init__(
            message=f"Leave application is '{current_status}' and cannot be {action}d.",
            status_code=409,
            error_code="INVALID_TRANSITION",
            details={"current_status": current_status, "action": action}
        )


class ConcurrencyConflict(AppException):
    """A concurrent writer won the race; safe for the caller to retry."""
    def __init__(self, message: str = "The record was modified concurrently. Please retry."):
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONCURRENCY_CONFLICT"
        )


class DependencyFailure(AppException):
    def __init__(self, message: str = "A backing service is unavailable.", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=503,
            error_code="DEPENDENCY_FAILURE",
            details=details
        )
