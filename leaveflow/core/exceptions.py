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


class ValidationError(AppException):
    """Malformed workflow, category, step or level definition. Never coerced."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details=details
        )


class NotFoundError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details
        )


class OutOfOrderApprovalError(AppException):
    def __init__(self, attempted_level: Optional[int], expected_level: Optional[int]):
        super().__init__(
            message=f"Approval at level {attempted_level} is out of order; next required level is {expected_level}",
            status_code=409,
            error_code="OUT_OF_ORDER_APPROVAL",
            details={"attempted_level": attempted_level, "expected_level": expected_level}
        )


class TerminalStateError(AppException):
    def __init__(self, status: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"Leave request is {status} and cannot be acted on",
            status_code=409,
            error_code="TERMINAL_STATE",
            details={"status": status}
        )


class ConcurrentModificationError(AppException):
    """Optimistic version mismatch. The only error that is safe to retry."""
    def __init__(self, request_id: int, expected_version: int):
        super().__init__(
            message=f"Leave request {request_id} was modified concurrently; re-fetch and retry",
            status_code=409,
            error_code="CONCURRENT_MODIFICATION",
            details={"request_id": request_id, "expected_version": expected_version}
        )


class ConfigurationError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONFIGURATION_ERROR"
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not identify the acting user"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )
