from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """Base exception for API errors"""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        detail: Dict[str, Any] = {"error": message, "code": error_code}
        if self.details:
            detail["details"] = self.details
        super().__init__(status_code=status_code, detail=detail)

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message


class ValidationError(BaseAPIException):
    """Invalid argument: missing/malformed field or unknown enum value"""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_001",
            message=message,
            details=details,
        )


class AuthorizationError(BaseAPIException):
    """Admin key missing or wrong"""

    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details,
        )


class NotFoundError(BaseAPIException):
    """Resource not found errors"""

    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details,
        )


class ConflictError(BaseAPIException):
    """Resource conflict errors (duplicate unique key)"""

    def __init__(self, message: str = "Resource conflict", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT_001",
            message=message,
            details=details,
        )


class ExternalDependencyError(BaseAPIException):
    """Required external social-graph call failed; the local write did not run"""

    def __init__(
        self,
        message: str = "External social graph service unavailable",
        details: Optional[Dict] = None,
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="EXTERNAL_001",
            message=message,
            details=details,
        )


class InternalServerError(BaseAPIException):
    """Internal server errors"""

    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details,
        )
