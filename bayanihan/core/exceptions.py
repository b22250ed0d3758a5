"""
Custom exceptions for the application.
All API exceptions should inherit from APIException for consistent error handling.
"""
from typing import Optional, Any


class APIException(Exception):
    """
    Base exception for all API errors.
    Provides consistent error response format.

    `message` is the machine-facing reason; `alert` is the short advisory
    shown to the person using the app.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Any] = None,
        alert: Optional[str] = None,
    ):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details
        self.alert = alert or message
        super().__init__(self.message)


class ValidationException(APIException):
    """400 Validation Error (missing field, bad enum value)"""

    def __init__(
        self,
        message: str = "Validation error",
        code: str = "VALIDATION_ERROR",
        details: Optional[Any] = None,
    ):
        super().__init__(400, code, message, details)


class StateConflictException(APIException):
    """
    400 with a specific reason: the request is well-formed but the job,
    application or payment is not in a state that allows it.
    """

    def __init__(self, message: str, code: str = "STATE_CONFLICT", alert: Optional[str] = None):
        super().__init__(400, code, message, alert=alert)


class UnauthorizedException(APIException):
    """401 Unauthorized"""

    def __init__(self, message: str = "Unauthorized", code: str = "UNAUTHORIZED"):
        super().__init__(401, code, message)


class ForbiddenException(APIException):
    """403 Forbidden"""

    def __init__(self, message: str = "Forbidden", code: str = "FORBIDDEN", alert: Optional[str] = None):
        super().__init__(403, code, message, alert=alert)


class NotFoundException(APIException):
    """404 Not Found"""

    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(404, code, message)


class PaymentGatewayException(APIException):
    """502 from the payment gateway; `retry` tells the client whether to try again."""

    def __init__(self, message: str = "Payment gateway error", retry: bool = False):
        super().__init__(
            502,
            "PAYMENT_GATEWAY_ERROR",
            message,
            details={"retry": retry},
            alert="Payment could not be processed. Please try again." if retry
            else "Payment could not be processed.",
        )
        self.retry = retry


# Authentication specific exceptions
class TokenExpiredException(UnauthorizedException):
    """Token has expired"""

    def __init__(self):
        super().__init__(
            message="Token has expired",
            code="TOKEN_EXPIRED",
        )


class InvalidTokenException(UnauthorizedException):
    """Token is invalid"""

    def __init__(self):
        super().__init__(
            message="Invalid token",
            code="INVALID_TOKEN",
        )


# Resource specific exceptions
class UserNotFoundException(NotFoundException):
    """User not found"""

    def __init__(self):
        super().__init__(message="User not found", code="USER_NOT_FOUND")


class JobNotFoundException(NotFoundException):
    """Job not found"""

    def __init__(self):
        super().__init__(message="Job not found", code="JOB_NOT_FOUND")


class ApplicationNotFoundException(NotFoundException):
    """No application by that worker on the job"""

    def __init__(self):
        super().__init__(message="Application not found", code="APPLICATION_NOT_FOUND")


class PaymentNotFoundException(NotFoundException):
    """Payment not found"""

    def __init__(self):
        super().__init__(message="Payment not found", code="PAYMENT_NOT_FOUND")
