"""Custom exceptions for the Tokay client"""

from typing import Optional

from ..models.result import ErrorKind


class TokayError(Exception):
    """Base exception for the Tokay client"""
    pass


class ConfigError(TokayError):
    """Configuration error"""
    pass


class ApiError(TokayError):
    """Failed call to the Tokay backend"""

    kind: ErrorKind = ErrorKind.REQUEST_REJECTED
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.detail = message
        self.message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.message)


class NetworkError(ApiError):
    """No response from the backend (connection failure or timeout)"""
    kind = ErrorKind.NETWORK_ERROR
    default_message = "Network error. Please check your connection."


class ServerError(ApiError):
    """5xx response"""
    kind = ErrorKind.SERVER_ERROR
    default_message = "Server error. Please try again later."


class SessionExpired(ApiError):
    """An authenticated call returned 401; the session has been torn down"""
    kind = ErrorKind.SESSION_EXPIRED
    default_message = "Session expired. Please log in again."


class AccessDenied(ApiError):
    """403 response"""
    kind = ErrorKind.ACCESS_DENIED
    default_message = "Access denied."


class NotFoundError(ApiError):
    """404 response"""
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found."


class RateLimitError(ApiError):
    """429 response"""
    kind = ErrorKind.RATE_LIMITED
    default_message = "Too many requests. Please try again later."

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = 429,
        retry_after: Optional[int] = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code=status_code)


class RequestRejected(ApiError):
    """Any other non-2xx response, or a ``success: false`` envelope"""
    kind = ErrorKind.REQUEST_REJECTED


class InvalidCredentials(ApiError):
    """Login rejected by the backend"""
    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Login failed"


class RegistrationRejected(ApiError):
    """Registration rejected (duplicate phone number, invalid field, ...)"""
    kind = ErrorKind.REGISTRATION_REJECTED
    default_message = "Registration failed"


class VerificationFailed(ApiError):
    """Wrong or expired one-time code"""
    kind = ErrorKind.VERIFICATION_FAILED
    default_message = "Verification failed"


class PasswordRejected(ApiError):
    """Password could not be set"""
    kind = ErrorKind.PASSWORD_REJECTED
    default_message = "Failed to set password"
