"""Tagged result type for gateway calls"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers"""
    INVALID_CREDENTIALS = "invalid_credentials"
    REGISTRATION_REJECTED = "registration_rejected"
    VERIFICATION_FAILED = "verification_failed"
    PASSWORD_REJECTED = "password_rejected"
    SESSION_EXPIRED = "session_expired"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    REQUEST_REJECTED = "request_rejected"


class ApiResult(BaseModel):
    """
    Either ``ok=True`` with a ``value`` or ``ok=False`` with ``kind`` and ``message``.

    Feature code checks ``ok`` and falls back on failure instead of probing
    the raw response envelope.
    """
    ok: bool
    value: Any = None
    kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def success(cls, value: Any) -> "ApiResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
    ) -> "ApiResult":
        return cls(ok=False, kind=kind, message=message, status_code=status_code)

    def unwrap_or(self, default: Any) -> Any:
        """Value on success, ``default`` otherwise"""
        return self.value if self.ok else default
