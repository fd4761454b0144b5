"""
Session and identity lifecycle.

The SessionManager is the single writer of the token store and of the
in-memory identity. Views only read its snapshots.

States::

    booting -> anonymous | authenticated
    anonymous -> pending_verification -> authenticated   (register + verify)
    authenticated -> anonymous                           (logout, 401 expiry)
"""

import threading
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..api.client import ApiClient, unwrap_envelope
from ..api.notices import NoticeBoard
from ..models.user import (
    Identity,
    PendingVerification,
    RegistrationAck,
    RegistrationData,
    VERIFICATION_CODE_LENGTH,
)
from ..utils.exceptions import (
    ApiError,
    InvalidCredentials,
    NetworkError,
    PasswordRejected,
    RateLimitError,
    RegistrationRejected,
    ServerError,
    SessionExpired,
    VerificationFailed,
)
from ..utils.logger import get_logger
from .token_store import TokenStore

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6

# Failures that say nothing about the submitted data; they pass through unchanged
_TRANSIENT_ERRORS = (NetworkError, ServerError, RateLimitError, SessionExpired)


class SessionState(str, Enum):
    BOOTING = "booting"
    ANONYMOUS = "anonymous"
    PENDING_VERIFICATION = "pending_verification"
    AUTHENTICATED = "authenticated"


def _parse_auth_payload(payload: Any):
    """Extract (token, user dict) from a login/verify response"""
    data = unwrap_envelope(payload)
    if not isinstance(data, dict):
        return None, None
    token = data.get("token")
    user = data.get("user")
    if not isinstance(token, str) or not token or not isinstance(user, dict):
        return None, None
    return token, user


def _parse_profile_payload(payload: Any) -> Optional[Dict[str, Any]]:
    data = unwrap_envelope(payload)
    if isinstance(data, dict) and isinstance(data.get("user"), dict):
        return data["user"]
    return data if isinstance(data, dict) else None


class SessionManager:
    """Owns the identity lifecycle and the login/register/verify/logout operations"""

    def __init__(
        self,
        client: ApiClient,
        token_store: TokenStore,
        notices: Optional[NoticeBoard] = None,
        login_path: str = "/login",
    ):
        self.client = client
        self.token_store = token_store
        self.notices = notices or client.notices
        self.login_path = login_path

        self._lock = threading.RLock()
        self._booted = threading.Event()
        self._state = SessionState.BOOTING
        self._identity: Optional[Identity] = None
        self._pending: Optional[PendingVerification] = None
        self._redirect_to: Optional[str] = None
        self.last_error: Optional[str] = None

        client.on_unauthorized(self._handle_session_expired)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def pending_verification(self) -> Optional[PendingVerification]:
        return self._pending

    @property
    def is_authenticated(self) -> bool:
        return self._state == SessionState.AUTHENTICATED

    @property
    def is_booted(self) -> bool:
        return self._booted.is_set()

    def wait_until_booted(self, timeout: Optional[float] = None) -> bool:
        return self._booted.wait(timeout)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "state": self._state.value,
                "identity": self._identity.model_dump() if self._identity else None,
                "pending_phone_number": self._pending.phone_number if self._pending else None,
                "last_error": self.last_error,
            }

    def _set_authenticated(self, token: str, identity: Identity) -> None:
        with self._lock:
            self.token_store.save(token)
            self._identity = identity
            self._pending = None
            self._state = SessionState.AUTHENTICATED
            self.last_error = None
            self._redirect_to = None

    def _set_anonymous(self) -> None:
        with self._lock:
            self._identity = None
            self._pending = None
            self._state = SessionState.ANONYMOUS

    def _fail(self, error: ApiError) -> ApiError:
        self.last_error = error.message
        return error

    def _handle_session_expired(self) -> None:
        """Forced logout after a 401 on an authenticated request"""
        with self._lock:
            was_authenticated = self._state == SessionState.AUTHENTICATED
            self.token_store.clear()
            self._set_anonymous()
            if was_authenticated:
                self._redirect_to = self.login_path
        logger.info("Session expired", was_authenticated=was_authenticated)

    def consume_redirect(self) -> Optional[str]:
        """Return and clear the redirect requested by a forced logout"""
        with self._lock:
            target, self._redirect_to = self._redirect_to, None
        return target

    def boot(self) -> SessionState:
        """
        Restore the session from a persisted token.

        Runs once per application load. Always sets the boot-complete signal,
        whatever the outcome.
        """
        try:
            token = self.token_store.read()
            if not token:
                logger.info("No stored token, starting anonymous")
                self._set_anonymous()
                return self._state

            try:
                payload = self.client.get("/auth/profile")
                identity = Identity.model_validate(_parse_profile_payload(payload) or {})
            except (ApiError, ValidationError) as e:
                logger.info("Stored token rejected, starting anonymous", error=str(e))
                with self._lock:
                    self.token_store.clear()
                    self._set_anonymous()
                    self._redirect_to = None
                return self._state

            with self._lock:
                self._identity = identity
                self._state = SessionState.AUTHENTICATED
            logger.info("Session restored", user_id=identity.id)
            return self._state
        finally:
            self._booted.set()

    def login(self, phone_number: str, password: str) -> Identity:
        """Log in with phone number and password"""
        logger.info("Login attempt")
        try:
            payload = self.client.post(
                "/auth/login",
                data={"phoneNumber": phone_number, "password": password},
                authenticate=False,
            )
        except _TRANSIENT_ERRORS as e:
            raise self._fail(e)
        except ApiError as e:
            raise self._fail(InvalidCredentials(e.detail, status_code=e.status_code))

        token, user = _parse_auth_payload(payload)
        if not token:
            raise self._fail(InvalidCredentials())
        try:
            identity = Identity.model_validate(user)
        except ValidationError:
            raise self._fail(InvalidCredentials())

        self._set_authenticated(token, identity)
        self.notices.success("Login successful!")
        logger.info("Login succeeded", user_id=identity.id)
        return identity

    def register(self, data: RegistrationData) -> RegistrationAck:
        """Register a phone number. Does not authenticate; a verification step follows."""
        logger.info("Registration attempt")
        try:
            payload = self.client.post(
                "/auth/register", data=data.to_payload(), authenticate=False
            )
        except _TRANSIENT_ERRORS as e:
            raise self._fail(e)
        except ApiError as e:
            raise self._fail(RegistrationRejected(e.detail, status_code=e.status_code))

        ack_data = unwrap_envelope(payload)
        ack_fields = dict(ack_data) if isinstance(ack_data, dict) else {}
        ack_fields.setdefault("phoneNumber", data.phone_number)
        if isinstance(payload, dict) and payload.get("message"):
            ack_fields.setdefault("message", payload["message"])
        ack = RegistrationAck.model_validate(ack_fields)

        with self._lock:
            # a new registration replaces any session held so far
            self.token_store.clear()
            self._identity = None
            self._pending = PendingVerification(phone_number=data.phone_number)
            self._state = SessionState.PENDING_VERIFICATION
            self.last_error = None
            self._redirect_to = None
        self.notices.success("Registration successful! Please verify your phone number.")
        return ack

    def verify_phone(self, phone_number: str, code: str) -> Identity:
        """Submit the one-time code; on success the session becomes authenticated"""
        code = (code or "").strip()
        if len(code) != VERIFICATION_CODE_LENGTH or not code.isdigit():
            raise self._fail(
                VerificationFailed(f"Verification code must be {VERIFICATION_CODE_LENGTH} digits")
            )

        try:
            payload = self.client.post(
                "/auth/verify-phone",
                data={"phoneNumber": phone_number, "verificationCode": code},
                authenticate=False,
            )
        except _TRANSIENT_ERRORS as e:
            raise self._fail(e)
        except ApiError as e:
            raise self._fail(VerificationFailed(e.detail, status_code=e.status_code))

        token, user = _parse_auth_payload(payload)
        if not token:
            raise self._fail(VerificationFailed())
        try:
            identity = Identity.model_validate(user)
        except ValidationError:
            raise self._fail(VerificationFailed())

        self._set_authenticated(token, identity)
        self.notices.success("Phone number verified successfully!")
        logger.info("Phone verified", user_id=identity.id)
        return identity

    def resend_verification(self, phone_number: str) -> None:
        try:
            self.client.post(
                "/auth/resend-verification",
                data={"phoneNumber": phone_number},
                authenticate=False,
            )
        except _TRANSIENT_ERRORS as e:
            raise self._fail(e)
        except ApiError as e:
            raise self._fail(VerificationFailed(e.detail, status_code=e.status_code))
        with self._lock:
            if self._state != SessionState.AUTHENTICATED:
                self._pending = PendingVerification(phone_number=phone_number)
                self._state = SessionState.PENDING_VERIFICATION
        self.notices.success("Verification code sent successfully.")

    def cancel_verification(self) -> None:
        """Abandon a pending verification and go back to registration"""
        with self._lock:
            if self._state == SessionState.PENDING_VERIFICATION:
                self._set_anonymous()

    def set_password(self, password: str) -> None:
        """Set or change the account password (authenticated sessions only)"""
        if not self.is_authenticated:
            raise self._fail(PasswordRejected("Please log in first."))
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise self._fail(
                PasswordRejected(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
            )
        try:
            self.client.post("/auth/set-password", data={"password": password})
        except _TRANSIENT_ERRORS as e:
            raise self._fail(e)
        except ApiError as e:
            raise self._fail(PasswordRejected(e.detail, status_code=e.status_code))
        self.notices.success("Password set successfully!")

    def refresh_profile(self) -> Optional[Identity]:
        """Re-fetch the profile of the current session. None when not logged in."""
        if not self.is_authenticated:
            return None
        try:
            payload = self.client.get("/auth/profile")
        except ApiError as e:
            raise self._fail(e)
        try:
            identity = Identity.model_validate(_parse_profile_payload(payload) or {})
        except ValidationError:
            raise self._fail(ServerError("Unexpected profile response"))
        with self._lock:
            if self._state == SessionState.AUTHENTICATED:
                self._identity = identity
        return identity

    def update_identity(self, **fields) -> Optional[Identity]:
        """Merge local profile edits into the identity snapshot"""
        with self._lock:
            if self._identity is None:
                return None
            self._identity = self._identity.model_copy(update=fields)
            return self._identity

    def logout(self) -> None:
        """Client-local logout; never needs the backend"""
        with self._lock:
            try:
                self.token_store.clear()
            except OSError as e:
                logger.error("Failed to remove stored token", path=str(self.token_store.path), error=str(e))
                self.notices.error(
                    "Could not remove the saved session from this device. It may be restored on next start."
                )
            self._set_anonymous()
            self._redirect_to = None
            self.last_error = None
        self.notices.success("Logged out successfully")
        logger.info("Logged out")

    def clear_error(self) -> None:
        self.last_error = None
