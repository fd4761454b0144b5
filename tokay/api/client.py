"""Tokay backend API client"""

from typing import Any, Callable, Dict, List, Optional

import requests

from ..auth.token_store import TokenStore
from ..models.result import ApiResult, ErrorKind
from ..utils.exceptions import (
    AccessDenied,
    ApiError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RequestRejected,
    ServerError,
    SessionExpired,
)
from ..utils.logger import get_logger
from .notices import NoticeBoard

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# Notice text per failure category
NOTICE_MESSAGES = {
    ErrorKind.SESSION_EXPIRED: "Session expired. Please log in again.",
    ErrorKind.ACCESS_DENIED: "Access denied. You do not have permission for this action.",
    ErrorKind.NOT_FOUND: "Resource not found.",
    ErrorKind.RATE_LIMITED: "Too many requests. Please try again later.",
    ErrorKind.SERVER_ERROR: "Server error. Please try again later.",
    ErrorKind.NETWORK_ERROR: "Network error. Please check your connection.",
}


def unwrap_envelope(payload: Any) -> Any:
    """Return the ``data`` member of a ``{success, message, data}`` envelope, or the payload itself"""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _extract_message(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    message = payload.get("message")
    if isinstance(message, str) and message.strip():
        return message
    error = payload.get("error")
    if isinstance(error, str) and error.strip():
        return error
    return None


class ApiClient:
    """
    Single HTTP entry point for the Tokay backend.

    Every request carries the stored bearer token when there is one. Every
    failure is classified, posted to the notice board and then raised to the
    caller. A 401 on an authenticated request also runs the registered
    unauthorized handlers (session teardown). No retries are attempted.
    """

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore,
        notices: Optional[NoticeBoard] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store
        self.notices = notices or NoticeBoard()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self._unauthorized_handlers: List[Callable[[], None]] = []

    def on_unauthorized(self, handler: Callable[[], None]) -> None:
        """Register a callback run when an authenticated request is answered with 401"""
        self._unauthorized_handlers.append(handler)

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        timeout_override: Optional[float] = None,
        authenticate: bool = True,
    ) -> Any:
        """
        Make an HTTP request to the backend

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint relative to the base URL
            params: Query parameters
            data: JSON request body
            timeout_override: Optional timeout in seconds for this request
            authenticate: Attach the stored bearer token (off for login/register/verify)

        Returns:
            Parsed JSON body (an empty dict for empty bodies)

        Raises:
            ApiError: one of its subclasses, after the failure has been surfaced
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        timeout_value = timeout_override if timeout_override is not None else self.timeout

        headers = {}
        token = self.token_store.read() if authenticate else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        authenticated = bool(token)

        logger.debug(
            "Making API request",
            method=method,
            endpoint=endpoint,
            authenticated=authenticated,
        )
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=data,
                headers=headers,
                timeout=timeout_value,
            )
        except requests.exceptions.Timeout as e:
            logger.error("Request timeout", endpoint=endpoint, timeout=timeout_value, error=str(e))
            error = NetworkError(f"Request timed out after {timeout_value:g} seconds.")
            self._surface(error)
            raise error
        except requests.exceptions.RequestException as e:
            logger.error("Request failed", endpoint=endpoint, error=str(e))
            error = NetworkError()
            self._surface(error)
            raise error

        logger.info(
            "Received API response",
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        )

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if 200 <= response.status_code < 300:
            if isinstance(payload, dict) and payload.get("success") is False:
                error = RequestRejected(_extract_message(payload), status_code=response.status_code)
                self._surface(error)
                raise error
            return payload

        error = self._classify(
            response.status_code,
            _extract_message(payload),
            authenticated=authenticated,
            retry_after=response.headers.get("Retry-After") if response.headers else None,
        )
        self._surface(error)
        if isinstance(error, SessionExpired):
            self._expire_session()
        raise error

    def _classify(
        self,
        status_code: int,
        message: Optional[str],
        authenticated: bool,
        retry_after: Optional[str] = None,
    ) -> ApiError:
        """Map a non-2xx status to an exception"""
        if status_code == 401:
            if authenticated:
                return SessionExpired(message, status_code=status_code)
            # nothing to expire; the operation in flight decides what this means
            return RequestRejected(message, status_code=status_code)
        if status_code == 403:
            return AccessDenied(message, status_code=status_code)
        if status_code == 404:
            return NotFoundError(message, status_code=status_code)
        if status_code == 429:
            try:
                retry_seconds = int(retry_after) if retry_after is not None else None
            except (TypeError, ValueError):
                retry_seconds = None
            return RateLimitError(message, status_code=status_code, retry_after=retry_seconds)
        if status_code >= 500:
            return ServerError(message, status_code=status_code)
        return RequestRejected(message, status_code=status_code)

    def _surface(self, error: ApiError) -> None:
        """Post the user-facing notice for a failure"""
        category = error.kind
        if category not in NOTICE_MESSAGES:
            # other statuses share the network-error category but keep the backend message
            category = ErrorKind.NETWORK_ERROR
            text = error.detail or NOTICE_MESSAGES[category]
        else:
            text = NOTICE_MESSAGES[category]
        self.notices.error(text, category=category)

    def _expire_session(self) -> None:
        logger.warning("Authenticated request rejected with 401, tearing down session")
        self.token_store.clear()
        for handler in list(self._unauthorized_handlers):
            try:
                handler()
            except Exception as e:
                logger.error("Unauthorized handler failed", error=str(e), exc_info=True)

    def request(self, method: str, endpoint: str, **kwargs) -> Any:
        return self._make_request(method, endpoint, **kwargs)

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self._make_request("GET", endpoint, params=params, **kwargs)

    def post(self, endpoint: str, data: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self._make_request("POST", endpoint, data=data, **kwargs)

    def put(self, endpoint: str, data: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self._make_request("PUT", endpoint, data=data, **kwargs)

    def delete(self, endpoint: str, **kwargs) -> Any:
        return self._make_request("DELETE", endpoint, **kwargs)

    def send(self, method: str, endpoint: str, **kwargs) -> ApiResult:
        """Like ``request`` but returns an ``ApiResult`` instead of raising ``ApiError``"""
        try:
            payload = self._make_request(method, endpoint, **kwargs)
        except ApiError as e:
            return ApiResult.failure(e.kind, e.message, status_code=e.status_code)
        return ApiResult.success(unwrap_envelope(payload))
