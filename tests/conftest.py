"""Shared fixtures: a fake HTTP session standing in for requests.Session"""

from types import SimpleNamespace

import pytest

from tokay.api.client import ApiClient
from tokay.api.notices import NoticeBoard
from tokay.auth.route_guard import RouteGuard
from tokay.auth.session_manager import SessionManager
from tokay.auth.token_store import TokenStore
from tokay.utils.config import ApiSettings, PaymentSettings, Settings, StorageSettings

BASE_URL = "http://backend.test/api"

USER = {
    "id": "5f0c9a52-1d2e-4d0b-9f3a-0c6b2a7e1a11",
    "phoneNumber": "+60123456789",
    "email": "siti@kedaisiti.my",
    "fullName": "Siti Aminah",
    "preferredLanguage": "ms",
    "isPhoneVerified": True,
    "role": "user",
}


def auth_payload(token="token-abc", user=None):
    return {
        "success": True,
        "message": "Login successful.",
        "data": {"token": token, "user": user or USER},
    }


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeHTTPSession:
    """
    Routes are registered per (method, path). Several responses for the same
    route are served in order; the last one keeps being served.
    """

    def __init__(self, base_url=BASE_URL):
        self.base_url = base_url
        self.headers = {}
        self.routes = {}
        self.calls = []

    def add(self, method, path, status_code=200, payload=None, headers=None, exc=None):
        self.routes.setdefault((method.upper(), path), []).append(
            (status_code, payload, headers, exc)
        )

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = url[len(self.base_url):]
        self.calls.append(
            SimpleNamespace(
                method=method.upper(),
                path=path,
                params=params,
                json=json,
                headers=dict(headers or {}),
                timeout=timeout,
            )
        )
        responses = self.routes.get((method.upper(), path))
        if not responses:
            return FakeResponse(404, {"success": False, "message": "Route not found"})
        status_code, payload, resp_headers, exc = responses.pop(0) if len(responses) > 1 else responses[0]
        if exc is not None:
            raise exc
        return FakeResponse(status_code, payload, resp_headers)

    def calls_to(self, method, path):
        return [c for c in self.calls if c.method == method.upper() and c.path == path]


@pytest.fixture
def http():
    return FakeHTTPSession()


@pytest.fixture
def token_store(tmp_path):
    return TokenStore(tmp_path / "session.json")


@pytest.fixture
def notices():
    return NoticeBoard()


@pytest.fixture
def client(http, token_store, notices):
    return ApiClient(BASE_URL, token_store, notices=notices, session=http)


@pytest.fixture
def session_manager(client, token_store, notices):
    return SessionManager(client, token_store, notices=notices)


@pytest.fixture
def guard(session_manager):
    return RouteGuard(session_manager, boot_timeout=0.5)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api=ApiSettings(base_url=BASE_URL),
        storage=StorageSettings(data_dir=str(tmp_path)),
        payments=PaymentSettings(poll_interval_seconds=0.01, poll_max_seconds=2.0),
    )
