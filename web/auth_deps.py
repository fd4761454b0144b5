"""
FastAPI dependencies for the session and the route guard.
"""

from fastapi import HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from tokay.app import TokayApp
from tokay.auth.session_manager import SessionManager
from tokay.models.user import Identity


class LoginRequired(Exception):
    """Raised by the route guard dependency for browser navigations"""

    def __init__(self, redirect_url: str):
        self.redirect_url = redirect_url
        super().__init__(redirect_url)


def wants_html(request: Request) -> bool:
    accept = request.headers.get("accept") or ""
    return accept.strip().startswith("text/html")


def get_tokay(request: Request) -> TokayApp:
    return request.app.state.tokay


def get_session_manager(request: Request) -> SessionManager:
    return get_tokay(request).session_manager


async def require_session(request: Request) -> Identity:
    """
    Dependency for protected views.

    Browser navigations are redirected to the login view; API callers get 401.
    """
    guard = get_tokay(request).route_guard
    redirect_url = await run_in_threadpool(guard.redirect_for, request.url.path)
    identity = get_session_manager(request).identity
    if identity is None and not redirect_url:
        # logged out between the guard decision and now
        redirect_url = guard.login_path
    if redirect_url:
        if wants_html(request):
            raise LoginRequired(redirect_url)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
