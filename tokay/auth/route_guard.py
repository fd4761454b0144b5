"""Access control for protected views"""

from typing import Optional
from urllib.parse import quote

from ..utils.logger import get_logger
from .session_manager import SessionManager

logger = get_logger(__name__)

# Extra wait on top of the request timeout before giving up on boot
BOOT_WAIT_MARGIN_SECONDS = 5.0


class RouteGuard:
    """
    Allow or deny entry to protected views.

    Decisions are a pure function of in-memory session state, but never made
    before the session manager has finished booting.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        login_path: str = "/login",
        boot_timeout: Optional[float] = None,
    ):
        self.session_manager = session_manager
        self.login_path = login_path
        if boot_timeout is None:
            boot_timeout = session_manager.client.timeout + BOOT_WAIT_MARGIN_SECONDS
        self.boot_timeout = boot_timeout

    def can_enter(self) -> bool:
        if not self.session_manager.wait_until_booted(self.boot_timeout):
            logger.warning("Session boot still pending, denying entry", timeout=self.boot_timeout)
            return False
        return self.session_manager.is_authenticated

    def redirect_for(self, path: Optional[str] = None) -> Optional[str]:
        """Login URL to send the user to, or None when entry is allowed"""
        if self.can_enter():
            return None
        if path and path != self.login_path:
            return f"{self.login_path}?next={quote(path, safe='/')}"
        return self.login_path
