"""Main application object wiring the client core together"""

import threading
from pathlib import Path
from typing import Dict, Optional

import requests

from .api.client import ApiClient
from .api.notices import NoticeBoard
from .api.payment_poller import PaymentStatusPoller, PollOutcome
from .api.resources import ResilienceAPI
from .auth.route_guard import RouteGuard
from .auth.session_manager import SessionManager
from .auth.token_store import TokenStore
from .utils.config import Settings, config_manager
from .utils.logger import get_logger, setup_logger

logger = get_logger(__name__)


class TokayApp:
    """Owns the one session manager instance and everything it depends on"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        settings_path: Optional[Path] = None,
        http_session: Optional[requests.Session] = None,
    ):
        self.settings = settings
        self.settings_path = settings_path
        self.http_session = http_session
        self.notices: Optional[NoticeBoard] = None
        self.token_store: Optional[TokenStore] = None
        self.client: Optional[ApiClient] = None
        self.session_manager: Optional[SessionManager] = None
        self.route_guard: Optional[RouteGuard] = None
        self.resources: Optional[ResilienceAPI] = None
        self.pollers: Dict[str, PaymentStatusPoller] = {}
        self._pollers_lock = threading.Lock()
        self.initialized = False

    def initialize(self, configure_logging: bool = True) -> None:
        """Load configuration and build the components"""
        if self.settings is None:
            self.settings = config_manager.load_settings(self.settings_path)

        if configure_logging:
            log = self.settings.logging
            setup_logger(
                log_level=log.level,
                log_format=log.format,
                file_path=log.file_path,
                max_bytes=log.max_bytes,
                backup_count=log.backup_count,
            )

        logger.info(
            "Configuration loaded",
            app_name=self.settings.app.name,
            version=self.settings.app.version,
            environment=self.settings.app.environment,
            api_base_url=self.settings.api.base_url,
        )

        storage = self.settings.storage
        self.notices = NoticeBoard()
        self.token_store = TokenStore(storage.token_path(), key=storage.token_key)
        self.client = ApiClient(
            base_url=self.settings.api.normalized_base_url(),
            token_store=self.token_store,
            notices=self.notices,
            timeout=self.settings.api.timeout_seconds,
            session=self.http_session,
        )
        self.session_manager = SessionManager(
            self.client,
            self.token_store,
            notices=self.notices,
            login_path=self.settings.web.login_path,
        )
        self.route_guard = RouteGuard(self.session_manager, login_path=self.settings.web.login_path)
        self.resources = ResilienceAPI(self.client)
        self.initialized = True

    def start(self) -> None:
        """Initialize if needed, then boot the session"""
        if not self.initialized:
            self.initialize()
        state = self.session_manager.boot()
        logger.info("Session boot complete", state=state.value)

    def start_payment_poll(self, transaction_id: str) -> PaymentStatusPoller:
        """
        Begin polling a mock payment in the background, replacing any earlier poll for it.

        Finished polls stay readable until the next poll is started, then are released.
        """
        payments = self.settings.payments
        poller = PaymentStatusPoller(
            self.client,
            transaction_id,
            interval_seconds=payments.poll_interval_seconds,
            max_duration_seconds=payments.poll_max_seconds,
            on_finished=self._payment_poll_finished,
        )
        with self._pollers_lock:
            previous = self.pollers.get(transaction_id)
            if previous:
                previous.cancel()
            for finished_id in [tid for tid, p in self.pollers.items() if not p.is_running]:
                del self.pollers[finished_id]
            self.pollers[transaction_id] = poller
        return poller.start()

    def _payment_poll_finished(self, poller: PaymentStatusPoller) -> None:
        if poller.outcome == PollOutcome.COMPLETED:
            self.notices.success("Payment completed successfully!")
        elif poller.outcome == PollOutcome.FAILED:
            self.notices.error("Payment was not completed.")

    def get_payment_poll(self, transaction_id: str) -> Optional[PaymentStatusPoller]:
        with self._pollers_lock:
            return self.pollers.get(transaction_id)

    def shutdown(self) -> None:
        with self._pollers_lock:
            pollers = list(self.pollers.values())
        for poller in pollers:
            poller.cancel()
        for poller in pollers:
            poller.join(timeout=1.0)
        logger.info("Shutdown complete", cancelled_polls=len(pollers))
