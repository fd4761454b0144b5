"""
Polling for mock payment checkout completion.

The checkout page is completed outside the client; the client polls the
transaction status until it is terminal, the maximum duration elapses, or
the poll is cancelled.
"""

import threading
from enum import Enum
from typing import Callable, Optional

from tenacity import (
    Retrying,
    retry_if_result,
    stop_after_delay,
    stop_when_event_set,
    wait_fixed,
)

from ..utils.exceptions import NetworkError, ServerError
from ..utils.logger import get_logger
from .client import ApiClient, unwrap_envelope

logger = get_logger(__name__)

TERMINAL_STATUSES = {"completed", "failed", "cancelled"}


class PollOutcome(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class PaymentStatusPoller:
    """Cancellable status poll for one mock payment transaction"""

    def __init__(
        self,
        client: ApiClient,
        transaction_id: str,
        interval_seconds: float = 2.0,
        max_duration_seconds: float = 300.0,
        on_finished: Optional[Callable[["PaymentStatusPoller"], None]] = None,
    ):
        self.client = client
        self.transaction_id = transaction_id
        self.interval_seconds = interval_seconds
        self.max_duration_seconds = max_duration_seconds
        self.on_finished = on_finished

        self.outcome = PollOutcome.RUNNING
        self.last_status: Optional[str] = None
        self.attempts = 0
        self.error: Optional[Exception] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _fetch_status(self) -> Optional[str]:
        self.attempts += 1
        try:
            payload = self.client.get(f"/payments/mock/status/{self.transaction_id}")
        except (NetworkError, ServerError) as e:
            logger.warning(
                "Payment status check failed, will retry",
                transaction_id=self.transaction_id,
                error=str(e),
            )
            return None
        data = unwrap_envelope(payload)
        status = data.get("status") if isinstance(data, dict) else None
        self.last_status = status
        return status

    def _sleep(self, seconds: float) -> None:
        # wakes up early on cancel
        self._stop_event.wait(seconds)

    def run(self) -> PollOutcome:
        """Poll until a terminal status, timeout or cancellation"""
        retryer = Retrying(
            stop=stop_after_delay(self.max_duration_seconds) | stop_when_event_set(self._stop_event),
            wait=wait_fixed(self.interval_seconds),
            retry=retry_if_result(lambda status: status not in TERMINAL_STATUSES),
            sleep=self._sleep,
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )
        try:
            status = retryer(self._fetch_status)
        except Exception as e:
            self.error = e
            self.outcome = PollOutcome.FAILED
            logger.error("Payment polling aborted", transaction_id=self.transaction_id, error=str(e))
            raise
        finally:
            if self.outcome == PollOutcome.RUNNING:
                self.outcome = self._resolve_outcome(self.last_status)
            logger.info(
                "Payment polling finished",
                transaction_id=self.transaction_id,
                outcome=self.outcome.value,
                attempts=self.attempts,
            )
            if self.on_finished:
                self.on_finished(self)
        return self.outcome

    def _resolve_outcome(self, status: Optional[str]) -> PollOutcome:
        if status == "completed":
            return PollOutcome.COMPLETED
        if status in ("failed", "cancelled"):
            return PollOutcome.FAILED
        if self._stop_event.is_set():
            return PollOutcome.CANCELLED
        return PollOutcome.TIMED_OUT

    def _run_in_thread(self) -> None:
        try:
            self.run()
        except Exception:
            # already recorded on self.error and logged by run()
            pass

    def start(self) -> "PaymentStatusPoller":
        """Run the poll on a daemon thread"""
        self._thread = threading.Thread(
            target=self._run_in_thread,
            name=f"payment-poll-{self.transaction_id}",
            daemon=True,
        )
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread:
            self._thread.join(timeout)

    @property
    def is_running(self) -> bool:
        return self.outcome == PollOutcome.RUNNING
