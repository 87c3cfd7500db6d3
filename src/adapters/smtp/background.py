"""
Background email sender - fire-and-forget wrapper for any EmailSender.

Sends run on a thread pool so request handlers never wait on mail
delivery. Failures are logged from a done-callback and never reach the
caller.
"""

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from src.domain.ports import EmailSender

logger = logging.getLogger(__name__)


class BackgroundEmailSender:
    """Implements EmailSender protocol by delegating on worker threads."""

    def __init__(self, delegate: EmailSender, max_workers: int = 4) -> None:
        self._delegate = delegate
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="email-sender"
        )

    def send_verification_email(self, email: str, code: str) -> None:
        future = self._executor.submit(self._delegate.send_verification_email, email, code)
        future.add_done_callback(self._log_failure("verification", email))

    def send_already_registered_email(self, email: str) -> None:
        future = self._executor.submit(self._delegate.send_already_registered_email, email)
        future.add_done_callback(self._log_failure("already-registered", email))

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting sends; with wait=True, drain those already queued."""
        self._executor.shutdown(wait=wait)

    @staticmethod
    def _log_failure(kind: str, email: str) -> Callable[[Future], None]:
        def callback(future: Future) -> None:
            error = future.exception()
            if error is not None:
                logger.error(
                    "Failed to send %s email to %s", kind, email, exc_info=error
                )

        return callback
