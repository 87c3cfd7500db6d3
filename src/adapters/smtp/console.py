"""
Console email sender - development delivery for the EmailSender port.

Nothing leaves the process: each message becomes one INFO log record,
which is where codes are read from in local runs and docker logs.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """EmailSender that writes messages to the log (structural subtyping)."""

    def send_verification_email(self, email: str, code: str) -> None:
        """
        Deliver a one-time code.

        Args:
            email: Normalized recipient address
            code: Plaintext code; the store only ever sees its hash
        """
        logger.info("[VERIFICATION] Email: %s Code: %s", email, code)

    def send_already_registered_email(self, email: str) -> None:
        """Tell the owner of an existing account that someone tried to sign up."""
        logger.info("[ALREADY_REGISTERED] Email: %s", email)
