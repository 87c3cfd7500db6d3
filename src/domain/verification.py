"""
OTP validation domain service.

Checks a submitted code against the latest stored OTP record inside one
transaction, with that record locked (SELECT ... FOR UPDATE OF ev).

Policy:
- no record, used record, or expired record -> failure
- hash mismatch -> retries += 1; at the retry limit the record is
  invalidated so a fresh code must be requested
- match -> user verified and record used in the same transaction, then a
  short-lived setup token is issued for password establishment

All failures share one message; the caller never learns which check
failed or how many attempts remain. Retry increments are committed
(the failure is a returned result, not an exception), while any
exception rolls the whole transaction back.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from .models import (
    EMAIL_VERIFIED_MESSAGE,
    OTP_INVALID_MESSAGE,
    OperationResult,
    normalize_email,
    utcnow,
)
from .otp import OtpGenerator
from .ports import CredentialStore
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)

OTP_MAX_RETRIES = 5


@dataclass
class VerificationService:
    store: CredentialStore
    otp_generator: OtpGenerator
    token_issuer: TokenIssuer
    max_retries: int = OTP_MAX_RETRIES
    clock: Callable[[], datetime] = field(default=utcnow)

    def validate_otp(self, email: str, code: str) -> OperationResult:
        """
        Verify an emailed code and mark the account verified.

        Args:
            email: Address the code was sent to (will be normalized)
            code: Submitted one-time code

        Returns:
            Success carrying the setup token in data, or a generic failure
        """
        normalized_email = normalize_email(email)
        now = self.clock()

        with self.store.transaction() as tx:
            record = tx.lock_latest_otp_for_email(normalized_email)

            if record is None or not record.is_active(now):
                return OperationResult.failure(OTP_INVALID_MESSAGE)

            if not self.otp_generator.matches(record.otp_hash, code):
                retries = tx.increment_otp_retries(record.id)
                if retries >= self.max_retries:
                    logger.warning(
                        "OTP %s reached %d failed attempts, invalidating", record.id, retries
                    )
                    tx.invalidate_otps(record.user_id, now)
                return OperationResult.failure(OTP_INVALID_MESSAGE)

            tx.mark_user_verified(record.user_id)
            tx.mark_otp_used(record.id, now)

        token = self.token_issuer.issue_setup(record.user_id)
        return OperationResult.success(EMAIL_VERIFIED_MESSAGE, data=token)
