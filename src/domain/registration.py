"""
Registration domain service - account lifecycle state machine.

This module contains the signup and resend-OTP flows. Both run inside a
single store transaction with the user row locked (SELECT ... FOR UPDATE),
so concurrent requests for the same email are serialized.

Registration State Machine
==========================

Given an email, the locked read decides the branch:

    row absent          -> insert user + first OTP          (NEW_USER)
    row verified        -> no writes                        (ALREADY_VERIFIED)
    row unverified:
        latest OTP younger than cooldown -> no writes       (COOLDOWN)
        otherwise -> invalidate unused OTPs, insert new one (RESENT_OTP)

If the insert loses a race on the unique email constraint, the request
steps aside: it re-reads the winner's row under lock and continues as
though it had observed that row in the first place.

Every outcome is success-shaped so callers cannot tell whether an email
is registered. Emails are sent only after the transaction has resolved,
and a failed send is logged, never raised.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .exceptions import StorageError
from .models import (
    COOLDOWN_MESSAGE,
    EMAIL_MESSAGE,
    RESEND_MESSAGE,
    OperationResult,
    RegistrationOutcome,
    RegistrationResult,
    User,
    normalize_email,
    utcnow,
)
from .otp import IssuedOtp, OtpGenerator
from .ports import CredentialStore, CredentialTransaction, EmailSender

logger = logging.getLogger(__name__)

OTP_COOLDOWN = timedelta(minutes=2)


@dataclass
class RegistrationService:
    """
    Domain service for signup and OTP re-issuance.

    Orchestrates the locked state machine, OTP generation and the
    post-commit notification.
    """

    store: CredentialStore
    email_sender: EmailSender
    otp_generator: OtpGenerator
    cooldown: timedelta = OTP_COOLDOWN
    clock: Callable[[], datetime] = field(default=utcnow)

    def register(self, email: str) -> RegistrationResult:
        """
        Begin signup for an email address.

        Args:
            email: User's email address (will be normalized)

        Returns:
            RegistrationResult whose outcome records the branch taken
        """
        normalized_email = normalize_email(email)
        now = self.clock()
        issued = self.otp_generator.generate(now)

        with self.store.transaction() as tx:
            result = self._register_locked(tx, normalized_email, issued, now)

        if result.outcome in (RegistrationOutcome.NEW_USER, RegistrationOutcome.RESENT_OTP):
            self._send_verification(normalized_email, issued.code)
        elif result.outcome is RegistrationOutcome.ALREADY_VERIFIED:
            self._send_already_registered(normalized_email)

        return result

    def resend_otp(self, email: str) -> OperationResult:
        """
        Re-issue a verification code for an unverified account.

        Reports the same generic message whether the account is absent,
        verified, cooling down or actually received a new code.
        """
        normalized_email = normalize_email(email)
        now = self.clock()
        issued = self.otp_generator.generate(now)

        with self.store.transaction() as tx:
            user = tx.lock_user_by_email(normalized_email)
            if user is None:
                outcome = None
            elif user.is_verified:
                outcome = RegistrationOutcome.ALREADY_VERIFIED
            else:
                outcome = self._rotate_otp(tx, user, issued, now)

        if outcome is RegistrationOutcome.RESENT_OTP:
            self._send_verification(normalized_email, issued.code)
        elif outcome is RegistrationOutcome.ALREADY_VERIFIED:
            self._send_already_registered(normalized_email)

        return OperationResult.success(RESEND_MESSAGE)

    def _register_locked(
        self, tx: CredentialTransaction, email: str, issued: IssuedOtp, now: datetime
    ) -> RegistrationResult:
        user = tx.lock_user_by_email(email)

        if user is None:
            created = tx.insert_user(email)
            if created is not None:
                tx.create_otp(created.id, issued.otp_hash, issued.expires_at, now)
                return RegistrationResult(RegistrationOutcome.NEW_USER, EMAIL_MESSAGE, email)

            # Lost the insert race: continue against the winner's row
            logger.info("Concurrent signup already created %s, stepping aside", email)
            user = tx.lock_user_by_email(email)
            if user is None:
                raise StorageError("User row missing after unique-constraint conflict")

        if user.is_verified:
            return RegistrationResult(RegistrationOutcome.ALREADY_VERIFIED, EMAIL_MESSAGE, email)

        outcome = self._rotate_otp(tx, user, issued, now)
        if outcome is RegistrationOutcome.COOLDOWN:
            return RegistrationResult(outcome, COOLDOWN_MESSAGE)
        return RegistrationResult(outcome, EMAIL_MESSAGE, email)

    def _rotate_otp(
        self, tx: CredentialTransaction, user: User, issued: IssuedOtp, now: datetime
    ) -> RegistrationOutcome:
        """
        Cooldown check plus rotation for an unverified, locked user.

        Only the most recent code may stay active, so every unused record
        is invalidated before the new one is inserted.
        """
        latest = tx.lock_latest_otp(user.id)
        if latest is not None and now - latest.created_at <= self.cooldown:
            return RegistrationOutcome.COOLDOWN

        tx.invalidate_otps(user.id, now)
        tx.create_otp(user.id, issued.otp_hash, issued.expires_at, now)
        return RegistrationOutcome.RESENT_OTP

    def _send_verification(self, email: str, code: str) -> None:
        try:
            self.email_sender.send_verification_email(email, code)
        except Exception:
            logger.exception("Failed to send verification email to %s", email)

    def _send_already_registered(self, email: str) -> None:
        try:
            self.email_sender.send_already_registered_email(email)
        except Exception:
            logger.exception("Failed to send already-registered email to %s", email)
