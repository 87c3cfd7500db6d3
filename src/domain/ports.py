"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol
from uuid import UUID

from .models import EmailVerification, RefreshTokenRecord, User


class CredentialTransaction(Protocol):
    """
    Operations available inside a single store transaction.

    Every "lock_" read takes a row lock (SELECT ... FOR UPDATE) that is
    held until the transaction ends, serializing concurrent requests
    for the same user.
    """

    def lock_user_by_email(self, email: str) -> User | None:
        """Fetch and lock the user row for an email, or None if absent."""
        ...

    def insert_user(self, email: str) -> User | None:
        """
        Insert an unverified user with no password.

        Returns None instead of raising when another transaction already
        owns the email (unique constraint), so the caller can step aside.
        """
        ...

    def lock_latest_otp(self, user_id: UUID) -> EmailVerification | None:
        """Fetch and lock the most recent OTP record for a user."""
        ...

    def lock_latest_otp_for_email(self, email: str) -> EmailVerification | None:
        """Fetch and lock the most recent OTP record joined on user email."""
        ...

    def create_otp(
        self, user_id: UUID, otp_hash: str, expires_at: datetime, created_at: datetime
    ) -> EmailVerification:
        ...

    def invalidate_otps(self, user_id: UUID, used_at: datetime) -> int:
        """Mark every unused OTP record for a user as used. Returns row count."""
        ...

    def increment_otp_retries(self, otp_id: UUID) -> int:
        """Increment the retry counter and return its new value."""
        ...

    def mark_otp_used(self, otp_id: UUID, used_at: datetime) -> None:
        ...

    def mark_user_verified(self, user_id: UUID) -> None:
        ...


class CredentialStore(Protocol):
    """Port interface for users, OTP records and refresh tokens."""

    def transaction(self) -> AbstractContextManager[CredentialTransaction]:
        """
        Open a transaction.

        Commits when the block exits normally and rolls back when it
        raises; the exception is re-raised.
        """
        ...

    def get_user_by_email(self, email: str) -> User | None:
        ...

    def get_user_by_id(self, user_id: UUID) -> User | None:
        ...

    def set_password_once(self, user_id: UUID, password_hash: str) -> bool:
        """
        Set the password only where is_verified AND password IS NULL.

        Returns True when exactly one row was updated.
        """
        ...

    def save_refresh_token(self, record: RefreshTokenRecord) -> None:
        ...

    def consume_refresh_token(self, jti: str) -> RefreshTokenRecord | None:
        """
        Atomically delete and return the stored record for a jti.

        Of two concurrent callers presenting the same jti, at most one
        receives the record.
        """
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_email(self, email: str, code: str) -> None:
        """
        Send a verification code to an email address.

        Args:
            email: Recipient email address
            code: One-time code in plaintext
        """
        ...

    def send_already_registered_email(self, email: str) -> None:
        """Tell the mailbox owner that the address already has an account."""
        ...
