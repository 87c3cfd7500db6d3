"""
Domain models - Entities, result types, and user-facing messages.

Result objects keep a machine-readable discriminant (outcome / ok) apart
from the human-facing message, so callers never branch on display text.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

# User-facing messages
EMAIL_MESSAGE = "Verification email sent. Please check your inbox."
COOLDOWN_MESSAGE = "Please wait before requesting another code."
RESEND_MESSAGE = "If an account exists, a new code has been sent."
OTP_INVALID_MESSAGE = "OTP is invalid or expired"
EMAIL_VERIFIED_MESSAGE = "Email verified successfully"
PASSWORD_SET_MESSAGE = "Password set successfully"
PASSWORD_SET_FAILED_MESSAGE = "Something went wrong. Please try again later."
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials or account not verified"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"
SESSION_EXPIRED_MESSAGE = "Session expired, please login again"
LOGGED_OUT_MESSAGE = "Logged out successfully"


class Role(str, Enum):
    """Role claim carried in access tokens."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


class RegistrationOutcome(str, Enum):
    """
    Branch taken by the registration state machine.

    - NEW_USER: no row existed, user and first OTP created
    - RESENT_OTP: unverified user, previous OTPs invalidated, new one issued
    - ALREADY_VERIFIED: verified user, nothing written
    - COOLDOWN: unverified user with an OTP younger than the cooldown
    """

    NEW_USER = "NEW_USER"
    RESENT_OTP = "RESENT_OTP"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    COOLDOWN = "COOLDOWN"


@dataclass(frozen=True)
class User:
    id: UUID
    email: str
    role: Role
    is_verified: bool
    created_at: datetime
    password_hash: str | None = None


@dataclass(frozen=True)
class EmailVerification:
    id: UUID
    user_id: UUID
    otp_hash: str
    expires_at: datetime
    created_at: datetime
    retries: int = 0
    used_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        """Unused and not yet expired."""
        return self.used_at is None and self.expires_at > now


@dataclass(frozen=True)
class RefreshTokenRecord:
    jti: str
    user_id: UUID
    token_hash: str
    expires_at: datetime
    created_at: datetime


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a signup attempt. Always success-shaped."""

    outcome: RegistrationOutcome
    message: str
    email: str | None = None
    ok: bool = True


@dataclass(frozen=True)
class OperationResult:
    """Generic ok/message result; data carries an optional payload."""

    ok: bool
    message: str
    data: str | None = None

    @classmethod
    def success(cls, message: str, data: str | None = None) -> "OperationResult":
        return cls(ok=True, message=message, data=data)

    @classmethod
    def failure(cls, reason: str) -> "OperationResult":
        return cls(ok=False, message=reason)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()
