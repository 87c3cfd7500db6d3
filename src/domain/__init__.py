"""
Domain layer - Pure business logic with no web or database imports.

This package contains the account lifecycle and OTP state machines and the
refresh-token rotation protocol. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .authentication import AuthenticationService
from .exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from .models import (
    EmailVerification,
    OperationResult,
    RefreshTokenRecord,
    RegistrationOutcome,
    RegistrationResult,
    Role,
    TokenPair,
    User,
)
from .otp import OtpGenerator
from .passwords import PasswordHasher
from .ports import CredentialStore, CredentialTransaction, EmailSender
from .registration import RegistrationService
from .tokens import TokenIssuer
from .verification import VerificationService

__all__ = [
    "AuthError",
    "AuthenticationService",
    "ConflictError",
    "CredentialStore",
    "CredentialTransaction",
    "EmailSender",
    "EmailVerification",
    "NotFoundError",
    "OperationResult",
    "OtpGenerator",
    "PasswordHasher",
    "RefreshTokenRecord",
    "RegistrationOutcome",
    "RegistrationResult",
    "RegistrationService",
    "Role",
    "StorageError",
    "TokenIssuer",
    "TokenPair",
    "UnauthorizedError",
    "User",
    "ValidationError",
    "VerificationService",
]
