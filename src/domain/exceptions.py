"""
Domain exceptions - Semantic error types for the authentication core.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Each carries a status_code hint the API layer uses for its response.
"""


class AuthError(Exception):
    """Base class for authentication domain errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AuthError):
    """Malformed input that slipped past the request schema."""

    status_code = 400


class UnauthorizedError(AuthError):
    """Bad credentials, or an invalid, expired, or wrong-kind token."""

    status_code = 401


class NotFoundError(AuthError):
    """Requested resource does not exist."""

    status_code = 404


class ConflictError(AuthError):
    """Resource state conflict. Enumeration-safe flows never raise it."""

    status_code = 409


class StorageError(AuthError):
    """Credential store returned a state the domain cannot reconcile."""

    status_code = 500
