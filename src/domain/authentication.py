"""
Authentication domain service - credentials and refresh-token rotation.

Covers password establishment, login, refresh rotation, logout and
access-token authentication.

Refresh rotation protocol
=========================

1. Verify signature and expiry of the presented refresh token.
2. Atomically delete the stored record for its jti (DELETE ... RETURNING).
   No record means never issued, already rotated, or logged out; all
   three fail the same way.
3. Check the stored hash, owner and expiry of the consumed record.
4. Re-read the user's current role and issue a new pair with a new jti.

Because the record is consumed before a replacement exists, a replayed
token can never authorize a second rotation, and of two concurrent
rotations with the same token only one receives the record.
"""

import hmac
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from .exceptions import UnauthorizedError
from .models import (
    INVALID_CREDENTIALS_MESSAGE,
    LOGGED_OUT_MESSAGE,
    PASSWORD_SET_FAILED_MESSAGE,
    PASSWORD_SET_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    OperationResult,
    RefreshTokenRecord,
    Role,
    TokenPair,
    normalize_email,
    utcnow,
)
from .passwords import PasswordHasher
from .ports import CredentialStore
from .tokens import AccessClaims, TokenIssuer, hash_token

logger = logging.getLogger(__name__)


@dataclass
class AuthenticationService:
    store: CredentialStore
    token_issuer: TokenIssuer
    password_hasher: PasswordHasher
    clock: Callable[[], datetime] = field(default=utcnow)

    def set_password(self, user_id: UUID, password: str) -> OperationResult:
        """
        Establish the password of a verified account exactly once.

        The store only updates rows where is_verified is true and password
        is still NULL, so a replayed or concurrent duplicate request
        affects zero rows and reports failure.

        Args:
            user_id: Subject of a verified setup token
            password: Plaintext password that already passed the policy
        """
        password_hash = self.password_hasher.hash(password)
        if self.store.set_password_once(user_id, password_hash):
            return OperationResult.success(PASSWORD_SET_MESSAGE)
        return OperationResult.failure(PASSWORD_SET_FAILED_MESSAGE)

    def login(self, email: str, password: str) -> TokenPair:
        """
        Exchange credentials for an access/refresh token pair.

        bcrypt runs whether or not the user exists, and every failure
        raises the same UnauthorizedError.
        """
        user = self.store.get_user_by_email(normalize_email(email))

        stored_hash = user.password_hash if user is not None else None
        password_valid = self.password_hasher.verify(password, stored_hash)

        if user is None or not user.is_verified or stored_hash is None or not password_valid:
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        return self._issue_pair(user.id, user.role)

    def rotate(self, refresh_token: str | None) -> TokenPair:
        """Consume a refresh token and issue its replacement pair."""
        claims = self.token_issuer.verify_refresh(refresh_token)

        record = self.store.consume_refresh_token(claims.jti)
        if record is None:
            logger.warning("Refresh token %s is unknown or already used", claims.jti)
            raise UnauthorizedError(SESSION_EXPIRED_MESSAGE)

        hash_valid = hmac.compare_digest(record.token_hash, hash_token(refresh_token))
        if not hash_valid or record.user_id != claims.user_id or record.expires_at <= self.clock():
            logger.warning("Refresh token %s failed stored-record checks", claims.jti)
            raise UnauthorizedError(SESSION_EXPIRED_MESSAGE)

        user = self.store.get_user_by_id(claims.user_id)
        if user is None:
            raise UnauthorizedError(SESSION_EXPIRED_MESSAGE)

        return self._issue_pair(user.id, user.role)

    def logout(self, refresh_token: str | None) -> OperationResult:
        """Revoke a refresh token. An already-absent record is not an error."""
        claims = self.token_issuer.verify_refresh(refresh_token)
        self.store.consume_refresh_token(claims.jti)
        return OperationResult.success(LOGGED_OUT_MESSAGE)

    def authenticate(self, access_token: str | None) -> AccessClaims:
        return self.token_issuer.verify_access(access_token)

    def _issue_pair(self, user_id: UUID, role: Role) -> TokenPair:
        jti = str(uuid.uuid4())
        access_token = self.token_issuer.issue_access(user_id, role)
        refresh_token = self.token_issuer.issue_refresh(user_id, jti)

        now = self.clock()
        self.store.save_refresh_token(
            RefreshTokenRecord(
                jti=jti,
                user_id=user_id,
                token_hash=hash_token(refresh_token),
                expires_at=now + self.token_issuer.refresh_ttl,
                created_at=now,
            )
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)
