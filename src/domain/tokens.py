"""
Token issuer - signed, time-bounded JWTs for three distinct purposes.

Token kinds
===========

- ACCESS: short-lived, carries the user id (sub) and role
- REFRESH: long-lived, carries the user id and a unique jti that keys
  the stored refresh record
- SETUP: single-purpose credential-setup token issued after email
  verification, carries purpose="set-password"

Each kind is signed with its own key and carries a "kind" claim that is
checked on decode, so a token minted for one purpose is rejected by the
verifier of every other purpose even if keys were ever shared. Any
failure (signature, expiry, missing claim, wrong kind, malformed subject)
raises UnauthorizedError with one generic message.
"""

import hashlib
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

import jwt

from .exceptions import UnauthorizedError
from .models import INVALID_TOKEN_MESSAGE, Role, utcnow

SET_PASSWORD_PURPOSE = "set-password"


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    SETUP = "setup"


@dataclass(frozen=True)
class AccessClaims:
    user_id: UUID
    role: Role


@dataclass(frozen=True)
class RefreshClaims:
    user_id: UUID
    jti: str


@dataclass(frozen=True)
class SetupClaims:
    user_id: UUID


def hash_token(token: str) -> str:
    """Refresh tokens are stored only as their SHA-256 hex digest."""
    return hashlib.sha256(token.encode()).hexdigest()


class TokenIssuer:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        setup_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        setup_ttl: timedelta,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if len({access_secret, refresh_secret, setup_secret}) != 3:
            raise ValueError("each token kind needs its own signing secret")
        self._keys = {
            TokenKind.ACCESS: access_secret,
            TokenKind.REFRESH: refresh_secret,
            TokenKind.SETUP: setup_secret,
        }
        self._ttls = {
            TokenKind.ACCESS: access_ttl,
            TokenKind.REFRESH: refresh_ttl,
            TokenKind.SETUP: setup_ttl,
        }
        self.algorithm = algorithm
        self.clock = clock

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[TokenKind.ACCESS]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[TokenKind.REFRESH]

    def issue_access(self, user_id: UUID, role: Role) -> str:
        return self._encode(TokenKind.ACCESS, user_id, {"role": Role(role).value})

    def issue_refresh(self, user_id: UUID, jti: str) -> str:
        return self._encode(TokenKind.REFRESH, user_id, {"jti": jti})

    def issue_setup(self, user_id: UUID) -> str:
        return self._encode(TokenKind.SETUP, user_id, {"purpose": SET_PASSWORD_PURPOSE})

    def verify_access(self, token: str | None) -> AccessClaims:
        payload = self._decode(token, TokenKind.ACCESS, ("role",))
        try:
            role = Role(payload["role"])
        except ValueError:
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from None
        return AccessClaims(user_id=self._subject(payload), role=role)

    def verify_refresh(self, token: str | None) -> RefreshClaims:
        payload = self._decode(token, TokenKind.REFRESH, ("jti",))
        return RefreshClaims(user_id=self._subject(payload), jti=str(payload["jti"]))

    def verify_setup(self, token: str | None) -> SetupClaims:
        payload = self._decode(token, TokenKind.SETUP, ("purpose",))
        if payload["purpose"] != SET_PASSWORD_PURPOSE:
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)
        return SetupClaims(user_id=self._subject(payload))

    def _encode(self, kind: TokenKind, user_id: UUID, claims: dict[str, Any]) -> str:
        now = self.clock()
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "kind": kind.value,
            "iat": now,
            "exp": now + self._ttls[kind],
        }
        payload.update(claims)
        return jwt.encode(payload, self._keys[kind], algorithm=self.algorithm)

    def _decode(
        self, token: str | None, kind: TokenKind, extra_claims: tuple[str, ...]
    ) -> dict[str, Any]:
        if not token:
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)
        try:
            payload = jwt.decode(
                token,
                self._keys[kind],
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "sub", "kind", *extra_claims]},
            )
        except jwt.PyJWTError:
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from None

        if payload["kind"] != kind.value:
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)
        return payload

    @staticmethod
    def _subject(payload: dict[str, Any]) -> UUID:
        try:
            return UUID(payload["sub"])
        except (TypeError, ValueError):
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from None
