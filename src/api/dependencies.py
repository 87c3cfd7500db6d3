"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta
from uuid import UUID

from fastapi import Cookie, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresCredentialStore
from src.config.settings import Settings, get_settings
from src.domain.authentication import AuthenticationService
from src.domain.exceptions import UnauthorizedError
from src.domain.models import INVALID_TOKEN_MESSAGE
from src.domain.otp import OtpGenerator
from src.domain.passwords import PasswordHasher
from src.domain.ports import CredentialStore, EmailSender
from src.domain.registration import RegistrationService
from src.domain.tokens import AccessClaims, TokenIssuer
from src.domain.verification import VerificationService

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_store(request: Request) -> CredentialStore:
    """Create credential store with connection pool from app state."""
    pool = get_pool(request)
    return PostgresCredentialStore(pool)


def get_email_sender(request: Request) -> EmailSender:
    """Get the background email sender created at startup."""
    return request.app.state.email_sender


def get_token_issuer(settings: Settings = Depends(get_settings)) -> TokenIssuer:
    return TokenIssuer(
        access_secret=settings.jwt_access_secret,
        refresh_secret=settings.jwt_refresh_secret,
        setup_secret=settings.jwt_setup_secret,
        access_ttl=timedelta(seconds=settings.access_token_ttl_seconds),
        refresh_ttl=timedelta(seconds=settings.refresh_token_ttl_seconds),
        setup_ttl=timedelta(seconds=settings.setup_token_ttl_seconds),
        algorithm=settings.jwt_algorithm,
    )


def get_otp_generator(settings: Settings = Depends(get_settings)) -> OtpGenerator:
    return OtpGenerator(settings.otp_secret, timedelta(seconds=settings.otp_ttl_seconds))


def get_password_hasher(settings: Settings = Depends(get_settings)) -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_cost)


def get_registration_service(
    store: CredentialStore = Depends(get_store),
    email_sender: EmailSender = Depends(get_email_sender),
    otp_generator: OtpGenerator = Depends(get_otp_generator),
    settings: Settings = Depends(get_settings),
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the store and email sender for the domain service.
    """
    return RegistrationService(
        store=store,
        email_sender=email_sender,
        otp_generator=otp_generator,
        cooldown=timedelta(seconds=settings.otp_cooldown_seconds),
    )


def get_verification_service(
    store: CredentialStore = Depends(get_store),
    otp_generator: OtpGenerator = Depends(get_otp_generator),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> VerificationService:
    return VerificationService(
        store=store,
        otp_generator=otp_generator,
        token_issuer=token_issuer,
        max_retries=settings.otp_max_retries,
    )


def get_authentication_service(
    store: CredentialStore = Depends(get_store),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
) -> AuthenticationService:
    return AuthenticationService(
        store=store, token_issuer=token_issuer, password_hasher=password_hasher
    )


# Bearer scheme for OpenAPI documentation; missing headers are handled below
http_bearer = HTTPBearer(auto_error=False)


def get_setup_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> UUID:
    """
    Resolve the user id from a set-password token in the Authorization header.

    Access and refresh tokens are rejected: they are signed with different
    keys and carry a different kind claim.
    """
    if credentials is None:
        raise UnauthorizedError(INVALID_TOKEN_MESSAGE)
    return token_issuer.verify_setup(credentials.credentials).user_id


def get_access_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    access_cookie: str | None = Cookie(default=None, alias=ACCESS_COOKIE),
    service: AuthenticationService = Depends(get_authentication_service),
) -> AccessClaims:
    """Authenticate the caller from a Bearer header or the access-token cookie."""
    token = credentials.credentials if credentials is not None else access_cookie
    return service.authenticate(token)
