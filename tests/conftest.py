"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Settings with test signing secrets
- In-memory credential store, recording email sender, controllable clock
- Domain services wired to those doubles
- A PostgreSQL pool for tests that need the real adapter
"""

from collections.abc import Generator
from datetime import timedelta

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import run_migrations
from src.config.settings import Settings, get_settings
from src.domain.authentication import AuthenticationService
from src.domain.otp import OtpGenerator
from src.domain.passwords import PasswordHasher
from src.domain.registration import RegistrationService
from src.domain.tokens import TokenIssuer
from src.domain.verification import VerificationService
from tests.fakes import FakeClock, InMemoryCredentialStore, RecordingEmailSender


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        otp_secret="test-otp-hmac-key-000000000000000000",
        jwt_access_secret="test-access-signing-key-00000000000000",
        jwt_refresh_secret="test-refresh-signing-key-0000000000000",
        jwt_setup_secret="test-setup-signing-key-000000000000000",
        bcrypt_cost=10,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def otp_generator(settings: Settings) -> OtpGenerator:
    return OtpGenerator(settings.otp_secret, timedelta(seconds=settings.otp_ttl_seconds))


@pytest.fixture
def token_issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(
        access_secret=settings.jwt_access_secret,
        refresh_secret=settings.jwt_refresh_secret,
        setup_secret=settings.jwt_setup_secret,
        access_ttl=timedelta(seconds=settings.access_token_ttl_seconds),
        refresh_ttl=timedelta(seconds=settings.refresh_token_ttl_seconds),
        setup_ttl=timedelta(seconds=settings.setup_token_ttl_seconds),
    )


@pytest.fixture(scope="session")
def password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=10)


@pytest.fixture
def registration_service(
    store: InMemoryCredentialStore,
    email_sender: RecordingEmailSender,
    otp_generator: OtpGenerator,
    clock: FakeClock,
) -> RegistrationService:
    return RegistrationService(
        store=store, email_sender=email_sender, otp_generator=otp_generator, clock=clock
    )


@pytest.fixture
def verification_service(
    store: InMemoryCredentialStore,
    otp_generator: OtpGenerator,
    token_issuer: TokenIssuer,
    clock: FakeClock,
) -> VerificationService:
    return VerificationService(
        store=store, otp_generator=otp_generator, token_issuer=token_issuer, clock=clock
    )


@pytest.fixture
def authentication_service(
    store: InMemoryCredentialStore,
    token_issuer: TokenIssuer,
    password_hasher: PasswordHasher,
    clock: FakeClock,
) -> AuthenticationService:
    return AuthenticationService(
        store=store, token_issuer=token_issuer, password_hasher=password_hasher, clock=clock
    )


@pytest.fixture(scope="session")
def postgres_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against DATABASE_URL with migrations applied.

    Tests depending on this fixture are skipped when PostgreSQL is not
    reachable.
    """
    pool = ConnectionPool(
        conninfo=get_settings().database_url, min_size=1, max_size=20, open=False
    )
    try:
        pool.open(wait=True, timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable at DATABASE_URL")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_postgres(postgres_pool: ConnectionPool) -> Generator[ConnectionPool, None, None]:
    """Empty every table before the test and hand back the pool."""
    with postgres_pool.connection() as conn:
        conn.execute("TRUNCATE refresh_token, email_verification, users")
    yield postgres_pool
