"""
Shared fixtures for adversarial tests.

Every attack runs twice: against the in-memory store (always) and
against PostgreSQL (skipped when the database is unreachable), so the
row-lock SQL is exercised under real concurrency whenever it can be.
"""

import pytest

from src.adapters.repository.postgres import PostgresCredentialStore
from src.domain.authentication import AuthenticationService
from src.domain.otp import OtpGenerator
from src.domain.passwords import PasswordHasher
from src.domain.ports import CredentialStore
from src.domain.registration import RegistrationService
from src.domain.tokens import TokenIssuer
from src.domain.verification import VerificationService
from tests.fakes import FakeClock, InMemoryCredentialStore, RecordingEmailSender

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(params=["memory", "postgres"])
def backend(request: pytest.FixtureRequest) -> CredentialStore:
    if request.param == "memory":
        return InMemoryCredentialStore()
    pool = request.getfixturevalue("clean_postgres")
    return PostgresCredentialStore(pool)

@pytest.fixture
def registration(
    backend: CredentialStore,
    email_sender: RecordingEmailSender,
    otp_generator: OtpGenerator,
    clock: FakeClock,
) -> RegistrationService:
    return RegistrationService(
        store=backend, email_sender=email_sender, otp_generator=otp_generator, clock=clock
    )

@pytest.fixture
def verification(
    backend: CredentialStore,
    otp_generator: OtpGenerator,
    token_issuer: TokenIssuer,
    clock: FakeClock,
) -> VerificationService:
    return VerificationService(
        store=backend, otp_generator=otp_generator, token_issuer=token_issuer, clock=clock
    )

@pytest.fixture
def authentication(
    backend: CredentialStore,
    token_issuer: TokenIssuer,
    password_hasher: PasswordHasher,
    clock: FakeClock,
) -> AuthenticationService:
    return AuthenticationService(
        store=backend, token_issuer=token_issuer, password_hasher=password_hasher, clock=clock
    )
