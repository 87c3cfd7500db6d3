"""Setup and inspection helpers shared by the adversarial tests."""

from uuid import UUID

from psycopg.rows import dict_row

from src.domain.authentication import AuthenticationService
from src.domain.models import EmailVerification
from src.domain.ports import CredentialStore
from src.domain.registration import RegistrationService
from src.domain.verification import VerificationService
from tests.fakes import TEST_PASSWORD, InMemoryCredentialStore, RecordingEmailSender

ATTACKERS = 10


def verified_user(
    registration: RegistrationService,
    verification: VerificationService,
    email_sender: RecordingEmailSender,
    email: str,
) -> UUID:
    """Sign up and verify an address through the services; return the user id."""
    registration.register(email)
    result = verification.validate_otp(email, email_sender.last_code_for(email))
    assert result.ok
    return registration.store.get_user_by_email(email).id


def active_account(
    registration: RegistrationService,
    verification: VerificationService,
    authentication: AuthenticationService,
    email_sender: RecordingEmailSender,
    email: str,
) -> UUID:
    user_id = verified_user(registration, verification, email_sender, email)
    assert authentication.set_password(user_id, TEST_PASSWORD).ok
    return user_id


def verification_records(store: CredentialStore, user_id: UUID) -> list[EmailVerification]:
    """All OTP records for a user, read outside the services."""
    if isinstance(store, InMemoryCredentialStore):
        return store.otps_for(user_id)
    with store._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
        cursor.execute(
            "SELECT id, user_id, otp_hash, expires_at, used_at, retries, created_at "
            "FROM email_verification WHERE user_id = %s",
            (user_id,),
        )
        return [EmailVerification(**row) for row in cursor.fetchall()]


def count_users(store: CredentialStore, email: str) -> int:
    if isinstance(store, InMemoryCredentialStore):
        return sum(1 for user in store.users.values() if user.email == email)
    with store._pool.connection() as conn:
        return conn.execute("SELECT COUNT(*) FROM users WHERE email = %s", (email,)).fetchone()[0]


def count_refresh_tokens(store: CredentialStore) -> int:
    if isinstance(store, InMemoryCredentialStore):
        return len(store.refresh_tokens)
    with store._pool.connection() as conn:
        return conn.execute("SELECT COUNT(*) FROM refresh_token").fetchone()[0]
