"""
PostgreSQL repository adapter - Implements the CredentialStore protocol.

This module provides the PostgreSQL implementation of the domain's
credential store port using psycopg3 with raw SQL.

Concurrency Design - Row Locks, Not Application Locks:
------------------------------------------------------
1. **SELECT ... FOR UPDATE**: Locked reads on the user row (signup, resend)
   and on the latest OTP row (validation) serialize concurrent requests for
   the same email until the transaction ends.

2. **INSERT ... ON CONFLICT (email) DO NOTHING RETURNING**: The unique
   constraint on users.email is the source of truth for account existence.
   A losing insert returns no row instead of raising, and the domain steps
   aside onto the winner's row.

3. **UPDATE ... WHERE is_verified AND password IS NULL**: Password
   establishment is single-use without a token-consumption table.

4. **DELETE ... RETURNING**: Refresh-token lookup and consumption are one
   statement, so two concurrent rotations cannot both see the record.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from psycopg import Connection
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import StorageError
from src.domain.models import EmailVerification, RefreshTokenRecord, Role, User

logger = logging.getLogger(__name__)

_USER_COLUMNS = "id, email, password, role, is_verified, created_at"
_OTP_COLUMNS = "id, user_id, otp_hash, expires_at, used_at, retries, created_at"
_REFRESH_COLUMNS = "jti, user_id, token_hash, expires_at, created_at"


def _to_user(row: dict[str, Any]) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        role=Role(row["role"]),
        is_verified=row["is_verified"],
        created_at=row["created_at"],
        password_hash=row["password"],
    )


def _to_otp(row: dict[str, Any]) -> EmailVerification:
    return EmailVerification(
        id=row["id"],
        user_id=row["user_id"],
        otp_hash=row["otp_hash"],
        expires_at=row["expires_at"],
        created_at=row["created_at"],
        retries=row["retries"],
        used_at=row["used_at"],
    )


def _to_refresh(row: dict[str, Any]) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        jti=row["jti"],
        user_id=row["user_id"],
        token_hash=row["token_hash"],
        expires_at=row["expires_at"],
        created_at=row["created_at"],
    )


class PostgresCredentialTransaction:
    """
    Implements CredentialTransaction on one connection inside one transaction.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def _fetchone(self, sql: str, params: tuple) -> dict[str, Any] | None:
        with self._conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            return cursor.fetchone()

    def _execute(self, sql: str, params: tuple) -> int:
        with self._conn.cursor() as cursor:
            cursor.execute(sql, params)
            return cursor.rowcount

    def lock_user_by_email(self, email: str) -> User | None:
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s FOR UPDATE"
        row = self._fetchone(sql, (email,))
        return _to_user(row) if row is not None else None

    def insert_user(self, email: str) -> User | None:
        sql = f"""
            INSERT INTO users (email)
            VALUES (%s)
            ON CONFLICT (email) DO NOTHING
            RETURNING {_USER_COLUMNS}
        """
        row = self._fetchone(sql, (email,))
        return _to_user(row) if row is not None else None

    def lock_latest_otp(self, user_id: UUID) -> EmailVerification | None:
        sql = f"""
            SELECT {_OTP_COLUMNS}
            FROM email_verification
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT 1
            FOR UPDATE
        """
        row = self._fetchone(sql, (user_id,))
        return _to_otp(row) if row is not None else None

    def lock_latest_otp_for_email(self, email: str) -> EmailVerification | None:
        sql = """
            SELECT ev.id, ev.user_id, ev.otp_hash, ev.expires_at, ev.used_at,
                   ev.retries, ev.created_at
            FROM email_verification ev
            JOIN users u ON ev.user_id = u.id
            WHERE u.email = %s
            ORDER BY ev.created_at DESC
            LIMIT 1
            FOR UPDATE OF ev
        """
        row = self._fetchone(sql, (email,))
        return _to_otp(row) if row is not None else None

    def create_otp(
        self, user_id: UUID, otp_hash: str, expires_at: datetime, created_at: datetime
    ) -> EmailVerification:
        sql = f"""
            INSERT INTO email_verification (user_id, otp_hash, expires_at, created_at)
            VALUES (%s, %s, %s, %s)
            RETURNING {_OTP_COLUMNS}
        """
        row = self._fetchone(sql, (user_id, otp_hash, expires_at, created_at))
        if row is None:
            raise StorageError("OTP insert returned no row")
        return _to_otp(row)

    def invalidate_otps(self, user_id: UUID, used_at: datetime) -> int:
        sql = """
            UPDATE email_verification
            SET used_at = %s
            WHERE user_id = %s AND used_at IS NULL
        """
        return self._execute(sql, (used_at, user_id))

    def increment_otp_retries(self, otp_id: UUID) -> int:
        sql = """
            UPDATE email_verification
            SET retries = retries + 1
            WHERE id = %s
            RETURNING retries
        """
        row = self._fetchone(sql, (otp_id,))
        if row is None:
            raise StorageError("OTP record vanished while locked")
        return row["retries"]

    def mark_otp_used(self, otp_id: UUID, used_at: datetime) -> None:
        sql = "UPDATE email_verification SET used_at = %s WHERE id = %s AND used_at IS NULL"
        self._execute(sql, (used_at, otp_id))

    def mark_user_verified(self, user_id: UUID) -> None:
        sql = "UPDATE users SET is_verified = TRUE WHERE id = %s AND is_verified = FALSE"
        self._execute(sql, (user_id,))


class PostgresCredentialStore:
    """
    Implements CredentialStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def transaction(self) -> Iterator[PostgresCredentialTransaction]:
        """
        Run a block in one transaction on one pooled connection.

        conn.transaction() commits on normal exit and rolls back (then
        re-raises) when the block raises.
        """
        with self._pool.connection() as conn, conn.transaction():
            yield PostgresCredentialTransaction(conn)

    def get_user_by_email(self, email: str) -> User | None:
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _to_user(row) if row is not None else None

    def get_user_by_id(self, user_id: UUID) -> User | None:
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (user_id,))
            row = cursor.fetchone()
        return _to_user(row) if row is not None else None

    def set_password_once(self, user_id: UUID, password_hash: str) -> bool:
        sql = """
            UPDATE users
            SET password = %s
            WHERE id = %s
              AND is_verified = TRUE
              AND password IS NULL
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (password_hash, user_id))
            conn.commit()
            return cursor.rowcount == 1

    def save_refresh_token(self, record: RefreshTokenRecord) -> None:
        sql = """
            INSERT INTO refresh_token (jti, user_id, token_hash, expires_at, created_at)
            VALUES (%s, %s, %s, %s, %s)
        """
        with self._pool.connection() as conn:
            conn.execute(
                sql,
                (record.jti, record.user_id, record.token_hash, record.expires_at, record.created_at),
            )
            conn.commit()

    def consume_refresh_token(self, jti: str) -> RefreshTokenRecord | None:
        sql = f"DELETE FROM refresh_token WHERE jti = %s RETURNING {_REFRESH_COLUMNS}"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (jti,))
            row = cursor.fetchone()
            conn.commit()
        return _to_refresh(row) if row is not None else None


def run_migrations(pool: ConnectionPool) -> None:
    """
    Apply every migrations/*.sql file in filename order.

    Files must be idempotent (CREATE ... IF NOT EXISTS) because they run
    on every startup.

    Raises:
        RuntimeError: naming the first file that failed
    """
    migrations_dir = Path(__file__).resolve().parents[3] / "migrations"
    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.warning("No migrations found in %s", migrations_dir)
        return

    for sql_file in sql_files:
        logger.info("Applying migration %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
        except Exception as e:
            logger.error("Migration %s failed: %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
