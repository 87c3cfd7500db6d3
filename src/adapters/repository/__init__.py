"""Repository adapters - Database implementations."""

from .postgres import PostgresCredentialStore, PostgresCredentialTransaction, run_migrations

__all__ = ["PostgresCredentialStore", "PostgresCredentialTransaction", "run_migrations"]
