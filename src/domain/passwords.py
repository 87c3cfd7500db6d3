"""
Password hashing with bcrypt.

bcrypt.checkpw() is constant-time with respect to the candidate and its
cost dominates response time. When there is no stored hash to compare
against (unknown email, password not yet set) verify() compares against
a dummy hash generated at the same cost, so "no such user" and "wrong
password" take the same time.
"""

from functools import lru_cache

import bcrypt

# bcrypt only reads the first 72 bytes; newer releases reject longer input
BCRYPT_MAX_BYTES = 72


@lru_cache
def _dummy_hash(rounds: int) -> bytes:
    return bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(rounds))


def _encode(password: str) -> bytes:
    return password.encode()[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._dummy = _dummy_hash(rounds)

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, password: str, password_hash: str | None) -> bool:
        """
        Check a password against a stored hash.

        Always runs bcrypt, even when password_hash is None, in which case
        the result is False.
        """
        target = password_hash.encode() if password_hash is not None else self._dummy
        matched = bcrypt.checkpw(_encode(password), target)
        return matched and password_hash is not None
