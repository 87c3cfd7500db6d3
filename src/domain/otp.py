"""
One-time code generation and hashing.

Codes are 6 lowercase hex characters drawn from the secrets module.
Only an HMAC-SHA256 digest of the code is ever stored; comparison
uses hmac.compare_digest so match time does not depend on content.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

OTP_BYTES = 3


@dataclass(frozen=True)
class IssuedOtp:
    """Plaintext code for delivery plus the values to persist."""

    code: str
    otp_hash: str
    expires_at: datetime


class OtpGenerator:
    def __init__(self, secret: str, ttl: timedelta) -> None:
        self._key = secret.encode()
        self.ttl = ttl

    def generate(self, now: datetime) -> IssuedOtp:
        code = secrets.token_hex(OTP_BYTES)
        return IssuedOtp(code=code, otp_hash=self.hash_code(code), expires_at=now + self.ttl)

    def hash_code(self, code: str) -> str:
        normalized = code.strip().lower()
        return hmac.new(self._key, normalized.encode(), hashlib.sha256).hexdigest()

    def matches(self, stored_hash: str, code: str) -> bool:
        return hmac.compare_digest(stored_hash.encode(), self.hash_code(code).encode())
