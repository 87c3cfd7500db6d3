"""Unit tests for OtpGenerator."""

import re
from datetime import timedelta

from src.domain.models import utcnow
from src.domain.otp import OtpGenerator


def _generator(secret: str = "otp-test-key") -> OtpGenerator:
    return OtpGenerator(secret, timedelta(minutes=15))


def test_code_is_six_lowercase_hex() -> None:
    issued = _generator().generate(utcnow())

    assert re.fullmatch(r"[0-9a-f]{6}", issued.code)


def test_expiry_is_now_plus_ttl() -> None:
    now = utcnow()

    issued = _generator().generate(now)

    assert issued.expires_at == now + timedelta(minutes=15)


def test_plaintext_code_not_stored() -> None:
    issued = _generator().generate(utcnow())

    assert issued.code not in issued.otp_hash
    assert len(issued.otp_hash) == 64


def test_match_ignores_case_and_whitespace() -> None:
    generator = _generator()
    issued = generator.generate(utcnow())

    assert generator.matches(issued.otp_hash, issued.code)
    assert generator.matches(issued.otp_hash, f"  {issued.code.upper()} ")


def test_wrong_code_does_not_match() -> None:
    generator = _generator()
    stored = generator.hash_code("abc123")

    assert not generator.matches(stored, "abc124")


def test_hash_depends_on_secret() -> None:
    assert _generator("one").hash_code("abc123") != _generator("two").hash_code("abc123")
