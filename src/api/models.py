"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Input-shape rules (email syntax, OTP format, password policy) live here,
outside the domain.
"""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.domain.passwords import BCRYPT_MAX_BYTES

PASSWORD_MIN_LENGTH = 12
PASSWORD_MAX_BYTES = BCRYPT_MAX_BYTES  # UTF-8 bytes, not characters

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Must contain an uppercase letter"),
    (re.compile(r"[a-z]"), "Must contain a lowercase letter"),
    (re.compile(r"[0-9]"), "Must contain a number"),
    (re.compile(r"[^A-Za-z0-9]"), "Must contain a special character"),
)


class SignupRequest(BaseModel):
    """Request model for signup. The password is collected after verification."""

    email: EmailStr


class EmailRequest(BaseModel):
    """Request model for resending a verification code."""

    email: EmailStr


class VerifyEmailRequest(BaseModel):
    """Request model for email verification."""

    email: EmailStr
    otp: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^[a-fA-F0-9]{6}$",
        description="6-character hex verification code",
    )


class SetPasswordRequest(BaseModel):
    """Request model for establishing the account password."""

    password: str

    @field_validator("password")
    @classmethod
    def _check_policy(cls, value: str) -> str:
        value = value.strip()
        if len(value) < PASSWORD_MIN_LENGTH:
            raise ValueError("Too short")
        if len(value.encode()) > PASSWORD_MAX_BYTES:
            raise ValueError("Too long")
        for pattern, message in _PASSWORD_RULES:
            if not pattern.search(value):
                raise ValueError(message)
        return value


class LoginRequest(BaseModel):
    """Request model for credential login."""

    email: EmailStr
    password: str = Field(..., min_length=1, description="Account password")


class MessageResponse(BaseModel):
    """Response model shared by the auth endpoints."""

    success: bool
    message: str


class VerifyEmailResponse(MessageResponse):
    """Response model for successful verification; carries the setup token."""

    setup_token: str | None = None


class SessionResponse(BaseModel):
    """Claims of the presented access token."""

    user_id: str
    role: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
