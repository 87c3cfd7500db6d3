"""
API v1 routes.

Defines REST endpoints for signup, email verification, password
establishment and session management.
"""

from uuid import UUID

from fastapi import APIRouter, Cookie, Depends, Response, status

from src.api.dependencies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_access_claims,
    get_authentication_service,
    get_registration_service,
    get_setup_user_id,
    get_verification_service,
)
from src.api.models import (
    EmailRequest,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    SessionResponse,
    SetPasswordRequest,
    SignupRequest,
    VerifyEmailRequest,
    VerifyEmailResponse,
)
from src.config.settings import Settings, get_settings
from src.domain.authentication import AuthenticationService
from src.domain.models import TokenPair
from src.domain.registration import RegistrationService
from src.domain.tokens import AccessClaims
from src.domain.verification import VerificationService

router = APIRouter(prefix="/auth", tags=["v1"])


def _set_session_cookies(response: Response, pair: TokenPair, settings: Settings) -> None:
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=settings.refresh_token_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    response.set_cookie(
        ACCESS_COOKIE,
        pair.access_token,
        max_age=settings.access_token_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


@router.post(
    "/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"description": "Validation error"}},
    summary="Begin signup",
    description="Submit an email address to begin signup. The response is the "
    "same whether or not the address is already registered.",
)
def signup(
    request_data: SignupRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    result = service.register(request_data.email)
    return MessageResponse(success=result.ok, message=result.message)


@router.post(
    "/verify-email",
    response_model=VerifyEmailResponse,
    responses={
        400: {"model": VerifyEmailResponse, "description": "Invalid or expired code"},
        422: {"description": "Validation error"},
    },
    summary="Verify email with one-time code",
    description="Submit the code received by email. On success the response "
    "carries a short-lived token for setting the password.",
)
def verify_email(
    request_data: VerifyEmailRequest,
    response: Response,
    service: VerificationService = Depends(get_verification_service),
) -> VerifyEmailResponse:
    result = service.validate_otp(request_data.email, request_data.otp)
    if not result.ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return VerifyEmailResponse(success=result.ok, message=result.message, setup_token=result.data)


@router.post(
    "/resend-otp",
    response_model=MessageResponse,
    responses={422: {"description": "Validation error"}},
    summary="Resend verification code",
)
def resend_otp(
    request_data: EmailRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    result = service.resend_otp(request_data.email)
    return MessageResponse(success=result.ok, message=result.message)


@router.post(
    "/set-password",
    response_model=MessageResponse,
    responses={
        400: {"model": MessageResponse, "description": "Password already set"},
        401: {"model": ErrorResponse, "description": "Invalid or expired setup token"},
        422: {"description": "Password policy violation"},
    },
    summary="Set the account password",
    description="Requires the setup token from /verify-email as a Bearer token.",
)
def set_password(
    request_data: SetPasswordRequest,
    response: Response,
    user_id: UUID = Depends(get_setup_user_id),
    service: AuthenticationService = Depends(get_authentication_service),
) -> MessageResponse:
    result = service.set_password(user_id, request_data.password)
    if not result.ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return MessageResponse(success=result.ok, message=result.message)


@router.post(
    "/login",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Log in",
    description="Sets httpOnly access and refresh token cookies.",
)
def login(
    request_data: LoginRequest,
    response: Response,
    service: AuthenticationService = Depends(get_authentication_service),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    pair = service.login(request_data.email, request_data.password)
    _set_session_cookies(response, pair, settings)
    return MessageResponse(success=True, message="Login successful")


@router.post(
    "/refresh",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or reused token"}},
    summary="Rotate the refresh token",
)
def refresh(
    response: Response,
    refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
    service: AuthenticationService = Depends(get_authentication_service),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    pair = service.rotate(refresh_token)
    _set_session_cookies(response, pair, settings)
    return MessageResponse(success=True, message="Token refreshed")


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired token"}},
    summary="Log out",
)
def logout(
    response: Response,
    refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
    service: AuthenticationService = Depends(get_authentication_service),
) -> MessageResponse:
    result = service.logout(refresh_token)
    response.delete_cookie(REFRESH_COOKIE)
    response.delete_cookie(ACCESS_COOKIE)
    return MessageResponse(success=result.ok, message=result.message)


@router.get(
    "/me",
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired token"}},
    summary="Describe the current session",
)
def me(claims: AccessClaims = Depends(get_access_claims)) -> SessionResponse:
    return SessionResponse(user_id=str(claims.user_id), role=claims.role.value)
