"""
API v1 auth routes.

Registration, email verification, login, token refresh and code resend.
Routes are plain ``def`` so FastAPI runs the blocking bcrypt and database
work in its threadpool.
"""

from fastapi import APIRouter, Depends, status

from workout_auth.api.dependencies import get_auth_service
from workout_auth.api.models import (
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    TokenResponse,
    UserResponse,
    VerifyEmailRequest,
)
from workout_auth.domain.auth import AuthService
from workout_auth.domain.models import TokenPair, User
from workout_auth.domain.ports import ResendOutcome

router = APIRouter(prefix="/auth", tags=["auth"])

RESEND_MESSAGE = "If the account exists, a new verification code has been sent"
ALREADY_VERIFIED_MESSAGE = "Email already verified"


def _token_response(user: User, pair: TokenPair) -> TokenResponse:
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        user=UserResponse.from_user(user),
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email or username already taken"},
        422: {"description": "Validation error"},
    },
    summary="Register a new user",
    description="Create an unverified account. A verification code is sent to the email.",
)
def register(
    request_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    user = service.register(request_data.email, request_data.password, request_data.username)
    return RegisterResponse(
        message="Verification code sent",
        user=UserResponse.from_user(user),
        expires_in_seconds=int(service.verification.ttl.total_seconds()),
    )


@router.post(
    "/verify-email",
    response_model=TokenResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Code invalid, expired or exhausted"},
        404: {"model": ErrorResponse, "description": "Unknown email"},
    },
    summary="Verify the registration email",
)
def verify_email(
    request_data: VerifyEmailRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Verify an account with the emailed code.

    - **email**: address the code was sent to
    - **code**: numeric verification code

    Returns a token pair on success.
    """
    user, pair = service.verify_email(request_data.email, request_data.code)
    return _token_response(user, pair)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
        403: {"model": ErrorResponse, "description": "Email not verified"},
    },
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    user, pair = service.login(request_data.email, request_data.password)
    return _token_response(user, pair)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid refresh token"}},
    summary="Exchange a refresh token for a new token pair",
)
def refresh(
    request_data: RefreshRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    user, pair = service.refresh(request_data.refresh_token)
    return _token_response(user, pair)


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    summary="Send a fresh verification code",
    description="Any earlier code stops working. Unknown addresses get the same answer as known ones.",
)
def resend_verification(
    request_data: ResendVerificationRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    outcome = service.resend_verification_code(request_data.email)
    if outcome is ResendOutcome.ALREADY_VERIFIED:
        return MessageResponse(message=ALREADY_VERIFIED_MESSAGE)
    return MessageResponse(message=RESEND_MESSAGE)
