"""
API v1 user routes.

Profile management for the authenticated user, verified email change and
the admin user listing. Every route requires a bearer access token.
"""

from fastapi import APIRouter, Depends, Response, status

from workout_auth.api.dependencies import get_account_service, get_current_user, require_admin
from workout_auth.api.models import (
    EmailChangeRequest,
    EmailChangeVerifyRequest,
    ErrorResponse,
    MessageResponse,
    UpdateProfileRequest,
    UserResponse,
)
from workout_auth.domain.accounts import AccountService
from workout_auth.domain.models import ProfileUpdate, User

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid access token"}},
)


@router.get("/me", response_model=UserResponse, summary="Current user's profile")
def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.from_user(user)


@router.patch(
    "/me",
    response_model=UserResponse,
    responses={409: {"model": ErrorResponse, "description": "Username already taken"}},
    summary="Update the current user's profile",
)
def update_me(
    request_data: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    changes = ProfileUpdate(**request_data.model_dump(exclude_none=True))
    updated = service.update_profile(user.id, changes)
    return UserResponse.from_user(updated)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete the current user's account",
)
def delete_me(
    user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> Response:
    service.delete_account(user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "",
    response_model=list[UserResponse],
    responses={403: {"model": ErrorResponse, "description": "Admin role required"}},
    summary="List active users (admin)",
)
def list_users(
    _admin: User = Depends(require_admin),
    service: AccountService = Depends(get_account_service),
) -> list[UserResponse]:
    return [UserResponse.from_user(user) for user in service.list_users()]


@router.post(
    "/me/email",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={409: {"model": ErrorResponse, "description": "Email unchanged or already taken"}},
    summary="Request an email change",
    description="Sends a verification code to the new address. The email changes only once the code is confirmed.",
)
def request_email_change(
    request_data: EmailChangeRequest,
    user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    service.request_email_change(user.id, request_data.new_email)
    return MessageResponse(message="Verification code sent to the new email")


@router.post(
    "/me/email/verify",
    response_model=UserResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Code invalid, expired or exhausted"},
        409: {"model": ErrorResponse, "description": "Email claimed by another account"},
    },
    summary="Confirm an email change",
)
def verify_email_change(
    request_data: EmailChangeVerifyRequest,
    user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    updated = service.verify_email_change(user.id, request_data.code, request_data.new_email)
    return UserResponse.from_user(updated)
