"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting domain services into
routes. Services are built once in the application lifespan and stored in
app.state; these factories only read them.
"""

import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from workout_auth.domain.accounts import AccountService
from workout_auth.domain.auth import AuthService
from workout_auth.domain.exceptions import (
    InsufficientRole,
    TokenMalformed,
    UnauthorizedError,
    UserNotFound,
)
from workout_auth.domain.models import Role, User
from workout_auth.domain.tokens import TokenService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


# Bearer security scheme for OpenAPI documentation.
# auto_error is off so a missing header goes through the domain error mapping.
http_bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    tokens: TokenService = Depends(get_token_service),
    accounts: AccountService = Depends(get_account_service),
) -> User:
    """
    Resolve the active user behind an access token.

    Raises:
        UnauthorizedError: header missing, or the subject no longer resolves
            to an active user
        TokenError: signature, expiry, issuer or format failure
    """
    if credentials is None:
        raise UnauthorizedError("missing bearer token")

    claims = tokens.verify_access(credentials.credentials)
    try:
        user_id = uuid.UUID(claims.user_id)
    except ValueError:
        raise TokenMalformed("subject is not a user id") from None

    try:
        return accounts.get_profile(user_id)
    except UserNotFound:
        raise UnauthorizedError("token subject is not an active user") from None


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role is not Role.ADMIN:
        raise InsufficientRole()
    return user
