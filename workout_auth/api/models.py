"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from workout_auth.domain.models import Role, TrainingLevel, User

# bcrypt rejects passwords longer than 72 bytes
PASSWORD_MAX_LENGTH = 72
PASSWORD_MAX_BYTES = 72

USERNAME_PATTERN = r"^[A-Za-z0-9_]{3,32}$"
CODE_PATTERN = r"^\d{4,10}$"


def _check_password_bytes(password: str) -> str:
    # The character limit alone lets multibyte passwords past bcrypt's byte limit
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
    return password


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    email: EmailStr
    password: str = Field(
        ...,
        min_length=8,
        max_length=PASSWORD_MAX_LENGTH,
        description="User password (8-72 characters, at most 72 bytes)",
    )
    username: str = Field(
        ...,
        pattern=USERNAME_PATTERN,
        description="3-32 letters, digits or underscores",
    )

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class VerifyEmailRequest(BaseModel):
    """Request model for registration email verification."""

    email: EmailStr
    code: str = Field(..., pattern=CODE_PATTERN, description="Numeric verification code")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class UpdateProfileRequest(BaseModel):
    """Partial profile update. Omitted or null fields are left unchanged."""

    username: str | None = Field(None, pattern=USERNAME_PATTERN)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    birth_date: date | None = None
    gender: str | None = Field(None, max_length=50)
    avatar_url: str | None = Field(None, max_length=2048)
    training_level: TrainingLevel | None = None


class EmailChangeRequest(BaseModel):
    new_email: EmailStr


class EmailChangeVerifyRequest(BaseModel):
    """Confirm an email change; ``new_email`` pins the pending change to verify."""

    code: str = Field(..., pattern=CODE_PATTERN, description="Numeric verification code")
    new_email: EmailStr | None = None


class UserResponse(BaseModel):
    """Public view of a user."""

    id: uuid.UUID
    email: str
    username: str
    first_name: str | None = None
    last_name: str | None = None
    birth_date: date | None = None
    gender: str | None = None
    avatar_url: str | None = None
    role: Role
    training_level: TrainingLevel
    email_verified: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            birth_date=user.birth_date,
            gender=user.gender,
            avatar_url=user.avatar_url,
            role=user.role,
            training_level=user.training_level,
            email_verified=user.email_verified,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class RegisterResponse(BaseModel):
    """Response model for successful registration."""

    message: str
    user: UserResponse
    expires_in_seconds: int


class TokenResponse(BaseModel):
    """Access/refresh token pair with the authenticated user."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    code: str
