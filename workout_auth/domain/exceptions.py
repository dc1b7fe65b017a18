"""
Domain exceptions - Semantic error types for authentication.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Every exception carries a ``kind`` (used by the transport layer to pick a
status code) and a stable machine-readable ``code`` that clients can rely on.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error taxonomy shared by every domain exception."""

    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    INTERNAL = "internal"


class AuthError(Exception):
    """Base class for authentication domain errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "internal_error"
    message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        """Client-safe message."""
        return self.message


# Conflict


class ConflictError(AuthError):
    kind = ErrorKind.CONFLICT
    code = "conflict"
    message = "Conflict"


class EmailExists(ConflictError):
    """Email belongs to another active account."""

    code = "email_exists"
    message = "Email already registered"


class EmailUnverifiedExists(ConflictError):
    """Email belongs to an account that has not been verified yet."""

    code = "email_unverified_exists"
    message = "Email registered but not verified; request a new verification code"


class UsernameExists(ConflictError):
    code = "username_exists"
    message = "Username already taken"


class EmailSameAsCurrent(ConflictError):
    code = "email_same_as_current"
    message = "New email is the same as the current email"


# Unauthorized


class UnauthorizedError(AuthError):
    kind = ErrorKind.UNAUTHORIZED
    code = "unauthorized"
    message = "Unauthorized"


class InvalidCredentials(UnauthorizedError):
    """Unknown email or wrong password; deliberately indistinguishable."""

    code = "invalid_credentials"
    message = "Invalid email or password"


class InvalidRefreshToken(UnauthorizedError):
    code = "invalid_refresh_token"
    message = "Invalid refresh token"


class TokenError(UnauthorizedError):
    """Base class for token validation failures."""

    code = "invalid_token"
    message = "Invalid token"


class SignatureInvalid(TokenError):
    code = "token_signature_invalid"


class IssuerMismatch(TokenError):
    code = "token_issuer_mismatch"


class TokenExpired(TokenError):
    code = "token_expired"
    message = "Token has expired"


class TokenMalformed(TokenError):
    code = "token_malformed"


# Forbidden


class ForbiddenError(AuthError):
    kind = ErrorKind.FORBIDDEN
    code = "forbidden"
    message = "Forbidden"


class EmailNotVerified(ForbiddenError):
    code = "email_not_verified"
    message = "Email not verified"


class InsufficientRole(ForbiddenError):
    code = "insufficient_role"
    message = "Insufficient permissions"


# Not found


class NotFoundError(AuthError):
    kind = ErrorKind.NOT_FOUND
    code = "not_found"
    message = "Not found"


class UserNotFound(NotFoundError):
    """No active (non-deleted) user matched."""

    code = "user_not_found"
    message = "User not found"


class VerificationNotFound(NotFoundError):
    """No verification record matched (deleted, expired or exhausted)."""

    code = "verification_not_found"
    message = "Verification record not found"


# Validation


class VerificationError(AuthError):
    kind = ErrorKind.VALIDATION
    code = "verification_failed"
    message = "Verification failed"


class VerificationCodeInvalid(VerificationError):
    code = "verification_code_invalid"
    message = "Verification code invalid"


class VerificationCodeNotFound(VerificationError):
    code = "verification_code_not_found"
    message = "Verification code not found or expired"


class VerificationAttemptsExceeded(VerificationError):
    code = "verification_attempts_exceeded"
    message = "Too many failed attempts; request a new verification code"


class EmailAlreadyVerified(VerificationError):
    code = "email_already_verified"
    message = "Email already verified"


# Internal


class InternalError(AuthError):
    """Infrastructure failure. The message is logged, never sent to clients."""

    kind = ErrorKind.INTERNAL
    code = "internal_error"
    message = "Internal error"


class HashingError(InternalError):
    code = "hashing_failed"


class CodeGenerationError(InternalError):
    code = "code_generation_failed"


class DeliveryError(InternalError):
    code = "email_delivery_failed"


class StoreError(InternalError):
    code = "store_unavailable"


class InvalidCodeLength(ValueError):
    """Verification code length must be positive."""

    pass
