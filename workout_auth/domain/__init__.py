"""
Domain layer - Pure business logic with zero framework imports.

This package contains the authentication core: credential hashing, code
generation, token issuance, the verification state machine and the use-case
services built on them. It defines its own port interfaces for
infrastructure abstraction; adapters live in workout_auth.adapters.
"""

from .accounts import AccountService
from .auth import AuthService, normalize_email
from .exceptions import AuthError, ErrorKind
from .hashing import BcryptHasher
from .models import ProfileUpdate, Role, TokenClaims, TokenPair, TrainingLevel, User, VerificationRecord
from .ports import (
    CheckResult,
    CredentialHasher,
    EmailSender,
    ResendOutcome,
    UserRepository,
    VerificationRepository,
)
from .tokens import TokenService
from .verification import VerificationEngine

__all__ = [
    "AccountService",
    "AuthError",
    "AuthService",
    "BcryptHasher",
    "CheckResult",
    "CredentialHasher",
    "EmailSender",
    "ErrorKind",
    "ProfileUpdate",
    "ResendOutcome",
    "Role",
    "TokenClaims",
    "TokenPair",
    "TokenService",
    "TrainingLevel",
    "User",
    "UserRepository",
    "VerificationEngine",
    "VerificationRecord",
    "VerificationRepository",
    "normalize_email",
]
