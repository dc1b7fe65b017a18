"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

import uuid
from enum import Enum
from typing import Protocol

from .models import User, VerificationRecord


class CheckResult(Enum):
    """
    Outcome of checking a submitted code against a verification record.

    State transitions from an active record:
    - SUCCESS: code hash matches
    - INVALID: mismatch, attempt recorded, attempts still below the limit
    - ATTEMPTS_EXCEEDED: mismatch and the committed attempt count reached the limit
    - EXPIRED: record past its expiry; no attempt consumed

    On EXPIRED and ATTEMPTS_EXCEEDED the caller deletes the record.
    """

    SUCCESS = "success"
    INVALID = "invalid"
    EXPIRED = "expired"
    ATTEMPTS_EXCEEDED = "attempts_exceeded"


class ResendOutcome(Enum):
    """
    Result of a resend request.

    UNKNOWN_EMAIL must be reported to clients exactly like SENT.
    """

    SENT = "sent"
    UNKNOWN_EMAIL = "unknown_email"
    ALREADY_VERIFIED = "already_verified"


class UserRepository(Protocol):
    """Port interface for user persistence. Soft-deleted users are never returned."""

    def create(self, user: User) -> None:
        """
        Persist a new user.

        Raises:
            EmailExists: email already used by an active user
            UsernameExists: username already used by an active user
        """
        ...

    def get_by_id(self, user_id: uuid.UUID) -> User:
        """Raises UserNotFound."""
        ...

    def get_by_email(self, email: str) -> User:
        """Raises UserNotFound."""
        ...

    def get_by_username(self, username: str) -> User:
        """Raises UserNotFound."""
        ...

    def update(self, user: User) -> None:
        """
        Update mutable fields (never id, password hash or created_at).

        Raises:
            UserNotFound: no active row matched
            EmailExists / UsernameExists: uniqueness collision
        """
        ...

    def soft_delete(self, user_id: uuid.UUID) -> None:
        """Raises UserNotFound if no active row matched."""
        ...

    def list(self) -> list[User]:
        """Active users, newest first."""
        ...


class VerificationRepository(Protocol):
    """Port interface for verification record persistence."""

    def create(self, record: VerificationRecord) -> VerificationRecord:
        """Persist a record and return it with its id assigned."""
        ...

    def get_active_by_user_id(self, user_id: uuid.UUID) -> VerificationRecord:
        """
        Newest active registration record (target email unset).

        Active means not expired and attempts below max_attempts.
        Raises VerificationNotFound.
        """
        ...

    def get_active_by_user_id_and_target_email(
        self, user_id: uuid.UUID, target_email: str
    ) -> VerificationRecord:
        """Newest active email-change record for a given target. Raises VerificationNotFound."""
        ...

    def get_active_email_change_by_user_id(self, user_id: uuid.UUID) -> VerificationRecord:
        """Newest active email-change record for any target. Raises VerificationNotFound."""
        ...

    def get_by_id(self, record_id: int) -> VerificationRecord:
        """Raises VerificationNotFound."""
        ...

    def increment_attempts(self, record_id: int) -> int:
        """
        Atomically record a failed attempt and return the committed count.

        The increment only applies while attempts < max_attempts, so the
        counter can never pass the limit and exactly one caller observes
        the count reaching it.

        Raises:
            VerificationNotFound: record deleted or already exhausted
        """
        ...

    def delete_by_user_id(self, user_id: uuid.UUID) -> None:
        """Delete every record (both purposes) of the user."""
        ...

    def delete_email_change_by_user_id(self, user_id: uuid.UUID) -> None:
        """Delete the user's email-change records only."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_code(self, email: str, code: str) -> None:
        """
        Send verification code to email address.

        Raises:
            DeliveryError: delivery failed; the triggering use case aborts
        """
        ...


class CredentialHasher(Protocol):
    """One-way hash + constant-time compare for passwords and codes."""

    # Digest compared against when no real one exists (timing equalization)
    dummy_hash: str

    def hash(self, secret: str) -> str:
        ...

    def compare(self, digest: str, secret: str) -> bool:
        ...
