"""
Domain models - Users, verification records and token bundles.

Plain dataclasses with no persistence or transport concerns. Mapping to
rows and JSON happens in the adapters and the API layer.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    COACH = "coach"
    ADMIN = "admin"


class TrainingLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


@dataclass
class User:
    """
    Account identity and profile.

    Email and username are unique among non-deleted users. A user with
    ``deleted_at`` set is invisible to every repository lookup.
    """

    email: str
    password_hash: str
    username: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    first_name: str | None = None
    last_name: str | None = None
    birth_date: date | None = None
    gender: str | None = None
    avatar_url: str | None = None
    role: Role = Role.USER
    training_level: TrainingLevel = TrainingLevel.BEGINNER
    email_verified: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def touch(self, at: datetime | None = None) -> None:
        self.updated_at = at or utcnow()


@dataclass
class VerificationRecord:
    """
    A single outstanding email-ownership challenge.

    ``target_email`` is None for the registration purpose and holds the
    requested address for the email-change purpose. Only the bcrypt hash of
    the code is ever stored.
    """

    user_id: uuid.UUID
    code_hash: str
    expires_at: datetime
    max_attempts: int
    attempts: int = 0
    target_email: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None

    @property
    def is_email_change(self) -> bool:
        return self.target_email is not None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, validated contents of an access or refresh token."""

    user_id: str
    email: str
    username: str
    role: str
    training_level: str
    email_verified: bool
    issuer: str
    subject: str
    issued_at: datetime
    expires_at: datetime
    jti: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    refresh_jti: str


@dataclass
class ProfileUpdate:
    """
    Partial profile update; None means "leave unchanged".

    Email is not part of it: changing email goes through the
    verification flow. Role is not self-service.
    """

    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    birth_date: date | None = None
    gender: str | None = None
    avatar_url: str | None = None
    training_level: TrainingLevel | None = None
