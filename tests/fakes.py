"""
In-memory test doubles for the repository and email sender ports.

The repositories mirror the PostgreSQL adapters' semantics: soft-deleted
users are invisible, uniqueness holds among active users, "active"
verification records are unexpired with attempts below their limit, and
increment_attempts is a conditional atomic update. A single lock stands in
for the database's row-level atomicity.
"""

import itertools
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from workout_auth.domain.accounts import AccountService
from workout_auth.domain.auth import AuthService
from workout_auth.domain.exceptions import (
    DeliveryError,
    EmailExists,
    UserNotFound,
    UsernameExists,
    VerificationNotFound,
)
from workout_auth.domain.hashing import BcryptHasher
from workout_auth.domain.models import User, VerificationRecord, utcnow
from workout_auth.domain.tokens import TokenService
from workout_auth.domain.verification import VerificationEngine

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"
ISSUER = "workout-app"

# Cheapest bcrypt cost; keeps the suite fast
TEST_BCRYPT_ROUNDS = 4

VICTIM_EMAIL = "victim@example.com"
VICTIM_PASSWORD = "victim-password"


class FakeClock:
    """Settable clock shared by the engine and the in-memory store."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._users: dict[uuid.UUID, User] = {}
        self._lock = threading.Lock()

    def create(self, user: User) -> None:
        with self._lock:
            self._check_unique(user)
            self._users[user.id] = replace(user)

    def get_by_id(self, user_id: uuid.UUID) -> User:
        with self._lock:
            user = self._users.get(user_id)
            if user is None or user.is_deleted:
                raise UserNotFound()
            return replace(user)

    def get_by_email(self, email: str) -> User:
        return self._find(lambda u: u.email == email)

    def get_by_username(self, username: str) -> User:
        return self._find(lambda u: u.username == username)

    def update(self, user: User) -> None:
        with self._lock:
            stored = self._users.get(user.id)
            if stored is None or stored.is_deleted:
                raise UserNotFound()
            self._check_unique(user)
            self._users[user.id] = replace(
                user,
                password_hash=stored.password_hash,
                created_at=stored.created_at,
                deleted_at=None,
            )

    def soft_delete(self, user_id: uuid.UUID) -> None:
        with self._lock:
            stored = self._users.get(user_id)
            if stored is None or stored.is_deleted:
                raise UserNotFound()
            stored.deleted_at = utcnow()

    def add(self, user: User) -> User:
        """Seed a user directly, bypassing the use cases."""
        self.create(user)
        return user

    def _find(self, predicate: Callable[[User], bool]) -> User:
        with self._lock:
            for user in self._users.values():
                if not user.is_deleted and predicate(user):
                    return replace(user)
        raise UserNotFound()

    def _check_unique(self, user: User) -> None:
        for other in self._users.values():
            if other.id == user.id or other.is_deleted:
                continue
            if other.email == user.email:
                raise EmailExists()
            if other.username == user.username:
                raise UsernameExists()

    def list(self) -> list[User]:
        with self._lock:
            active = [replace(u) for u in self._users.values() if not u.is_deleted]
        return sorted(active, key=lambda u: u.created_at, reverse=True)


class InMemoryVerificationRepository:
    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._records: dict[int, VerificationRecord] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._clock = clock

    def create(self, record: VerificationRecord) -> VerificationRecord:
        with self._lock:
            record.id = next(self._ids)
            self._records[record.id] = replace(record)
        return record

    def get_active_by_user_id(self, user_id: uuid.UUID) -> VerificationRecord:
        return self._newest_active(lambda r: r.user_id == user_id and r.target_email is None)

    def get_active_by_user_id_and_target_email(
        self, user_id: uuid.UUID, target_email: str
    ) -> VerificationRecord:
        return self._newest_active(
            lambda r: r.user_id == user_id and r.target_email == target_email
        )

    def get_active_email_change_by_user_id(self, user_id: uuid.UUID) -> VerificationRecord:
        return self._newest_active(
            lambda r: r.user_id == user_id and r.target_email is not None
        )

    def get_by_id(self, record_id: int) -> VerificationRecord:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                raise VerificationNotFound()
            return replace(record)

    def increment_attempts(self, record_id: int) -> int:
        with self._lock:
            record = self._records.get(record_id)
            if record is None or record.attempts >= record.max_attempts:
                raise VerificationNotFound()
            record.attempts += 1
            return record.attempts

    def delete_by_user_id(self, user_id: uuid.UUID) -> None:
        with self._lock:
            self._records = {k: r for k, r in self._records.items() if r.user_id != user_id}

    def delete_email_change_by_user_id(self, user_id: uuid.UUID) -> None:
        with self._lock:
            self._records = {
                k: r
                for k, r in self._records.items()
                if not (r.user_id == user_id and r.target_email is not None)
            }

    def all_for(self, user_id: uuid.UUID) -> list[VerificationRecord]:
        """Every stored record of a user, active or not."""
        with self._lock:
            return [replace(r) for r in self._records.values() if r.user_id == user_id]

    def _newest_active(self, predicate: Callable[[VerificationRecord], bool]) -> VerificationRecord:
        now = self._clock()
        with self._lock:
            matches = [
                r
                for r in self._records.values()
                if predicate(r) and r.expires_at > now and r.attempts < r.max_attempts
            ]
            if not matches:
                raise VerificationNotFound()
            return replace(max(matches, key=lambda r: (r.created_at, r.id)))


class RecordingEmailSender:
    """Captures delivered codes; set ``fail`` to simulate a delivery outage."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    def send_verification_code(self, email: str, code: str) -> None:
        if self.fail:
            raise DeliveryError("simulated delivery failure")
        self.sent.append((email, code))

    def last_code_for(self, email: str) -> str:
        for recipient, code in reversed(self.sent):
            if recipient == email:
                return code
        raise AssertionError(f"no code sent to {email}")


@dataclass
class Services:
    """A fully wired service graph backed by in-memory doubles."""

    clock: FakeClock
    users: InMemoryUserRepository
    records: InMemoryVerificationRepository
    sender: RecordingEmailSender
    hasher: BcryptHasher
    tokens: TokenService
    engine: VerificationEngine
    auth: AuthService
    accounts: AccountService


def build_services(max_attempts: int = 5, ttl: timedelta = timedelta(minutes=15)) -> Services:
    clock = FakeClock()
    users = InMemoryUserRepository()
    records = InMemoryVerificationRepository(clock=clock)
    sender = RecordingEmailSender()
    hasher = BcryptHasher(rounds=TEST_BCRYPT_ROUNDS)
    tokens = TokenService(ACCESS_SECRET, REFRESH_SECRET, issuer=ISSUER)
    engine = VerificationEngine(records, hasher, ttl=ttl, max_attempts=max_attempts, clock=clock)
    return Services(
        clock=clock,
        users=users,
        records=records,
        sender=sender,
        hasher=hasher,
        tokens=tokens,
        engine=engine,
        auth=AuthService(users, engine, hasher, tokens, sender),
        accounts=AccountService(users, engine, sender),
    )


def make_user(
    email: str = "user@example.com",
    username: str = "lifter",
    password_hash: str = "$2b$04$notarealhashnotarealhashnotarealhashnotarealhas",
    **kwargs,
) -> User:
    return User(email=email, password_hash=password_hash, username=username, **kwargs)
