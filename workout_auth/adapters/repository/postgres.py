"""
PostgreSQL repository adapters - Implement the domain's repository protocols.

This module provides the PostgreSQL implementations of UserRepository and
VerificationRepository using psycopg3 with raw SQL.

Concurrency Design:
-------------------
No explicit locks are taken. Every guarantee the domain relies on is a
single conditional statement:

1. **Soft delete visibility**: every read and write filters
   ``deleted_at IS NULL``. An update racing a soft delete matches no row and
   is reported as UserNotFound.

2. **Uniqueness**: partial unique indexes on email/username (active rows
   only). Violations are translated into EmailExists / UsernameExists by
   constraint name, so a registration that raced past the domain's
   lookups still fails cleanly.

3. **Attempt counting**: ``UPDATE ... SET attempts = attempts + 1 WHERE
   attempts < max_attempts RETURNING attempts`` increments and reads the
   committed value in one statement. Concurrent wrong guesses are all
   counted, the counter never passes the limit, and exactly one caller sees
   it reach the limit.

Every statement runs on a pooled connection carrying a server-side
statement_timeout; failures to reach the database surface as StoreError.
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from workout_auth.domain.exceptions import (
    EmailExists,
    StoreError,
    UserNotFound,
    UsernameExists,
    VerificationNotFound,
)
from workout_auth.domain.models import Role, TrainingLevel, User, VerificationRecord

logger = logging.getLogger(__name__)

_EMAIL_UNIQUE_INDEX = "idx_users_email_unique"
_USERNAME_UNIQUE_INDEX = "idx_users_username_unique"

_USER_COLUMNS = """
    id, email, password_hash, username, first_name, last_name, birth_date,
    gender, avatar_url, role, training_level, is_email_verified,
    created_at, updated_at, deleted_at
"""

_VERIFICATION_COLUMNS = """
    id, user_id, code_hash, expires_at, attempts, max_attempts, created_at, new_email
"""


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Map driver errors onto domain errors."""
    try:
        yield
    except psycopg.errors.UniqueViolation as e:
        constraint = e.diag.constraint_name
        if constraint == _EMAIL_UNIQUE_INDEX:
            raise EmailExists() from e
        if constraint == _USERNAME_UNIQUE_INDEX:
            raise UsernameExists() from e
        raise StoreError(f"{operation}: unexpected unique violation on {constraint}") from e
    except (psycopg.Error, PoolTimeout) as e:
        raise StoreError(f"{operation} failed: {e}") from e


def _user_from_row(row: dict[str, Any]) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        username=row["username"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        birth_date=row["birth_date"],
        gender=row["gender"],
        avatar_url=row["avatar_url"],
        role=Role(row["role"]),
        training_level=TrainingLevel(row["training_level"]),
        email_verified=row["is_email_verified"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        deleted_at=row["deleted_at"],
    )


def _record_from_row(row: dict[str, Any]) -> VerificationRecord:
    return VerificationRecord(
        id=row["id"],
        user_id=row["user_id"],
        code_hash=row["code_hash"],
        expires_at=row["expires_at"],
        attempts=row["attempts"],
        max_attempts=row["max_attempts"],
        created_at=row["created_at"],
        target_email=row["new_email"],
    )


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool, timeout: float | None = None) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            timeout: Seconds to wait for a pooled connection (pool default if None)
        """
        self._pool = pool
        self._timeout = timeout

    def create(self, user: User) -> None:
        sql = f"""
            INSERT INTO users ({_USER_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            user.id,
            user.email,
            user.password_hash,
            user.username,
            user.first_name,
            user.last_name,
            user.birth_date,
            user.gender,
            user.avatar_url,
            user.role.value,
            user.training_level.value,
            user.email_verified,
            user.created_at,
            user.updated_at,
            user.deleted_at,
        )
        with _translate_errors("create user"), self._connection() as conn:
            conn.execute(sql, params)
            conn.commit()

    def get_by_id(self, user_id: uuid.UUID) -> User:
        return self._one("id = %s", user_id)

    def get_by_email(self, email: str) -> User:
        return self._one("email = %s", email)

    def get_by_username(self, username: str) -> User:
        return self._one("username = %s", username)

    def update(self, user: User) -> None:
        """
        Update mutable columns of an active user.

        id, password_hash and created_at are never written.
        """
        sql = """
            UPDATE users
            SET email = %s,
                username = %s,
                first_name = %s,
                last_name = %s,
                birth_date = %s,
                gender = %s,
                avatar_url = %s,
                role = %s,
                training_level = %s,
                is_email_verified = %s,
                updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL
        """
        params = (
            user.email,
            user.username,
            user.first_name,
            user.last_name,
            user.birth_date,
            user.gender,
            user.avatar_url,
            user.role.value,
            user.training_level.value,
            user.email_verified,
            user.id,
        )
        with _translate_errors("update user"), self._connection() as conn:
            cursor = conn.execute(sql, params)
            conn.commit()
            if cursor.rowcount == 0:
                raise UserNotFound()

    def soft_delete(self, user_id: uuid.UUID) -> None:
        sql = """
            UPDATE users
            SET deleted_at = NOW(), updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL
        """
        with _translate_errors("soft delete user"), self._connection() as conn:
            cursor = conn.execute(sql, (user_id,))
            conn.commit()
            if cursor.rowcount == 0:
                raise UserNotFound()

    def _one(self, condition: str, value: Any) -> User:
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM users
            WHERE deleted_at IS NULL AND {condition}
        """
        with _translate_errors("get user"), self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (value,))
                row = cursor.fetchone()
        if row is None:
            raise UserNotFound()
        return _user_from_row(row)

    def _connection(self) -> AbstractContextManager[psycopg.Connection]:
        return self._pool.connection(timeout=self._timeout)

    def list(self) -> list[User]:
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM users
            WHERE deleted_at IS NULL
            ORDER BY created_at DESC
        """
        with _translate_errors("list users"), self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql)
                rows = cursor.fetchall()
        return [_user_from_row(row) for row in rows]


class PostgresVerificationRepository:
    """
    Implements VerificationRepository protocol via psycopg3.

    "Active" means not expired (database time) and attempts below the
    record's own limit; exhausted records are invisible to lookups even
    before the domain deletes them.
    """

    def __init__(self, pool: ConnectionPool, timeout: float | None = None) -> None:
        self._pool = pool
        self._timeout = timeout

    def create(self, record: VerificationRecord) -> VerificationRecord:
        sql = """
            INSERT INTO email_verifications
                (user_id, code_hash, expires_at, attempts, max_attempts, created_at, new_email)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id
        """
        params = (
            record.user_id,
            record.code_hash,
            record.expires_at,
            record.attempts,
            record.max_attempts,
            record.created_at,
            record.target_email,
        )
        with _translate_errors("create verification"), self._connection() as conn:
            row = conn.execute(sql, params).fetchone()
            conn.commit()
        record.id = row[0]
        return record

    def get_active_by_user_id(self, user_id: uuid.UUID) -> VerificationRecord:
        return self._active("user_id = %s AND new_email IS NULL", (user_id,))

    def get_active_by_user_id_and_target_email(
        self, user_id: uuid.UUID, target_email: str
    ) -> VerificationRecord:
        return self._active("user_id = %s AND new_email = %s", (user_id, target_email))

    def get_active_email_change_by_user_id(self, user_id: uuid.UUID) -> VerificationRecord:
        return self._active("user_id = %s AND new_email IS NOT NULL", (user_id,))

    def get_by_id(self, record_id: int) -> VerificationRecord:
        sql = f"SELECT {_VERIFICATION_COLUMNS} FROM email_verifications WHERE id = %s"
        with _translate_errors("get verification"), self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (record_id,))
                row = cursor.fetchone()
        if row is None:
            raise VerificationNotFound()
        return _record_from_row(row)

    def increment_attempts(self, record_id: int) -> int:
        sql = """
            UPDATE email_verifications
            SET attempts = attempts + 1
            WHERE id = %s AND attempts < max_attempts
            RETURNING attempts
        """
        with _translate_errors("increment attempts"), self._connection() as conn:
            row = conn.execute(sql, (record_id,)).fetchone()
            conn.commit()
        if row is None:
            raise VerificationNotFound()
        return row[0]

    def delete_by_user_id(self, user_id: uuid.UUID) -> None:
        with _translate_errors("delete verifications"), self._connection() as conn:
            conn.execute("DELETE FROM email_verifications WHERE user_id = %s", (user_id,))
            conn.commit()

    def delete_email_change_by_user_id(self, user_id: uuid.UUID) -> None:
        sql = "DELETE FROM email_verifications WHERE user_id = %s AND new_email IS NOT NULL"
        with _translate_errors("delete email change verifications"), self._connection() as conn:
            conn.execute(sql, (user_id,))
            conn.commit()

    def _active(self, condition: str, params: tuple[Any, ...]) -> VerificationRecord:
        sql = f"""
            SELECT {_VERIFICATION_COLUMNS}
            FROM email_verifications
            WHERE {condition}
              AND expires_at > NOW()
              AND attempts < max_attempts
            ORDER BY created_at DESC, id DESC
            LIMIT 1
        """
        with _translate_errors("get active verification"), self._connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
        if row is None:
            raise VerificationNotFound()
        return _record_from_row(row)

    def _connection(self) -> AbstractContextManager[psycopg.Connection]:
        return self._pool.connection(timeout=self._timeout)


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: workout_auth/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)
                conn.commit()

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
