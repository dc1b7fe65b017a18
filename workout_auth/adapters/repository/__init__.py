"""Repository adapters - Database implementations."""

from .postgres import PostgresUserRepository, PostgresVerificationRepository, run_migrations

__all__ = ["PostgresUserRepository", "PostgresVerificationRepository", "run_migrations"]
