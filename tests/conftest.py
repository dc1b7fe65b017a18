"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A wired service graph over in-memory repositories
- Settings instances with deterministic secrets
- A FastAPI app and test client over those services
- A PostgreSQL pool for integration tests (skipped when unreachable)
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool, PoolTimeout

from tests.fakes import ACCESS_SECRET, REFRESH_SECRET, Services, build_services
from workout_auth.api.errors import register_exception_handlers
from workout_auth.api.v1 import router as v1_router
from workout_auth.config.settings import Settings, get_settings


@pytest.fixture
def services() -> Services:
    return build_services()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        jwt_access_secret=ACCESS_SECRET,
        jwt_refresh_secret=REFRESH_SECRET,
        bcrypt_cost=4,
    )


@pytest.fixture(scope="session")
def pg_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against DATABASE_URL with migrations applied.

    Tests using it are skipped when the database cannot be reached.
    """
    from workout_auth.adapters.repository.postgres import run_migrations

    pool = ConnectionPool(
        conninfo=get_settings().database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    try:
        pool.wait(timeout=2.0)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pg_pool: ConnectionPool) -> Generator[ConnectionPool, None, None]:
    """Empty both tables before each test."""
    with pg_pool.connection() as conn:
        conn.execute("DELETE FROM email_verifications")
        conn.execute("DELETE FROM users")
        conn.commit()
    yield pg_pool


@pytest.fixture
def api_app(services: Services) -> FastAPI:
    """v1 routes and error handlers wired to the in-memory services (no lifespan)."""
    app = FastAPI()
    app.include_router(v1_router, prefix="/v1")
    register_exception_handlers(app)
    app.state.auth_service = services.auth
    app.state.account_service = services.accounts
    app.state.token_service = services.tokens
    return app


@pytest.fixture
def client(api_app: FastAPI) -> TestClient:
    return TestClient(api_app)
