"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from workout_auth.adapters.repository.postgres import (
    PostgresUserRepository,
    PostgresVerificationRepository,
    run_migrations,
)
from workout_auth.adapters.smtp.console import ConsoleEmailSender
from workout_auth.adapters.smtp.smtp import SmtpEmailSender
from workout_auth.api.errors import register_exception_handlers
from workout_auth.api.v1 import router as v1_router
from workout_auth.config.settings import Settings, get_settings
from workout_auth.domain.accounts import AccountService
from workout_auth.domain.auth import AuthService
from workout_auth.domain.hashing import BcryptHasher
from workout_auth.domain.ports import EmailSender
from workout_auth.domain.tokens import TokenService
from workout_auth.domain.verification import VerificationEngine

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# OpenAPI tags for documentation grouping
tags_metadata = [
    {"name": "auth", "description": "Registration, email verification, login and token refresh"},
    {"name": "users", "description": "Profile management and verified email change"},
]


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def build_email_sender(settings: Settings) -> EmailSender:
    if settings.email_backend == "smtp":
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_address=settings.smtp_from,
            timeout=settings.smtp_timeout_seconds,
            ttl_minutes=max(1, settings.verification_ttl_seconds // 60),
        )
    return ConsoleEmailSender()


def create_pool(settings: Settings) -> ConnectionPool:
    """
    Create the connection pool.

    Every connection carries a server-side statement_timeout, and acquiring
    a connection waits at most db_timeout_seconds.
    """
    return ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        timeout=settings.db_timeout_seconds,
        kwargs={"options": f"-c statement_timeout={settings.statement_timeout_ms}"},
        open=True,
    )


def wire_services(app: FastAPI, settings: Settings, pool: ConnectionPool) -> None:
    """Build the adapters and domain services and store them in app.state."""
    users = PostgresUserRepository(pool, timeout=settings.db_timeout_seconds)
    records = PostgresVerificationRepository(pool, timeout=settings.db_timeout_seconds)
    hasher = BcryptHasher(rounds=settings.bcrypt_cost)
    tokens = TokenService(
        access_secret=settings.jwt_access_secret,
        refresh_secret=settings.jwt_refresh_secret,
        access_ttl=timedelta(minutes=settings.jwt_access_ttl_minutes),
        refresh_ttl=timedelta(days=settings.jwt_refresh_ttl_days),
        issuer=settings.jwt_issuer,
        algorithm=settings.jwt_algorithm,
    )
    engine = VerificationEngine(
        records,
        hasher,
        ttl=timedelta(seconds=settings.verification_ttl_seconds),
        max_attempts=settings.max_attempts,
        code_length=settings.code_length,
    )
    email_sender = build_email_sender(settings)

    app.state.pool = pool
    app.state.token_service = tokens
    app.state.auth_service = AuthService(
        users=users,
        verification=engine,
        hasher=hasher,
        tokens=tokens,
        email_sender=email_sender,
    )
    app.state.account_service = AccountService(
        users=users,
        verification=engine,
        email_sender=email_sender,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Wires domain services into app.state
    - Closes connection pool on shutdown
    """
    settings: Settings = app.state.settings

    logger.info("Starting application (env=%s)...", settings.app_env)
    logger.info("Connecting to database...")
    pool = create_pool(settings)

    logger.info("Running database migrations...")
    run_migrations(pool)

    wire_services(app, settings, pool)
    logger.info("Application startup complete (email backend: %s)", settings.email_backend)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    pool.close()
    logger.info("Database connection pool closed")


def _ping(pool: ConnectionPool, timeout: float) -> None:
    with pool.connection(timeout=timeout) as conn:
        conn.execute("SELECT 1")


async def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint with a bounded database check.

    Returns 200 if SELECT 1 completes within health_timeout_seconds,
    503 if it fails or the deadline passes first. The check runs in a
    worker thread that is abandoned, not joined, when the deadline wins.
    """
    settings: Settings = request.app.state.settings
    pool: ConnectionPool = request.app.state.pool
    timeout = settings.health_timeout_seconds

    try:
        await asyncio.wait_for(asyncio.to_thread(_ping, pool, timeout), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Health check timed out after %.1fs", timeout)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "database": "timeout"},
        )
    except Exception as e:
        logger.warning("Health check failed: %s", e)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "database": "unreachable"},
        )

    return JSONResponse(content={"status": "healthy", "database": "ok"})


def _cors_origins(settings: Settings) -> list[str]:
    # Production only allows origins that were configured explicitly
    if settings.is_production and "cors_allowed_origins" not in settings.model_fields_set:
        return []
    return settings.cors_allowed_origins


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application. Services are wired when the lifespan starts."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="workout-auth",
        description="Authentication and account API for the workout app",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    register_exception_handlers(app)

    app.include_router(v1_router, prefix="/v1")
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["health"],
        responses={503: {"description": "Database unreachable or too slow"}},
    )
    return app


app = create_app()
