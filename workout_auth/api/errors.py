"""
Exception handlers - Map domain errors to HTTP responses.

Every AuthError is rendered as ``{"detail": ..., "code": ...}`` with a status
chosen by its kind. Internal errors never expose their cause to clients.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from workout_auth.domain.exceptions import AuthError, ErrorKind, InternalError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_body(exc: AuthError) -> dict[str, str]:
    return {"detail": exc.detail, "code": exc.code}


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    status_code = STATUS_BY_KIND[exc.kind]
    if exc.kind is ErrorKind.INTERNAL:
        logger.error(
            "Internal error on %s %s: %s (%s)",
            request.method,
            request.url.path,
            exc.code,
            exc,
            exc_info=exc,
        )
    return JSONResponse(status_code=status_code, content=_error_body(exc))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(InternalError()),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
