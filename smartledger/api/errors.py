"""Domain errors and the handlers that turn them into JSON responses.

Every error body has the same shape: ``{"detail": <message>, "code": <code>}``.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base domain/application error."""

    status_code = 400
    code = "bad_request"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    """Record missing or owned by another account."""

    status_code = 404
    code = "not_found"


class ValidationError(AppError):
    """Payload is well-formed but breaks a business rule."""

    status_code = 422
    code = "validation_error"


class ConflictError(AppError):
    """Operation conflicts with the record's current state."""

    status_code = 409
    code = "conflict"


class AuthenticationError(AppError):
    """The gateway did not identify the caller."""

    status_code = 401
    code = "unauthenticated"


class PlanLimitError(AppError):
    """The account's plan, seat count or subscription status forbids the operation."""

    status_code = 403
    code = "plan_limit"


def error_body(message: str, code: str) -> dict[str, str]:
    return {"detail": message, "code": code}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info("request_rejected", path=request.url.path, status=exc.status_code, code=exc.code)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.code), headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback and hide it from the client."""

    logger.error("unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body("Internal server error", "internal_error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
