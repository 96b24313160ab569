"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to the consistent JSON error body
``{"success": false, "message": ..., "code": ...}``.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        field: Optional[str] = None,
        errors: Optional[list[str]] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.error_code = code
        self.field = field
        self.errors = errors
        self.data = data

    def to_dict(self) -> dict:
        payload: dict = {
            "success": False,
            "message": self.message,
            "code": self.error_code,
        }
        if self.field is not None:
            payload["field"] = self.field
        if self.errors:
            payload["errors"] = self.errors
        if self.data is not None:
            payload["data"] = self.data
        return payload

    def headers(self) -> Optional[dict[str, str]]:
        return None


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class TokenError(AuthenticationError):
    """Missing, malformed, expired or not-yet-valid bearer token.

    ``expired`` lets clients tell "log in again" apart from "retry silently".
    """

    error_code = "invalid_token"

    def __init__(self, message: str, *, expired: bool = False, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.expired = expired

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["expired"] = self.expired
        return payload


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, message: str, *, retry_after: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["retryAfter"] = self.retry_after
        return payload

    def headers(self) -> Optional[dict[str, str]]:
        if self.retry_after > 0:
            return {"Retry-After": str(self.retry_after)}
        return None


class TransientInfraError(AppError):
    """Email-delivery or persistence failure. Never retried by the server."""

    status_code = 500
    error_code = "transient_infra_error"


class EmailDeliveryError(TransientInfraError):
    error_code = "email_delivery_failed"


class PersistenceError(TransientInfraError):
    error_code = "persistence_error"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if isinstance(exc, TransientInfraError):
            log.error(
                "transient_infra_error",
                path=request.url.path,
                error=exc.message,
                error_type=type(exc).__name__,
            )
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers()
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = []
        for err in exc.errors():
            location = ".".join(str(part) for part in err.get("loc", ())[1:])
            messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
        error = ValidationError("Invalid request body", errors=messages)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "An internal server error occurred.",
                "code": "internal_error",
            },
        )
