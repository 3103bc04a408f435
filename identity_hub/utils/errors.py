"""
Application error hierarchy and FastAPI exception handlers.

Services never raise these; they return them inside an Err. The API layer
unwraps results and raises, and the handlers below render every failure
into the standard response envelope.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from identity_hub.utils.logging import get_logger
from identity_hub.utils.response import envelope


logger = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationFailed(AppError):
    status_code = 400
    error_code = "validation_failed"


class NoChange(AppError):
    status_code = 400
    error_code = "no_change"


class Unauthorized(AppError):
    status_code = 401
    error_code = "unauthorized"


class Forbidden(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFound(AppError):
    status_code = 404
    error_code = "not_found"


class TokenNotFound(NotFound):
    error_code = "token_not_found"


class Conflict(AppError):
    status_code = 409
    error_code = "conflict"


class DuplicateField(Conflict):
    error_code = "duplicate_field"


class DuplicateEmail(DuplicateField):
    error_code = "duplicate_email"


class RateLimited(AppError):
    status_code = 429
    error_code = "rate_limited"


class ExternalServiceError(AppError):
    status_code = 502
    error_code = "external_service_error"


class UploadFailed(ExternalServiceError):
    error_code = "upload_failed"


class InternalError(AppError):
    status_code = 500
    error_code = "internal_error"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope(exc.status_code, exc.message, exc.to_dict(), success=False),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [
            {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=envelope(400, "Validation failed.", {"code": ValidationFailed.error_code, "details": fields}, success=False),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope(exc.status_code, str(exc.detail), {}, success=False),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=envelope(500, "An internal server error occurred.", {}, success=False),
        )
