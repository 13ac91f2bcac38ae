import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Client-facing failure raised by the service layer."""

    default_status = 400

    def __init__(self, message: str, errors: list | None = None, headers=None):
        super().__init__(
            status_code=self.default_status, detail=message, headers=headers
        )
        self.errors = errors


class NotFoundError(AppError):
    default_status = 404


class ValidationFailedError(AppError):
    default_status = 400


class UnauthenticatedError(AppError):
    default_status = 401

    def __init__(self, message: str, reason: str):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})
        self.reason = reason


class ForbiddenError(AppError):
    default_status = 403


class ConflictError(AppError):
    default_status = 409


def _error_payload(message: str, errors=None, reason: str | None = None) -> dict:
    payload = {"success": False, "message": message}
    if errors:
        payload["errors"] = errors
    if reason:
        payload["reason"] = reason
    return payload


def register_error_handlers(app) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail
        message = "Request failed"
        errors = getattr(exc, "errors", None)
        if isinstance(detail, dict):
            message = detail.get("message", message)
            errors = detail.get("errors", errors)
        elif isinstance(detail, str):
            message = detail
        else:
            errors = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(message, errors, getattr(exc, "reason", None)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # ctx may carry raw exception objects, which are not JSON-serialisable.
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=_error_payload("Validation failed", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled error on %s %s", request.method, request.url.path
        )
        return JSONResponse(
            status_code=500,
            content=_error_payload("Internal server error"),
        )
