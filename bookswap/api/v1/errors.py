"""
Centralized error handling for the HTTP API.

Every failure leaves the API as the same JSON body:

    {"error": <CODE>, "message": <text>, "path": <request path>}

with an extra "fields" map for validation failures. Domain errors keep
their own code; storage and unexpected failures are reported as
INTERNAL_ERROR without internal details.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookswap.domain.exceptions import (
    BookSwapError,
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (ExternalServiceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)

_CODE_BY_HTTP_STATUS = {
    status.HTTP_401_UNAUTHORIZED: "UNAUTHENTICATED",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def status_for(exc: BookSwapError) -> int:
    """HTTP status for a domain error; unknown kinds are client errors."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def create_error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    fields: dict | None = None,
) -> JSONResponse:
    """Create standardized error response."""
    content = {
        "error": code,
        "message": message,
        "path": request.url.path,
    }
    if fields:
        content["fields"] = fields
    return JSONResponse(status_code=status_code, content=content)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the FastAPI app."""

    @app.exception_handler(BookSwapError)
    async def bookswap_error_handler(request: Request, exc: BookSwapError):
        status_code = status_for(exc)
        logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.code}")
        return create_error_response(
            request,
            status_code,
            exc.code,
            exc.message,
            fields=getattr(exc, "fields", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = {}
        for error in exc.errors():
            location = [str(part) for part in error.get("loc", ()) if part != "body"]
            fields.setdefault(".".join(location) or "body", error.get("msg", "Invalid value"))
        return create_error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            "Request validation failed",
            fields=fields,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return create_error_response(
            request,
            exc.status_code,
            _CODE_BY_HTTP_STATUS.get(exc.status_code, "HTTP_ERROR"),
            str(exc.detail),
        )

    @app.exception_handler(RuntimeError)
    async def storage_error_handler(request: Request, exc: RuntimeError):
        logger.error(f"Internal failure on {request.method} {request.url.path}: {exc}")
        return create_error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "An unexpected error occurred",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        return create_error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "An unexpected error occurred",
        )
