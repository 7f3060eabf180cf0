"""
Exception handlers for the FastAPI application.

Every error leaves the API with the same body:
    {"error": true, "message": "...", "status_code": N}
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tenantcare.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NoTenantAttachedError,
    NotFoundError,
    SchemaBindingError,
    TenancyError,
    TenantConnectionError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)

UNPROCESSABLE = 422

# Most specific first; the first isinstance match wins
TENANCY_STATUS_CODES: tuple[tuple[type[TenancyError], int], ...] = (
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (NoTenantAttachedError, status.HTTP_400_BAD_REQUEST),
    (UnauthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (TenantConnectionError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (SchemaBindingError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def _error_response(status_code: int, message: str, headers: dict[str, str] | None = None, **extra) -> JSONResponse:
    content = {"error": True, "message": message, "status_code": status_code}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def status_code_for(exc: TenancyError) -> int:
    for exc_type, code in TENANCY_STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def tenancy_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map the tenancy exception family to HTTP responses."""
    if not isinstance(exc, TenancyError):
        return await global_exception_handler(request, exc)

    status_code = status_code_for(exc)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None

    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
        # Internal details stay in the logs
        message = "Clinic data is temporarily unavailable" if isinstance(exc, TenantConnectionError) else str(exc)
    else:
        logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
        message = str(exc)

    extra = {"field": exc.field} if isinstance(exc, ConflictError) and exc.field else {}
    return _error_response(status_code, message, headers=headers, **extra)


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle HTTPException with consistent response format."""
    http_exc = exc if isinstance(exc, HTTPException) else HTTPException(status_code=500, detail=str(exc))
    return _error_response(http_exc.status_code, http_exc.detail, headers=http_exc.headers)


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle request validation errors with detailed error messages."""
    if not isinstance(exc, RequestValidationError):
        return _error_response(UNPROCESSABLE, str(exc))

    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(f"Validation error on {request.url.path}: {errors}")
    return _error_response(UNPROCESSABLE, "Validation error", details=errors)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all unhandled exceptions.

    Logs the full exception with traceback and returns a safe error response.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc!s}",
        exc_info=True,
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(TenancyError, tenancy_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.info("Exception handlers registered")
