"""
FastAPI exception handlers for custom exceptions.

Every error leaves the API in one shape:
``{"error", "message", "status_code", "details"}``.
Server-side failures (configuration, storage, anything unexpected) are
logged in full and answered with a generic message.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from practice_api.core.exceptions import AppException, ConfigurationError


logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle AppException and its subclasses.

    Configuration errors are logged at CRITICAL: the deployment, not the
    client, has to be fixed. Other server-side errors at ERROR, client errors
    at INFO.

    Args:
        request: The FastAPI request object
        exc: The custom exception instance

    Returns:
        JSONResponse with error details
    """
    route = f"{request.method} {request.url.path}"
    if isinstance(exc, ConfigurationError):
        logger.critical("Configuration error on %s: %s %s", route, exc.message, exc.safe_context())
    elif not exc.expose_details:
        logger.error("%s on %s: %s %s", type(exc).__name__, route, exc.message, exc.safe_context())
    else:
        logger.info("%s on %s: %s", type(exc).__name__, route, exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors with field-level details.

    Returns:
        JSONResponse (400) listing each invalid field
    """
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
        )

    return JSONResponse(
        status_code=400,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "status_code": 400,
            "details": {"errors": errors},
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handle HTTP exceptions raised by the framework (404, 405).
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTPException",
            "message": exc.detail,
            "status_code": exc.status_code,
            "details": None,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all for unexpected exceptions: log the traceback, return a
    generic 500.
    """
    logger.error(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
            "status_code": 500,
            "details": None,
        },
    )
