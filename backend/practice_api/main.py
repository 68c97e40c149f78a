"""
Main FastAPI application.

WHY: This is the entry point for the application. It configures logging,
middleware, routes, exception handlers and the tenant guard.

The guard is installed as an app-level dependency, so every route is
authenticated and scoped before its handler runs unless it appears in
``settings.PUBLIC_ROUTES``.
"""

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from practice_api import __version__
from practice_api.api import auth, clients, items, organizations, patients, sales
from practice_api.core.config import settings
from practice_api.core.deps import get_tenant_context
from practice_api.core.exception_handlers import (
    app_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from practice_api.core.exceptions import AppException
from practice_api.core.logging import setup_logging
from practice_api.middleware import RequestContextMiddleware


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    WHY: Factory pattern allows tests to build an app and override its
    dependencies without touching the module-level instance.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Multi-tenant practice management and sales API",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        dependencies=[Depends(get_tenant_context)],
    )

    # Register exception handlers
    # WHY: Every failure becomes the same JSON error shape, and server-side
    # details stay in the logs
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Request id and client info for log correlation
    app.add_middleware(RequestContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """
        Health check endpoint.

        WHY: Load balancers need to verify the service is running without
        authenticating or touching the database.
        """
        return {"status": "healthy", "version": __version__}

    @app.get("/", tags=["root"])
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": settings.PROJECT_NAME,
            "version": __version__,
            "docs": "/api/docs",
        }

    # Register API routers
    for module in (auth, organizations, clients, patients, items, sales):
        app.include_router(module.router, prefix=settings.API_V1_PREFIX)

    return app


# Create app instance
# WHY: uvicorn imports the application from here
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "practice_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info" if settings.DEBUG else "warning",
    )
