"""
Middleware package.

Request context is the only middleware; authentication runs as FastAPI
dependencies (see ``practice_api.core.deps``).
"""

from practice_api.middleware.request_context import (
    REQUEST_ID_HEADER,
    RequestContext,
    RequestContextMiddleware,
    get_client_ip,
    get_request_context,
    get_request_id,
)

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestContext",
    "RequestContextMiddleware",
    "get_client_ip",
    "get_request_context",
    "get_request_id",
]
