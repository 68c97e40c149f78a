"""
Request Context Middleware Tests.

WHAT: Unit tests for the RequestContextMiddleware.

WHY: Every log record emitted during a request is tagged with the request
id this middleware assigns. These tests ensure correct behavior for:
- Client IP extraction (direct and through proxies)
- Request ID generation and propagation
- Context availability during the request and cleanup afterwards

HOW: A minimal Starlette app exercises the middleware end to end.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from practice_api.middleware.request_context import (
    REQUEST_ID_HEADER,
    RequestContextMiddleware,
    get_client_ip,
    get_request_context,
    get_request_id,
)


def _make_request(headers: dict = None, client_host: str = None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    if client_host:
        scope["client"] = (client_host, 12345)
    return Request(scope)


async def echo_context(request: Request) -> JSONResponse:
    context = get_request_context()
    return JSONResponse(
        {
            "request_id": get_request_id(),
            "ip_address": context.ip_address,
            "path": context.path,
            "state_matches": request.state.context is context,
        }
    )


@pytest.fixture
def app() -> Starlette:
    app = Starlette(routes=[Route("/echo", echo_context)])
    app.add_middleware(RequestContextMiddleware)
    return app


class TestGetClientIp:
    """Tests for the get_client_ip function."""

    def test_real_ip_header_wins(self):
        request = _make_request({"X-Real-IP": "10.0.0.1", "X-Forwarded-For": "10.0.0.2"}, "1.1.1.1")

        assert get_client_ip(request) == "10.0.0.1"

    def test_first_forwarded_address(self):
        request = _make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"}, "1.1.1.1")

        assert get_client_ip(request) == "203.0.113.7"

    def test_direct_connection(self):
        assert get_client_ip(_make_request(client_host="192.168.1.9")) == "192.168.1.9"

    def test_unknown(self):
        assert get_client_ip(_make_request()) == "unknown"


class TestRequestContextMiddleware:
    """Tests for the middleware itself."""

    @pytest.mark.asyncio
    async def test_generates_request_id(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/echo")

        body = response.json()
        assert response.headers[REQUEST_ID_HEADER] == body["request_id"]
        assert len(body["request_id"]) == 36
        assert body["path"] == "/echo"
        assert body["state_matches"] is True

    @pytest.mark.asyncio
    async def test_accepts_upstream_request_id(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/echo", headers={REQUEST_ID_HEADER: "abc-123"})

        assert response.json()["request_id"] == "abc-123"
        assert response.headers[REQUEST_ID_HEADER] == "abc-123"

    @pytest.mark.asyncio
    async def test_rejects_malformed_upstream_request_id(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/echo", headers={REQUEST_ID_HEADER: "bad id; drop"})

        assert response.json()["request_id"] != "bad id; drop"

    @pytest.mark.asyncio
    async def test_context_cleared_after_request(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            await ac.get("/echo")

        assert get_request_context() is None
        assert get_request_id() == "-"
