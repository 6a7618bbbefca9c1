"""
Request Context Middleware Tests.

WHAT: Unit tests for the RequestContextMiddleware.

WHY: The request id is what ties service log lines back to one HTTP call.
These tests ensure correct behavior for:
- Client IP extraction (direct and through proxies)
- Request ID reuse, validation and generation
- Context availability only during the request

HOW: Tests build Starlette requests directly, and run the middleware on a
small FastAPI app through TestClient.
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from helpdesk.middleware.request_context import (
    REQUEST_ID_HEADER,
    RequestContextMiddleware,
    get_client_ip,
    get_request_context,
)


def _make_request(headers: dict = None, client_host: str = None) -> Request:
    scope = {
        "type": "http",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (client_host, 12345) if client_host else None,
    }
    return Request(scope)


def _make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    @app.get("/context")
    async def context_endpoint():
        context = get_request_context()
        return {"request_id": context.request_id, "ip": context.ip_address, "path": context.path}

    return app


class TestGetClientIp:
    """Tests for the get_client_ip function."""

    def test_x_real_ip_wins(self):
        request = _make_request(
            headers={"X-Real-IP": "192.168.1.100", "X-Forwarded-For": "203.0.113.50"},
            client_host="10.0.0.1",
        )
        assert get_client_ip(request) == "192.168.1.100"

    def test_first_forwarded_for_entry(self):
        request = _make_request(
            headers={"X-Forwarded-For": "203.0.113.50, 70.41.3.18"},
            client_host="10.0.0.1",
        )
        assert get_client_ip(request) == "203.0.113.50"

    def test_direct_connection(self):
        assert get_client_ip(_make_request(client_host="10.0.0.1")) == "10.0.0.1"

    def test_unknown_without_client(self):
        assert get_client_ip(_make_request()) == "unknown"


class TestRequestContextMiddleware:

    def test_generates_request_id(self):
        client = TestClient(_make_app())

        response = client.get("/context")

        request_id = response.headers[REQUEST_ID_HEADER]
        assert len(request_id) == 36
        assert response.json()["request_id"] == request_id
        assert response.json()["path"] == "/context"

    def test_reuses_sane_incoming_id(self):
        client = TestClient(_make_app())

        response = client.get("/context", headers={REQUEST_ID_HEADER: "support-case-42"})

        assert response.headers[REQUEST_ID_HEADER] == "support-case-42"

    def test_replaces_malformed_incoming_id(self):
        """
        WHY: Request ids end up in log lines; arbitrary caller text must
        not be written there.
        """
        client = TestClient(_make_app())

        response = client.get("/context", headers={REQUEST_ID_HEADER: "bad id\twith spaces"})

        assert response.headers[REQUEST_ID_HEADER] != "bad id\twith spaces"

    def test_no_context_outside_request(self):
        assert get_request_context() is None
