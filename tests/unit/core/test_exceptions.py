"""
Tests for custom exception hierarchy.

WHY: Comprehensive exception testing ensures:
1. Every exception maps onto one of the four public error kinds
2. Exceptions serialize to {code, message, details} without leaking secrets
3. Not-found errors for tickets do not vary with the reason
4. Exception handlers work as expected
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from fastapi.exceptions import RequestValidationError

from helpdesk.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
    DuplicateResourceError,
    ResourceNotFoundError,
    TicketNotFoundError,
    ProjectNotFoundError,
    CommentNotFoundError,
    EmailServiceError,
)
from helpdesk.core.exception_handlers import (
    app_exception_handler,
    validation_exception_handler,
)


class TestAppException:
    """Test base AppException class."""

    def test_default_message(self):
        exc = AppException()
        assert exc.message == "An unexpected error occurred"
        assert exc.status_code == 500
        assert exc.code == "INTERNAL_ERROR"

    def test_custom_message_and_status(self):
        exc = AppException(message="Custom error message", status_code=418)
        assert exc.message == "Custom error message"
        assert exc.status_code == 418

    def test_to_dict_shape(self):
        result = AppException(message="Test error", user_id=123).to_dict()

        assert result == {
            "code": "INTERNAL_ERROR",
            "message": "Test error",
            "details": {"user_id": 123},
        }

    def test_to_dict_filters_sensitive_data(self):
        exc = AppException(
            message="Test error",
            user_id=123,
            password="secret123",
            token="abc123",
            api_key="key123",
            regular_field="visible",
        )
        details = exc.to_dict()["details"]

        assert "password" not in details
        assert "token" not in details
        assert "api_key" not in details
        assert details["user_id"] == 123
        assert details["regular_field"] == "visible"

    def test_to_dict_no_context(self):
        assert AppException(message="Test error").to_dict()["details"] is None


class TestErrorKinds:
    """Every exception lands on one of 401/403/404/400."""

    @pytest.mark.parametrize(
        "exc_class, status_code, code",
        [
            (AuthenticationError, 401, "UNAUTHORIZED"),
            (TokenExpiredError, 401, "UNAUTHORIZED"),
            (TokenInvalidError, 401, "UNAUTHORIZED"),
            (AuthorizationError, 403, "FORBIDDEN"),
            (ResourceNotFoundError, 404, "NOT_FOUND"),
            (ProjectNotFoundError, 404, "NOT_FOUND"),
            (CommentNotFoundError, 404, "NOT_FOUND"),
            (ValidationError, 400, "BAD_REQUEST"),
            (DuplicateResourceError, 400, "BAD_REQUEST"),
        ],
    )
    def test_status_and_code(self, exc_class, status_code, code):
        exc = exc_class()
        assert exc.status_code == status_code
        assert exc.code == code

    def test_ticket_not_found_is_identical_for_every_cause(self):
        """Only the requested id appears, never why the lookup failed."""
        assert TicketNotFoundError(42).to_dict() == {
            "code": "NOT_FOUND",
            "message": "Ticket not found",
            "details": {"ticket_id": 42},
        }

    def test_email_service_error_is_not_a_client_error(self):
        assert EmailServiceError().status_code == 502


class TestExceptionHandlerIntegration:
    """Test exception handler integration with FastAPI."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        app.add_exception_handler(AppException, app_exception_handler)
        app.add_exception_handler(RequestValidationError, validation_exception_handler)

        class Body(BaseModel):
            name: str

        @app.get("/forbidden")
        async def forbidden():
            raise AuthorizationError(message="Clients cannot change ticket status", ticket_id=5)

        @app.get("/sensitive")
        async def sensitive():
            raise AppException(message="Error", user_id=123, password="should-be-filtered")

        @app.post("/body")
        async def body(data: Body):
            return {"name": data.name}

        return app

    @pytest.fixture
    def client(self, app):
        return TestClient(app)

    def test_app_exception_returns_error_body(self, client):
        response = client.get("/forbidden")

        assert response.status_code == 403
        assert response.json() == {
            "code": "FORBIDDEN",
            "message": "Clients cannot change ticket status",
            "details": {"ticket_id": 5},
        }

    def test_handler_filters_sensitive_data(self, client):
        data = client.get("/sensitive").json()
        assert "password" not in data["details"]
        assert data["details"]["user_id"] == 123

    def test_request_validation_maps_to_bad_request(self, client):
        response = client.post("/body", json={})

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "BAD_REQUEST"
        assert data["details"]["errors"][0]["field"] == "body.name"
