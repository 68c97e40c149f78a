"""
Tests for the exception hierarchy.

WHY: Error responses are the API's contract for failures. These tests ensure
status codes follow the taxonomy and that server-side errors and sensitive
context never reach the response body.
"""

import pytest

from practice_api.core.exceptions import (
    AmountMismatchError,
    AppException,
    ConfigurationError,
    ConflictError,
    ImmutableFieldError,
    InsufficientRoleError,
    InvalidStateTransitionError,
    InvalidTokenError,
    MissingTokenError,
    NoOrganizationContextError,
    PrincipalNotResolvedError,
    ResourceNotFoundError,
    StorageError,
    TokenExpiredError,
    ValidationError,
)


class TestStatusCodes:
    """Each class maps to the status its category defines."""

    @pytest.mark.parametrize(
        "exc_class, status",
        [
            (MissingTokenError, 401),
            (InvalidTokenError, 401),
            (TokenExpiredError, 401),
            (PrincipalNotResolvedError, 401),
            (NoOrganizationContextError, 403),
            (InsufficientRoleError, 403),
            (ValidationError, 400),
            (ImmutableFieldError, 400),
            (ResourceNotFoundError, 404),
            (ConflictError, 409),
            (AmountMismatchError, 422),
            (InvalidStateTransitionError, 400),
            (ConfigurationError, 500),
            (StorageError, 500),
        ],
    )
    def test_status(self, exc_class, status):
        assert exc_class().status_code == status

    def test_expired_is_invalid_token(self):
        assert issubclass(TokenExpiredError, InvalidTokenError)

    def test_status_override(self):
        assert AppException("teapot", status_code=418).status_code == 418


class TestSerialization:
    """Tests for to_dict."""

    def test_message_and_context(self):
        exc = ResourceNotFoundError("Client not found", resource_type="Client", resource_id="1")

        assert exc.to_dict() == {
            "error": "ResourceNotFoundError",
            "message": "Client not found",
            "status_code": 404,
            "details": {"resource_type": "Client", "resource_id": "1"},
        }

    def test_sensitive_context_is_filtered(self):
        exc = InvalidTokenError("bad", token="eyJ.secret", Authorization="Bearer x", reason="r")

        assert exc.to_dict()["details"] == {"reason": "r"}

    def test_empty_context_is_none(self):
        assert MissingTokenError().to_dict()["details"] is None

    @pytest.mark.parametrize("exc_class", [ConfigurationError, StorageError])
    def test_server_errors_hide_details(self, exc_class):
        exc = exc_class("postgres at 10.0.0.5 refused connection", host="10.0.0.5")

        body = exc.to_dict()

        assert body["message"] == exc_class.default_message
        assert body["details"] is None
        assert "10.0.0.5" not in str(body)
