"""Tests for shared/exceptions.py."""

import pytest

from shared.exceptions import (
    GarageError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
)


class TestGarageError:
    def test_message(self):
        """GarageError should store message."""
        error = GarageError("Test error")
        assert error.message == "Test error"
        assert str(error) == "Test error"

    def test_default_code(self):
        """GarageError should default code to class name."""
        assert GarageError("Test error").code == "GarageError"

    def test_custom_code_and_details(self):
        """GarageError should accept a custom code and details."""
        error = GarageError("Test error", code="CUSTOM_ERROR", details={"key": "value"})
        assert error.code == "CUSTOM_ERROR"
        assert error.details == {"key": "value"}

    def test_to_dict(self):
        """GarageError should convert to dict."""
        error = GarageError("Test error", code="TEST_ERROR", details={"key": "value"})
        assert error.to_dict() == {
            "error": "TEST_ERROR",
            "message": "Test error",
            "details": {"key": "value"},
        }

    def test_to_dict_minimal(self):
        """GarageError.to_dict should work with minimal args."""
        assert GarageError("Test error").to_dict() == {
            "error": "GarageError",
            "message": "Test error",
            "details": {},
        }


class TestSubclasses:
    @pytest.mark.parametrize("error_class", [
        NotFoundError,
        ValidationError,
        AuthenticationError,
        AuthorizationError,
        ConflictError,
    ])
    def test_inherit_garage_error(self, error_class):
        """Every base error should inherit from GarageError."""
        error = error_class("Something went wrong")
        assert isinstance(error, GarageError)
        assert error.code == error_class.__name__


class TestExternalServiceError:
    def test_stores_service(self):
        """ExternalServiceError should store the service name in details."""
        error = ExternalServiceError("Connection failed", service="supabase")
        assert isinstance(error, GarageError)
        assert error.service == "supabase"
        assert error.to_dict()["details"]["service"] == "supabase"

    def test_preserves_other_details(self):
        """ExternalServiceError should preserve other details."""
        error = ExternalServiceError(
            "Connection failed",
            service="supabase",
            details={"status_code": 503},
        )
        details = error.to_dict()["details"]

        assert details["service"] == "supabase"
        assert details["status_code"] == 503


class TestStatusCodes:
    @pytest.mark.parametrize("error_class,status_code", [
        (GarageError, 500),
        (ValidationError, 400),
        (AuthenticationError, 401),
        (AuthorizationError, 403),
        (NotFoundError, 404),
        (ConflictError, 409),
    ])
    def test_status_code(self, error_class, status_code):
        """Each base error carries the status the API answers with."""
        assert error_class("Something went wrong").status_code == status_code

    def test_external_service_status(self):
        """Upstream failures are reported as a bad gateway."""
        assert ExternalServiceError("Down", service="supabase").status_code == 502
