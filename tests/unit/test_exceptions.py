"""Unit tests for error categorisation and user-facing messages"""

import pytest
from bizbooks.domain.exceptions import (
    ApiError,
    NetworkError,
    categorize_status,
    describe_error,
    error_message_for,
)


@pytest.mark.parametrize(
    "status,category",
    [
        (400, "client_error"),
        (401, "authentication"),
        (403, "authorization"),
        (404, "not_found"),
        (409, "client_error"),
        (422, "validation"),
        (500, "server_error"),
        (503, "server_error"),
        (302, "unknown"),
    ],
)
def test_categorize_status(status, category):
    assert categorize_status(status) == category


def test_error_message_for_validation_errors():
    """Test 400 messages carry the backend's field errors"""
    message = error_message_for(
        400, {"message": "Invalid purchase", "errors": [{"message": "supplier is required"}, "items empty"]}
    )
    assert message == "Invalid purchase\nValidation errors: supplier is required, items empty"


def test_error_message_for_fixed_texts():
    assert error_message_for(401, {"message": "jwt expired"}) == "Authentication required. Please login again."
    assert error_message_for(403, {}).startswith("Access denied")
    assert error_message_for(404, {}) == "Resource not found."
    assert error_message_for(422, {"message": "bad gst"}) == "Validation failed: bad gst"
    assert error_message_for(500, {"message": "stack trace"}) == "Server error. Please try again later."
    assert error_message_for(418, {}) == "HTTP error! status: 418"


def test_retryable_statuses():
    assert ApiError("x", 500).retryable is True
    assert ApiError("x", 429).retryable is True
    assert ApiError("x", 408).retryable is True
    assert ApiError("x", 404).retryable is False
    assert NetworkError("connection refused").retryable is True


def test_describe_error():
    assert describe_error(NetworkError("timeout")) == "Unable to connect to server. Please try again later."
    assert describe_error(ApiError("Validation failed: bad gst", 422)).startswith("Validation failed. Please check")
    assert describe_error(ApiError("Purchase not found", 404)) == "Purchase not found"
    assert describe_error(RuntimeError()) == "An unexpected error occurred."
