"""Domain-specific exceptions"""

from typing import Any, Dict, Optional


class BizBooksError(Exception):
    """Base exception for the client"""

    pass


class ServiceValidationError(BizBooksError):
    """A call was rejected before reaching the backend (missing id, bad amount, ...)"""

    pass


class ApiError(BizBooksError):
    """Backend returned a non-2xx response"""

    def __init__(
        self,
        message: str,
        status: int = 0,
        category: str = "unknown",
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.category = category
        self.data = data or {}

    @property
    def retryable(self) -> bool:
        return self.status == 0 or self.status >= 500 or self.status in (408, 429)


class NetworkError(ApiError):
    """Backend could not be reached (connection refused, timeout, ...)"""

    def __init__(self, detail: str):
        super().__init__(f"Network error: {detail}", status=0, category="network")


class EnvelopeError(ApiError):
    """Backend answered 2xx but the envelope says success: false"""

    pass


def categorize_status(status: int) -> str:
    """Map an HTTP status to an error category"""
    if 400 <= status < 500:
        if status == 401:
            return "authentication"
        if status == 403:
            return "authorization"
        if status == 404:
            return "not_found"
        if status == 422:
            return "validation"
        return "client_error"
    if status >= 500:
        return "server_error"
    return "unknown"


def error_message_for(status: int, data: Dict[str, Any]) -> str:
    """User-readable message for a failed response"""
    message = data.get("message") or f"HTTP error! status: {status}"

    if status == 400:
        message = data.get("message") or "Invalid request data"
        errors = data.get("errors")
        if isinstance(errors, list) and errors:
            details = ", ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            message += f"\nValidation errors: {details}"
    elif status == 401:
        message = "Authentication required. Please login again."
    elif status == 403:
        message = "Access denied. You do not have permission for this operation."
    elif status == 404:
        message = data.get("message") or "Resource not found."
    elif status == 422:
        message = "Validation failed: " + (data.get("message") or "Invalid data provided")
    elif status == 500:
        message = "Server error. Please try again later."

    return message


def describe_error(error: BaseException) -> str:
    """Turn any client error into a string fit to show a user"""
    message = str(error) or ""
    lowered = message.lower()

    if isinstance(error, NetworkError) or "fetch" in lowered or "connect" in lowered:
        return "Unable to connect to server. Please try again later."
    if "validation failed" in lowered:
        return "Validation failed. Please check all required fields are provided."
    return message or "An unexpected error occurred."
