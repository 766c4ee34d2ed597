"""Shared plumbing for the per-resource clients"""

from typing import Any, Dict, Optional

from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.infrastructure.clients.http import ApiClient


def require(value: Any, message: str) -> Any:
    """Reject a call before it reaches the backend"""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ServiceValidationError(message)
    return value


def strip_empty(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None or ''"""
    return {k: v for k, v in payload.items() if v is not None and v != ""}


def data_of(envelope: Dict[str, Any]) -> Any:
    """Payload of a `{success, data, message}` envelope"""
    return envelope.get("data", envelope)


_shared_api: Optional[ApiClient] = None


def get_default_api() -> ApiClient:
    """Provide the ApiClient (and GET cache) shared by clients built without one"""
    global _shared_api
    if _shared_api is None:
        _shared_api = ApiClient()
    return _shared_api


class ResourceClient:
    """Base for clients bound to one backend resource"""

    def __init__(self, api: Optional[ApiClient] = None):
        self.api = api or get_default_api()

    @staticmethod
    def company_path(company_id: str, *segments: str) -> str:
        require(company_id, "Company ID is required")
        return "/".join(["/companies", company_id, *segments])
