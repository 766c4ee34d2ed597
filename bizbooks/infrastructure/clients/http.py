"""Backend REST client: envelope handling, error mapping and retry with backoff"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from bizbooks.config import settings
from bizbooks.domain.exceptions import (
    ApiError,
    EnvelopeError,
    NetworkError,
    categorize_status,
    error_message_for,
)
from bizbooks.infrastructure.clients.dedup import RequestDeduplicator
from bizbooks.infrastructure.observability.logging import log_api_call
from bizbooks.infrastructure.observability.metrics import (
    failure_counter,
    normalize_endpoint,
    record_api_call,
    retry_counter,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    How often, and how patiently, a call is retried.

    Strategies:
    - linear: backoff x attempt (1s, 2s, ...)
    - exponential: backoff x 2^(attempt-1), capped at cap_seconds (1s, 2s, 4s, ...)

    Only network failures, 5xx, 408 and 429 are retried.
    """

    max_attempts: int = 1
    backoff_seconds: float = 1.0
    strategy: str = "linear"
    cap_seconds: Optional[float] = None

    def delay_for(self, attempt: int) -> float:
        if self.strategy == "exponential":
            delay = self.backoff_seconds * (2 ** (attempt - 1))
        else:
            delay = self.backoff_seconds * attempt
        if self.cap_seconds is not None:
            delay = min(delay, self.cap_seconds)
        return delay


NO_RETRY = RetryPolicy(max_attempts=1)

SALES_POLICY = RetryPolicy(
    max_attempts=settings.read_max_retries + 1,
    backoff_seconds=settings.retry_backoff_seconds,
    strategy="linear",
)

CRITICAL_POLICY = RetryPolicy(
    max_attempts=settings.critical_max_attempts,
    backoff_seconds=settings.retry_backoff_seconds,
    strategy="exponential",
    cap_seconds=settings.critical_backoff_cap_seconds,
)


def clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop query parameters that carry no value"""
    cleaned = {}
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


class ApiClient:
    """Async client for the accounting backend"""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        default_retry: RetryPolicy = NO_RETRY,
        cache_ttl_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token if token is not None else settings.api_token
        self.timeout = timeout or settings.http_timeout_seconds
        self.default_retry = default_retry
        self._transport = transport
        self._sleep = sleep
        ttl = settings.read_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds
        self.deduplicator = RequestDeduplicator(ttl_seconds=ttl)

    def _headers(self, company_id: Optional[str]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
            headers["x-auth-token"] = self.token
        if company_id:
            headers["x-company-id"] = company_id
        return headers

    async def get(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self.request("DELETE", path, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        company_id: Optional[str] = None,
        retry: Optional[RetryPolicy] = None,
        use_cache: bool = True,
    ) -> Dict[str, Any]:
        """
        Send one logical request and return the decoded envelope.

        Raises:
            NetworkError: Backend unreachable after all attempts
            ApiError: Non-2xx response (message mapped for display)
            EnvelopeError: 2xx response with success: false
        """
        method = method.upper()
        params = clean_params(params)
        policy = retry or self.default_retry

        async def send() -> Dict[str, Any]:
            return await self._send_with_retry(method, path, params, json, company_id, policy)

        if method == "GET" and use_cache:
            key = RequestDeduplicator.key(method, path, params, company_id)
            return await self.deduplicator.run(key, send)

        try:
            return await send()
        finally:
            if method != "GET":
                # Balances, stock and totals all move on writes
                self.deduplicator.clear()

    async def _send_with_retry(
        self,
        method: str,
        path: str,
        params: Dict[str, Any],
        json: Any,
        company_id: Optional[str],
        policy: RetryPolicy,
    ) -> Dict[str, Any]:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._send(method, path, params, json, company_id, attempt)
            except ApiError as e:
                if not e.retryable or attempt >= policy.max_attempts:
                    failure_counter.labels(category=e.category).inc()
                    raise

                delay = policy.delay_for(attempt)
                retry_counter.labels(endpoint=normalize_endpoint(path)).inc()
                logger.warning(
                    "Retrying backend call",
                    extra={
                        "step": "api_retry",
                        "method": method,
                        "path": path,
                        "attempt": attempt,
                        "delay_seconds": delay,
                        "error": e.message,
                    },
                )
                await self._sleep(delay)

    async def _send(
        self,
        method: str,
        path: str,
        params: Dict[str, Any],
        json: Any,
        company_id: Optional[str],
        attempt: int,
    ) -> Dict[str, Any]:
        start = time.perf_counter()
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(
                    method,
                    path,
                    params=params or None,
                    json=json,
                    headers=self._headers(company_id),
                )
            except httpx.TimeoutException as e:
                raise NetworkError(f"timeout after {self.timeout}s") from e
            except httpx.RequestError as e:
                raise NetworkError(str(e) or e.__class__.__name__) from e

        duration = time.perf_counter() - start
        record_api_call(method, path, response.status_code, duration)
        log_api_call(method, path, response.status_code, duration * 1000, attempt)

        data = self._decode(response)
        if response.is_error:
            status = response.status_code
            raise ApiError(error_message_for(status, data), status, categorize_status(status), data)
        if data.get("success") is False:
            raise EnvelopeError(
                data.get("message") or "Request failed",
                response.status_code,
                "client_error",
                data,
            )
        return data

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            return {"message": response.text}
        if isinstance(body, dict):
            return body
        return {"success": True, "data": body}
