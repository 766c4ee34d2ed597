"""Prometheus metrics for backend latency, retries and failed payment links"""

import re

from prometheus_client import Counter, Histogram

# HTTP metrics
request_duration_histogram = Histogram(
    "bizbooks_api_request_duration_seconds",
    "Backend API request latency",
    ["method", "endpoint", "status"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

retry_counter = Counter(
    "bizbooks_api_retries_total",
    "Retried backend API calls",
    ["endpoint"],
)

failure_counter = Counter(
    "bizbooks_api_failures_total",
    "Failed backend API calls",
    ["category"],  # network | server_error | not_found | ...
)

# Workflow metrics
linked_transaction_failures_counter = Counter(
    "bizbooks_linked_transaction_failures_total",
    "Documents saved whose payment transaction could not be recorded",
    ["document"],  # sale | purchase
)

_ID_SEGMENT = re.compile(r"^(?:[0-9a-fA-F]{24}|[0-9a-fA-F-]{32,36}|\d+|[A-Za-z0-9_-]*\d[A-Za-z0-9_-]{5,})$")


def normalize_endpoint(path: str) -> str:
    """Collapse id-like path segments to ':id' to bound label cardinality"""
    segments = [s for s in path.split("?")[0].split("/") if s]
    return "/" + "/".join(":id" if _ID_SEGMENT.match(s) else s for s in segments)


def record_api_call(method: str, path: str, status: int, duration_seconds: float) -> None:
    """Record latency for one backend exchange"""
    request_duration_histogram.labels(
        method=method,
        endpoint=normalize_endpoint(path),
        status=status,
    ).observe(duration_seconds)
