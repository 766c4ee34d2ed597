"""Structured JSON logging for client-side observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from bizbooks.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Send JSON records to stdout; repeated calls replace the previous handler"""
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    # httpx logs each request at INFO, log_api_call already covers them
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def log_api_call(
    method: str,
    path: str,
    status: int,
    duration_ms: float,
    attempt: int,
) -> None:
    """Log one HTTP exchange with the backend"""
    logging.getLogger("bizbooks.http").info(
        "API call completed",
        extra={
            "step": "api_call",
            "method": method,
            "path": path,
            "status": status,
            "duration_ms": round(duration_ms, 2),
            "attempt": attempt,
        },
    )


def log_workflow(step: str, **fields: Any) -> None:
    """Log a workflow milestone (invoice saved, payment linked, ...)"""
    logging.getLogger("bizbooks.workflow").info(
        step.replace("_", " ").capitalize(),
        extra={"step": step, **fields},
    )
