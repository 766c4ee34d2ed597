"""Unit tests for structured logging"""

import json
import logging

from bizbooks.infrastructure.observability.logging import log_api_call, log_workflow, setup_logging


def records(out: str) -> list:
    return [json.loads(line) for line in out.splitlines() if line.strip()]


def test_records_are_json_with_service_metadata(capsys):
    setup_logging("info")
    log_workflow("payment_linked", document="sale", amount=500.0)

    [record] = records(capsys.readouterr().out)
    assert record["message"] == "Payment linked"
    assert record["level"] == "INFO"
    assert record["service"] == "bizbooks-client"
    assert record["name"] == "bizbooks.workflow"
    assert record["step"] == "payment_linked"
    assert record["document"] == "sale"
    assert "timestamp" in record


def test_api_call_fields(capsys):
    setup_logging()
    log_api_call("GET", "/sales/overdue", 500, 12.3456, attempt=2)

    [record] = records(capsys.readouterr().out)
    assert record["step"] == "api_call"
    assert record["status"] == 500
    assert record["duration_ms"] == 12.35
    assert record["attempt"] == 2


def test_setup_replaces_handlers_and_quiets_httpx():
    setup_logging()
    setup_logging("WARNING")

    assert len(logging.getLogger().handlers) == 1
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING
