"""Unit tests for metric labelling"""

from bizbooks.infrastructure.observability.metrics import normalize_endpoint


def test_normalize_endpoint_collapses_ids():
    assert normalize_endpoint("/companies/65a1f0c2e4b0a1b2c3d4e5f6/transactions") == "/companies/:id/transactions"
    assert normalize_endpoint("/sales/123/payments") == "/sales/:id/payments"
    assert normalize_endpoint("/parties/check-phone/9876543210") == "/parties/check-phone/:id"


def test_normalize_endpoint_keeps_named_segments():
    assert normalize_endpoint("/sales/next-invoice-number?companyId=1") == "/sales/next-invoice-number"
    assert normalize_endpoint("/purchases/payment-summary-overdue") == "/purchases/payment-summary-overdue"
    assert normalize_endpoint("/health") == "/health"
