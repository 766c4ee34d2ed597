"""Unit tests for next-number previews"""

from datetime import date
from bizbooks.domain.invoice_numbers import (
    extract_preview,
    fallback_number,
    offline_preview,
    order_prefix,
    pattern_info,
    purchase_order_prefix,
)

TODAY = date(2024, 12, 10)


def test_fallback_number_format():
    assert fallback_number(True, TODAY) == "INV-GST-20241210-XXXX"
    assert fallback_number(False, TODAY) == "INV-20241210-XXXX"
    assert fallback_number(False, TODAY, prefix="PB") == "PB-20241210-XXXX"


def test_extract_preview_prefers_api_number():
    preview = extract_preview(
        {"previewInvoiceNumber": "GST-20241210-0007", "pattern": {"example": "GST-20241210-0001"}},
        True,
        TODAY,
    )

    assert preview.number == "GST-20241210-0007"
    assert preview.source == "api"


def test_extract_preview_falls_back_to_pattern_example():
    preview = extract_preview({"patternInfo": {"example": "INV-20241210-0001"}}, False, TODAY)

    assert preview.number == "INV-20241210-0001"
    assert preview.source == "pattern"


def test_extract_preview_local_placeholder():
    """Test empty or missing responses still produce a display value"""
    preview = extract_preview(None, True, TODAY)

    assert preview.number == "INV-GST-20241210-XXXX"
    assert preview.source == "fallback"


def test_order_prefix():
    assert order_prefix("quotation") == "QUO"
    assert order_prefix("proforma_invoice") == "PI"
    assert order_prefix("unknown") == "QUO"


def test_pattern_info_matches_backend_numbering():
    assert pattern_info(True, TODAY) == {"pattern": "GST-YYYYMMDD-NNNN", "example": "GST-20241210-0001"}
    assert pattern_info(False, TODAY)["example"] == "INV-20241210-0001"
    assert pattern_info(True, TODAY, prefix="PB")["example"] == "PB-GST-20241210-0001"
    assert pattern_info(False, TODAY, prefix="PB")["example"] == "PB-20241210-0001"


def test_offline_preview_uses_pattern():
    """Test an unreachable next-number endpoint still yields a real-looking number"""
    preview = offline_preview(True, TODAY)

    assert preview.number == "GST-20241210-0001"
    assert preview.source == "pattern"
    assert offline_preview(False, TODAY, prefix="PB").number == "PB-20241210-0001"


def test_purchase_order_prefix():
    assert purchase_order_prefix("purchase_quotation") == "PQU"
    assert purchase_order_prefix("proforma_purchase") == "PPO"
    assert purchase_order_prefix("unknown") == "PO"
