"""
Next-document-number previews.

The backend assigns the real number when a document is saved; anything produced
here is only shown to the user beforehand. Sources are tried in order:
the API's `previewInvoiceNumber`, the pattern info's `example` (taken from the
response, or built locally when the endpoint is down), then a
locally built placeholder.
"""

from datetime import date
from typing import Any, Dict, Optional

from bizbooks.domain.models import NumberPreview
from bizbooks.domain.normalization import first_present
from bizbooks.utils.date_utils import compact_date


def fallback_number(gst_enabled: bool, today: Optional[date] = None, prefix: str = "INV") -> str:
    """INV-GST-YYYYMMDD-XXXX / INV-YYYYMMDD-XXXX"""
    stamp = compact_date(today or date.today())
    if gst_enabled:
        return f"{prefix}-GST-{stamp}-XXXX"
    return f"{prefix}-{stamp}-XXXX"


def pattern_info(gst_enabled: bool, today: Optional[date] = None, prefix: str = "INV") -> Dict[str, str]:
    """
    The backend's numbering format with today's first number as the example.

    Invoices are GST-YYYYMMDD-NNNN / INV-YYYYMMDD-NNNN; other documents put
    GST after their own prefix (PB-GST-YYYYMMDD-NNNN / PB-YYYYMMDD-NNNN).
    """
    if gst_enabled:
        lead = "GST" if prefix == "INV" else f"{prefix}-GST"
    else:
        lead = prefix
    stamp = compact_date(today or date.today())
    return {"pattern": f"{lead}-YYYYMMDD-NNNN", "example": f"{lead}-{stamp}-0001"}


def pattern_example(pattern_info: Optional[Dict[str, Any]]) -> Optional[str]:
    if not isinstance(pattern_info, dict):
        return None
    return first_present(pattern_info, "example", "format")


def offline_preview(gst_enabled: bool, today: Optional[date] = None, prefix: str = "INV") -> NumberPreview:
    """Preview when the next-number endpoint cannot be reached: pattern first, then placeholder"""
    example = pattern_example(pattern_info(gst_enabled, today, prefix))
    if example:
        return NumberPreview(number=str(example), source="pattern")
    return NumberPreview(number=fallback_number(gst_enabled, today, prefix), source="fallback")


def extract_preview(
    data: Optional[Dict[str, Any]],
    gst_enabled: bool,
    today: Optional[date] = None,
    prefix: str = "INV",
) -> NumberPreview:
    """Pick the best available preview out of a next-number response"""
    data = data or {}
    number = first_present(data, "previewInvoiceNumber", "nextInvoiceNumber", "nextNumber", "previewNumber")
    if number:
        return NumberPreview(number=str(number), source="api")
    example = pattern_example(data.get("pattern") or data.get("patternInfo"))
    if example:
        return NumberPreview(number=str(example), source="pattern")
    return NumberPreview(number=fallback_number(gst_enabled, today, prefix), source="fallback")


ORDER_PREFIXES = {"quotation": "QUO", "sales_order": "SO", "proforma_invoice": "PI"}


def order_prefix(order_type: str) -> str:
    return ORDER_PREFIXES.get(order_type, "QUO")


PURCHASE_ORDER_PREFIXES = {"purchase_order": "PO", "purchase_quotation": "PQU", "proforma_purchase": "PPO"}


def purchase_order_prefix(order_type: str) -> str:
    return PURCHASE_ORDER_PREFIXES.get(order_type, "PO")
