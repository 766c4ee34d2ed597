"""Unit tests for document pricing and payload shaping"""

import pytest
from datetime import date
from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.domain.pricing import (
    build_purchase_payload,
    build_sale_payload,
    invoice_totals,
    item_price_fields,
    line_amounts,
    payment_status,
    resolve_due_date,
    shape_lines,
    split_tax,
)


def test_split_tax_inclusive_and_exclusive():
    """Test price with/without tax in both directions"""
    assert split_tax(118, 18, inclusive=True) == (118.0, 100.0)
    assert split_tax(100, 18, inclusive=False) == (118.0, 100.0)
    assert split_tax(250, 0, inclusive=False) == (250.0, 250.0)


def test_line_amounts_exclusive_tax():
    """Test tax added on top of the line value and split into CGST/SGST"""
    amounts = line_amounts({"quantity": 2, "pricePerUnit": 100, "taxRate": 18})

    assert amounts.taxable == 200.0
    assert amounts.tax == 36.0
    assert amounts.cgst == 18.0
    assert amounts.sgst == 18.0
    assert amounts.total == 236.0


def test_line_amounts_inclusive_tax_uses_default_rate():
    """Test tax-inclusive line without a rate is read at 18%"""
    amounts = line_amounts({"quantity": 1, "pricePerUnit": 118, "priceIncludesTax": True})

    assert amounts.taxable == 100.0
    assert amounts.tax == 18.0
    assert amounts.total == 118.0


def test_line_amounts_discount():
    """Test flat discount wins over percentage"""
    by_percent = line_amounts({"quantity": 1, "pricePerUnit": 1000, "discountPercent": 10})
    by_amount = line_amounts({"quantity": 1, "pricePerUnit": 1000, "discountPercent": 10, "discountAmount": 50})

    assert by_percent.discount == 100.0
    assert by_percent.total == 900.0
    assert by_amount.discount == 50.0
    assert by_amount.total == 950.0


def test_invoice_totals():
    lines = [
        {"quantity": 2, "pricePerUnit": 100, "taxRate": 18},
        {"quantity": 1, "pricePerUnit": 50, "taxRate": 0},
    ]
    totals = invoice_totals(lines)

    assert totals == {"subtotal": 250.0, "totalDiscount": 0.0, "totalTax": 36.0, "finalTotal": 286.0}


def test_payment_status():
    assert payment_status(0, 100) == "pending"
    assert payment_status(50, 100) == "partial"
    assert payment_status(100, 100) == "paid"
    assert payment_status(0, 0) == "pending"


def test_resolve_due_date_rules():
    """Test explicit date, credit days and the default credit period"""
    today = date(2024, 1, 1)

    assert resolve_due_date("2024-12-31", today=today) == (date(2024, 12, 31), 0)
    assert resolve_due_date(credit_days=15, today=today) == (date(2024, 1, 16), 15)
    assert resolve_due_date(paid=50, pending=50, today=today) == (date(2024, 1, 31), 30)
    assert resolve_due_date(paid=100, pending=0, today=today) == (None, 0)
    assert resolve_due_date(paid=0, pending=100, today=today) == (None, 0)


def test_shape_lines_drops_unusable_lines():
    """Test lines without name, quantity or price are filtered out"""
    lines = shape_lines(
        [
            {"itemName": "Gel Pen", "quantity": 2, "price": 10},
            {"itemName": "", "quantity": 1, "price": 5},
            {"itemName": "Stapler", "quantity": 0, "price": 5},
            {"itemName": "Marker", "quantity": 1},
        ],
        price_includes_tax=False,
    )

    assert len(lines) == 1
    line = lines[0]
    assert line["itemName"] == "Gel Pen"
    assert line["unit"] == "PCS"
    assert line["hsnCode"] == "0000"
    assert line["amount"] == 20.0
    assert line["lineNumber"] == 1
    assert line["taxMode"] == "without-tax"


def test_build_sale_payload_partial_payment():
    """Test GST invoice with part payment gets a due date 30 days out"""
    payload = build_sale_payload(
        {
            "companyId": "c1",
            "gstEnabled": True,
            "customer": {"name": "Ravi Kumar", "id": "p1"},
            "items": [{"itemName": "Notebook", "quantity": 10, "pricePerUnit": 10, "taxRate": 18}],
            "paymentReceived": 50,
            "bankAccountId": "acc1",
        },
        today=date(2024, 3, 1),
    )

    assert payload["invoiceType"] == "gst"
    assert payload["customerName"] == "Ravi Kumar"
    assert payload["customer"] == "p1"
    assert payload["totals"]["finalTotal"] == 118.0
    assert payload["payment"]["status"] == "partial"
    assert payload["payment"]["pendingAmount"] == 68.0
    assert payload["payment"]["dueDate"] == "2024-03-31"
    assert payload["payment"]["creditDays"] == 30
    assert payload["bankAccountId"] == "acc1"


def test_build_sale_payload_defaults_to_cash_customer():
    payload = build_sale_payload({"items": [{"itemName": "Tea", "quantity": 1, "price": 20}]}, today=date(2024, 3, 1))

    assert payload["customerName"] == "Cash Customer"
    assert payload["invoiceType"] == "non-gst"
    assert payload["payment"]["status"] == "pending"
    assert payload["payment"]["dueDate"] is None


def test_build_sale_payload_keeps_supplied_totals():
    """Test caller-computed totals are sent as is"""
    payload = build_sale_payload(
        {
            "items": [{"itemName": "Tea", "quantity": 1, "price": 20}],
            "totals": {"subtotal": 19, "totalTax": 1, "finalTotal": 20.5},
        },
        today=date(2024, 3, 1),
    )

    assert payload["totals"]["finalTotal"] == 20.5
    assert payload["totals"]["subtotal"] == 19.0


@pytest.mark.parametrize(
    "draft,message",
    [
        ({"supplierName": "Acme", "items": [{"itemName": "Bolt", "quantity": 1, "price": 2}]}, "Company ID"),
        ({"companyId": "c1", "items": [{"itemName": "Bolt", "quantity": 1, "price": 2}]}, "Supplier name"),
        ({"companyId": "c1", "supplierName": "Acme", "items": []}, "At least one item"),
        ({"companyId": "c1", "supplierName": "Acme", "items": [{"itemName": "Bolt", "quantity": 0}]}, "No valid items"),
    ],
)
def test_build_purchase_payload_validation(draft, message):
    with pytest.raises(ServiceValidationError, match=message):
        build_purchase_payload(draft)


def test_build_purchase_payload():
    payload = build_purchase_payload(
        {
            "companyId": "c1",
            "supplier": {"name": "Acme Metals", "id": "s1"},
            "items": [{"itemName": "Steel Rod", "quantity": 5, "pricePerUnit": 200, "taxRate": 12}],
            "paymentReceived": 1120,
            "paymentMethod": "bank_transfer",
        },
        today=date(2024, 3, 1),
    )

    assert payload["supplier"] == "s1"
    assert payload["supplierName"] == "Acme Metals"
    assert payload["purchaseType"] == "non-gst"
    assert payload["status"] == "draft"
    assert payload["totals"]["finalTotal"] == 1120.0
    assert payload["payment"]["status"] == "paid"
    assert payload["payment"]["method"] == "bank_transfer"


def test_item_price_fields():
    """Test inclusive sale price is split, exclusive buy price is grossed up"""
    fields = item_price_fields(
        {"salePrice": 118, "buyPrice": 100, "gstRate": 18, "isSalePriceTaxInclusive": True}
    )

    assert fields["salePriceWithTax"] == 118.0
    assert fields["salePriceWithoutTax"] == 100.0
    assert fields["buyPriceWithTax"] == 118.0
    assert fields["buyPriceWithoutTax"] == 100.0
    assert fields["gstRate"] == 18.0
