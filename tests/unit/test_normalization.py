"""Unit tests for backend record normalisation"""

from datetime import date
from bizbooks.domain.normalization import (
    as_list,
    first_present,
    normalize_item,
    normalize_pagination,
    normalize_party,
    normalize_purchase,
    normalize_sale,
    normalize_transaction,
    unwrap,
)


def test_first_present_skips_empty_values_and_walks_dotted_keys():
    record = {"name": "", "customer": {"name": "Ravi"}, "price": 0}

    assert first_present(record, "name", "customer.name") == "Ravi"
    assert first_present(record, "price") == 0
    assert first_present(record, "missing", default="n/a") == "n/a"
    assert first_present(None, "name", default=1) == 1


def test_unwrap_and_as_list():
    """Test envelope layers and named collections are stripped"""
    envelope = {"success": True, "data": {"bill": {"_id": "b1"}}}
    assert unwrap(envelope, "bill", "purchase") == {"_id": "b1"}
    assert as_list({"data": [{"_id": "a"}, "junk"]}) == [{"_id": "a"}]
    assert as_list({"data": {"sales": [{"_id": "s"}]}}, "sales") == [{"_id": "s"}]
    assert as_list({"data": None}, "sales") == []


def test_normalize_item_aliases_and_defaults():
    item = normalize_item({"_id": "i1", "itemName": "Rice", "sellPrice": "55.5", "openingStock": 20})

    assert item.name == "Rice"
    assert item.sale_price == 55.5
    assert item.unit == "PCS"
    assert item.current_stock == 20
    assert item.buy_price == 0.0


def test_normalize_item_service_has_no_stock():
    item = normalize_item({"_id": "i2", "name": "Installation", "type": "service", "currentStock": 12})
    assert item.current_stock == 0.0
    assert item.min_stock_level == 0.0


def test_normalize_party_vendor_is_supplier():
    party = normalize_party({"_id": "p1", "name": "Acme", "type": "vendor", "mobile": "9000000000"})
    assert party.party_type == "supplier"
    assert party.phone_number == "9000000000"


def test_normalize_sale():
    sale = normalize_sale(
        {
            "data": {
                "sale": {
                    "_id": "s1",
                    "invoiceNumber": "GST-20240601-0001",
                    "invoiceDate": "2024-06-01T10:00:00.000Z",
                    "invoiceType": "gst",
                    "customer": {"_id": "p1", "name": "Ravi Kumar"},
                    "totals": {"subtotal": 100, "totalTax": 18, "finalTotal": 118},
                    "payment": {"paidAmount": 18, "status": "partial", "dueDate": "2024-07-01"},
                    "items": [{"itemName": "Notebook", "quantity": 2, "pricePerUnit": 50}],
                }
            }
        }
    )

    assert sale.id == "s1"
    assert sale.gst_enabled is True
    assert sale.invoice_date == date(2024, 6, 1)
    assert sale.customer_name == "Ravi Kumar"
    assert sale.customer_id == "p1"
    assert sale.total == 118.0
    assert sale.payment.pending_amount == 100.0
    assert sale.payment.due_date == date(2024, 7, 1)
    assert sale.items[0].amount == 100.0


def test_normalize_purchase_bill_number_alias():
    bill = normalize_purchase({"_id": "b1", "billNumber": "PB-0009", "supplierName": "Acme", "grandTotal": 500})

    assert bill.purchase_number == "PB-0009"
    assert bill.supplier_name == "Acme"
    assert bill.total == 500.0
    assert bill.status == "draft"
    assert bill.payment.pending_amount == 500.0


def test_normalize_transaction():
    txn = normalize_transaction(
        {
            "_id": "t1",
            "transactionId": "TXN-20240601-0001",
            "transactionType": "payment_out",
            "direction": "out",
            "amount": "3000",
            "bankAccountId": {"_id": "acc1", "accountName": "HDFC"},
            "balanceBefore": 10000,
            "balanceAfter": 7000,
        }
    )

    assert txn.amount == 3000.0
    assert txn.bank_account_id == "acc1"
    assert txn.balance_after == 7000.0
    assert txn.status == "completed"


def test_normalize_pagination_fills_missing_totals():
    pagination = normalize_pagination(None, page=2, limit=10, count=25)

    assert pagination.page == 2
    assert pagination.total == 25
    assert pagination.total_pages == 3
