"""
Normalisation of backend records into domain models.

The backend has renamed fields several times (salePrice / salePriceWithoutTax /
sellPrice, purchaseNumber / billNumber, ...). Every alias a record may carry is
resolved here, and missing values get their display defaults: 0 for numerics,
"PCS" for units.
"""

from typing import Any, Dict, List, Optional

from bizbooks.domain.models import (
    BankAccount,
    Company,
    InvoiceLine,
    Item,
    Pagination,
    Party,
    Payment,
    PurchaseBill,
    PurchaseOrder,
    Quotation,
    SaleInvoice,
    Transaction,
)
from bizbooks.utils.date_utils import parse_date

DEFAULT_UNIT = "PCS"

SALE_PRICE_KEYS = ("salePrice", "salePriceWithoutTax", "sellPrice", "price", "rate")
BUY_PRICE_KEYS = ("buyPrice", "purchasePrice", "buyPriceWithoutTax")
LINE_PRICE_KEYS = ("pricePerUnit", "price", "rate", "sellPrice", "purchasePrice")


def _lookup(record: Dict[str, Any], key: str) -> Any:
    value: Any = record
    for part in key.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def first_present(record: Optional[Dict[str, Any]], *keys: str, default: Any = None) -> Any:
    """Value of the first key that is neither None nor ''; dotted keys walk nested dicts"""
    if not record:
        return default
    for key in keys:
        value = _lookup(record, key)
        if value is not None and value != "":
            return value
    return default


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_int(value: Any, default: int = 0) -> int:
    return int(to_float(value, float(default)))


def record_id(record: Optional[Dict[str, Any]]) -> str:
    if not isinstance(record, dict):
        return str(record) if record else ""
    return str(first_present(record, "_id", "id", default=""))


def unwrap(payload: Any, *keys: str) -> Any:
    """Strip envelope layers: {'data': {...}} / {'bill': {...}} / {'purchase': {...}}"""
    current = payload
    if isinstance(current, dict) and isinstance(current.get("data"), (dict, list)):
        current = current["data"]
    for key in keys:
        if isinstance(current, dict) and isinstance(current.get(key), (dict, list)):
            return current[key]
    return current


def as_list(payload: Any, *keys: str) -> List[Dict[str, Any]]:
    """Collection from a payload that may be a bare list or {key: [...]}"""
    value = unwrap(payload, *keys)
    if isinstance(value, list):
        return [v for v in value if isinstance(v, dict)]
    return []


def normalize_company(raw: Dict[str, Any]) -> Company:
    return Company(
        id=record_id(raw),
        name=str(first_present(raw, "businessName", "name", default="")),
        email=str(first_present(raw, "email", default="")),
        phone=str(first_present(raw, "phoneNumber", "phone", default="")),
        gst_number=str(first_present(raw, "gstin", "gstNumber", default="")),
        address=str(first_present(raw, "address", default="")),
    )


def normalize_bank_account(raw: Dict[str, Any]) -> BankAccount:
    return BankAccount(
        id=record_id(raw),
        account_name=str(first_present(raw, "accountName", "name", default="")),
        account_type=str(first_present(raw, "accountType", "type", default="bank")),
        balance=to_float(first_present(raw, "currentBalance", "balance", "openingBalance")),
        bank_name=str(first_present(raw, "bankName", default="")),
        account_number=str(first_present(raw, "accountNumber", default="")),
        ifsc_code=str(first_present(raw, "ifscCode", default="")),
        is_active=bool(first_present(raw, "isActive", default=True)),
    )


def normalize_item(raw: Dict[str, Any]) -> Item:
    item_type = str(first_present(raw, "type", default="product"))
    is_service = item_type == "service"
    return Item(
        id=record_id(raw),
        name=str(first_present(raw, "name", "itemName", default="")),
        type=item_type,
        unit=str(first_present(raw, "unit", default=DEFAULT_UNIT)),
        category=str(first_present(raw, "category", default="")),
        sale_price=to_float(first_present(raw, *SALE_PRICE_KEYS)),
        buy_price=to_float(first_present(raw, *BUY_PRICE_KEYS)),
        gst_rate=to_float(first_present(raw, "gstRate", "taxRate")),
        current_stock=0.0 if is_service else to_float(
            first_present(raw, "currentStock", "openingStock", "openingQuantity")
        ),
        min_stock_level=0.0 if is_service else to_float(
            first_present(raw, "minStockLevel", "minStockToMaintain")
        ),
        item_code=str(first_present(raw, "itemCode", "sku", default="")),
        hsn_number=str(first_present(raw, "hsnNumber", "hsnCode", default="")),
        is_active=bool(first_present(raw, "isActive", default=True)),
    )


def normalize_party(raw: Dict[str, Any]) -> Party:
    party_type = str(first_present(raw, "partyType", "type", default="customer"))
    if party_type == "vendor":
        party_type = "supplier"
    return Party(
        id=record_id(raw),
        name=str(first_present(raw, "name", "partyName", default="")),
        party_type=party_type,
        phone_number=str(first_present(raw, "phoneNumber", "mobile", "phone", default="")),
        email=str(first_present(raw, "email", default="")),
        gst_number=str(first_present(raw, "gstNumber", default="")),
        current_balance=to_float(first_present(raw, "currentBalance", "balance", "openingBalance")),
    )


def normalize_line(raw: Dict[str, Any]) -> InvoiceLine:
    quantity = to_float(first_present(raw, "quantity", "qty"), 1.0)
    price = to_float(first_present(raw, *LINE_PRICE_KEYS))
    amount = first_present(raw, "amount", "totalAmount", "itemAmount")
    return InvoiceLine(
        item_name=str(first_present(raw, "itemName", "productName", "name", default="")),
        quantity=quantity,
        unit=str(first_present(raw, "unit", default=DEFAULT_UNIT)),
        price_per_unit=price,
        tax_rate=to_float(first_present(raw, "taxRate", "gstRate")),
        amount=to_float(amount) if amount is not None else round(quantity * price, 2),
        item_ref=first_present(raw, "itemRef", "itemId"),
        hsn_code=str(first_present(raw, "hsnCode", "hsnNumber", default="0000")),
        discount_percent=to_float(raw.get("discountPercent")),
        discount_amount=to_float(raw.get("discountAmount")),
    )


def normalize_payment(raw: Dict[str, Any], total: float) -> Payment:
    payment = raw.get("payment") if isinstance(raw.get("payment"), dict) else {}
    paid = to_float(first_present(payment, "paidAmount", default=first_present(raw, "paymentReceived")))
    pending_raw = first_present(payment, "pendingAmount", "balanceAmount")
    pending = to_float(pending_raw) if pending_raw is not None else max(0.0, total - paid)
    return Payment(
        method=str(first_present(payment, "method", default=first_present(raw, "paymentMethod", default="cash"))),
        status=str(first_present(payment, "status", default="pending")),
        paid_amount=paid,
        pending_amount=pending,
        due_date=parse_date(first_present(payment, "dueDate", default=raw.get("dueDate"))),
        credit_days=to_int(first_present(payment, "creditDays", default=raw.get("creditDays"))),
    )


def _document_totals(raw: Dict[str, Any]) -> Dict[str, float]:
    return {
        "subtotal": to_float(first_present(raw, "totals.subtotal", "subtotal")),
        "total_tax": to_float(first_present(raw, "totals.totalTax", "totals.totalTaxAmount", "totalTax")),
        "total": to_float(first_present(raw, "totals.finalTotal", "grandTotal", "totalAmount", "amount")),
    }


def normalize_sale(raw: Dict[str, Any]) -> SaleInvoice:
    raw = unwrap(raw, "sale", "invoice")
    totals = _document_totals(raw)
    customer = raw.get("customer")
    return SaleInvoice(
        id=record_id(raw),
        invoice_number=str(first_present(raw, "invoiceNumber", "invoiceNo", default="")),
        invoice_date=parse_date(first_present(raw, "invoiceDate", "date")),
        customer_name=str(first_present(raw, "customer.name", "customerName", "partyName", default="Cash Customer")),
        customer_id=record_id(customer) or None if customer else first_present(raw, "customerId"),
        gst_enabled=bool(first_present(raw, "gstEnabled", default=raw.get("invoiceType") == "gst")),
        status=str(first_present(raw, "status", default="completed")),
        payment=normalize_payment(raw, totals["total"]),
        items=[normalize_line(line) for line in raw.get("items") or [] if isinstance(line, dict)],
        **totals,
    )


def normalize_purchase(raw: Dict[str, Any]) -> PurchaseBill:
    raw = unwrap(raw, "bill", "purchase")
    totals = _document_totals(raw)
    supplier = raw.get("supplier")
    return PurchaseBill(
        id=record_id(raw),
        purchase_number=str(first_present(raw, "purchaseNumber", "billNumber", "invoiceNumber", default="")),
        purchase_date=parse_date(first_present(raw, "purchaseDate", "billDate", "invoiceDate")),
        supplier_name=str(first_present(raw, "supplierName", "supplier.name", "partyName", default="")),
        supplier_id=record_id(supplier) or None if supplier else first_present(raw, "supplierId"),
        gst_enabled=bool(first_present(raw, "gstEnabled", default=raw.get("purchaseType") == "gst")),
        status=str(first_present(raw, "status", default="draft")),
        payment=normalize_payment(raw, totals["total"]),
        items=[normalize_line(line) for line in raw.get("items") or [] if isinstance(line, dict)],
        **totals,
    )


def normalize_quotation(raw: Dict[str, Any]) -> Quotation:
    raw = unwrap(raw, "salesOrder", "order")
    return Quotation(
        id=record_id(raw),
        order_number=str(first_present(raw, "orderNumber", "quotationNumber", default="")),
        order_type=str(first_present(raw, "orderType", default="quotation")),
        order_date=parse_date(first_present(raw, "orderDate", "quotationDate", "date")),
        customer_name=str(first_present(raw, "customer.name", "customerName", "partyName", default="")),
        status=str(first_present(raw, "status", default="draft")),
        total=to_float(first_present(raw, "totals.finalTotal", "totalAmount", "amount")),
        converted_to_invoice=bool(first_present(raw, "convertedToInvoice", default=False)),
        items=[normalize_line(line) for line in raw.get("items") or [] if isinstance(line, dict)],
    )


def normalize_purchase_order(raw: Dict[str, Any]) -> PurchaseOrder:
    raw = unwrap(raw, "purchaseOrder", "order")
    total = to_float(first_present(raw, "totals.finalTotal", "grandTotal", "totalAmount", "amount"))
    return PurchaseOrder(
        id=record_id(raw),
        order_number=str(first_present(raw, "orderNumber", "purchaseOrderNumber", default="")),
        order_type=str(first_present(raw, "orderType", default="purchase_order")),
        order_date=parse_date(first_present(raw, "orderDate", "date")),
        supplier_name=str(first_present(raw, "supplierName", "supplier.name", "partyName", default="")),
        status=str(first_present(raw, "status", default="draft")),
        total=total,
        payment=normalize_payment(raw, total),
        required_by=parse_date(first_present(raw, "requiredBy", "expectedDeliveryDate")),
        converted_to_invoice=bool(first_present(raw, "convertedToPurchaseInvoice", "convertedToInvoice", default=False)),
        items=[normalize_line(line) for line in raw.get("items") or [] if isinstance(line, dict)],
    )


def normalize_transaction(raw: Dict[str, Any]) -> Transaction:
    balance_before = first_present(raw, "balanceBefore")
    balance_after = first_present(raw, "balanceAfter")
    bank_account = first_present(raw, "bankAccountId")
    return Transaction(
        id=record_id(raw),
        transaction_id=str(first_present(raw, "transactionId", "_id", "id", default="")),
        transaction_type=str(first_present(raw, "transactionType", "type", default="payment_in")),
        direction=str(first_present(raw, "direction", default="in")),
        amount=to_float(raw.get("amount")),
        payment_method=str(first_present(raw, "paymentMethod", default="cash")),
        description=str(first_present(raw, "description", default="")),
        transaction_date=parse_date(first_present(raw, "transactionDate", "date", "createdAt")),
        bank_account_id=record_id(bank_account) or None if bank_account else None,
        party_name=str(first_present(raw, "partyName", default="")),
        balance_before=to_float(balance_before) if balance_before is not None else None,
        balance_after=to_float(balance_after) if balance_after is not None else None,
        status=str(first_present(raw, "status", default="completed")),
    )


def normalize_pagination(raw: Optional[Dict[str, Any]], page: int, limit: int, count: int) -> Pagination:
    raw = raw or {}
    total = to_int(first_present(raw, "totalTransactions", "totalItems", "total", default=count))
    total_pages = to_int(first_present(raw, "totalPages", default=-(-total // limit) if limit else 0))
    return Pagination(
        page=to_int(first_present(raw, "currentPage", "page", default=page), page),
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=bool(first_present(raw, "hasNext", "hasNextPage", default=False)),
        has_prev=bool(first_present(raw, "hasPrev", "hasPrevPage", default=False)),
    )
