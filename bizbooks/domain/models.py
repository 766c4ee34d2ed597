"""Domain models - plain dataclasses for the records exchanged with the backend"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class AdjustmentType(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    SET = "set"


@dataclass
class Company:
    """Business the books belong to"""

    id: str
    name: str
    email: str = ""
    phone: str = ""
    gst_number: str = ""
    address: str = ""


@dataclass
class BankAccount:
    """Company cash/bank ledger account"""

    id: str
    account_name: str
    account_type: str  # bank | cash | upi | savings | current ...
    balance: float
    bank_name: str = ""
    account_number: str = ""
    ifsc_code: str = ""
    is_active: bool = True


@dataclass
class Item:
    """Product or service in the inventory"""

    id: str
    name: str
    type: str  # "product" or "service"
    unit: str
    category: str
    sale_price: float
    buy_price: float
    gst_rate: float
    current_stock: float
    min_stock_level: float
    item_code: str = ""
    hsn_number: str = ""
    is_active: bool = True


@dataclass
class Party:
    """Customer or supplier"""

    id: str
    name: str
    party_type: str  # customer | supplier | both
    phone_number: str
    email: str = ""
    gst_number: str = ""
    current_balance: float = 0.0


@dataclass
class InvoiceLine:
    """Single line on a sale, purchase or quotation"""

    item_name: str
    quantity: float
    unit: str
    price_per_unit: float
    tax_rate: float
    amount: float
    item_ref: Optional[str] = None
    hsn_code: str = "0000"
    discount_percent: float = 0.0
    discount_amount: float = 0.0


@dataclass
class Payment:
    """Payment state of a document"""

    method: str
    status: str  # paid | partial | pending | overdue | cancelled
    paid_amount: float
    pending_amount: float
    due_date: Optional[date] = None
    credit_days: int = 0


@dataclass
class SaleInvoice:
    """Sales invoice issued to a customer"""

    id: str
    invoice_number: str
    invoice_date: Optional[date]
    customer_name: str
    customer_id: Optional[str]
    gst_enabled: bool
    status: str
    subtotal: float
    total_tax: float
    total: float
    payment: Payment
    items: List[InvoiceLine] = field(default_factory=list)


@dataclass
class PurchaseBill:
    """Purchase bill received from a supplier"""

    id: str
    purchase_number: str
    purchase_date: Optional[date]
    supplier_name: str
    supplier_id: Optional[str]
    gst_enabled: bool
    status: str
    subtotal: float
    total_tax: float
    total: float
    payment: Payment
    items: List[InvoiceLine] = field(default_factory=list)


@dataclass
class Quotation:
    """Non-binding pre-invoice document, convertible to an invoice"""

    id: str
    order_number: str
    order_type: str  # quotation | sales_order | proforma_invoice
    order_date: Optional[date]
    customer_name: str
    status: str  # draft | sent | accepted | rejected | expired | converted | cancelled
    total: float
    converted_to_invoice: bool = False
    items: List[InvoiceLine] = field(default_factory=list)


@dataclass
class PurchaseOrder:
    """Order placed with a supplier, later converted into a purchase bill"""

    id: str
    order_number: str
    order_type: str  # purchase_order | purchase_quotation | proforma_purchase
    order_date: Optional[date]
    supplier_name: str
    status: str  # draft | sent | confirmed | received | partially_received | cancelled | completed
    total: float
    payment: Payment
    required_by: Optional[date] = None
    converted_to_invoice: bool = False
    items: List[InvoiceLine] = field(default_factory=list)


@dataclass
class Transaction:
    """Money movement against a bank/cash account"""

    id: str
    transaction_id: str
    transaction_type: str  # purchase | sale | payment_in | payment_out | ...
    direction: str  # "in" or "out"
    amount: float
    payment_method: str
    description: str
    transaction_date: Optional[date]
    bank_account_id: Optional[str] = None
    party_name: str = ""
    balance_before: Optional[float] = None
    balance_after: Optional[float] = None
    status: str = "completed"


@dataclass
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool = False
    has_prev: bool = False


@dataclass
class TransactionSummary:
    """Money in/out totals over a period"""

    total_in: float
    total_out: float
    net_amount: float
    total_transactions: int
    by_type: Dict[str, float] = field(default_factory=dict)


@dataclass
class StockMetrics:
    """Inventory valuation and stock-level counts"""

    total_items: int
    total_stock_value: float
    out_of_stock_items: int
    low_stock_items: int
    avg_stock_value: float


@dataclass
class StockAdjustment:
    """Outcome of a stock adjustment"""

    item_id: str
    adjustment_type: AdjustmentType
    quantity: float
    previous_stock: float
    new_stock: float
    reason: str
    as_of_date: date


@dataclass
class DeletionOutcome:
    """Result of asking the backend to delete a document"""

    success: bool
    message: str
    already_deleted: bool = False
    alternative_action: Optional[str] = None  # "soft_delete" when hard delete is refused
    paid_amount: float = 0.0
    document_status: Optional[str] = None

    @property
    def can_soft_delete(self) -> bool:
        return self.alternative_action == "soft_delete"


@dataclass
class NumberPreview:
    """Preview of the next document number; the backend assigns the real one"""

    number: str
    source: str  # api | pattern | fallback


@dataclass
class LinkedResult:
    """Document saved, plus the payment transaction recorded alongside it"""

    document: Dict[str, Any]
    transaction: Optional[Transaction] = None
    transaction_error: Optional[str] = None
    warning: Optional[str] = None
    action: str = "Saved successfully"

    @property
    def message(self) -> str:
        text = self.action
        if self.transaction:
            text += " with payment transaction"
        if self.warning:
            text += f". Note: {self.warning}"
        return text


@dataclass
class TransactionPage:
    """One page of transactions plus the backend's running summary"""

    transactions: List[Transaction]
    pagination: Pagination
    summary: Dict[str, Any] = field(default_factory=dict)
