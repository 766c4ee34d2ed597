"""Integration tests for the document, inventory and payment workflows"""

from datetime import date, timedelta

import pytest
from prometheus_client import REGISTRY
from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.domain.models import BankAccount, Company
from bizbooks.infrastructure.clients import base as client_base
from bizbooks.infrastructure.clients.bank_accounts import BankAccountClient
from bizbooks.infrastructure.clients.http import ApiClient
from bizbooks.infrastructure.clients.items import ItemClient
from bizbooks.infrastructure.clients.parties import PartyClient
from bizbooks.infrastructure.clients.purchases import PurchaseClient
from bizbooks.infrastructure.clients.sales import SalesClient
from bizbooks.infrastructure.clients.transactions import TransactionClient
from bizbooks.services.inventory import InventoryService
from bizbooks.services.payments import PaymentService
from bizbooks.services.purchases import PurchaseService
from bizbooks.services.sales import SalesService

STAMP = date.today().strftime("%Y%m%d")


@pytest.fixture
def sales_service(api: ApiClient) -> SalesService:
    return SalesService(SalesClient(api), TransactionClient(api))


@pytest.fixture
def purchase_service(api: ApiClient) -> PurchaseService:
    return PurchaseService(PurchaseClient(api), TransactionClient(api))


def invoice_draft(**overrides) -> dict:
    draft = {
        "gstEnabled": True,
        "customer": {"name": "Ravi Kumar"},
        "items": [{"itemName": "Office Chair", "quantity": 2, "pricePerUnit": 2500, "taxRate": 18}],
    }
    draft.update(overrides)
    return draft


def bill_draft(**overrides) -> dict:
    draft = {
        "supplierName": "Acme Metals",
        "items": [{"itemName": "Steel Rod", "quantity": 10, "pricePerUnit": 450, "taxRate": 0}],
    }
    draft.update(overrides)
    return draft


def linked_failures(document: str) -> float:
    return REGISTRY.get_sample_value("bizbooks_linked_transaction_failures_total", {"document": document}) or 0.0


async def test_invoice_with_payment_records_receipt(
    api: ApiClient, sales_service: SalesService, company: Company, bank_account: BankAccount
):
    """Test a paid invoice creates a linked sale transaction that raises the bank balance"""
    result = await sales_service.create_invoice_with_transaction(
        company.id, invoice_draft(paymentReceived=5900, paymentMethod="upi", bankAccountId=bank_account.id)
    )

    assert result.document["invoiceNumber"] == f"GST-{STAMP}-0001"
    assert result.transaction is not None
    assert result.transaction.transaction_type == "sale"
    assert result.transaction.direction == "in"
    assert result.transaction.amount == 5900.0
    assert result.transaction.party_name == "Ravi Kumar"
    assert result.warning is None
    assert result.message == "Invoice created successfully with payment transaction"
    assert await BankAccountClient(api).get_balance(company.id, bank_account.id) == 105900


async def test_invoice_payment_without_bank_account_warns(sales_service: SalesService, company: Company, backend_state):
    result = await sales_service.create_invoice_with_transaction(company.id, invoice_draft(paymentReceived=1000))

    assert result.transaction is None
    assert result.warning == "Payment amount specified but no bank account selected. Transaction not created."
    assert not any("/transactions" in call for call in backend_state.CALLS)


async def test_unpaid_invoice_creates_no_transaction(sales_service: SalesService, company: Company, bank_account):
    result = await sales_service.create_invoice_with_transaction(company.id, invoice_draft(bankAccountId=bank_account.id))

    assert result.transaction is None
    assert result.warning is None
    assert result.message == "Invoice created successfully"


async def test_failed_receipt_keeps_invoice(
    sales_service: SalesService, company: Company, bank_account: BankAccount, backend_state
):
    """Test the invoice survives when its transaction cannot be recorded"""
    before = linked_failures("sale")
    backend_state.inject_failure("POST", "/transactions", status=500)

    result = await sales_service.create_invoice_with_transaction(
        company.id, invoice_draft(paymentReceived=500, bankAccountId=bank_account.id)
    )

    assert result.document["_id"] in backend_state.DB["sales"]
    assert result.transaction is None
    assert result.transaction_error == "Server error. Please try again later."
    assert result.warning.startswith("Invoice saved successfully, but payment transaction could not be recorded")
    assert linked_failures("sale") == before + 1


async def test_add_payment_with_transaction(
    api: ApiClient, sales_service: SalesService, company: Company, bank_account: BankAccount
):
    created = await sales_service.create_invoice_with_transaction(company.id, invoice_draft())

    result = await sales_service.add_payment_with_transaction(
        company.id, created.document["_id"], {"amount": 1000, "paymentMethod": "cheque", "bankAccountId": bank_account.id}
    )

    assert result.action == "Payment added successfully"
    assert result.document["invoiceNumber"] == created.document["invoiceNumber"]
    assert result.document["pendingAmount"] == 4900.0
    assert result.transaction.party_name == "Ravi Kumar"
    assert result.transaction.description == f"Sales receipt for invoice {created.document['invoiceNumber']}"

    with pytest.raises(ServiceValidationError, match="Bank account is required"):
        await sales_service.add_payment_with_transaction(company.id, created.document["_id"], {"amount": 10})
    with pytest.raises(ServiceValidationError, match="Valid payment amount"):
        await sales_service.add_payment_with_transaction(
            company.id, created.document["_id"], {"amount": 0, "bankAccountId": bank_account.id}
        )


async def test_quick_sale(sales_service: SalesService, company: Company, bank_account: BankAccount):
    result = await sales_service.create_quick_sale(
        company.id, "Masala Chai", quantity=3, price=20, bank_account_id=bank_account.id
    )

    assert result.document["invoiceNumber"] == f"INV-{STAMP}-0001"
    assert result.document["customerName"] == "Cash Customer"
    assert result.transaction.amount == 60.0


async def test_invoice_number_preview_falls_back(
    sales_service: SalesService, company: Company, backend_state, sleeps
):
    """Test the preview uses the local numbering pattern once retries run out"""
    preview = await sales_service.preview_invoice_number(company.id, gst_enabled=False)
    assert preview.number == f"INV-{STAMP}-0001"
    assert preview.source == "api"

    backend_state.inject_failure("GET", "/next-invoice-number", status=503, times=3)
    preview = await sales_service.preview_invoice_number(company.id, gst_enabled=True, today=date(2024, 12, 10))
    assert preview.number == "GST-20241210-0001"
    assert preview.source == "pattern"
    assert sleeps == [1.0, 2.0]


async def test_next_number_retries_transient_failures(sales_service: SalesService, company: Company, backend_state):
    backend_state.inject_failure("GET", "/next-invoice-number", status=503, times=2)

    preview = await sales_service.preview_invoice_number(company.id, gst_enabled=True)

    assert preview.number == f"GST-{STAMP}-0001"
    assert preview.source == "api"


async def test_default_clients_share_one_read_cache(
    monkeypatch, transport, company: Company, bank_account: BankAccount
):
    """Test a write through one default-built client invalidates reads cached by another"""
    def default_api() -> ApiClient:
        return ApiClient(base_url="http://testserver/api", token="test-token", transport=transport)

    monkeypatch.setattr(client_base, "_shared_api", None)
    monkeypatch.setattr(client_base, "ApiClient", default_api)
    accounts = BankAccountClient()
    sales = SalesService(SalesClient(), TransactionClient())

    assert sales.documents.api is accounts.api
    assert sales.transactions.api is accounts.api
    assert await accounts.get_balance(company.id, bank_account.id) == 100000

    await sales.create_invoice_with_transaction(
        company.id, invoice_draft(paymentReceived=5900, bankAccountId=bank_account.id)
    )

    assert await BankAccountClient().get_balance(company.id, bank_account.id) == 105900


async def add_overdue_invoice(sales_service: SalesService, company: Company) -> str:
    past_due = (date.today() - timedelta(days=10)).isoformat()
    await sales_service.create_invoice_with_transaction(company.id, invoice_draft(paymentReceived=100, dueDate=past_due))
    await sales_service.create_invoice_with_transaction(company.id, invoice_draft())
    return past_due


async def test_overdue_from_endpoint(sales_service: SalesService, company: Company):
    await add_overdue_invoice(sales_service, company)

    overdue = await sales_service.get_overdue(company.id)

    assert len(overdue) == 1
    assert overdue[0].payment.pending_amount == 5800.0


async def test_overdue_filtered_locally_when_endpoint_fails(
    sales_service: SalesService, company: Company, backend_state, sleeps
):
    """Test the sales list is filtered locally after the overdue endpoint exhausts its retries"""
    past_due = await add_overdue_invoice(sales_service, company)

    backend_state.inject_failure("GET", "/sales/overdue", status=500, times=3)
    overdue = await sales_service.get_overdue(company.id, today=date.today() + timedelta(days=1))
    assert [inv.payment.due_date.isoformat() for inv in overdue] == [past_due]
    assert sleeps == [1.0, 2.0]


async def test_due_today_and_payment_summary(sales_service: SalesService, company: Company):
    today = date.today().isoformat()
    await sales_service.create_invoice_with_transaction(company.id, invoice_draft(paymentReceived=900, dueDate=today))

    due = await sales_service.get_due_today(company.id)
    assert len(due) == 1

    summary = await sales_service.payment_summary(company.id)
    assert summary["totalDocuments"] == 1
    assert summary["totalAmount"] == 5900.0
    assert summary["totalPending"] == 5000.0
    assert summary["overdueCount"] == 0


async def test_purchase_with_payment_lowers_balance(
    api: ApiClient, purchase_service: PurchaseService, company: Company, bank_account: BankAccount
):
    result = await purchase_service.create_purchase_with_transaction(
        company.id, bill_draft(paymentReceived=4500, paymentMethod="bank_transfer", bankAccountId=bank_account.id)
    )

    assert result.document["purchaseNumber"] == f"PB-{STAMP}-0001"
    assert result.transaction.direction == "out"
    assert result.transaction.transaction_type == "purchase"
    assert result.transaction.party_name == "Acme Metals"
    assert await BankAccountClient(api).get_balance(company.id, bank_account.id) == 95500


async def test_delete_paid_purchase_cancels_when_confirmed(
    purchase_service: PurchaseService, company: Company, bank_account: BankAccount, backend_state
):
    created = await purchase_service.create_purchase_with_transaction(
        company.id, bill_draft(paymentReceived=1000, bankAccountId=bank_account.id)
    )
    seen = []

    async def confirm(outcome):
        seen.append(outcome)
        return True

    outcome = await purchase_service.delete_purchase(created.document["_id"], confirm=confirm, reason="Duplicate bill")

    assert seen[0].can_soft_delete is True
    assert seen[0].paid_amount == 1000.0
    assert outcome.success is True
    assert outcome.document_status == "cancelled"
    assert backend_state.DB["purchases"][created.document["_id"]]["status"] == "cancelled"


async def test_delete_paid_purchase_declined(
    purchase_service: PurchaseService, company: Company, bank_account: BankAccount, backend_state
):
    created = await purchase_service.create_purchase_with_transaction(
        company.id, bill_draft(paymentReceived=1000, bankAccountId=bank_account.id)
    )

    outcome = await purchase_service.delete_purchase(created.document["_id"], confirm=lambda outcome: False)

    assert outcome.success is False
    assert outcome.alternative_action == "soft_delete"
    assert outcome.document_status == "draft"
    assert backend_state.DB["purchases"][created.document["_id"]]["status"] == "draft"


async def test_delete_unpaid_purchase_then_again(purchase_service: PurchaseService, company: Company):
    """Test a second delete of the same bill reports it as already gone"""
    created = await purchase_service.create_purchase_with_transaction(company.id, bill_draft())

    first = await purchase_service.delete_purchase(created.document["_id"])
    second = await purchase_service.delete_purchase(created.document["_id"])

    assert first.success is True
    assert first.already_deleted is False
    assert second.success is True
    assert second.already_deleted is True


async def test_purchase_status_and_number_preview(purchase_service: PurchaseService, company: Company):
    created = await purchase_service.create_purchase_with_transaction(company.id, bill_draft())
    purchase_id = created.document["_id"]

    assert (await purchase_service.purchases.mark_ordered(purchase_id))["purchase"]["status"] == "ordered"
    assert (await purchase_service.purchases.mark_received(purchase_id))["purchase"]["status"] == "received"

    preview = await purchase_service.preview_purchase_number(company.id, gst_enabled=False)
    assert preview.number == f"PB-{STAMP}-0002"


async def test_stock_adjustment_below_zero_needs_confirmation(api: ApiClient, company: Company, backend_state):
    items = ItemClient(api)
    inventory = InventoryService(items)
    chair = await items.create_item(
        company.id, {"name": "Office Chair", "category": "Furniture", "salePrice": 2500, "openingStock": 3}
    )

    cancelled = await inventory.adjust_stock(company.id, chair, "remove", 5, "Written off")
    assert cancelled is None
    assert not any("adjust-stock" in call for call in backend_state.CALLS)

    adjustment = await inventory.adjust_stock(
        company.id, chair.id, "remove", 5, "Written off", confirm_negative=lambda current, qty: True,
        as_of=date(2024, 6, 1),
    )
    assert adjustment.previous_stock == 3
    assert adjustment.new_stock == 0
    assert adjustment.as_of_date == date(2024, 6, 1)

    added = await inventory.adjust_stock(company.id, chair.id, "add", 10, "Restock")
    assert added.new_stock == 10

    metrics = await inventory.stock_overview(company.id)
    assert metrics.total_items == 1
    assert metrics.total_stock_value == 25000.0


async def test_payment_service(api: ApiClient, company: Company, bank_account: BankAccount):
    payments = PaymentService(TransactionClient(api))
    customer = await PartyClient(api).create_party(company.id, {"name": "Ravi Kumar", "phoneNumber": "9000000002"})

    received = await payments.pay_in(
        company.id, customer, 2500, payment_method="upi", bank_account_id=bank_account.id, reference="UPI-88812"
    )
    paid = await payments.pay_out(company.id, "Acme Metals", 700, description="Advance for rods")

    assert received.party_name == "Ravi Kumar"
    assert received.direction == "in"
    assert received.balance_after == 102500
    assert paid.description == "Advance for rods"
    assert paid.direction == "out"
    assert paid.bank_account_id is None
