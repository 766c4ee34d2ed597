"""Sales workflows: invoices with linked receipts, quick sales, dues"""

from datetime import date
from typing import Any, Dict, Optional

from bizbooks.domain.models import LinkedResult, NumberPreview, SaleInvoice
from bizbooks.infrastructure.clients.sales import SalesClient
from bizbooks.infrastructure.clients.transactions import TransactionClient
from bizbooks.services.base import LinkedDocumentService


class SalesService(LinkedDocumentService):
    """Sales invoices and the receipts recorded against them"""

    label = "Invoice"
    kind = "sale"
    direction = "in"
    party_type = "customer"
    number_prefix = "INV"

    def __init__(self, sales: SalesClient, transactions: TransactionClient):
        super().__init__(sales, transactions)

    def _description(self, number: str) -> str:
        return f"Sales receipt for invoice {number}"

    def _identity(self, document: SaleInvoice) -> Dict[str, Any]:
        return {"invoiceNumber": document.invoice_number}

    def _counterparty(self, document: SaleInvoice) -> str:
        return document.customer_name

    async def create_invoice_with_transaction(
        self, company_id: str, invoice: Dict[str, Any], today: Optional[date] = None
    ) -> LinkedResult:
        return await self.create_with_transaction(company_id, invoice, today)

    async def create_quick_sale(
        self,
        company_id: str,
        item_name: str,
        quantity: float,
        price: float,
        customer_name: str = "",
        bank_account_id: Optional[str] = None,
        payment_method: str = "cash",
        today: Optional[date] = None,
    ) -> LinkedResult:
        """Single-line non-GST sale, paid in full on the spot"""
        total = round(quantity * price, 2)
        draft = {
            "gstEnabled": False,
            "customer": {"name": customer_name} if customer_name else None,
            "items": [{"itemName": item_name, "quantity": quantity, "pricePerUnit": price, "taxRate": 0}],
            "paymentReceived": total,
            "paymentMethod": payment_method,
            "bankAccountId": bank_account_id,
        }
        return await self.create_with_transaction(company_id, draft, today)

    async def preview_invoice_number(
        self, company_id: str, gst_enabled: bool = True, today: Optional[date] = None
    ) -> NumberPreview:
        return await self.preview_number(company_id, gst_enabled, today)
