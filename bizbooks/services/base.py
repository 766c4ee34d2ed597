"""
Workflows shared by sales invoices and purchase bills.

A document and the money movement it causes are saved by two separate calls.
The document is authoritative: once it is saved, a failure to record its
payment transaction is reported on the result, never raised.
"""

import inspect
import logging
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from bizbooks.domain.dues import filter_due_today, filter_overdue
from bizbooks.domain.exceptions import ApiError, BizBooksError, ServiceValidationError
from bizbooks.domain.invoice_numbers import offline_preview
from bizbooks.domain.models import LinkedResult, NumberPreview
from bizbooks.domain.normalization import first_present, record_id, to_float
from bizbooks.domain.summaries import payment_summary
from bizbooks.infrastructure.clients.base import require
from bizbooks.infrastructure.clients.documents import DocumentClient
from bizbooks.infrastructure.clients.transactions import TransactionClient
from bizbooks.infrastructure.observability.logging import log_workflow
from bizbooks.infrastructure.observability.metrics import linked_transaction_failures_counter

logger = logging.getLogger(__name__)

# Upper bound on documents fetched when dues have to be worked out locally
LOCAL_SCAN_LIMIT = 200

Confirm = Callable[..., Union[bool, Awaitable[bool]]]


async def resolve(value: Union[bool, Awaitable[bool]]) -> bool:
    """Accept both plain and async confirmation callbacks"""
    if inspect.isawaitable(value):
        value = await value
    return bool(value)


class LinkedDocumentService:
    """Save documents and record the matching payment transactions"""

    label = "Document"
    kind = ""  # transaction type and metrics label
    direction = "in"
    party_type = "customer"
    number_prefix = "INV"

    def __init__(self, documents: DocumentClient, transactions: TransactionClient):
        self.documents = documents
        self.transactions = transactions

    def _number_of(self, document: Dict[str, Any]) -> str:
        return str(first_present(document, "invoiceNumber", "purchaseNumber", "billNumber", default="N/A"))

    def _party_of(self, draft: Dict[str, Any]) -> str:
        return str(
            first_present(draft, "customer.name", "supplier.name", "customerName", "supplierName", "partyName", default="")
        )

    def _description(self, number: str) -> str:
        raise NotImplementedError

    def _identity(self, document: Any) -> Dict[str, Any]:
        """Number field of a normalised document, keyed the way the backend names it"""
        raise NotImplementedError

    def _counterparty(self, document: Any) -> str:
        raise NotImplementedError

    async def _record_transaction(
        self,
        company_id: str,
        result: LinkedResult,
        amount: float,
        bank_account_id: str,
        source: Dict[str, Any],
    ) -> None:
        document = result.document
        number = self._number_of(document)
        try:
            result.transaction = await self.transactions.create_transaction(
                company_id,
                {
                    "bankAccountId": bank_account_id,
                    "amount": amount,
                    "transactionType": self.kind,
                    "direction": self.direction,
                    "paymentMethod": first_present(source, "paymentMethod", "method", default="cash"),
                    "description": self._description(number),
                    "partyId": first_present(source, "partyId", "customerId", "supplierId"),
                    "partyName": self._party_of(source),
                    "partyType": self.party_type,
                    "referenceId": record_id(document) or None,
                    "referenceType": self.kind,
                    "referenceNumber": number if number != "N/A" else None,
                    "chequeNumber": source.get("chequeNumber"),
                    "chequeDate": source.get("chequeDate"),
                    "upiTransactionId": source.get("upiTransactionId"),
                },
            )
            log_workflow(
                "payment_linked",
                document=self.kind,
                number=number,
                amount=amount,
                transaction_id=result.transaction.transaction_id,
            )
        except BizBooksError as e:
            linked_transaction_failures_counter.labels(document=self.kind).inc()
            logger.warning(
                "Payment transaction could not be recorded",
                extra={"step": "payment_link_failed", "document": self.kind, "number": number, "error": str(e)},
            )
            result.transaction_error = str(e)
            result.warning = (
                f"{self.label} saved successfully, but payment transaction could not be recorded. "
                "You can add payment manually later."
            )

    async def create_with_transaction(
        self, company_id: str, draft: Dict[str, Any], today: Optional[date] = None
    ) -> LinkedResult:
        """
        Create a document and, when money changed hands, its payment transaction.

        Raises:
            ServiceValidationError: Missing company or unusable draft
            ApiError: The document itself could not be saved
        """
        require(company_id, "Company ID is required")
        created = await self.documents.create_document(company_id, draft, today)
        result = LinkedResult(document=created, action=f"{self.label} created successfully")
        log_workflow("document_created", document=self.kind, number=self._number_of(created))

        info = draft.get("paymentInfo") or draft.get("payment") or {}
        paid = to_float(first_present(draft, "paymentReceived", default=first_present(info, "amount", "paidAmount")))
        bank_account_id = first_present(draft, "bankAccountId", default=info.get("bankAccountId"))

        if paid > 0 and bank_account_id:
            await self._record_transaction(company_id, result, paid, bank_account_id, {**info, **draft})
        elif paid > 0:
            result.warning = "Payment amount specified but no bank account selected. Transaction not created."
        return result

    async def add_payment_with_transaction(
        self, company_id: str, document_id: str, payment: Dict[str, Any]
    ) -> LinkedResult:
        require(company_id, "Company ID is required")
        require(document_id, f"{self.label} ID is required")
        amount = to_float(payment.get("amount"))
        if amount <= 0:
            raise ServiceValidationError("Valid payment amount is required")
        bank_account_id = require(payment.get("bankAccountId"), "Bank account is required for payment transaction")

        document = await self.documents.get_document(document_id)
        updated = await self.documents.add_payment(document_id, payment)
        record = {"_id": document_id, **self._identity(document), **updated}
        result = LinkedResult(document=record, action="Payment added successfully")
        party = self._counterparty(document)
        await self._record_transaction(
            company_id, result, amount, bank_account_id, {"partyName": party, **payment}
        )
        return result

    async def preview_number(
        self, company_id: str, gst_enabled: bool = True, today: Optional[date] = None
    ) -> NumberPreview:
        """Best-effort next number for display; never raises on backend trouble"""
        try:
            return await self.documents.preview_next_number(company_id, gst_enabled, today)
        except BizBooksError as e:
            logger.warning(
                "Next number unavailable, using local pattern",
                extra={"step": "number_preview_fallback", "document": self.kind, "error": str(e)},
            )
            return offline_preview(gst_enabled, today, self.number_prefix)

    async def _scan(self, company_id: str) -> List[Any]:
        return await self.documents.list_documents(company_id, limit=LOCAL_SCAN_LIMIT)

    async def get_overdue(self, company_id: str, today: Optional[date] = None) -> List[Any]:
        """Overdue documents; filtered locally when the endpoint fails, empty if both fail"""
        try:
            return await self.documents.get_overdue(company_id)
        except ApiError as e:
            logger.warning("Overdue endpoint failed, filtering locally", extra={"step": "overdue_fallback", "error": e.message})
        try:
            return filter_overdue(await self._scan(company_id), today)
        except ApiError as e:
            logger.error("Could not list documents for overdue check", extra={"step": "overdue_failed", "error": e.message})
            return []

    async def get_due_today(self, company_id: str, today: Optional[date] = None) -> List[Any]:
        try:
            return await self.documents.get_due_today(company_id)
        except ApiError as e:
            logger.warning("Due-today endpoint failed, filtering locally", extra={"step": "due_today_fallback", "error": e.message})
        try:
            return filter_due_today(await self._scan(company_id), today)
        except ApiError as e:
            logger.error("Could not list documents for due-today check", extra={"step": "due_today_failed", "error": e.message})
            return []

    async def payment_summary(self, company_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        try:
            summary = await self.documents.get_payment_summary(company_id)
            if summary:
                return summary
        except ApiError as e:
            logger.warning("Payment summary endpoint failed", extra={"step": "payment_summary_fallback", "error": e.message})
        return payment_summary(await self._scan(company_id), today)
