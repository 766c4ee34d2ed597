"""Money movement endpoints"""

from typing import Any, Dict, Optional

from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.domain.models import Transaction, TransactionPage, TransactionSummary
from bizbooks.domain.normalization import (
    as_list,
    normalize_pagination,
    normalize_transaction,
    to_float,
    to_int,
    unwrap,
)
from bizbooks.infrastructure.clients.base import ResourceClient, data_of, require, strip_empty
from bizbooks.utils.date_utils import format_date_for_api

TRANSACTION_TYPES = (
    "purchase",
    "sale",
    "payment_in",
    "payment_out",
    "expense",
    "income",
    "transfer",
    "adjustment",
)
DIRECTIONS = ("in", "out")
PARTY_TYPES = ("customer", "supplier", "other")

DEFAULT_PAGE_SIZE = 50


def is_cash_payment(data: Dict[str, Any]) -> bool:
    return (
        data.get("paymentMethod") == "cash"
        or data.get("paymentType") == "Cash"
        or data.get("cashPayment") is True
    )


def build_transaction_payload(company_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and shape a transaction for POST /transactions.

    Cash payments are flagged as cash transactions (cash_in / cash_out by
    direction) and need no bank account; every other method does.
    """
    cash = is_cash_payment(data)
    if not cash and not data.get("bankAccountId"):
        raise ServiceValidationError("Bank account ID is required for non-cash payments")

    amount = to_float(data.get("amount"))
    if amount <= 0:
        raise ServiceValidationError("Valid amount greater than 0 is required")

    description = (data.get("description") or "").strip()
    if not description:
        raise ServiceValidationError("Transaction description is required")

    transaction_type = data.get("transactionType") or "payment_in"
    if transaction_type not in TRANSACTION_TYPES:
        raise ServiceValidationError(f"Invalid transaction type: {transaction_type}")

    direction = data.get("direction")
    if direction is not None and direction not in DIRECTIONS:
        raise ServiceValidationError(f"Invalid direction: {direction}")

    party_type = data.get("partyType")
    if party_type and party_type not in PARTY_TYPES:
        raise ServiceValidationError(f"Invalid party type: {party_type}")

    payload = {
        "companyId": company_id,
        "amount": amount,
        "transactionType": transaction_type,
        "direction": direction,
        "paymentMethod": data.get("paymentMethod") or "cash",
        "description": description,
        "transactionDate": format_date_for_api(data.get("transactionDate")),
        "status": data.get("status") or "completed",
        "bankAccountId": data.get("bankAccountId"),
        "partyId": data.get("partyId"),
        "partyName": (data.get("partyName") or "").strip(),
        "partyType": party_type,
        "referenceId": data.get("referenceId"),
        "referenceType": data.get("referenceType") or ("payment" if data.get("referenceId") else None),
        "referenceNumber": (data.get("referenceNumber") or "").strip(),
        "chequeNumber": (data.get("chequeNumber") or "").strip(),
        "chequeDate": format_date_for_api(data.get("chequeDate")),
        "upiTransactionId": (data.get("upiTransactionId") or "").strip(),
        "notes": (data.get("notes") or "").strip(),
    }
    if cash:
        payload.update(
            {
                "isCashTransaction": True,
                "cashAmount": amount,
                "cashTransactionType": "cash_out" if direction == "out" else "cash_in",
            }
        )
    return strip_empty(payload)


class TransactionClient(ResourceClient):
    """Client for /companies/:companyId/transactions"""

    def _path(self, company_id: str, *segments: str) -> str:
        return self.company_path(company_id, "transactions", *segments)

    async def create_transaction(self, company_id: str, data: Dict[str, Any]) -> Transaction:
        require(company_id, "Company ID is required")
        payload = build_transaction_payload(company_id, data)
        envelope = await self.api.post(self._path(company_id), json=payload, company_id=company_id)
        return normalize_transaction(unwrap(envelope, "transaction"))

    async def create_payment_in(self, company_id: str, data: Dict[str, Any]) -> Transaction:
        return await self.create_transaction(
            company_id,
            {
                "description": f"Payment received from {data.get('partyName') or 'customer'}",
                "partyType": "customer",
                **data,
                "transactionType": "payment_in",
                "direction": "in",
            },
        )

    async def create_payment_out(self, company_id: str, data: Dict[str, Any]) -> Transaction:
        return await self.create_transaction(
            company_id,
            {
                "description": f"Payment made to {data.get('partyName') or 'supplier'}",
                "partyType": "supplier",
                **data,
                "transactionType": "payment_out",
                "direction": "out",
            },
        )

    async def list_transactions(
        self,
        company_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        bank_account_id: Optional[str] = None,
        transaction_type: Optional[str] = None,
        direction: Optional[str] = None,
        payment_method: Optional[str] = None,
        date_from: Any = None,
        date_to: Any = None,
        search: Optional[str] = None,
        party_id: Optional[str] = None,
    ) -> TransactionPage:
        """One page of transactions; pagination totals are filled in when the backend omits them"""
        envelope = await self.api.get(
            self._path(company_id),
            params={
                "page": page,
                "limit": limit,
                "bankAccountId": bank_account_id,
                "transactionType": transaction_type,
                "direction": direction,
                "paymentMethod": payment_method,
                "dateFrom": format_date_for_api(date_from),
                "dateTo": format_date_for_api(date_to),
                "search": search,
                "partyId": party_id,
            },
            company_id=company_id,
        )
        data = data_of(envelope)
        transactions = [normalize_transaction(raw) for raw in as_list(envelope, "transactions")]
        pagination = data.get("pagination") if isinstance(data, dict) else None
        summary = data.get("summary") if isinstance(data, dict) else None
        return TransactionPage(
            transactions=transactions,
            pagination=normalize_pagination(pagination, page, limit, len(transactions)),
            summary=summary or {},
        )

    async def get_transaction(self, company_id: str, transaction_id: str) -> Transaction:
        require(transaction_id, "Transaction ID is required")
        envelope = await self.api.get(self._path(company_id, transaction_id), company_id=company_id)
        return normalize_transaction(unwrap(envelope, "transaction"))

    async def update_transaction(self, company_id: str, transaction_id: str, data: Dict[str, Any]) -> Transaction:
        require(transaction_id, "Transaction ID is required")
        if "amount" in data and to_float(data["amount"]) <= 0:
            raise ServiceValidationError("Valid amount greater than 0 is required")
        envelope = await self.api.put(
            self._path(company_id, transaction_id), json=strip_empty(data), company_id=company_id
        )
        return normalize_transaction(unwrap(envelope, "transaction"))

    async def delete_transaction(self, company_id: str, transaction_id: str, reason: str = "") -> bool:
        require(transaction_id, "Transaction ID is required")
        envelope = await self.api.delete(
            self._path(company_id, transaction_id),
            json={"reason": reason} if reason else None,
            company_id=company_id,
        )
        return envelope.get("success", True) is not False

    async def get_summary(
        self,
        company_id: str,
        period: str = "month",
        bank_account_id: Optional[str] = None,
        date_from: Any = None,
        date_to: Any = None,
    ) -> TransactionSummary:
        envelope = await self.api.get(
            self._path(company_id, "summary"),
            params={
                "period": period,
                "bankAccountId": bank_account_id,
                "dateFrom": format_date_for_api(date_from),
                "dateTo": format_date_for_api(date_to),
            },
            company_id=company_id,
        )
        summary = unwrap(envelope, "summary")
        summary = summary if isinstance(summary, dict) else {}
        total_in = to_float(summary.get("totalIn"))
        total_out = to_float(summary.get("totalOut"))
        net = summary.get("netAmount")
        return TransactionSummary(
            total_in=total_in,
            total_out=total_out,
            net_amount=to_float(net) if net is not None else round(total_in - total_out, 2),
            total_transactions=to_int(summary.get("totalTransactions")),
            by_type={
                key: to_float(summary.get(field))
                for key, field in (
                    ("sale", "totalSales"),
                    ("purchase", "totalPurchases"),
                    ("payment_in", "totalPaymentsIn"),
                    ("payment_out", "totalPaymentsOut"),
                )
                if field in summary
            },
        )
