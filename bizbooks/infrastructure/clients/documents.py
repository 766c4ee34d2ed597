"""Shared surface of the sales-invoice and purchase-bill endpoints"""

from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.domain.invoice_numbers import extract_preview
from bizbooks.domain.models import NumberPreview
from bizbooks.domain.normalization import as_list, to_float, unwrap
from bizbooks.infrastructure.clients.base import ResourceClient, data_of, require
from bizbooks.infrastructure.clients.http import NO_RETRY, RetryPolicy
from bizbooks.utils.date_utils import format_date_for_api


def build_payment_payload(payment: Dict[str, Any]) -> Dict[str, Any]:
    """Body for POST /:id/payments"""
    amount = to_float(payment.get("amount"))
    if amount <= 0:
        raise ServiceValidationError("Payment amount must be greater than 0")
    return {
        "amount": amount,
        "method": payment.get("method") or payment.get("paymentMethod") or "cash",
        "reference": payment.get("reference") or "",
        "paymentDate": format_date_for_api(payment.get("paymentDate")),
        "dueDate": format_date_for_api(payment.get("dueDate")),
        "creditDays": payment.get("creditDays") or None,
        "notes": payment.get("notes") or "",
        "bankAccountId": payment.get("bankAccountId"),
    }


class DocumentClient(ResourceClient):
    """
    CRUD, payments, dues and numbering for one document resource.

    Subclasses set the resource path, the collection/record keys the backend
    wraps results in, the normaliser and the payload builder.
    """

    resource = ""
    number_endpoint = ""
    type_param = ""
    number_prefix = "INV"
    collection_keys: Tuple[str, ...] = ()
    record_keys: Tuple[str, ...] = ()
    normalize: Callable[[Dict[str, Any]], Any]
    build_payload: Callable[..., Dict[str, Any]]

    read_policy: RetryPolicy = NO_RETRY
    write_policy: RetryPolicy = NO_RETRY

    def _path(self, *segments: str) -> str:
        return "/".join([f"/{self.resource}", *segments])

    def _records(self, envelope: Dict[str, Any]) -> List[Any]:
        return [self.normalize(raw) for raw in as_list(envelope, *self.collection_keys)]

    def _record(self, envelope: Dict[str, Any]) -> Any:
        return self.normalize(unwrap(envelope, *self.record_keys))

    async def _list(self, company_id: str, path: str, **filters: Any) -> List[Any]:
        require(company_id, "Company ID is required")
        envelope = await self.api.get(
            path,
            params={"companyId": company_id, **filters},
            company_id=company_id,
            retry=self.read_policy,
        )
        return self._records(envelope)

    async def list_documents(
        self,
        company_id: str,
        page: int = 1,
        limit: int = 20,
        date_from: Any = None,
        date_to: Any = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Any]:
        return await self._list(
            company_id,
            self._path(),
            page=page,
            limit=limit,
            dateFrom=format_date_for_api(date_from),
            dateTo=format_date_for_api(date_to),
            paymentStatus=payment_status,
            search=search,
        )

    async def get_document(self, document_id: str) -> Any:
        require(document_id, "Document ID is required")
        envelope = await self.api.get(self._path(document_id), retry=self.read_policy)
        return self._record(envelope)

    async def create_document(self, company_id: str, draft: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
        """Create a document; returns the raw backend record"""
        require(company_id, "Company ID is required")
        payload = self.build_payload({**draft, "companyId": company_id}, today)
        envelope = await self.api.post(
            self._path(), json=payload, company_id=company_id, retry=self.write_policy
        )
        return unwrap(envelope, *self.record_keys)

    async def update_document(
        self, company_id: str, document_id: str, draft: Dict[str, Any], today: Optional[date] = None
    ) -> Dict[str, Any]:
        require(document_id, "Document ID is required")
        payload = self.build_payload({**draft, "companyId": company_id}, today)
        envelope = await self.api.put(
            self._path(document_id), json=payload, company_id=company_id, retry=self.write_policy
        )
        return unwrap(envelope, *self.record_keys)

    async def delete_document(self, document_id: str) -> bool:
        require(document_id, "Document ID is required")
        envelope = await self.api.delete(self._path(document_id))
        return envelope.get("success", True) is not False

    async def add_payment(self, document_id: str, payment: Dict[str, Any]) -> Dict[str, Any]:
        require(document_id, "Document ID is required")
        envelope = await self.api.post(
            self._path(document_id, "payments"),
            json=build_payment_payload(payment),
            retry=self.write_policy,
        )
        return data_of(envelope) or {}

    async def get_payment_status(self, document_id: str) -> Dict[str, Any]:
        require(document_id, "Document ID is required")
        envelope = await self.api.get(self._path(document_id, "payment-status"), retry=self.read_policy)
        return data_of(envelope) or {}

    async def update_due_date(self, document_id: str, due_date: Any, credit_days: Optional[int] = None) -> Dict[str, Any]:
        require(document_id, "Document ID is required")
        require(format_date_for_api(due_date), "Due date is required")
        envelope = await self.api.put(
            self._path(document_id, "due-date"),
            json={"dueDate": format_date_for_api(due_date), "creditDays": credit_days},
        )
        return data_of(envelope) or {}

    async def complete(self, document_id: str) -> Dict[str, Any]:
        require(document_id, "Document ID is required")
        envelope = await self.api.post(self._path(document_id, "complete"))
        return data_of(envelope) or {}

    async def validate_stock(self, items: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        envelope = await self.api.post(self._path("validate-stock"), json={"items": list(items)})
        return data_of(envelope) or {}

    async def get_dashboard(self, company_id: str) -> Dict[str, Any]:
        require(company_id, "Company ID is required")
        envelope = await self.api.get(
            self._path("dashboard"), params={"companyId": company_id}, retry=self.read_policy
        )
        return data_of(envelope) or {}

    async def get_today(self, company_id: str) -> List[Any]:
        return await self._list(company_id, self._path("today"))

    async def get_overdue(self, company_id: str) -> List[Any]:
        return await self._list(company_id, self._path("overdue"))

    async def get_due_today(self, company_id: str) -> List[Any]:
        return await self._list(company_id, self._path("due-today"))

    async def get_payment_summary(self, company_id: str) -> Dict[str, Any]:
        require(company_id, "Company ID is required")
        envelope = await self.api.get(
            self._path("payment-summary-overdue"), params={"companyId": company_id}, retry=self.read_policy
        )
        return data_of(envelope) or {}

    async def get_next_number(self, company_id: str, gst_enabled: bool = True) -> Dict[str, Any]:
        """Raw next-number response; see preview_next_number for a display value"""
        require(company_id, "Company ID is required")
        envelope = await self.api.get(
            self._path(self.number_endpoint),
            params={"companyId": company_id, self.type_param: "gst" if gst_enabled else "non-gst"},
            use_cache=False,
            retry=self.read_policy,
        )
        return data_of(envelope) or {}

    async def preview_next_number(
        self, company_id: str, gst_enabled: bool = True, today: Optional[date] = None
    ) -> NumberPreview:
        data = await self.get_next_number(company_id, gst_enabled)
        return extract_preview(data, gst_enabled, today, self.number_prefix)
