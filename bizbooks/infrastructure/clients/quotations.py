"""Quotation endpoints (sales orders of type `quotation`)"""

from datetime import date
from typing import Any, Dict, List, Optional

from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.domain.invoice_numbers import ORDER_PREFIXES, extract_preview, order_prefix
from bizbooks.domain.models import NumberPreview, Quotation
from bizbooks.domain.normalization import as_list, first_present, normalize_quotation
from bizbooks.domain.pricing import DEFAULT_CUSTOMER, shape_lines
from bizbooks.infrastructure.clients.base import ResourceClient, data_of, require, strip_empty
from bizbooks.utils.date_utils import add_days, format_date_for_api

QUOTATION_STATUSES = ("draft", "sent", "accepted", "rejected", "expired", "converted", "cancelled")
DEFAULT_VALIDITY_DAYS = 30


class QuotationClient(ResourceClient):
    """Client for /sales-orders"""

    async def list_quotations(
        self,
        company_id: str,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
    ) -> List[Quotation]:
        require(company_id, "Company ID is required")
        envelope = await self.api.get(
            "/sales-orders/quotations",
            params={"companyId": company_id, "status": status, "page": page, "limit": limit, "search": search},
            company_id=company_id,
        )
        return [normalize_quotation(raw) for raw in as_list(envelope, "salesOrders", "quotations", "orders")]

    async def get_quotation(self, quotation_id: str) -> Quotation:
        require(quotation_id, "Quotation ID is required")
        envelope = await self.api.get(f"/sales-orders/{quotation_id}")
        return normalize_quotation(envelope)

    @staticmethod
    def build_payload(company_id: str, draft: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        order_type = draft.get("orderType") or "quotation"
        if order_type not in ORDER_PREFIXES:
            raise ServiceValidationError(f"Invalid order type: {order_type}")
        inclusive = draft.get("taxMode") == "with-tax" or bool(draft.get("priceIncludesTax"))
        lines = shape_lines(draft.get("items") or [], inclusive)
        if not lines:
            raise ServiceValidationError("At least one item is required")
        customer = draft.get("customer") if isinstance(draft.get("customer"), dict) else {}
        order_date = draft.get("orderDate") or today
        return strip_empty(
            {
                "companyId": company_id,
                "orderType": order_type,
                "orderNumber": draft.get("orderNumber"),
                "orderDate": format_date_for_api(order_date),
                "validUntil": format_date_for_api(
                    draft.get("validUntil") or add_days(today, DEFAULT_VALIDITY_DAYS)
                ),
                "customerName": first_present(customer, "name", default=draft.get("customerName") or DEFAULT_CUSTOMER),
                "customer": first_present(customer, "id", "_id", default=draft.get("customerId")),
                "gstEnabled": bool(draft.get("gstEnabled")),
                "taxMode": "with-tax" if inclusive else "without-tax",
                "items": lines,
                "totals": {
                    "subtotal": round(sum(l["amount"] - l["taxAmount"] for l in lines), 2),
                    "totalTax": round(sum(l["taxAmount"] for l in lines), 2),
                    "finalTotal": round(sum(l["amount"] for l in lines), 2),
                },
                "status": draft.get("status") or "draft",
                "notes": draft.get("notes"),
                "termsAndConditions": draft.get("termsAndConditions"),
            }
        )

    async def create_quotation(self, company_id: str, draft: Dict[str, Any], today: Optional[date] = None) -> Quotation:
        require(company_id, "Company ID is required")
        payload = self.build_payload(company_id, draft, today)
        envelope = await self.api.post("/sales-orders", json=payload, company_id=company_id)
        return normalize_quotation(envelope)

    async def update_quotation(self, company_id: str, quotation_id: str, draft: Dict[str, Any]) -> Quotation:
        require(quotation_id, "Quotation ID is required")
        payload = self.build_payload(company_id, draft)
        envelope = await self.api.put(f"/sales-orders/{quotation_id}", json=payload, company_id=company_id)
        return normalize_quotation(envelope)

    async def delete_quotation(self, quotation_id: str) -> bool:
        require(quotation_id, "Quotation ID is required")
        envelope = await self.api.delete(f"/sales-orders/{quotation_id}")
        return envelope.get("success", True) is not False

    async def update_status(self, quotation_id: str, status: str, reason: str = "") -> Quotation:
        require(quotation_id, "Quotation ID is required")
        if status not in QUOTATION_STATUSES:
            raise ServiceValidationError(f"Invalid quotation status: {status}")
        envelope = await self.api.patch(
            f"/sales-orders/{quotation_id}/status",
            json=strip_empty({"status": status, "reason": reason}),
        )
        return normalize_quotation(envelope)

    async def convert_to_invoice(self, quotation_id: str, conversion: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Turn a quotation into a sales invoice; returns the backend's conversion result"""
        require(quotation_id, "Quotation ID is required")
        envelope = await self.api.post(
            f"/sales-orders/{quotation_id}/convert-to-invoice",
            json=conversion or {},
        )
        return data_of(envelope) or {}

    async def get_next_number(
        self, company_id: str, order_type: str = "quotation", today: Optional[date] = None
    ) -> NumberPreview:
        require(company_id, "Company ID is required")
        envelope = await self.api.get(
            "/sales-orders/next-number",
            params={"companyId": company_id, "orderType": order_type},
            use_cache=False,
        )
        data = data_of(envelope)
        if isinstance(data, dict) and "nextOrderNumber" in data:
            data = {**data, "nextNumber": data["nextOrderNumber"]}
        return extract_preview(data if isinstance(data, dict) else {}, False, today, order_prefix(order_type))
