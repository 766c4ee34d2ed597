"""Purchase order endpoints (orders, purchase quotations and proformas sent to suppliers)"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from bizbooks.domain.exceptions import ApiError, ServiceValidationError
from bizbooks.domain.invoice_numbers import (
    PURCHASE_ORDER_PREFIXES,
    extract_preview,
    fallback_number,
    purchase_order_prefix,
)
from bizbooks.domain.models import NumberPreview, PurchaseOrder
from bizbooks.domain.normalization import as_list, first_present, normalize_purchase_order
from bizbooks.domain.pricing import shape_lines
from bizbooks.infrastructure.clients.base import ResourceClient, data_of, require, strip_empty
from bizbooks.infrastructure.clients.documents import build_payment_payload
from bizbooks.infrastructure.clients.http import CRITICAL_POLICY
from bizbooks.utils.date_utils import format_date_for_api

logger = logging.getLogger(__name__)

PURCHASE_ORDER_STATUSES = (
    "draft",
    "sent",
    "confirmed",
    "received",
    "partially_received",
    "cancelled",
    "completed",
)

# Tried in order; deployments expose one or the other
NUMBER_ENDPOINTS = ("next-order-number", "next-number")


class PurchaseOrderClient(ResourceClient):
    """Client for /purchase-orders; creates, updates and payments retry exponentially"""

    async def list_orders(
        self,
        company_id: str,
        status: Optional[str] = None,
        order_type: str = "purchase_order",
        page: int = 1,
        limit: int = 100,
        search: Optional[str] = None,
        supplier_id: Optional[str] = None,
        date_from: Any = None,
        date_to: Any = None,
    ) -> List[PurchaseOrder]:
        require(company_id, "Company ID is required")
        envelope = await self.api.get(
            "/purchase-orders",
            params={
                "companyId": company_id,
                "orderType": order_type,
                "status": status,
                "page": page,
                "limit": limit,
                "search": search,
                "supplierId": supplier_id,
                "dateFrom": format_date_for_api(date_from),
                "dateTo": format_date_for_api(date_to),
            },
            company_id=company_id,
        )
        return [normalize_purchase_order(raw) for raw in as_list(envelope, "purchaseOrders", "orders")]

    async def get_order(self, order_id: str) -> PurchaseOrder:
        require(order_id, "Purchase order ID is required")
        envelope = await self.api.get(f"/purchase-orders/{order_id}")
        return normalize_purchase_order(envelope)

    @staticmethod
    def build_payload(company_id: str, draft: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
        """
        Shape a purchase order draft for POST/PUT /purchase-orders.

        Raises:
            ServiceValidationError: Unknown order type, no supplier name, or no usable line
        """
        order_type = draft.get("orderType") or "purchase_order"
        if order_type not in PURCHASE_ORDER_PREFIXES:
            raise ServiceValidationError(f"Invalid order type: {order_type}")
        supplier = draft.get("supplier") if isinstance(draft.get("supplier"), dict) else {}
        supplier_name = str(first_present(supplier, "name", default=draft.get("supplierName") or "")).strip()
        if not supplier_name:
            raise ServiceValidationError("Supplier name is required")
        inclusive = draft.get("taxMode") == "with-tax" or bool(draft.get("priceIncludesTax"))
        lines = shape_lines(draft.get("items") or [], inclusive)
        if not lines:
            raise ServiceValidationError("At least one item is required")
        gst_enabled = bool(draft.get("gstEnabled"))
        return strip_empty(
            {
                "companyId": company_id,
                "orderType": order_type,
                "orderNumber": draft.get("orderNumber"),
                "orderDate": format_date_for_api(draft.get("orderDate") or today or date.today()),
                "requiredBy": format_date_for_api(first_present(draft, "requiredBy", "expectedDeliveryDate")),
                "supplierName": supplier_name,
                "supplier": first_present(supplier, "id", "_id", default=draft.get("supplierId")),
                "gstEnabled": gst_enabled,
                "gstType": "gst" if gst_enabled else "non-gst",
                "taxMode": "with-tax" if inclusive else "without-tax",
                "items": lines,
                "totals": {
                    "subtotal": round(sum(l["amount"] - l["taxAmount"] for l in lines), 2),
                    "totalTax": round(sum(l["taxAmount"] for l in lines), 2),
                    "finalTotal": round(sum(l["amount"] for l in lines), 2),
                },
                "priority": draft.get("priority"),
                "status": draft.get("status") or "draft",
                "notes": draft.get("notes"),
            }
        )

    async def create_order(self, company_id: str, draft: Dict[str, Any], today: Optional[date] = None) -> PurchaseOrder:
        require(company_id, "Company ID is required")
        payload = self.build_payload(company_id, draft, today)
        envelope = await self.api.post(
            "/purchase-orders", json=payload, company_id=company_id, retry=CRITICAL_POLICY
        )
        return normalize_purchase_order(envelope)

    async def update_order(self, company_id: str, order_id: str, draft: Dict[str, Any]) -> PurchaseOrder:
        require(order_id, "Purchase order ID is required")
        payload = self.build_payload(company_id, draft)
        envelope = await self.api.put(
            f"/purchase-orders/{order_id}", json=payload, company_id=company_id, retry=CRITICAL_POLICY
        )
        return normalize_purchase_order(envelope)

    async def delete_order(self, order_id: str) -> bool:
        require(order_id, "Purchase order ID is required")
        envelope = await self.api.delete(f"/purchase-orders/{order_id}")
        return envelope.get("success", True) is not False

    async def update_status(self, order_id: str, status: str, reason: str = "") -> PurchaseOrder:
        require(order_id, "Purchase order ID is required")
        if status not in PURCHASE_ORDER_STATUSES:
            raise ServiceValidationError(f"Invalid purchase order status: {status}")
        envelope = await self.api.patch(
            f"/purchase-orders/{order_id}/status",
            json=strip_empty({"status": status, "reason": reason}),
        )
        return normalize_purchase_order(envelope)

    async def add_payment(self, order_id: str, payment: Dict[str, Any]) -> PurchaseOrder:
        require(order_id, "Purchase order ID is required")
        envelope = await self.api.post(
            f"/purchase-orders/{order_id}/payment",
            json=build_payment_payload(payment),
            retry=CRITICAL_POLICY,
        )
        return normalize_purchase_order(envelope)

    async def convert_to_purchase_invoice(
        self, order_id: str, conversion: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Turn an order into a purchase bill.

        Returns the backend's data: the updated `purchaseOrder`, the new
        `purchaseInvoice` and `conversion` details.
        """
        require(order_id, "Purchase order ID is required")
        conversion = conversion or {}
        envelope = await self.api.post(
            f"/purchase-orders/{order_id}/convert-to-invoice",
            json={
                **conversion,
                "convertedAt": datetime.now(timezone.utc).isoformat(),
                "convertedBy": conversion.get("convertedBy") or "system",
            },
        )
        return data_of(envelope) or {}

    async def get_next_number(
        self, company_id: str, order_type: str = "purchase_order", today: Optional[date] = None
    ) -> NumberPreview:
        """Next order number for display; a placeholder when no endpoint answers"""
        require(company_id, "Company ID is required")
        prefix = purchase_order_prefix(order_type)
        for endpoint in NUMBER_ENDPOINTS:
            try:
                envelope = await self.api.get(
                    f"/purchase-orders/{endpoint}",
                    params={"companyId": company_id, "orderType": order_type},
                    use_cache=False,
                )
            except ApiError as exc:
                logger.debug(f"Purchase order number endpoint {endpoint} failed: {exc}")
                continue
            data = data_of(envelope)
            number = first_present(data, "nextOrderNumber", "orderNumber", "nextNumber") if isinstance(data, dict) else None
            if number:
                return extract_preview({"nextNumber": number}, False, today, prefix)
        return NumberPreview(number=fallback_number(False, today, prefix), source="fallback")
