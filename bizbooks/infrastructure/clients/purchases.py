"""Purchase bill endpoints"""

from typing import Optional

from bizbooks.domain.exceptions import ApiError
from bizbooks.domain.models import DeletionOutcome
from bizbooks.domain.normalization import normalize_purchase, to_float
from bizbooks.domain.pricing import build_purchase_payload
from bizbooks.infrastructure.clients.base import data_of, require
from bizbooks.infrastructure.clients.documents import DocumentClient
from bizbooks.infrastructure.clients.http import CRITICAL_POLICY


class PurchaseClient(DocumentClient):
    """Client for /purchases; creates, updates and payments retry exponentially"""

    resource = "purchases"
    number_endpoint = "next-purchase-number"
    type_param = "purchaseType"
    number_prefix = "PB"
    collection_keys = ("purchases", "bills")
    record_keys = ("purchase", "bill")
    normalize = staticmethod(normalize_purchase)
    build_payload = staticmethod(build_purchase_payload)

    write_policy = CRITICAL_POLICY

    list_purchases = DocumentClient.list_documents
    get_purchase = DocumentClient.get_document
    create_purchase = DocumentClient.create_document
    update_purchase = DocumentClient.update_document
    get_next_purchase_number = DocumentClient.get_next_number
    complete_purchase = DocumentClient.complete

    async def delete_purchase(
        self,
        purchase_id: str,
        hard: bool = False,
        force: bool = False,
        reason: Optional[str] = None,
    ) -> DeletionOutcome:
        """
        Delete a bill.

        A bill that is already gone counts as deleted. A hard delete the backend
        refuses because payments exist comes back as an outcome offering a soft
        delete (the bill is cancelled instead) rather than as an error.
        """
        purchase_id = require(purchase_id, "Valid purchase ID is required for deletion").strip()
        try:
            envelope = await self.api.delete(
                self._path(purchase_id),
                params={"hard": True if hard else None, "force": True if force else None},
                json={"reason": reason} if reason else None,
            )
        except ApiError as e:
            if e.status == 404:
                return DeletionOutcome(
                    success=True,
                    message="Purchase not found (may have been already deleted)",
                    already_deleted=True,
                )
            if e.status == 400 and "Cannot permanently delete" in e.message:
                return DeletionOutcome(
                    success=False,
                    message="Cannot permanently delete purchase with payments",
                    alternative_action="soft_delete",
                    paid_amount=to_float(e.data.get("paidAmount")),
                    document_status=e.data.get("purchaseStatus"),
                )
            raise

        data = data_of(envelope)
        return DeletionOutcome(
            success=True,
            message=envelope.get("message") or "Purchase deleted successfully",
            document_status=data.get("status") if isinstance(data, dict) else None,
        )

    async def mark_ordered(self, purchase_id: str) -> dict:
        require(purchase_id, "Purchase ID is required")
        envelope = await self.api.patch(self._path(purchase_id, "order"))
        return data_of(envelope) or {}

    async def mark_received(self, purchase_id: str) -> dict:
        require(purchase_id, "Purchase ID is required")
        envelope = await self.api.patch(self._path(purchase_id, "receive"))
        return data_of(envelope) or {}
