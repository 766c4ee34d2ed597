"""Purchase workflows: bills with linked payments, guarded deletion, dues"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from bizbooks.domain.models import DeletionOutcome, LinkedResult, NumberPreview, PurchaseBill
from bizbooks.infrastructure.clients.purchases import PurchaseClient
from bizbooks.infrastructure.clients.transactions import TransactionClient
from bizbooks.infrastructure.observability.logging import log_workflow
from bizbooks.services.base import Confirm, LinkedDocumentService, resolve

logger = logging.getLogger(__name__)


class PurchaseService(LinkedDocumentService):
    """Purchase bills and the payments made against them"""

    label = "Purchase"
    kind = "purchase"
    direction = "out"
    party_type = "supplier"
    number_prefix = "PB"

    def __init__(self, purchases: PurchaseClient, transactions: TransactionClient):
        super().__init__(purchases, transactions)
        self.purchases = purchases

    def _description(self, number: str) -> str:
        return f"Purchase payment for bill {number}"

    def _identity(self, document: PurchaseBill) -> Dict[str, Any]:
        return {"purchaseNumber": document.purchase_number}

    def _counterparty(self, document: PurchaseBill) -> str:
        return document.supplier_name

    async def create_purchase_with_transaction(
        self, company_id: str, purchase: Dict[str, Any], today: Optional[date] = None
    ) -> LinkedResult:
        return await self.create_with_transaction(company_id, purchase, today)

    async def delete_purchase(
        self,
        purchase_id: str,
        confirm: Optional[Confirm] = None,
        reason: Optional[str] = None,
    ) -> DeletionOutcome:
        """
        Permanently delete a bill, falling back to cancelling it.

        When the backend refuses the hard delete because payments exist,
        `confirm(outcome)` decides whether to cancel the bill instead. Without a
        callback, or when it declines, the refusal is returned as is.
        """
        outcome = await self.purchases.delete_purchase(purchase_id, hard=True, force=True, reason=reason)
        if not outcome.can_soft_delete:
            log_workflow("purchase_deleted", purchase_id=purchase_id, already_deleted=outcome.already_deleted)
            return outcome

        if confirm is None or not await resolve(confirm(outcome)):
            logger.info(
                "Soft delete declined",
                extra={"step": "purchase_soft_delete_declined", "purchase_id": purchase_id, "paid_amount": outcome.paid_amount},
            )
            return outcome

        cancelled = await self.purchases.delete_purchase(purchase_id, reason=reason)
        log_workflow("purchase_cancelled", purchase_id=purchase_id, paid_amount=outcome.paid_amount)
        return DeletionOutcome(
            success=cancelled.success,
            message="Purchase cancelled instead of deleted because it has payments",
            paid_amount=outcome.paid_amount,
            document_status=cancelled.document_status or "cancelled",
        )

    async def preview_purchase_number(
        self, company_id: str, gst_enabled: bool = True, today: Optional[date] = None
    ) -> NumberPreview:
        return await self.preview_number(company_id, gst_enabled, today)
