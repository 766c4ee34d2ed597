"""Inventory workflows: confirmed stock adjustments and valuation"""

import logging
from datetime import date
from typing import Optional, Union

from bizbooks.domain.models import AdjustmentType, Item, StockAdjustment, StockMetrics
from bizbooks.domain.normalization import first_present, to_float
from bizbooks.domain.stock import build_adjustment_payload, needs_negative_confirmation, stock_metrics
from bizbooks.infrastructure.clients.items import ItemClient
from bizbooks.infrastructure.observability.logging import log_workflow
from bizbooks.services.base import Confirm, resolve

logger = logging.getLogger(__name__)

# Page size used when valuing the whole inventory
OVERVIEW_PAGE_SIZE = 1000


class InventoryService:
    """Stock adjustments with a preview and an explicit go-ahead for removals below zero"""

    def __init__(self, items: ItemClient):
        self.items = items

    async def adjust_stock(
        self,
        company_id: str,
        item: Union[Item, str],
        adjustment_type: Union[str, AdjustmentType],
        quantity: float,
        reason: str,
        confirm_negative: Optional[Confirm] = None,
        as_of: Optional[date] = None,
    ) -> Optional[StockAdjustment]:
        """
        Adjust an item's stock.

        Removing more than is on hand asks `confirm_negative(current, quantity)`;
        a missing or declining callback cancels the adjustment and None is
        returned without contacting the backend.

        Raises:
            ServiceValidationError: Negative quantity, missing reason, unknown type
        """
        if isinstance(item, str):
            item = await self.items.get_item(company_id, item)

        as_of = as_of or date.today()
        payload = build_adjustment_payload(item.current_stock, adjustment_type, quantity, reason, as_of)

        if needs_negative_confirmation(item.current_stock, adjustment_type, quantity):
            if confirm_negative is None or not await resolve(confirm_negative(item.current_stock, quantity)):
                logger.info(
                    "Stock adjustment cancelled",
                    extra={"step": "stock_adjust_cancelled", "item_id": item.id, "current": item.current_stock, "quantity": quantity},
                )
                return None

        data = await self.items.adjust_stock(company_id, item.id, payload)
        new_stock = to_float(
            first_present(data, "newStock", "currentStock", "item.currentStock"), payload["newStock"]
        )
        log_workflow(
            "stock_adjusted",
            item_id=item.id,
            adjustment_type=payload["adjustmentType"],
            previous=item.current_stock,
            new=new_stock,
        )
        return StockAdjustment(
            item_id=item.id,
            adjustment_type=AdjustmentType(payload["adjustmentType"]),
            quantity=quantity,
            previous_stock=item.current_stock,
            new_stock=new_stock,
            reason=payload["reason"],
            as_of_date=as_of,
        )

    async def stock_overview(self, company_id: str) -> StockMetrics:
        items = await self.items.list_items(company_id, limit=OVERVIEW_PAGE_SIZE)
        return stock_metrics(items)
