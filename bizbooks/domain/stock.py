"""Stock adjustment rules and inventory valuation"""

from datetime import date
from typing import Any, Dict, Iterable, Optional, Union

from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.domain.models import AdjustmentType, Item, StockMetrics
from bizbooks.utils.date_utils import format_date_for_api


def coerce_adjustment_type(value: Union[str, AdjustmentType]) -> AdjustmentType:
    try:
        return AdjustmentType(value)
    except ValueError as e:
        raise ServiceValidationError(f"Unknown adjustment type: {value}") from e


def preview_stock(current: float, adjustment_type: Union[str, AdjustmentType], quantity: float) -> float:
    """
    Stock level after an adjustment.

    add -> current + quantity, remove -> current - quantity (never below 0),
    set -> quantity.
    """
    if quantity < 0:
        raise ServiceValidationError("Quantity cannot be negative")
    kind = coerce_adjustment_type(adjustment_type)
    if kind is AdjustmentType.ADD:
        return current + quantity
    if kind is AdjustmentType.REMOVE:
        return max(0.0, current - quantity)
    return quantity


def needs_negative_confirmation(
    current: float, adjustment_type: Union[str, AdjustmentType], quantity: float
) -> bool:
    """Removing more than is on hand must be confirmed by the user"""
    return coerce_adjustment_type(adjustment_type) is AdjustmentType.REMOVE and quantity > current


def build_adjustment_payload(
    current: float,
    adjustment_type: Union[str, AdjustmentType],
    quantity: float,
    reason: str,
    as_of: Optional[date] = None,
) -> Dict[str, Any]:
    if not reason or not reason.strip():
        raise ServiceValidationError("Reason for adjustment is required")
    kind = coerce_adjustment_type(adjustment_type)
    return {
        "adjustmentType": kind.value,
        "quantity": quantity,
        "newStock": preview_stock(current, kind, quantity),
        "reason": reason.strip(),
        "asOfDate": format_date_for_api(as_of or date.today()),
    }


def stock_metrics(items: Iterable[Item]) -> StockMetrics:
    """Valuation and stock-level counts over products (services carry no stock)"""
    products = [item for item in items if item.type == "product"]
    total_value = sum(item.current_stock * item.sale_price for item in products)
    out_of_stock = sum(1 for item in products if item.current_stock == 0)
    low_stock = sum(
        1
        for item in products
        if item.min_stock_level > 0 and item.current_stock <= item.min_stock_level
    )
    return StockMetrics(
        total_items=len(products),
        total_stock_value=round(total_value, 2),
        out_of_stock_items=out_of_stock,
        low_stock_items=low_stock,
        avg_stock_value=round(total_value / len(products), 2) if products else 0.0,
    )
