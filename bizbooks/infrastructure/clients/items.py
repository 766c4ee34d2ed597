"""Inventory item endpoints"""

from typing import Any, Dict, List, Optional

from bizbooks.domain.models import Item, Transaction
from bizbooks.domain.normalization import (
    DEFAULT_UNIT,
    as_list,
    normalize_item,
    normalize_transaction,
    to_float,
    unwrap,
)
from bizbooks.domain.pricing import item_price_fields
from bizbooks.infrastructure.clients.base import ResourceClient, data_of, require, strip_empty


PRICE_KEYS = ("salePrice", "sellPrice", "price", "buyPrice", "purchasePrice", "gstRate", "taxRate")


class ItemClient(ResourceClient):
    """Client for /companies/:companyId/items"""

    def _path(self, company_id: str, *segments: str) -> str:
        return self.company_path(company_id, "items", *segments)

    async def list_items(
        self,
        company_id: str,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        item_type: Optional[str] = None,
        category: Optional[str] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
    ) -> List[Item]:
        envelope = await self.api.get(
            self._path(company_id),
            params={
                "page": page,
                "limit": limit,
                "search": search,
                "type": item_type,
                "category": category,
                "sortBy": sort_by,
                "sortOrder": sort_order,
            },
            company_id=company_id,
        )
        return [normalize_item(raw) for raw in as_list(envelope, "items")]

    async def get_item(self, company_id: str, item_id: str) -> Item:
        require(item_id, "Item ID is required")
        envelope = await self.api.get(self._path(company_id, item_id), company_id=company_id)
        return normalize_item(unwrap(envelope, "item"))

    async def create_item(self, company_id: str, data: Dict[str, Any]) -> Item:
        """
        Create a product or service.

        Services never carry stock, so their opening and minimum stock are forced
        to zero whatever the caller sent.
        """
        require(data.get("name"), "Item name is required")
        require(data.get("category"), "Category is required")
        item_type = data.get("type") or "product"
        payload = {**data, "type": item_type, "unit": data.get("unit") or DEFAULT_UNIT}
        payload.update(item_price_fields(data))
        if item_type == "service":
            payload.update({"openingStock": 0, "currentStock": 0, "minStockLevel": 0})
        else:
            opening = to_float(data.get("openingStock", data.get("currentStock")))
            payload.update({"openingStock": opening, "currentStock": opening})
        envelope = await self.api.post(self._path(company_id), json=strip_empty(payload), company_id=company_id)
        return normalize_item(unwrap(envelope, "item"))

    async def update_item(self, company_id: str, item_id: str, data: Dict[str, Any]) -> Item:
        require(item_id, "Item ID is required")
        payload = dict(data)
        if any(key in data for key in PRICE_KEYS):
            payload.update(item_price_fields(data))
        envelope = await self.api.put(
            self._path(company_id, item_id), json=strip_empty(payload), company_id=company_id
        )
        return normalize_item(unwrap(envelope, "item"))

    async def delete_item(self, company_id: str, item_id: str) -> bool:
        require(item_id, "Item ID is required")
        envelope = await self.api.delete(self._path(company_id, item_id), company_id=company_id)
        return envelope.get("success", True) is not False

    async def adjust_stock(self, company_id: str, item_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a prepared adjustment (see domain.stock.build_adjustment_payload)"""
        require(item_id, "Item ID is required")
        envelope = await self.api.put(
            self._path(company_id, item_id, "adjust-stock"), json=payload, company_id=company_id
        )
        return data_of(envelope) or {}

    async def get_stock_history(self, company_id: str, item_id: str, page: int = 1, limit: int = 20) -> List[Dict[str, Any]]:
        require(item_id, "Item ID is required")
        envelope = await self.api.get(
            self._path(company_id, item_id, "stock-history"),
            params={"page": page, "limit": limit},
            company_id=company_id,
        )
        return as_list(envelope, "history", "stockHistory")

    async def list_low_stock(self, company_id: str) -> List[Item]:
        envelope = await self.api.get(self._path(company_id, "low-stock"), company_id=company_id)
        return [normalize_item(raw) for raw in as_list(envelope, "items")]

    async def get_stock_summary(self, company_id: str) -> Dict[str, Any]:
        envelope = await self.api.get(self._path(company_id, "stock-summary"), company_id=company_id)
        return data_of(envelope) or {}

    async def search_items(self, company_id: str, query: str, item_type: Optional[str] = None, limit: int = 10) -> List[Item]:
        if not query or not query.strip():
            return []
        envelope = await self.api.get(
            self._path(company_id, "search"),
            params={"q": query.strip(), "type": item_type, "limit": limit},
            company_id=company_id,
        )
        return [normalize_item(raw) for raw in as_list(envelope, "items")]

    async def list_categories(self, company_id: str) -> List[str]:
        envelope = await self.api.get(self._path(company_id, "categories"), company_id=company_id)
        data = unwrap(envelope, "categories")
        if not isinstance(data, list):
            return []
        return [c if isinstance(c, str) else str(c.get("name", "")) for c in data]

    async def list_item_transactions(self, company_id: str, item_id: str, limit: int = 50) -> List[Transaction]:
        require(item_id, "Item ID is required")
        envelope = await self.api.get(
            self._path(company_id, item_id, "transactions"),
            params={"limit": limit},
            company_id=company_id,
        )
        return [normalize_transaction(raw) for raw in as_list(envelope, "transactions")]
