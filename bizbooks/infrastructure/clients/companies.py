"""Company endpoints and backend health"""

from typing import Any, Dict, List, Optional

from bizbooks.domain.models import Company
from bizbooks.domain.normalization import as_list, normalize_company, unwrap
from bizbooks.infrastructure.clients.base import ResourceClient, data_of, require, strip_empty


class CompanyClient(ResourceClient):
    """Client for /companies"""

    async def health_check(self) -> Dict[str, Any]:
        return await self.api.get("/health", use_cache=False)

    async def list_companies(
        self, search: Optional[str] = None, page: int = 1, limit: int = 50
    ) -> List[Company]:
        envelope = await self.api.get("/companies", params={"search": search, "page": page, "limit": limit})
        return [normalize_company(raw) for raw in as_list(envelope, "companies")]

    async def get_company(self, company_id: str) -> Company:
        require(company_id, "Company ID is required")
        envelope = await self.api.get(f"/companies/{company_id}")
        return normalize_company(unwrap(envelope, "company"))

    async def create_company(self, data: Dict[str, Any]) -> Company:
        name = require(data.get("businessName") or data.get("name"), "Business name is required")
        payload = strip_empty({**data, "businessName": name, "name": name})
        envelope = await self.api.post("/companies", json=payload)
        return normalize_company(unwrap(envelope, "company"))

    async def update_company(self, company_id: str, data: Dict[str, Any]) -> Company:
        require(company_id, "Company ID is required")
        envelope = await self.api.put(f"/companies/{company_id}", json=strip_empty(data))
        return normalize_company(unwrap(envelope, "company"))

    async def delete_company(self, company_id: str) -> bool:
        require(company_id, "Company ID is required")
        envelope = await self.api.delete(f"/companies/{company_id}")
        return envelope.get("success", True) is not False

    async def get_dashboard(self, company_id: str) -> Dict[str, Any]:
        envelope = await self.api.get(self.company_path(company_id, "dashboard"), company_id=company_id)
        return data_of(envelope) or {}
