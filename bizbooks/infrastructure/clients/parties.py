"""Customer and supplier endpoints"""

from typing import Any, Dict, List, Optional

from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.domain.models import Party
from bizbooks.domain.normalization import as_list, normalize_party, to_float, unwrap
from bizbooks.infrastructure.clients.base import ResourceClient, data_of, require, strip_empty

PARTY_TYPES = ("customer", "supplier", "both")


def build_party_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shape party form data for the backend.

    Text is trimmed, GST and CIN numbers upper-cased, empty fields dropped, and
    the primary phone is always present in `phoneNumbers`.
    """
    name = require(data.get("name"), "Name and phone number are required")
    phone = require(data.get("phoneNumber"), "Name and phone number are required")
    party_type = data.get("partyType") or "customer"
    if party_type not in PARTY_TYPES:
        raise ServiceValidationError(f"Invalid party type: {party_type}")

    def text(key: str) -> str:
        value = data.get(key)
        return value.strip() if isinstance(value, str) else ""

    payload = strip_empty(
        {
            "partyType": party_type,
            "name": name.strip(),
            "email": text("email"),
            "phoneNumber": phone.strip(),
            "companyName": text("companyName"),
            "gstNumber": text("gstNumber").upper(),
            "gstType": data.get("gstType") or "unregistered",
            "creditLimit": to_float(data.get("creditLimit")),
            "openingBalance": to_float(data.get("openingBalance")),
            "country": data.get("country") or "INDIA",
            "homeAddressLine": text("homeAddressLine"),
            "homePincode": text("homePincode"),
            "homeState": text("homeState"),
            "homeDistrict": text("homeDistrict"),
            "deliveryAddressLine": text("deliveryAddressLine"),
            "deliveryPincode": text("deliveryPincode"),
            "deliveryState": text("deliveryState"),
            "sameAsHomeAddress": bool(data.get("sameAsHomeAddress")),
            "cinNumber": text("cinNumber").upper(),
            "website": text("website"),
            "description": text("description"),
        }
    )
    phones = [p for p in data.get("phoneNumbers") or [] if str(p.get("number", "")).strip()]
    payload["phoneNumbers"] = phones or [{"number": payload["phoneNumber"], "label": "Primary"}]
    return payload


class PartyClient(ResourceClient):
    """Client for /parties (company given by header)"""

    async def list_parties(
        self,
        company_id: str,
        party_type: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> List[Party]:
        require(company_id, "Company ID is required")
        envelope = await self.api.get(
            "/parties",
            params={"companyId": company_id, "type": party_type, "search": search, "page": page, "limit": limit},
            company_id=company_id,
        )
        return [normalize_party(raw) for raw in as_list(envelope, "parties")]

    async def get_party(self, company_id: str, party_id: str) -> Party:
        require(party_id, "Party ID is required")
        envelope = await self.api.get(f"/parties/{party_id}", company_id=company_id)
        return normalize_party(unwrap(envelope, "party"))

    async def create_party(self, company_id: str, data: Dict[str, Any]) -> Party:
        require(company_id, "Company ID is required")
        payload = build_party_payload(data)
        envelope = await self.api.post("/parties", json=payload, company_id=company_id)
        return normalize_party(unwrap(envelope, "party"))

    async def update_party(self, company_id: str, party_id: str, data: Dict[str, Any]) -> Party:
        require(party_id, "Party ID is required")
        payload = build_party_payload(data)
        envelope = await self.api.put(f"/parties/{party_id}", json=payload, company_id=company_id)
        return normalize_party(unwrap(envelope, "party"))

    async def delete_party(self, company_id: str, party_id: str) -> bool:
        require(party_id, "Party ID is required")
        envelope = await self.api.delete(f"/parties/{party_id}", company_id=company_id)
        return envelope.get("success", True) is not False

    async def search_parties(self, company_id: str, query: str, party_type: Optional[str] = None, limit: int = 10) -> List[Party]:
        if not query or not query.strip():
            return []
        envelope = await self.api.get(
            "/parties/search",
            params={"q": query.strip(), "type": party_type, "limit": limit, "companyId": company_id},
            company_id=company_id,
        )
        return [normalize_party(raw) for raw in as_list(envelope, "parties")]

    async def check_phone_exists(self, company_id: str, phone_number: str) -> bool:
        require(phone_number, "Phone number is required")
        envelope = await self.api.get(f"/parties/check-phone/{phone_number.strip()}", company_id=company_id)
        data = data_of(envelope)
        return bool(data.get("exists")) if isinstance(data, dict) else bool(data)

    async def get_ledger(self, company_id: str, party_id: str) -> Dict[str, Any]:
        require(party_id, "Party ID is required")
        envelope = await self.api.get(f"/parties/{party_id}/ledger", company_id=company_id)
        return data_of(envelope) or {}

    async def update_balance(self, company_id: str, party_id: str, amount: float, balance_type: str = "payable") -> Party:
        require(party_id, "Party ID is required")
        envelope = await self.api.put(
            f"/parties/{party_id}/balance",
            json={"amount": amount, "type": balance_type},
            company_id=company_id,
        )
        return normalize_party(unwrap(envelope, "party"))
