"""Bank and cash account endpoints"""

from collections import defaultdict
from typing import Any, Dict, List, Optional

from bizbooks.domain.exceptions import ApiError, ServiceValidationError
from bizbooks.domain.models import BankAccount, Transaction
from bizbooks.domain.normalization import (
    as_list,
    normalize_bank_account,
    normalize_transaction,
    to_float,
    unwrap,
)
from bizbooks.infrastructure.clients.base import ResourceClient, data_of, require, strip_empty


class BankAccountClient(ResourceClient):
    """Client for /companies/:companyId/bank-accounts"""

    def _path(self, company_id: str, *segments: str) -> str:
        return self.company_path(company_id, "bank-accounts", *segments)

    async def list_accounts(
        self, company_id: str, account_type: Optional[str] = None, active_only: bool = False
    ) -> List[BankAccount]:
        envelope = await self.api.get(
            self._path(company_id),
            params={"type": account_type, "isActive": True if active_only else None},
            company_id=company_id,
        )
        return [normalize_bank_account(raw) for raw in as_list(envelope, "bankAccounts", "accounts")]

    async def get_account(self, company_id: str, account_id: str) -> BankAccount:
        require(account_id, "Bank account ID is required")
        envelope = await self.api.get(self._path(company_id, account_id), company_id=company_id)
        return normalize_bank_account(unwrap(envelope, "bankAccount", "account"))

    async def create_account(self, company_id: str, data: Dict[str, Any]) -> BankAccount:
        name = require(data.get("accountName"), "Account name is required")
        opening = to_float(data.get("openingBalance"))
        if opening < 0:
            raise ServiceValidationError("Opening balance cannot be negative")
        account_type = data.get("accountType") or data.get("type") or "bank"
        payload = strip_empty(
            {
                **data,
                "accountName": name.strip(),
                "accountType": account_type,
                "type": account_type,
                "openingBalance": opening,
                "companyId": company_id,
            }
        )
        envelope = await self.api.post(self._path(company_id), json=payload, company_id=company_id)
        return normalize_bank_account(unwrap(envelope, "bankAccount", "account"))

    async def update_account(self, company_id: str, account_id: str, data: Dict[str, Any]) -> BankAccount:
        require(account_id, "Bank account ID is required")
        envelope = await self.api.put(
            self._path(company_id, account_id), json=strip_empty(data), company_id=company_id
        )
        return normalize_bank_account(unwrap(envelope, "bankAccount", "account"))

    async def delete_account(self, company_id: str, account_id: str) -> bool:
        require(account_id, "Bank account ID is required")
        envelope = await self.api.delete(self._path(company_id, account_id), company_id=company_id)
        return envelope.get("success", True) is not False

    async def get_balance(self, company_id: str, account_id: str) -> float:
        require(account_id, "Bank account ID is required")
        envelope = await self.api.get(self._path(company_id, account_id, "balance"), company_id=company_id)
        data = data_of(envelope)
        if isinstance(data, dict):
            return to_float(data.get("currentBalance", data.get("balance")))
        return to_float(data)

    async def list_account_transactions(
        self, company_id: str, account_id: str, page: int = 1, limit: int = 20
    ) -> List[Transaction]:
        require(account_id, "Bank account ID is required")
        envelope = await self.api.get(
            self._path(company_id, account_id, "transactions"),
            params={"page": page, "limit": limit},
            company_id=company_id,
        )
        return [normalize_transaction(raw) for raw in as_list(envelope, "transactions")]

    async def process_transfer(
        self,
        company_id: str,
        from_account_id: str,
        to_account_id: str,
        amount: float,
        description: str = "",
    ) -> Dict[str, Any]:
        require(from_account_id, "Source account is required")
        require(to_account_id, "Destination account is required")
        if from_account_id == to_account_id:
            raise ServiceValidationError("Cannot transfer to the same account")
        if amount <= 0:
            raise ServiceValidationError("Transfer amount must be greater than 0")
        envelope = await self.api.post(
            self._path(company_id, "transfer"),
            json=strip_empty(
                {
                    "fromAccountId": from_account_id,
                    "toAccountId": to_account_id,
                    "amount": amount,
                    "description": description,
                }
            ),
            company_id=company_id,
        )
        return data_of(envelope) or {}

    async def get_account_summary(self, company_id: str) -> Dict[str, Any]:
        """Balances by account type; summed locally when the endpoint is missing"""
        try:
            envelope = await self.api.get(self._path(company_id, "summary"), company_id=company_id)
            return data_of(envelope) or {}
        except ApiError as e:
            if e.status != 404:
                raise

        accounts = await self.list_accounts(company_id)
        by_type: Dict[str, float] = defaultdict(float)
        for account in accounts:
            by_type[account.account_type] += account.balance
        return {
            "totalAccounts": len(accounts),
            "totalBalance": round(sum(a.balance for a in accounts), 2),
            "byType": dict(by_type),
        }
