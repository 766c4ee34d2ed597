"""Direct payments to and from parties"""

from typing import Any, Dict, Optional, Union

from bizbooks.domain.models import Party, Transaction
from bizbooks.infrastructure.clients.transactions import TransactionClient


class PaymentService:
    """Record money received from customers and paid to suppliers"""

    def __init__(self, transactions: TransactionClient):
        self.transactions = transactions

    @staticmethod
    def _payment(
        party: Union[Party, str],
        amount: float,
        payment_method: str,
        bank_account_id: Optional[str],
        description: Optional[str],
        reference: Optional[str],
        extra: Dict[str, Any],
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "amount": amount,
            "paymentMethod": payment_method,
            "bankAccountId": bank_account_id,
            "referenceNumber": reference,
            **extra,
        }
        if isinstance(party, Party):
            data.update({"partyId": party.id, "partyName": party.name})
        else:
            data["partyName"] = party
        if description:
            data["description"] = description
        return data

    async def pay_in(
        self,
        company_id: str,
        party: Union[Party, str],
        amount: float,
        payment_method: str = "cash",
        bank_account_id: Optional[str] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        **extra: Any,
    ) -> Transaction:
        data = self._payment(party, amount, payment_method, bank_account_id, description, reference, extra)
        return await self.transactions.create_payment_in(company_id, data)

    async def pay_out(
        self,
        company_id: str,
        party: Union[Party, str],
        amount: float,
        payment_method: str = "cash",
        bank_account_id: Optional[str] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        **extra: Any,
    ) -> Transaction:
        data = self._payment(party, amount, payment_method, bank_account_id, description, reference, extra)
        return await self.transactions.create_payment_out(company_id, data)
