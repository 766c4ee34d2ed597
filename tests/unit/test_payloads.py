"""Unit tests for request payload builders"""

import pytest
from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.infrastructure.clients.documents import build_payment_payload
from bizbooks.infrastructure.clients.parties import build_party_payload
from bizbooks.infrastructure.clients.transactions import build_transaction_payload


def test_cash_transaction_needs_no_bank_account():
    """Test cash payments are flagged as cash-out/cash-in transactions"""
    payload = build_transaction_payload(
        "c1",
        {
            "amount": 500,
            "paymentMethod": "cash",
            "direction": "out",
            "transactionType": "expense",
            "description": " Office tea ",
        },
    )

    assert payload["isCashTransaction"] is True
    assert payload["cashAmount"] == 500.0
    assert payload["cashTransactionType"] == "cash_out"
    assert payload["description"] == "Office tea"
    assert payload["status"] == "completed"
    assert "bankAccountId" not in payload
    assert "partyName" not in payload


def test_cash_transaction_keeps_given_bank_account():
    payload = build_transaction_payload(
        "c1", {"amount": 100, "paymentMethod": "cash", "description": "Sale", "bankAccountId": "acc1"}
    )
    assert payload["bankAccountId"] == "acc1"
    assert payload["cashTransactionType"] == "cash_in"


def test_non_cash_transaction_defaults():
    payload = build_transaction_payload(
        "c1",
        {"amount": "1200", "paymentMethod": "upi", "description": "Receipt", "bankAccountId": "acc1",
         "referenceId": "s1", "chequeDate": "2024-12-10T00:00:00.000Z"},
    )

    assert payload["amount"] == 1200.0
    assert payload["transactionType"] == "payment_in"
    assert payload["referenceType"] == "payment"
    assert payload["chequeDate"] == "2024-12-10"
    assert "isCashTransaction" not in payload


@pytest.mark.parametrize(
    "data,message",
    [
        ({"amount": 100, "paymentMethod": "upi", "description": "x"}, "Bank account ID is required"),
        ({"amount": 0, "paymentMethod": "cash", "description": "x"}, "Valid amount"),
        ({"amount": 10, "paymentMethod": "cash", "description": "  "}, "description is required"),
        ({"amount": 10, "paymentMethod": "cash", "description": "x", "transactionType": "gift"}, "Invalid transaction type"),
        ({"amount": 10, "paymentMethod": "cash", "description": "x", "direction": "sideways"}, "Invalid direction"),
        ({"amount": 10, "paymentMethod": "cash", "description": "x", "partyType": "vendor"}, "Invalid party type"),
    ],
)
def test_transaction_payload_validation(data, message):
    with pytest.raises(ServiceValidationError, match=message):
        build_transaction_payload("c1", data)


def test_party_payload_normalises_fields():
    payload = build_party_payload(
        {
            "name": "  Acme Metals ",
            "phoneNumber": "9000000000",
            "partyType": "supplier",
            "gstNumber": "27abcde1234f1z5",
            "email": "",
        }
    )

    assert payload["name"] == "Acme Metals"
    assert payload["gstNumber"] == "27ABCDE1234F1Z5"
    assert payload["gstType"] == "unregistered"
    assert payload["country"] == "INDIA"
    assert payload["phoneNumbers"] == [{"number": "9000000000", "label": "Primary"}]
    assert "email" not in payload


def test_party_payload_validation():
    with pytest.raises(ServiceValidationError, match="Name and phone number are required"):
        build_party_payload({"name": "Acme"})
    with pytest.raises(ServiceValidationError, match="Invalid party type"):
        build_party_payload({"name": "Acme", "phoneNumber": "9", "partyType": "vendor"})


def test_payment_payload():
    payload = build_payment_payload({"amount": "250", "paymentMethod": "upi", "dueDate": "2024-07-01"})

    assert payload["amount"] == 250.0
    assert payload["method"] == "upi"
    assert payload["dueDate"] == "2024-07-01"

    with pytest.raises(ServiceValidationError, match="greater than 0"):
        build_payment_payload({"amount": 0})


@pytest.mark.parametrize("amount", ["abc", None, "", "-5"])
def test_payment_payload_rejects_unusable_amounts(amount):
    with pytest.raises(ServiceValidationError, match="greater than 0"):
        build_payment_payload({"amount": amount})
