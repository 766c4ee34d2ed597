"""Pytest fixtures for testing"""

import logging
from typing import List

import httpx
import pytest

from bizbooks.domain.models import BankAccount, Company
from bizbooks.infrastructure.clients.bank_accounts import BankAccountClient
from bizbooks.infrastructure.clients.companies import CompanyClient
from bizbooks.infrastructure.clients.http import ApiClient
from mock_backend import main as backend

BASE_URL = "http://testserver/api"


@pytest.fixture(autouse=True)
def backend_state():
    """Fresh in-memory backend for every test"""
    backend.reset()
    yield backend
    backend.reset()


@pytest.fixture(autouse=True)
def root_logging():
    """Undo setup_logging calls so handlers never outlive a captured stdout"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def sleeps() -> List[float]:
    """Backoff delays requested by the client, in order"""
    return []


@pytest.fixture
def transport() -> httpx.AsyncBaseTransport:
    return httpx.ASGITransport(app=backend.app)


@pytest.fixture
def api(transport: httpx.AsyncBaseTransport, sleeps: List[float]) -> ApiClient:
    """Client wired to the mock backend; retries back off instantly"""

    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    return ApiClient(base_url=BASE_URL, token="test-token", transport=transport, sleep=record_sleep)


@pytest.fixture
async def company(api: ApiClient) -> Company:
    return await CompanyClient(api).create_company(
        {"name": "Sharma Traders", "email": "accounts@sharma.test", "phone": "9876543210"}
    )


@pytest.fixture
async def bank_account(api: ApiClient, company: Company) -> BankAccount:
    return await BankAccountClient(api).create_account(
        company.id,
        {"accountName": "HDFC Current", "accountType": "bank", "bankName": "HDFC", "openingBalance": 100000},
    )
