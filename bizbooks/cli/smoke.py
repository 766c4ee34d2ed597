"""End-to-end smoke test of the transaction endpoints against a running backend.

Finds (or creates) a company and a cash account, posts four transactions,
then reads them back together with the account history and the monthly
summary.

Usage:
    bizbooks-smoke
    bizbooks-smoke --base-url http://localhost:5000/api --company-id 64f...
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import httpx

from bizbooks.config import settings
from bizbooks.domain.exceptions import BizBooksError, describe_error
from bizbooks.domain.models import Transaction
from bizbooks.infrastructure.clients.bank_accounts import BankAccountClient
from bizbooks.infrastructure.clients.companies import CompanyClient
from bizbooks.infrastructure.clients.http import ApiClient
from bizbooks.infrastructure.clients.transactions import TransactionClient
from bizbooks.infrastructure.observability.logging import setup_logging

logger = logging.getLogger("bizbooks.smoke")

TEST_COMPANY = {
    "name": "Test Transaction Company",
    "email": "test@transaction.com",
    "phone": "9999999999",
    "address": "Test Address",
}
TEST_ACCOUNT = {
    "accountName": "Test Cash Account",
    "accountType": "cash",
    "openingBalance": 50000,
}

SMOKE_TRANSACTIONS: List[Tuple[str, dict]] = [
    (
        "Purchase Payment (Out)",
        {
            "amount": 5000,
            "direction": "out",
            "transactionType": "purchase",
            "paymentMethod": "cash",
            "description": "Test purchase payment to supplier",
            "partyName": "Test Supplier",
            "partyType": "supplier",
        },
    ),
    (
        "Sales Receipt (In)",
        {
            "amount": 8000,
            "direction": "in",
            "transactionType": "sale",
            "paymentMethod": "upi",
            "description": "Test sales receipt from customer",
            "partyName": "Test Customer",
            "partyType": "customer",
        },
    ),
    (
        "Direct Payment Out",
        {
            "amount": 3000,
            "direction": "out",
            "transactionType": "payment_out",
            "paymentMethod": "bank_transfer",
            "description": "Test direct payment to supplier",
            "partyName": "Another Supplier",
            "partyType": "supplier",
        },
    ),
    (
        "Direct Payment In",
        {
            "amount": 12000,
            "direction": "in",
            "transactionType": "payment_in",
            "paymentMethod": "cheque",
            "description": "Test direct payment from customer",
            "partyName": "Premium Customer",
            "partyType": "customer",
            "chequeNumber": "CHQ001234",
            "chequeDate": "2024-12-10",
        },
    ),
]


@dataclass
class SmokeSetup:
    company_id: str
    company_name: str
    bank_account_id: str
    bank_account_name: str
    bank_balance: float


@dataclass
class SmokeReport:
    setup: Optional[SmokeSetup] = None
    created: int = 0
    failed: int = 0
    listed: int = 0
    account_transactions: int = 0
    net_amount: Optional[float] = None
    retrieval_ok: bool = False

    @property
    def passed(self) -> bool:
        return self.setup is not None and self.created > 0


async def setup_environment(
    companies: CompanyClient, accounts: BankAccountClient, company_id: Optional[str] = None
) -> Optional[SmokeSetup]:
    """Locate or create the company and cash account the smoke run writes to"""
    try:
        await companies.health_check()
        logger.info("Backend is up", extra={"step": "health"})
    except BizBooksError as e:
        logger.error("Backend health check failed", extra={"step": "health", "error": describe_error(e)})
        return None

    try:
        if company_id:
            company = await companies.get_company(company_id)
        else:
            existing = await companies.list_companies()
            company = existing[0] if existing else await companies.create_company(TEST_COMPANY)
        logger.info("Using company", extra={"step": "company", "company_id": company.id, "company": company.name})

        existing_accounts = await accounts.list_accounts(company.id)
        account = existing_accounts[0] if existing_accounts else await accounts.create_account(company.id, TEST_ACCOUNT)
        logger.info(
            "Using bank account",
            extra={"step": "bank_account", "account_id": account.id, "balance": account.balance},
        )
    except BizBooksError as e:
        logger.error("Could not prepare test environment", extra={"step": "setup", "error": describe_error(e)})
        return None

    return SmokeSetup(
        company_id=company.id,
        company_name=company.name,
        bank_account_id=account.id,
        bank_account_name=account.account_name,
        bank_balance=account.balance,
    )


async def create_transactions(
    transactions: TransactionClient, setup: SmokeSetup, report: SmokeReport
) -> List[Transaction]:
    created = []
    for name, data in SMOKE_TRANSACTIONS:
        try:
            txn = await transactions.create_transaction(
                setup.company_id, {**data, "bankAccountId": setup.bank_account_id}
            )
        except BizBooksError as e:
            report.failed += 1
            logger.error("Transaction failed", extra={"step": "create_transaction", "transaction": name, "error": describe_error(e)})
            continue
        created.append(txn)
        report.created += 1
        logger.info(
            "Transaction created",
            extra={
                "step": "create_transaction",
                "transaction": name,
                "transaction_id": txn.transaction_id,
                "amount": txn.amount,
                "balance_before": txn.balance_before,
                "balance_after": txn.balance_after,
            },
        )
    return created


async def retrieve_transactions(
    transactions: TransactionClient, accounts: BankAccountClient, setup: SmokeSetup, report: SmokeReport
) -> bool:
    try:
        page = await transactions.list_transactions(setup.company_id, limit=10)
        report.listed = len(page.transactions)
        for txn in page.transactions[:3]:
            sign = "+" if txn.direction == "in" else "-"
            logger.info(
                "Recent transaction",
                extra={"step": "list_transactions", "amount": f"{sign}{txn.amount:.2f}", "type": txn.transaction_type},
            )
        logger.info(
            "Transactions listed",
            extra={"step": "list_transactions", "count": report.listed, "total": page.pagination.total},
        )

        history = await accounts.list_account_transactions(setup.company_id, setup.bank_account_id)
        report.account_transactions = len(history)
        logger.info("Account history fetched", extra={"step": "account_transactions", "count": len(history)})

        summary = await transactions.get_summary(setup.company_id, period="month")
        report.net_amount = summary.net_amount
        logger.info(
            "Monthly summary fetched",
            extra={
                "step": "summary",
                "total_in": summary.total_in,
                "total_out": summary.total_out,
                "net_amount": summary.net_amount,
            },
        )
    except BizBooksError as e:
        logger.error("Transaction retrieval failed", extra={"step": "retrieve", "error": describe_error(e)})
        return False
    return True


def format_report(report: SmokeReport) -> str:
    lines = ["Transaction smoke test"]
    if report.setup is None:
        lines.append("  setup: FAILED")
    else:
        lines.append(f"  company: {report.setup.company_name} ({report.setup.company_id})")
        lines.append(f"  account: {report.setup.bank_account_name} (opening balance {report.setup.bank_balance:.2f})")
        lines.append(f"  created: {report.created}/{len(SMOKE_TRANSACTIONS)}")
        lines.append(f"  listed: {report.listed}, account history: {report.account_transactions}")
        if report.net_amount is not None:
            lines.append(f"  monthly net: {report.net_amount:.2f}")
    lines.append(f"  result: {'PASSED' if report.passed else 'FAILED'}")
    return "\n".join(lines)


async def run_smoke(api: ApiClient, company_id: Optional[str] = None) -> SmokeReport:
    companies = CompanyClient(api)
    accounts = BankAccountClient(api)
    transactions = TransactionClient(api)

    report = SmokeReport()
    report.setup = await setup_environment(companies, accounts, company_id)
    if report.setup is None:
        return report

    await create_transactions(transactions, report.setup, report)
    if report.created:
        report.retrieval_ok = await retrieve_transactions(transactions, accounts, report.setup, report)
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smoke-test the transaction endpoints of a running backend")
    parser.add_argument("--base-url", type=str, default=settings.api_base_url, help="Backend API root")
    parser.add_argument("--token", type=str, default=settings.api_token, help="Bearer token, if the backend needs one")
    parser.add_argument("--company-id", type=str, help="Use this company instead of the first one found")
    return parser


def main(
    argv: Optional[Sequence[str]] = None, transport: Optional[httpx.AsyncBaseTransport] = None
) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level)

    # Reads must see each write immediately
    api = ApiClient(base_url=args.base_url, token=args.token, transport=transport, cache_ttl_seconds=0)
    report = asyncio.run(run_smoke(api, args.company_id))
    print(format_report(report))
    return 0 if report.passed else 1


if __name__ == "__main__":
    raise SystemExit(main())
