"""Client-side reductions over transactions and documents"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Union

from bizbooks.domain.dues import overdue_status
from bizbooks.domain.models import PurchaseBill, SaleInvoice, Transaction, TransactionSummary


def summarize_transactions(transactions: Iterable[Transaction]) -> TransactionSummary:
    """Money in/out, net and per-type totals"""
    total_in = total_out = 0.0
    count = 0
    by_type: Dict[str, float] = defaultdict(float)
    for txn in transactions:
        count += 1
        if txn.direction == "out":
            total_out += txn.amount
        else:
            total_in += txn.amount
        by_type[txn.transaction_type] += txn.amount
    return TransactionSummary(
        total_in=round(total_in, 2),
        total_out=round(total_out, 2),
        net_amount=round(total_in - total_out, 2),
        total_transactions=count,
        by_type=dict(by_type),
    )


def group_by_payment_status(
    documents: Iterable[Union[SaleInvoice, PurchaseBill]]
) -> Dict[str, List[Union[SaleInvoice, PurchaseBill]]]:
    groups: Dict[str, List] = defaultdict(list)
    for doc in documents:
        groups[doc.payment.status or "pending"].append(doc)
    return dict(groups)


def payment_summary(
    documents: Sequence[Union[SaleInvoice, PurchaseBill]], today: Optional[date] = None
) -> Dict[str, float]:
    """Totals for a payment dashboard: billed, paid, pending, overdue"""
    total = paid = pending = overdue_amount = 0.0
    overdue_count = 0
    for doc in documents:
        total += doc.total
        paid += doc.payment.paid_amount
        pending += doc.payment.pending_amount
        is_overdue, _ = overdue_status(doc.payment.due_date, doc.payment.pending_amount, today)
        if is_overdue:
            overdue_count += 1
            overdue_amount += doc.payment.pending_amount
    return {
        "totalDocuments": len(documents),
        "totalAmount": round(total, 2),
        "totalPaid": round(paid, 2),
        "totalPending": round(pending, 2),
        "overdueCount": overdue_count,
        "overdueAmount": round(overdue_amount, 2),
    }
