"""Due-date and overdue calculations for sales invoices and purchase bills"""

from datetime import date
from typing import List, Optional, Sequence, Tuple, Union

from bizbooks.domain.models import PurchaseBill, SaleInvoice


def overdue_status(due_date: Optional[date], pending: float, today: Optional[date] = None) -> Tuple[bool, int]:
    """
    Whether a document is overdue and by how many days.

    Documents without a due date or without a pending balance are never overdue.
    """
    today = today or date.today()
    if due_date is None or pending <= 0:
        return False, 0
    days = (today - due_date).days
    if days > 0:
        return True, days
    return False, 0


def filter_overdue(documents: Sequence[Union[SaleInvoice, PurchaseBill]], today: Optional[date] = None) -> List:
    """Documents past their due date with money still pending, most overdue first"""
    today = today or date.today()
    overdue = [
        doc
        for doc in documents
        if overdue_status(doc.payment.due_date, doc.payment.pending_amount, today)[0]
    ]
    return sorted(overdue, key=lambda doc: doc.payment.due_date)


def filter_due_today(documents: Sequence[Union[SaleInvoice, PurchaseBill]], today: Optional[date] = None) -> List:
    today = today or date.today()
    return [
        doc
        for doc in documents
        if doc.payment.due_date == today and doc.payment.pending_amount > 0
    ]
