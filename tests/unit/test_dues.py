"""Unit tests for due dates, overdue detection and payment summaries"""

from datetime import date
from typing import Optional
from bizbooks.domain.dues import filter_due_today, filter_overdue, overdue_status
from bizbooks.domain.models import Payment, SaleInvoice
from bizbooks.domain.summaries import group_by_payment_status, payment_summary

TODAY = date(2024, 6, 15)


def make_invoice(number: str, total: float, paid: float, due: Optional[date]) -> SaleInvoice:
    pending = max(0.0, total - paid)
    status = "paid" if pending == 0 else ("partial" if paid else "pending")
    return SaleInvoice(
        id=number,
        invoice_number=number,
        invoice_date=date(2024, 5, 1),
        customer_name="Ravi Kumar",
        customer_id=None,
        gst_enabled=False,
        status="completed",
        subtotal=total,
        total_tax=0,
        total=total,
        payment=Payment(method="cash", status=status, paid_amount=paid, pending_amount=pending, due_date=due),
    )


def test_overdue_status():
    assert overdue_status(date(2024, 6, 10), 100, TODAY) == (True, 5)
    assert overdue_status(date(2024, 6, 15), 100, TODAY) == (False, 0)
    assert overdue_status(date(2024, 6, 10), 0, TODAY) == (False, 0)
    assert overdue_status(None, 100, TODAY) == (False, 0)


def test_filter_overdue_sorted_by_due_date():
    """Test paid and undated invoices are skipped, oldest due first"""
    invoices = [
        make_invoice("INV-3", 500, 100, date(2024, 6, 12)),
        make_invoice("INV-1", 300, 0, date(2024, 5, 30)),
        make_invoice("INV-2", 200, 200, date(2024, 5, 1)),
        make_invoice("INV-4", 100, 0, None),
        make_invoice("INV-5", 100, 0, date(2024, 7, 1)),
    ]
    overdue = filter_overdue(invoices, TODAY)

    assert [inv.invoice_number for inv in overdue] == ["INV-1", "INV-3"]


def test_filter_due_today():
    invoices = [
        make_invoice("INV-1", 300, 0, TODAY),
        make_invoice("INV-2", 300, 300, TODAY),
        make_invoice("INV-3", 300, 0, date(2024, 6, 16)),
    ]
    assert [inv.invoice_number for inv in filter_due_today(invoices, TODAY)] == ["INV-1"]


def test_payment_summary():
    invoices = [
        make_invoice("INV-1", 1000, 400, date(2024, 6, 1)),
        make_invoice("INV-2", 500, 500, None),
        make_invoice("INV-3", 250, 0, date(2024, 7, 1)),
    ]
    summary = payment_summary(invoices, TODAY)

    assert summary == {
        "totalDocuments": 3,
        "totalAmount": 1750.0,
        "totalPaid": 900.0,
        "totalPending": 850.0,
        "overdueCount": 1,
        "overdueAmount": 600.0,
    }


def test_group_by_payment_status():
    groups = group_by_payment_status(
        [make_invoice("INV-1", 100, 0, None), make_invoice("INV-2", 100, 100, None), make_invoice("INV-3", 100, 50, None)]
    )
    assert {status: len(docs) for status, docs in groups.items()} == {"pending": 1, "paid": 1, "partial": 1}
