"""
Document pricing and outgoing payload shaping for sales and purchases.

Line maths:
- base = quantity x price, less discount (flat amount wins over percent)
- tax-inclusive prices are split back into taxable value and tax
- GST is reported as equal CGST/SGST halves

Payment:
- pending = max(0, total - paid)
- status paid / partial / pending from paid vs total
- partially paid documents with no due date get the default credit period
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bizbooks.config import settings
from bizbooks.domain.exceptions import ServiceValidationError
from bizbooks.domain.normalization import DEFAULT_UNIT, first_present, to_float, to_int
from bizbooks.utils.date_utils import add_days, format_date_for_api, parse_date

DEFAULT_CUSTOMER = "Cash Customer"
DEFAULT_HSN = "0000"
# Applied when a tax-inclusive line arrives without a rate
DEFAULT_INCLUSIVE_GST_RATE = 18.0


@dataclass
class LineAmounts:
    taxable: float
    tax: float
    cgst: float
    sgst: float
    discount: float
    total: float


def round2(value: float) -> float:
    return round(value + 0.0, 2)


def split_tax(price: float, gst_rate: float, inclusive: bool) -> Tuple[float, float]:
    """
    Return (price_with_tax, price_without_tax) for a unit price.

    Args:
        price: Unit price as entered
        gst_rate: GST percentage (18 for 18%)
        inclusive: Whether `price` already contains the tax
    """
    factor = 1 + (gst_rate or 0) / 100
    if inclusive:
        return round2(price), round2(price / factor)
    return round2(price * factor), round2(price)


def line_amounts(line: Dict[str, Any], price_includes_tax: bool = False) -> LineAmounts:
    """Taxable value, tax and total for a single document line"""
    quantity = to_float(first_present(line, "quantity", "qty"))
    price = to_float(first_present(line, "pricePerUnit", "price", "rate"))
    rate = to_float(first_present(line, "taxRate", "gstRate"))
    inclusive = bool(line.get("priceIncludesTax", price_includes_tax))
    if inclusive and not rate:
        rate = DEFAULT_INCLUSIVE_GST_RATE

    base = quantity * price
    discount = to_float(line.get("discountAmount"))
    if not discount:
        discount = base * to_float(line.get("discountPercent")) / 100
    after_discount = max(0.0, base - discount)

    if inclusive:
        taxable = after_discount / (1 + rate / 100)
        tax = after_discount - taxable
    else:
        taxable = after_discount
        tax = taxable * rate / 100

    return LineAmounts(
        taxable=round2(taxable),
        tax=round2(tax),
        cgst=round2(tax / 2),
        sgst=round2(tax / 2),
        discount=round2(discount),
        total=round2(taxable + tax),
    )


def invoice_totals(lines: Iterable[Dict[str, Any]], price_includes_tax: bool = False) -> Dict[str, float]:
    """Sum line amounts into the backend's `totals` block"""
    subtotal = tax = discount = total = 0.0
    for line in lines:
        amounts = line_amounts(line, price_includes_tax)
        subtotal += amounts.taxable
        tax += amounts.tax
        discount += amounts.discount
        total += amounts.total
    return {
        "subtotal": round2(subtotal),
        "totalDiscount": round2(discount),
        "totalTax": round2(tax),
        "finalTotal": round2(total),
    }


def payment_status(paid: float, total: float) -> str:
    if total > 0 and paid >= total:
        return "paid"
    if paid > 0:
        return "partial"
    return "pending"


def resolve_due_date(
    due_date: Any = None,
    credit_days: int = 0,
    paid: float = 0.0,
    pending: float = 0.0,
    today: Optional[date] = None,
) -> Tuple[Optional[date], int]:
    """
    Work out (due_date, credit_days) for a document.

    An explicit due date wins; otherwise credit days count from today; otherwise a
    partially paid document gets the default credit period. Fully paid or wholly
    unpaid documents with neither keep no due date.
    """
    today = today or date.today()
    explicit = parse_date(due_date)
    if explicit:
        return explicit, credit_days
    if credit_days > 0:
        return add_days(today, credit_days), credit_days
    if pending > 0 and paid > 0:
        days = settings.default_credit_days
        return add_days(today, days), days
    return None, 0


def shape_lines(items: Iterable[Dict[str, Any]], price_includes_tax: bool) -> List[Dict[str, Any]]:
    shaped = []
    for index, item in enumerate(items or []):
        name = first_present(item, "itemName", "name")
        quantity = to_float(first_present(item, "quantity", "qty"))
        price = to_float(first_present(item, "pricePerUnit", "price", "rate"), -1.0)
        # Lines without a name, quantity or price never reach the backend
        if not name or quantity <= 0 or price < 0:
            continue
        inclusive = bool(item.get("priceIncludesTax", price_includes_tax))
        amounts = line_amounts({**item, "pricePerUnit": price, "quantity": quantity}, inclusive)
        rate = to_float(first_present(item, "taxRate", "gstRate"))
        if inclusive and not rate:
            rate = DEFAULT_INCLUSIVE_GST_RATE
        shaped.append(
            {
                "itemRef": first_present(item, "itemRef", "_id", "id"),
                "itemName": str(name).strip(),
                "hsnCode": first_present(item, "hsnCode", "hsnNumber", default=DEFAULT_HSN),
                "quantity": quantity,
                "unit": first_present(item, "unit", default=DEFAULT_UNIT),
                "pricePerUnit": price,
                "taxRate": rate,
                "priceIncludesTax": inclusive,
                "taxMode": "with-tax" if inclusive else "without-tax",
                "discountPercent": to_float(item.get("discountPercent")),
                "discountAmount": amounts.discount,
                "cgst": amounts.cgst,
                "sgst": amounts.sgst,
                "taxAmount": amounts.tax,
                "amount": amounts.total,
                "lineNumber": to_int(item.get("lineNumber"), index + 1) or index + 1,
            }
        )
    return shaped


def _payment_block(document: Dict[str, Any], final_total: float, today: Optional[date]) -> Dict[str, Any]:
    info = document.get("paymentInfo") or document.get("payment") or {}
    paid = to_float(
        first_present(document, "paymentReceived", default=first_present(info, "amount", "paidAmount"))
    )
    pending = max(0.0, final_total - paid)
    due, credit_days = resolve_due_date(
        due_date=first_present(document, "dueDate", default=info.get("dueDate")),
        credit_days=to_int(first_present(document, "creditDays", default=info.get("creditDays"))),
        paid=paid,
        pending=pending,
        today=today,
    )
    reference = first_present(info, "transactionId", "chequeNumber", "reference", default="")
    return {
        "method": first_present(info, "method", "paymentMethod", default=document.get("paymentMethod") or "cash"),
        "status": payment_status(paid, final_total),
        "paidAmount": round2(paid),
        "pendingAmount": round2(pending),
        "paymentDate": format_date_for_api(first_present(info, "paymentDate", default=today or date.today())),
        "dueDate": format_date_for_api(due),
        "creditDays": credit_days,
        "reference": reference,
        "chequeNumber": first_present(info, "chequeNumber", default=document.get("chequeNumber") or ""),
        "bankAccountId": first_present(document, "bankAccountId", default=info.get("bankAccountId")),
        "notes": first_present(info, "notes", default=""),
    }


def _totals_for(document: Dict[str, Any], lines: List[Dict[str, Any]]) -> Dict[str, float]:
    computed = {
        "subtotal": round2(sum(l["amount"] - l["taxAmount"] for l in lines)),
        "totalDiscount": round2(sum(l["discountAmount"] for l in lines)),
        "totalTax": round2(sum(l["taxAmount"] for l in lines)),
        "finalTotal": round2(sum(l["amount"] for l in lines)),
    }
    given = document.get("totals") or {}
    if to_float(given.get("finalTotal")) > 0:
        return {
            "subtotal": to_float(given.get("subtotal"), computed["subtotal"]),
            "totalDiscount": to_float(first_present(given, "totalDiscountAmount", "totalDiscount")),
            "totalTax": to_float(first_present(given, "totalTaxAmount", "totalTax"), computed["totalTax"]),
            "finalTotal": to_float(given["finalTotal"]),
        }
    return computed


def _tax_mode(document: Dict[str, Any]) -> bool:
    mode = first_present(document, "globalTaxMode", "taxMode")
    if mode:
        return mode == "with-tax"
    return bool(document.get("priceIncludesTax"))


def build_sale_payload(invoice: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """Shape a sales invoice draft into the body the backend expects"""
    inclusive = _tax_mode(invoice)
    lines = shape_lines(invoice.get("items") or [], inclusive)
    totals = _totals_for(invoice, lines)
    gst_enabled = bool(invoice.get("gstEnabled"))
    customer = invoice.get("customer") if isinstance(invoice.get("customer"), dict) else {}

    payload = {
        "invoiceNumber": invoice.get("invoiceNumber"),
        "invoiceDate": format_date_for_api(invoice.get("invoiceDate") or today or date.today()),
        "invoiceType": "gst" if gst_enabled else "non-gst",
        "gstEnabled": gst_enabled,
        "priceIncludesTax": inclusive,
        "globalTaxMode": "with-tax" if inclusive else "without-tax",
        "companyId": invoice.get("companyId"),
        "customerName": first_present(customer, "name", default=invoice.get("partyName") or DEFAULT_CUSTOMER),
        "customerMobile": first_present(customer, "mobile", "phone", default=invoice.get("mobileNumber") or ""),
        "customer": first_present(customer, "id", "_id", default=invoice.get("customerId")),
        "items": lines,
        "payment": _payment_block(invoice, totals["finalTotal"], today),
        "totals": totals,
        "notes": invoice.get("notes") or "",
        "termsAndConditions": first_present(invoice, "termsAndConditions", "terms", default=""),
        "status": invoice.get("status") or "completed",
        "roundOff": to_float(invoice.get("roundOff")),
    }
    payload["bankAccountId"] = payload["payment"]["bankAccountId"]
    return payload


def build_purchase_payload(purchase: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """
    Shape a purchase bill draft into the body the backend expects.

    Raises:
        ServiceValidationError: No company, no supplier name, or no usable line
    """
    company_id = first_present(purchase, "companyId", "company.id", "company._id")
    if not company_id:
        raise ServiceValidationError("Company ID is required for purchase creation")

    supplier = purchase.get("supplier") or purchase.get("customer")
    supplier_record = supplier if isinstance(supplier, dict) else {}
    supplier_name = str(
        first_present(supplier_record, "name", "businessName", default=first_present(purchase, "supplierName", "partyName", default=""))
    ).strip()
    if not supplier_name:
        raise ServiceValidationError("Supplier name is required for purchase creation")

    raw_items = purchase.get("items") or []
    if not raw_items:
        raise ServiceValidationError("At least one item is required for purchase creation")

    inclusive = _tax_mode(purchase)
    lines = shape_lines(raw_items, inclusive)
    if not lines:
        raise ServiceValidationError(
            "No valid items found. Each item must have name, quantity > 0, and price >= 0"
        )

    totals = _totals_for(purchase, lines)
    gst_enabled = bool(purchase.get("gstEnabled"))
    supplier_id = (
        first_present(supplier_record, "id", "_id")
        if supplier_record
        else supplier or first_present(purchase, "supplierId", "partyId")
    )

    payload = {
        "purchaseNumber": first_present(purchase, "purchaseNumber", "billNumber"),
        "purchaseDate": format_date_for_api(
            first_present(purchase, "purchaseDate", "billDate", default=today or date.today())
        ),
        "purchaseType": "gst" if gst_enabled else "non-gst",
        "gstEnabled": gst_enabled,
        "priceIncludesTax": inclusive,
        "globalTaxMode": "with-tax" if inclusive else "without-tax",
        "companyId": company_id,
        "supplierName": supplier_name,
        "supplierMobile": first_present(
            supplier_record, "mobile", "phone", default=first_present(purchase, "supplierMobile", "mobileNumber", default="")
        ),
        "supplier": supplier_id,
        "items": lines,
        "payment": _payment_block(purchase, totals["finalTotal"], today),
        "totals": totals,
        "notes": purchase.get("notes") or "",
        "status": purchase.get("status") or "draft",
    }
    payload["bankAccountId"] = payload["payment"]["bankAccountId"]
    return payload


def item_price_fields(item: Dict[str, Any]) -> Dict[str, float]:
    """
    Tax-inclusive and tax-exclusive buy/sale prices for an item update.

    `isSalePriceTaxInclusive` / `isBuyPriceTaxInclusive` say how the entered
    prices should be read.
    """
    gst_rate = to_float(first_present(item, "gstRate", "taxRate"))
    sale_price = to_float(first_present(item, "salePrice", "sellPrice", "price"))
    buy_price = to_float(first_present(item, "buyPrice", "purchasePrice"))
    sale_with, sale_without = split_tax(sale_price, gst_rate, bool(item.get("isSalePriceTaxInclusive")))
    buy_with, buy_without = split_tax(buy_price, gst_rate, bool(item.get("isBuyPriceTaxInclusive")))
    return {
        "salePrice": sale_price,
        "salePriceWithTax": sale_with,
        "salePriceWithoutTax": sale_without,
        "buyPrice": buy_price,
        "buyPriceWithTax": buy_with,
        "buyPriceWithoutTax": buy_without,
        "gstRate": gst_rate,
    }
