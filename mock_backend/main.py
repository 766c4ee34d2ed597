"""
In-memory stand-in for the accounting backend.

Every response uses the backend's `{success, data, message}` envelope. State
lives in module-level dicts; call `reset()` between tests. `inject_failure()`
makes the next matching calls fail with a chosen status.
"""

import uuid
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

app = FastAPI(title="Mock Accounting Backend", version="1.0.0")
router = APIRouter(prefix="/api")

DB: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
COUNTERS: Dict[str, int] = defaultdict(int)
FAILURES: List[Dict[str, Any]] = []
CALLS: List[str] = []


def reset() -> None:
    DB.clear()
    COUNTERS.clear()
    FAILURES.clear()
    CALLS.clear()


def inject_failure(method: str, path_fragment: str, status: int = 500, times: int = 1, message: str = "Injected failure") -> None:
    FAILURES.append(
        {"method": method.upper(), "fragment": path_fragment, "status": status, "times": times, "message": message}
    )


@app.middleware("http")
async def failure_injection(request: Request, call_next):
    CALLS.append(f"{request.method} {request.url.path}")
    for failure in FAILURES:
        if failure["times"] > 0 and failure["method"] == request.method and failure["fragment"] in request.url.path:
            failure["times"] -= 1
            return fail(failure["status"], failure["message"])
    return await call_next(request)


# Helpers


def ok(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


def fail(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


def new_id() -> str:
    return uuid.uuid4().hex[:24]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def stamp() -> str:
    return date.today().strftime("%Y%m%d")


def next_sequence(key: str) -> int:
    COUNTERS[key] += 1
    return COUNTERS[key]


def peek_sequence(key: str) -> int:
    return COUNTERS[key] + 1


async def body_of(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    payload = await request.json()
    return payload if isinstance(payload, dict) else {}


def company_of(request: Request) -> Optional[str]:
    return request.headers.get("x-company-id") or request.query_params.get("companyId")


def as_number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def paginate(records: List[Dict[str, Any]], request: Request, default_limit: int = 50):
    page = int(request.query_params.get("page") or 1)
    limit = int(request.query_params.get("limit") or default_limit)
    total = len(records)
    start = (page - 1) * limit
    pages = -(-total // limit) if limit else 0
    return records[start:start + limit], {
        "currentPage": page,
        "totalPages": pages,
        "total": total,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


def company_records(table: str, company_id: str) -> List[Dict[str, Any]]:
    return [r for r in DB[table].values() if r.get("companyId") == company_id]


# Health


@router.get("/health")
def health():
    return {"success": True, "status": "ok", "timestamp": now_iso()}


# Companies


@router.get("/companies")
def list_companies():
    return ok(list(DB["companies"].values()))


@router.post("/companies")
async def create_company(request: Request):
    payload = await body_of(request)
    name = payload.get("businessName") or payload.get("name")
    if not name:
        return fail(400, "Business name is required")
    company = {**payload, "_id": new_id(), "businessName": name, "createdAt": now_iso()}
    DB["companies"][company["_id"]] = company
    return ok(company, "Company created successfully", 201)


@router.get("/companies/{company_id}")
def get_company(company_id: str):
    company = DB["companies"].get(company_id)
    if company is None:
        return fail(404, "Company not found")
    return ok(company)


@router.put("/companies/{company_id}")
async def update_company(company_id: str, request: Request):
    company = DB["companies"].get(company_id)
    if company is None:
        return fail(404, "Company not found")
    company.update(await body_of(request))
    return ok(company, "Company updated successfully")


@router.delete("/companies/{company_id}")
def delete_company(company_id: str):
    if DB["companies"].pop(company_id, None) is None:
        return fail(404, "Company not found")
    return ok(None, "Company deleted successfully")


@router.get("/companies/{company_id}/dashboard")
def company_dashboard(company_id: str):
    accounts = company_records("bank_accounts", company_id)
    return ok(
        {
            "totalBalance": round(sum(a["currentBalance"] for a in accounts), 2),
            "totalSales": round(sum(s["totals"]["finalTotal"] for s in company_records("sales", company_id)), 2),
            "totalPurchases": round(
                sum(p["totals"]["finalTotal"] for p in company_records("purchases", company_id)), 2
            ),
            "totalTransactions": len(company_records("transactions", company_id)),
        }
    )


# Bank accounts


def apply_to_account(account_id: Optional[str], direction: str, amount: float):
    account = DB["bank_accounts"].get(account_id) if account_id else None
    if account is None:
        return None, None
    before = account["currentBalance"]
    after = before + amount if direction == "in" else before - amount
    account["currentBalance"] = round(after, 2)
    return before, account["currentBalance"]


@router.get("/companies/{company_id}/bank-accounts")
def list_bank_accounts(company_id: str, request: Request):
    accounts = company_records("bank_accounts", company_id)
    account_type = request.query_params.get("type")
    if account_type:
        accounts = [a for a in accounts if a["accountType"] == account_type]
    if request.query_params.get("isActive") == "true":
        accounts = [a for a in accounts if a["isActive"]]
    return ok({"bankAccounts": accounts})


@router.post("/companies/{company_id}/bank-accounts")
async def create_bank_account(company_id: str, request: Request):
    payload = await body_of(request)
    if not payload.get("accountName"):
        return fail(400, "Account name is required")
    opening = as_number(payload.get("openingBalance"))
    account_type = payload.get("accountType") or payload.get("type") or "bank"
    account = {
        **payload,
        "_id": new_id(),
        "companyId": company_id,
        "accountType": account_type,
        "type": account_type,
        "openingBalance": opening,
        "currentBalance": opening,
        "isActive": True,
        "createdAt": now_iso(),
    }
    DB["bank_accounts"][account["_id"]] = account
    return ok(account, "Bank account created successfully", 201)


@router.post("/companies/{company_id}/bank-accounts/transfer")
async def transfer_between_accounts(company_id: str, request: Request):
    payload = await body_of(request)
    source = DB["bank_accounts"].get(payload.get("fromAccountId"))
    target = DB["bank_accounts"].get(payload.get("toAccountId"))
    if source is None or target is None:
        return fail(404, "Bank account not found")
    amount = as_number(payload.get("amount"))
    if amount > source["currentBalance"]:
        return fail(400, "Insufficient balance for transfer")
    description = payload.get("description") or "Account transfer"
    out_txn = record_transaction(
        company_id,
        {"bankAccountId": source["_id"], "amount": amount, "direction": "out", "transactionType": "transfer",
         "paymentMethod": "bank_transfer", "description": description},
    )
    in_txn = record_transaction(
        company_id,
        {"bankAccountId": target["_id"], "amount": amount, "direction": "in", "transactionType": "transfer",
         "paymentMethod": "bank_transfer", "description": description},
    )
    return ok({"fromTransaction": out_txn, "toTransaction": in_txn}, "Transfer completed successfully")


@router.get("/companies/{company_id}/bank-accounts/{account_id}")
def get_bank_account(company_id: str, account_id: str):
    account = DB["bank_accounts"].get(account_id)
    if account is None or account["companyId"] != company_id:
        return fail(404, "Bank account not found")
    return ok(account)


@router.put("/companies/{company_id}/bank-accounts/{account_id}")
async def update_bank_account(company_id: str, account_id: str, request: Request):
    account = DB["bank_accounts"].get(account_id)
    if account is None:
        return fail(404, "Bank account not found")
    payload = await body_of(request)
    payload.pop("currentBalance", None)
    account.update(payload)
    return ok(account, "Bank account updated successfully")


@router.delete("/companies/{company_id}/bank-accounts/{account_id}")
def delete_bank_account(company_id: str, account_id: str):
    if DB["bank_accounts"].pop(account_id, None) is None:
        return fail(404, "Bank account not found")
    return ok(None, "Bank account deleted successfully")


@router.get("/companies/{company_id}/bank-accounts/{account_id}/balance")
def get_bank_balance(company_id: str, account_id: str):
    account = DB["bank_accounts"].get(account_id)
    if account is None:
        return fail(404, "Bank account not found")
    return ok({"currentBalance": account["currentBalance"], "accountName": account["accountName"]})


@router.get("/companies/{company_id}/bank-accounts/{account_id}/transactions")
def list_bank_account_transactions(company_id: str, account_id: str, request: Request):
    if account_id not in DB["bank_accounts"]:
        return fail(404, "Bank account not found")
    records = [t for t in newest_first(company_id) if t.get("bankAccountId") == account_id]
    page, pagination = paginate(records, request, default_limit=20)
    return ok({"transactions": page, "pagination": pagination})


# Transactions

IN_TYPES = ("sale", "payment_in", "income")


def newest_first(company_id: str) -> List[Dict[str, Any]]:
    return sorted(company_records("transactions", company_id), key=lambda t: t["createdAt"], reverse=True)


def record_transaction(company_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    transaction_type = payload.get("transactionType") or "payment_in"
    direction = payload.get("direction") or ("in" if transaction_type in IN_TYPES else "out")
    amount = as_number(payload.get("amount"))
    before, after = apply_to_account(payload.get("bankAccountId"), direction, amount)
    txn = {
        **payload,
        "_id": new_id(),
        "transactionId": f"TXN-{stamp()}-{next_sequence(f'txn:{company_id}'):04d}",
        "companyId": company_id,
        "transactionType": transaction_type,
        "direction": direction,
        "amount": amount,
        "transactionDate": payload.get("transactionDate") or date.today().isoformat(),
        "status": payload.get("status") or "completed",
        "balanceBefore": before,
        "balanceAfter": after,
        "createdAt": now_iso(),
    }
    DB["transactions"][txn["_id"]] = txn
    return txn


@router.get("/companies/{company_id}/transactions")
def list_transactions(company_id: str, request: Request):
    records = newest_first(company_id)
    for param in ("bankAccountId", "transactionType", "direction", "paymentMethod", "partyId"):
        value = request.query_params.get(param)
        if value:
            records = [t for t in records if t.get(param) == value]
    search = (request.query_params.get("search") or "").lower()
    if search:
        records = [t for t in records if search in t.get("description", "").lower()]
    page, pagination = paginate(records, request)
    pagination["totalTransactions"] = pagination.pop("total")
    total_in = sum(t["amount"] for t in records if t["direction"] == "in")
    total_out = sum(t["amount"] for t in records if t["direction"] == "out")
    return ok(
        {
            "transactions": page,
            "pagination": pagination,
            "summary": {"totalIn": round(total_in, 2), "totalOut": round(total_out, 2)},
        }
    )


@router.post("/companies/{company_id}/transactions")
async def create_transaction(company_id: str, request: Request):
    payload = await body_of(request)
    if as_number(payload.get("amount")) <= 0:
        return fail(400, "Valid amount greater than 0 is required")
    if not payload.get("description"):
        return fail(400, "Transaction description is required")
    account_id = payload.get("bankAccountId")
    if account_id and account_id not in DB["bank_accounts"]:
        return fail(404, "Bank account not found")
    if not account_id and not payload.get("isCashTransaction"):
        return fail(400, "Bank account ID is required for non-cash payments")
    return ok(record_transaction(company_id, payload), "Transaction created successfully", 201)


@router.get("/companies/{company_id}/transactions/summary")
def transaction_summary(company_id: str, request: Request):
    records = company_records("transactions", company_id)
    account_id = request.query_params.get("bankAccountId")
    if account_id:
        records = [t for t in records if t.get("bankAccountId") == account_id]
    if request.query_params.get("period") == "month":
        month = date.today().isoformat()[:7]
        records = [t for t in records if str(t["transactionDate"]).startswith(month)]

    def total(kind: str) -> float:
        return round(sum(t["amount"] for t in records if t["transactionType"] == kind), 2)

    total_in = round(sum(t["amount"] for t in records if t["direction"] == "in"), 2)
    total_out = round(sum(t["amount"] for t in records if t["direction"] == "out"), 2)
    return ok(
        {
            "summary": {
                "totalIn": total_in,
                "totalOut": total_out,
                "netAmount": round(total_in - total_out, 2),
                "totalTransactions": len(records),
                "totalSales": total("sale"),
                "totalPurchases": total("purchase"),
                "totalPaymentsIn": total("payment_in"),
                "totalPaymentsOut": total("payment_out"),
            }
        }
    )


@router.get("/companies/{company_id}/transactions/{transaction_id}")
def get_transaction(company_id: str, transaction_id: str):
    txn = DB["transactions"].get(transaction_id)
    if txn is None:
        return fail(404, "Transaction not found")
    return ok({"transaction": txn})


@router.put("/companies/{company_id}/transactions/{transaction_id}")
async def update_transaction(company_id: str, transaction_id: str, request: Request):
    txn = DB["transactions"].get(transaction_id)
    if txn is None:
        return fail(404, "Transaction not found")
    payload = await body_of(request)
    for locked in ("amount", "direction", "bankAccountId"):
        payload.pop(locked, None)
    txn.update(payload)
    return ok({"transaction": txn}, "Transaction updated successfully")


@router.delete("/companies/{company_id}/transactions/{transaction_id}")
def delete_transaction(company_id: str, transaction_id: str):
    txn = DB["transactions"].pop(transaction_id, None)
    if txn is None:
        return fail(404, "Transaction not found")
    reverse = "out" if txn["direction"] == "in" else "in"
    apply_to_account(txn.get("bankAccountId"), reverse, txn["amount"])
    return ok(None, "Transaction deleted successfully")


# Items


def item_or_404(item_id: str):
    item = DB["items"].get(item_id)
    if item is None:
        return None, fail(404, "Item not found")
    return item, None


@router.get("/companies/{company_id}/items")
def list_items(company_id: str, request: Request):
    records = sorted(company_records("items", company_id), key=lambda i: i["name"].lower())
    for param in ("type", "category"):
        value = request.query_params.get(param)
        if value:
            records = [i for i in records if i.get(param) == value]
    search = (request.query_params.get("search") or "").lower()
    if search:
        records = [i for i in records if search in i["name"].lower()]
    if request.query_params.get("sortOrder") == "desc":
        records.reverse()
    page, pagination = paginate(records, request)
    return ok({"items": page, "pagination": pagination})


@router.post("/companies/{company_id}/items")
async def create_item(company_id: str, request: Request):
    payload = await body_of(request)
    if not payload.get("name"):
        return fail(400, "Item name is required")
    item = {
        "currentStock": 0,
        "minStockLevel": 0,
        **payload,
        "_id": new_id(),
        "companyId": company_id,
        "isActive": True,
        "createdAt": now_iso(),
    }
    item.setdefault("itemCode", f"ITM-{next_sequence(f'item:{company_id}'):04d}")
    DB["items"][item["_id"]] = item
    return ok({"item": item}, "Item created successfully", 201)


@router.get("/companies/{company_id}/items/low-stock")
def list_low_stock(company_id: str):
    items = [
        i
        for i in company_records("items", company_id)
        if i.get("type") != "service" and i.get("minStockLevel", 0) > 0 and i["currentStock"] <= i["minStockLevel"]
    ]
    return ok({"items": items})


@router.get("/companies/{company_id}/items/stock-summary")
def stock_summary(company_id: str):
    products = [i for i in company_records("items", company_id) if i.get("type") != "service"]
    return ok(
        {
            "totalItems": len(products),
            "totalStockValue": round(sum(i["currentStock"] * as_number(i.get("salePrice")) for i in products), 2),
            "outOfStockItems": sum(1 for i in products if i["currentStock"] == 0),
        }
    )


@router.get("/companies/{company_id}/items/search")
def search_items(company_id: str, request: Request):
    query = (request.query_params.get("q") or "").lower()
    limit = int(request.query_params.get("limit") or 10)
    items = [i for i in company_records("items", company_id) if query in i["name"].lower()]
    item_type = request.query_params.get("type")
    if item_type:
        items = [i for i in items if i.get("type") == item_type]
    return ok({"items": items[:limit]})


@router.get("/companies/{company_id}/items/categories")
def list_categories(company_id: str):
    categories = sorted({i["category"] for i in company_records("items", company_id) if i.get("category")})
    return ok({"categories": categories})


@router.get("/companies/{company_id}/items/{item_id}")
def get_item(company_id: str, item_id: str):
    item, error = item_or_404(item_id)
    return error or ok({"item": item})


@router.put("/companies/{company_id}/items/{item_id}")
async def update_item(company_id: str, item_id: str, request: Request):
    item, error = item_or_404(item_id)
    if error:
        return error
    item.update(await body_of(request))
    return ok({"item": item}, "Item updated successfully")


@router.delete("/companies/{company_id}/items/{item_id}")
def delete_item(company_id: str, item_id: str):
    if DB["items"].pop(item_id, None) is None:
        return fail(404, "Item not found")
    return ok(None, "Item deleted successfully")


@router.put("/companies/{company_id}/items/{item_id}/adjust-stock")
async def adjust_item_stock(company_id: str, item_id: str, request: Request):
    item, error = item_or_404(item_id)
    if error:
        return error
    payload = await body_of(request)
    kind = payload.get("adjustmentType")
    quantity = as_number(payload.get("quantity"))
    if kind not in ("add", "remove", "set"):
        return fail(400, "Invalid adjustment type")
    if quantity < 0:
        return fail(400, "Quantity cannot be negative")
    previous = item["currentStock"]
    if kind == "add":
        new_stock = previous + quantity
    elif kind == "remove":
        new_stock = max(0, previous - quantity)
    else:
        new_stock = quantity
    item["currentStock"] = new_stock
    DB["stock_history"][new_id()] = {
        "itemId": item_id,
        "adjustmentType": kind,
        "quantity": quantity,
        "previousStock": previous,
        "newStock": new_stock,
        "reason": payload.get("reason"),
        "asOfDate": payload.get("asOfDate"),
        "createdAt": now_iso(),
    }
    return ok({"item": item, "previousStock": previous, "newStock": new_stock}, "Stock adjusted successfully")


@router.get("/companies/{company_id}/items/{item_id}/stock-history")
def stock_history(company_id: str, item_id: str, request: Request):
    records = [h for h in DB["stock_history"].values() if h["itemId"] == item_id]
    page, pagination = paginate(records, request, default_limit=20)
    return ok({"history": page, "pagination": pagination})


@router.get("/companies/{company_id}/items/{item_id}/transactions")
def item_transactions(company_id: str, item_id: str):
    return ok({"transactions": []})


# Parties


def party_company(request: Request):
    company_id = company_of(request)
    if not company_id:
        return None, fail(400, "Company ID is required")
    return company_id, None


@router.get("/parties")
def list_parties(request: Request):
    company_id, error = party_company(request)
    if error:
        return error
    parties = company_records("parties", company_id)
    party_type = request.query_params.get("type")
    if party_type:
        parties = [p for p in parties if p["partyType"] in (party_type, "both")]
    search = (request.query_params.get("search") or "").lower()
    if search:
        parties = [p for p in parties if search in p["name"].lower()]
    page, pagination = paginate(parties, request)
    return ok({"parties": page, "pagination": pagination})


@router.post("/parties")
async def create_party(request: Request):
    company_id, error = party_company(request)
    if error:
        return error
    payload = await body_of(request)
    if not payload.get("name") or not payload.get("phoneNumber"):
        return fail(400, "Name and phone number are required")
    if any(p["phoneNumber"] == payload["phoneNumber"] for p in company_records("parties", company_id)):
        return fail(400, "Party with this phone number already exists")
    party = {
        **payload,
        "_id": new_id(),
        "companyId": company_id,
        "currentBalance": as_number(payload.get("openingBalance")),
        "createdAt": now_iso(),
    }
    DB["parties"][party["_id"]] = party
    return ok({"party": party}, "Party created successfully", 201)


@router.get("/parties/search")
def search_parties(request: Request):
    company_id, error = party_company(request)
    if error:
        return error
    query = (request.query_params.get("q") or "").lower()
    limit = int(request.query_params.get("limit") or 10)
    parties = [
        p
        for p in company_records("parties", company_id)
        if query in p["name"].lower() or query in p["phoneNumber"]
    ]
    return ok({"parties": parties[:limit]})


@router.get("/parties/check-phone/{phone_number}")
def check_phone(phone_number: str, request: Request):
    company_id, error = party_company(request)
    if error:
        return error
    exists = any(p["phoneNumber"] == phone_number for p in company_records("parties", company_id))
    return ok({"exists": exists})


@router.get("/parties/{party_id}")
def get_party(party_id: str):
    party = DB["parties"].get(party_id)
    if party is None:
        return fail(404, "Party not found")
    return ok({"party": party})


@router.put("/parties/{party_id}")
async def update_party(party_id: str, request: Request):
    party = DB["parties"].get(party_id)
    if party is None:
        return fail(404, "Party not found")
    party.update(await body_of(request))
    return ok({"party": party}, "Party updated successfully")


@router.delete("/parties/{party_id}")
def delete_party(party_id: str):
    if DB["parties"].pop(party_id, None) is None:
        return fail(404, "Party not found")
    return ok(None, "Party deleted successfully")


@router.get("/parties/{party_id}/ledger")
def party_ledger(party_id: str):
    party = DB["parties"].get(party_id)
    if party is None:
        return fail(404, "Party not found")
    entries = [t for t in DB["transactions"].values() if t.get("partyId") == party_id]
    return ok({"party": party, "transactions": entries, "balance": party["currentBalance"]})


@router.put("/parties/{party_id}/balance")
async def update_party_balance(party_id: str, request: Request):
    party = DB["parties"].get(party_id)
    if party is None:
        return fail(404, "Party not found")
    payload = await body_of(request)
    amount = as_number(payload.get("amount"))
    party["currentBalance"] = round(
        party["currentBalance"] + (amount if payload.get("type") == "receivable" else -amount), 2
    )
    return ok({"party": party}, "Balance updated successfully")


# Sales invoices and purchase bills


def document_total(doc: Dict[str, Any]) -> float:
    return as_number((doc.get("totals") or {}).get("finalTotal"))


def refresh_payment(doc: Dict[str, Any]) -> None:
    payment = doc.setdefault("payment", {})
    total = document_total(doc)
    paid = as_number(payment.get("paidAmount"))
    payment["paidAmount"] = round(paid, 2)
    payment["pendingAmount"] = round(max(0.0, total - paid), 2)
    if total > 0 and paid >= total:
        payment["status"] = "paid"
    elif paid > 0:
        payment["status"] = "partial"
    else:
        payment["status"] = "pending"


def is_overdue(doc: Dict[str, Any]) -> bool:
    payment = doc.get("payment") or {}
    due = payment.get("dueDate")
    return bool(due) and payment.get("pendingAmount", 0) > 0 and due[:10] < date.today().isoformat()


def is_due_today(doc: Dict[str, Any]) -> bool:
    payment = doc.get("payment") or {}
    due = payment.get("dueDate")
    return bool(due) and payment.get("pendingAmount", 0) > 0 and due[:10] == date.today().isoformat()


def register_documents(
    *,
    resource: str,
    table: str,
    collection: str,
    record: str,
    number_field: str,
    date_field: str,
    type_param: str,
    number_endpoint: str,
    number_for: Callable[[str, bool, int], str],
    label: str,
    delete_handler: Optional[Callable] = None,
) -> None:
    """Routes shared by /sales and /purchases"""

    def sequence_key(company_id: str, gst: bool) -> str:
        return f"{table}:{company_id}:{'gst' if gst else 'plain'}"

    def not_found():
        return fail(404, f"{label} not found")

    @router.get(f"/{resource}")
    def list_documents(request: Request):
        company_id = company_of(request)
        if not company_id:
            return fail(400, "Company ID is required")
        docs = sorted(company_records(table, company_id), key=lambda d: d["createdAt"], reverse=True)
        status = request.query_params.get("paymentStatus")
        if status:
            docs = [d for d in docs if d["payment"]["status"] == status]
        page, pagination = paginate(docs, request, default_limit=20)
        return ok({collection: page, "pagination": pagination})

    @router.post(f"/{resource}")
    async def create_document(request: Request):
        payload = await body_of(request)
        company_id = payload.get("companyId") or company_of(request)
        if not company_id:
            return fail(400, "Company ID is required")
        if not payload.get("items"):
            return fail(400, "At least one item is required")
        gst = bool(payload.get("gstEnabled"))
        doc = {**payload, "_id": new_id(), "companyId": company_id, "createdAt": now_iso()}
        if not doc.get(number_field):
            doc[number_field] = number_for(stamp(), gst, next_sequence(sequence_key(company_id, gst)))
        doc.setdefault(date_field, date.today().isoformat())
        doc.setdefault("totals", {"finalTotal": 0})
        refresh_payment(doc)
        DB[table][doc["_id"]] = doc
        return ok({record: doc}, f"{label} created successfully", 201)

    @router.get(f"/{resource}/{number_endpoint}")
    def next_number(request: Request):
        company_id = company_of(request)
        if not company_id:
            return fail(400, "Company ID is required")
        gst = request.query_params.get(type_param, "gst") == "gst"
        number = number_for(stamp(), gst, peek_sequence(sequence_key(company_id, gst)))
        return ok(
            {
                "nextNumber": number,
                "previewNumber": number,
                type_param: "gst" if gst else "non-gst",
                "pattern": {"example": number_for(stamp(), gst, 1)},
            }
        )

    @router.get(f"/{resource}/overdue")
    def overdue(request: Request):
        company_id = company_of(request)
        docs = [d for d in company_records(table, company_id) if is_overdue(d)]
        return ok({collection: sorted(docs, key=lambda d: d["payment"]["dueDate"])})

    @router.get(f"/{resource}/due-today")
    def due_today(request: Request):
        company_id = company_of(request)
        return ok({collection: [d for d in company_records(table, company_id) if is_due_today(d)]})

    @router.get(f"/{resource}/today")
    def today_documents(request: Request):
        company_id = company_of(request)
        today = date.today().isoformat()
        docs = [d for d in company_records(table, company_id) if str(d.get(date_field, ""))[:10] == today]
        return ok({collection: docs})

    @router.get(f"/{resource}/payment-summary-overdue")
    def payment_summary(request: Request):
        docs = [d for d in company_records(table, company_of(request)) if d.get("status") != "cancelled"]
        overdue_docs = [d for d in docs if is_overdue(d)]
        return ok(
            {
                "totalDocuments": len(docs),
                "totalAmount": round(sum(document_total(d) for d in docs), 2),
                "totalPaid": round(sum(d["payment"]["paidAmount"] for d in docs), 2),
                "totalPending": round(sum(d["payment"]["pendingAmount"] for d in docs), 2),
                "overdueCount": len(overdue_docs),
                "overdueAmount": round(sum(d["payment"]["pendingAmount"] for d in overdue_docs), 2),
            }
        )

    @router.get(f"/{resource}/dashboard")
    def dashboard(request: Request):
        docs = company_records(table, company_of(request))
        return ok(
            {
                "count": len(docs),
                "totalAmount": round(sum(document_total(d) for d in docs), 2),
                "totalPending": round(sum(d["payment"]["pendingAmount"] for d in docs), 2),
            }
        )

    @router.post(f"/{resource}/validate-stock")
    async def validate_stock(request: Request):
        payload = await body_of(request)
        issues = []
        for line in payload.get("items") or []:
            item = DB["items"].get(line.get("itemRef") or "")
            if item is not None and item.get("type") != "service" and item["currentStock"] < as_number(line.get("quantity")):
                issues.append(
                    {"itemName": item["name"], "available": item["currentStock"], "requested": line.get("quantity")}
                )
        return ok({"valid": not issues, "issues": issues})

    @router.get(f"/{resource}/{{document_id}}")
    def get_document(document_id: str):
        doc = DB[table].get(document_id)
        return ok({record: doc}) if doc else not_found()

    @router.put(f"/{resource}/{{document_id}}")
    async def update_document(document_id: str, request: Request):
        doc = DB[table].get(document_id)
        if doc is None:
            return not_found()
        payload = await body_of(request)
        if not payload.get(number_field):
            payload.pop(number_field, None)
        doc.update(payload)
        refresh_payment(doc)
        return ok({record: doc}, f"{label} updated successfully")

    if delete_handler is None:

        @router.delete(f"/{resource}/{{document_id}}")
        def delete_document(document_id: str):
            if DB[table].pop(document_id, None) is None:
                return not_found()
            return ok(None, f"{label} deleted successfully")

    else:
        router.delete(f"/{resource}/{{document_id}}")(delete_handler)

    @router.post(f"/{resource}/{{document_id}}/payments")
    async def add_payment(document_id: str, request: Request):
        doc = DB[table].get(document_id)
        if doc is None:
            return not_found()
        payload = await body_of(request)
        amount = as_number(payload.get("amount"))
        if amount <= 0:
            return fail(400, "Payment amount must be greater than 0")
        if amount > doc["payment"]["pendingAmount"] + 0.01:
            return fail(400, "Payment amount exceeds pending amount")
        doc["payment"]["paidAmount"] = as_number(doc["payment"].get("paidAmount")) + amount
        if payload.get("dueDate"):
            doc["payment"]["dueDate"] = payload["dueDate"]
        doc.setdefault("payments", []).append({**payload, "paidAt": now_iso()})
        refresh_payment(doc)
        return ok(
            {
                record: doc,
                "paidAmount": doc["payment"]["paidAmount"],
                "pendingAmount": doc["payment"]["pendingAmount"],
                "paymentStatus": doc["payment"]["status"],
            },
            "Payment added successfully",
        )

    @router.get(f"/{resource}/{{document_id}}/payment-status")
    def payment_status(document_id: str):
        doc = DB[table].get(document_id)
        if doc is None:
            return not_found()
        return ok({**doc["payment"], "total": document_total(doc), "isOverdue": is_overdue(doc)})

    @router.put(f"/{resource}/{{document_id}}/due-date")
    async def update_due_date(document_id: str, request: Request):
        doc = DB[table].get(document_id)
        if doc is None:
            return not_found()
        payload = await body_of(request)
        doc["payment"]["dueDate"] = payload.get("dueDate")
        if payload.get("creditDays") is not None:
            doc["payment"]["creditDays"] = payload["creditDays"]
        return ok(doc["payment"], "Due date updated successfully")

    @router.post(f"/{resource}/{{document_id}}/complete")
    def complete(document_id: str):
        doc = DB[table].get(document_id)
        if doc is None:
            return not_found()
        doc["status"] = "completed"
        return ok({record: doc}, f"{label} completed")


def sale_number(day: str, gst: bool, sequence: int) -> str:
    return f"{'GST' if gst else 'INV'}-{day}-{sequence:04d}"


def purchase_number(day: str, gst: bool, sequence: int) -> str:
    return f"{'PB-GST' if gst else 'PB'}-{day}-{sequence:04d}"


def delete_purchase(document_id: str, request: Request):
    """Hard delete refuses bills with payments; soft delete cancels them"""
    purchase = DB["purchases"].get(document_id)
    hard = request.query_params.get("hard") == "true"
    if purchase is None or (purchase.get("status") == "cancelled" and not hard):
        return fail(404, "Purchase not found")
    paid = as_number(purchase["payment"].get("paidAmount"))
    if hard:
        if paid > 0:
            return fail(
                400,
                "Cannot permanently delete purchase with payments. Cancel it instead.",
                paidAmount=paid,
                purchaseStatus=purchase.get("status"),
            )
        del DB["purchases"][document_id]
        return ok({"deleteMethod": "hard"}, "Purchase deleted permanently")
    purchase["status"] = "cancelled"
    return ok({"status": "cancelled", "deleteMethod": "soft"}, "Purchase cancelled successfully")


register_documents(
    resource="sales",
    table="sales",
    collection="sales",
    record="sale",
    number_field="invoiceNumber",
    date_field="invoiceDate",
    type_param="invoiceType",
    number_endpoint="next-invoice-number",
    number_for=sale_number,
    label="Sale",
)

register_documents(
    resource="purchases",
    table="purchases",
    collection="purchases",
    record="purchase",
    number_field="purchaseNumber",
    date_field="purchaseDate",
    type_param="purchaseType",
    number_endpoint="next-purchase-number",
    number_for=purchase_number,
    label="Purchase",
    delete_handler=delete_purchase,
)


@router.patch("/purchases/{purchase_id}/order")
def mark_purchase_ordered(purchase_id: str):
    purchase = DB["purchases"].get(purchase_id)
    if purchase is None:
        return fail(404, "Purchase not found")
    purchase["status"] = "ordered"
    return ok({"purchase": purchase}, "Purchase marked as ordered")


@router.patch("/purchases/{purchase_id}/receive")
def mark_purchase_received(purchase_id: str):
    purchase = DB["purchases"].get(purchase_id)
    if purchase is None:
        return fail(404, "Purchase not found")
    purchase["status"] = "received"
    return ok({"purchase": purchase}, "Purchase marked as received")


# Sales orders and quotations

ORDER_PREFIX = {"quotation": "QUO", "sales_order": "SO", "proforma_invoice": "PI"}


@router.get("/sales-orders/quotations")
def list_quotations(request: Request):
    company_id = company_of(request)
    if not company_id:
        return fail(400, "Company ID is required")
    orders = [o for o in company_records("orders", company_id) if o["orderType"] == "quotation"]
    status = request.query_params.get("status")
    if status:
        orders = [o for o in orders if o["status"] == status]
    page, pagination = paginate(orders, request, default_limit=20)
    return ok({"salesOrders": page, "pagination": pagination})


@router.get("/sales-orders/next-number")
def next_order_number(request: Request):
    company_id = company_of(request)
    order_type = request.query_params.get("orderType") or "quotation"
    sequence = peek_sequence(f"orders:{company_id}:{order_type}")
    return ok({"nextOrderNumber": f"{ORDER_PREFIX.get(order_type, 'QUO')}-{stamp()}-{sequence:04d}"})


@router.post("/sales-orders")
async def create_sales_order(request: Request):
    payload = await body_of(request)
    company_id = payload.get("companyId") or company_of(request)
    if not company_id:
        return fail(400, "Company ID is required")
    order_type = payload.get("orderType") or "quotation"
    order = {**payload, "_id": new_id(), "companyId": company_id, "orderType": order_type, "createdAt": now_iso()}
    if not order.get("orderNumber"):
        sequence = next_sequence(f"orders:{company_id}:{order_type}")
        order["orderNumber"] = f"{ORDER_PREFIX.get(order_type, 'QUO')}-{stamp()}-{sequence:04d}"
    order.setdefault("status", "draft")
    order["convertedToInvoice"] = False
    DB["orders"][order["_id"]] = order
    return ok({"salesOrder": order}, "Sales order created successfully", 201)


@router.get("/sales-orders/{order_id}")
def get_sales_order(order_id: str):
    order = DB["orders"].get(order_id)
    if order is None:
        return fail(404, "Sales order not found")
    return ok({"salesOrder": order})


@router.put("/sales-orders/{order_id}")
async def update_sales_order(order_id: str, request: Request):
    order = DB["orders"].get(order_id)
    if order is None:
        return fail(404, "Sales order not found")
    if order["convertedToInvoice"]:
        return fail(400, "Converted orders cannot be edited")
    payload = await body_of(request)
    payload.pop("orderNumber", None)
    order.update(payload)
    return ok({"salesOrder": order}, "Sales order updated successfully")


@router.delete("/sales-orders/{order_id}")
def delete_sales_order(order_id: str):
    if DB["orders"].pop(order_id, None) is None:
        return fail(404, "Sales order not found")
    return ok(None, "Sales order deleted successfully")


@router.patch("/sales-orders/{order_id}/status")
async def update_order_status(order_id: str, request: Request):
    order = DB["orders"].get(order_id)
    if order is None:
        return fail(404, "Sales order not found")
    payload = await body_of(request)
    order["status"] = payload.get("status")
    if payload.get("reason"):
        order["statusReason"] = payload["reason"]
    return ok({"salesOrder": order}, "Status updated successfully")


@router.post("/sales-orders/{order_id}/convert-to-invoice")
async def convert_order_to_invoice(order_id: str, request: Request):
    order = DB["orders"].get(order_id)
    if order is None:
        return fail(404, "Sales order not found")
    if order["convertedToInvoice"]:
        return fail(400, "Sales order already converted to invoice")
    overrides = await body_of(request)
    company_id = order["companyId"]
    gst = bool(order.get("gstEnabled"))
    sale = {
        "_id": new_id(),
        "companyId": company_id,
        "invoiceNumber": sale_number(stamp(), gst, next_sequence(f"sales:{company_id}:{'gst' if gst else 'plain'}")),
        "invoiceDate": date.today().isoformat(),
        "invoiceType": "gst" if gst else "non-gst",
        "gstEnabled": gst,
        "customerName": order.get("customerName"),
        "customer": order.get("customer"),
        "items": order.get("items") or [],
        "totals": order.get("totals") or {"finalTotal": 0},
        "payment": {"paidAmount": as_number(overrides.get("paidAmount")), "method": overrides.get("method", "cash")},
        "sourceOrderId": order_id,
        "status": "completed",
        "createdAt": now_iso(),
    }
    refresh_payment(sale)
    DB["sales"][sale["_id"]] = sale
    order.update({"convertedToInvoice": True, "status": "converted", "invoiceId": sale["_id"]})
    return ok({"invoice": sale, "salesOrder": order}, "Sales order converted to invoice")


# Purchase orders

PURCHASE_ORDER_PREFIX = {"purchase_order": "PO", "purchase_quotation": "PQU", "proforma_purchase": "PPO"}


def purchase_order_number(company_id: str, order_type: str, peek: bool = False) -> str:
    key = f"purchase-orders:{company_id}:{order_type}"
    sequence = peek_sequence(key) if peek else next_sequence(key)
    return f"{PURCHASE_ORDER_PREFIX.get(order_type, 'PO')}-{stamp()}-{sequence:04d}"


def purchase_order_not_found():
    return fail(404, "Purchase order not found")


@router.get("/purchase-orders")
def list_purchase_orders(request: Request):
    company_id = company_of(request)
    if not company_id:
        return fail(400, "Company ID is required")
    order_type = request.query_params.get("orderType") or "purchase_order"
    orders = [o for o in company_records("purchase_orders", company_id) if o["orderType"] == order_type]
    status = request.query_params.get("status")
    if status:
        orders = [o for o in orders if o["status"] == status]
    search = (request.query_params.get("search") or "").lower()
    if search:
        orders = [o for o in orders if search in o["orderNumber"].lower() or search in str(o.get("supplierName", "")).lower()]
    orders.sort(key=lambda o: o["createdAt"], reverse=True)
    page, pagination = paginate(orders, request, default_limit=100)
    return ok({"purchaseOrders": page, "pagination": pagination})


@router.get("/purchase-orders/next-number")
def next_purchase_order_number(request: Request):
    company_id = company_of(request)
    if not company_id:
        return fail(400, "Company ID is required")
    order_type = request.query_params.get("orderType") or "purchase_order"
    return ok({"nextOrderNumber": purchase_order_number(company_id, order_type, peek=True), "orderType": order_type})


@router.post("/purchase-orders")
async def create_purchase_order(request: Request):
    payload = await body_of(request)
    company_id = payload.get("companyId") or company_of(request)
    if not company_id:
        return fail(400, "Company ID is required")
    if not payload.get("supplierName"):
        return fail(400, "Supplier name is required")
    if not payload.get("items"):
        return fail(400, "At least one item is required")
    order_type = payload.get("orderType") or "purchase_order"
    order = {**payload, "_id": new_id(), "companyId": company_id, "orderType": order_type, "createdAt": now_iso()}
    if not order.get("orderNumber"):
        order["orderNumber"] = purchase_order_number(company_id, order_type)
    order.setdefault("status", "draft")
    order.setdefault("totals", {"finalTotal": 0})
    order["convertedToPurchaseInvoice"] = False
    refresh_payment(order)
    DB["purchase_orders"][order["_id"]] = order
    return ok({"purchaseOrder": order}, "Purchase order created successfully", 201)


@router.get("/purchase-orders/{order_id}")
def get_purchase_order(order_id: str):
    order = DB["purchase_orders"].get(order_id)
    if order is None:
        return purchase_order_not_found()
    return ok({"purchaseOrder": order})


@router.put("/purchase-orders/{order_id}")
async def update_purchase_order(order_id: str, request: Request):
    order = DB["purchase_orders"].get(order_id)
    if order is None:
        return purchase_order_not_found()
    if order["convertedToPurchaseInvoice"]:
        return fail(400, "Converted purchase orders cannot be edited")
    payload = await body_of(request)
    payload.pop("orderNumber", None)
    order.update(payload)
    refresh_payment(order)
    return ok({"purchaseOrder": order}, "Purchase order updated successfully")


@router.delete("/purchase-orders/{order_id}")
def delete_purchase_order(order_id: str):
    if DB["purchase_orders"].pop(order_id, None) is None:
        return purchase_order_not_found()
    return ok(None, "Purchase order deleted successfully")


@router.patch("/purchase-orders/{order_id}/status")
async def update_purchase_order_status(order_id: str, request: Request):
    order = DB["purchase_orders"].get(order_id)
    if order is None:
        return purchase_order_not_found()
    payload = await body_of(request)
    order["status"] = payload.get("status")
    if payload.get("reason"):
        order["statusReason"] = payload["reason"]
    return ok({"purchaseOrder": order}, "Status updated successfully")


@router.post("/purchase-orders/{order_id}/payment")
async def add_purchase_order_payment(order_id: str, request: Request):
    order = DB["purchase_orders"].get(order_id)
    if order is None:
        return purchase_order_not_found()
    payload = await body_of(request)
    amount = as_number(payload.get("amount"))
    if amount <= 0:
        return fail(400, "Payment amount must be greater than 0")
    if amount > order["payment"]["pendingAmount"] + 0.01:
        return fail(400, "Payment amount exceeds pending amount")
    order["payment"]["paidAmount"] = as_number(order["payment"].get("paidAmount")) + amount
    order["payment"]["method"] = payload.get("method", "cash")
    refresh_payment(order)
    return ok({"purchaseOrder": order}, "Payment added successfully")


@router.post("/purchase-orders/{order_id}/convert-to-invoice")
async def convert_purchase_order(order_id: str, request: Request):
    order = DB["purchase_orders"].get(order_id)
    if order is None:
        return purchase_order_not_found()
    if order["convertedToPurchaseInvoice"]:
        return fail(400, "Purchase order already converted to invoice")
    if order["status"] == "cancelled":
        return fail(400, "Cannot convert cancelled orders")
    conversion = await body_of(request)
    company_id = order["companyId"]
    gst = bool(order.get("gstEnabled"))
    purchase = {
        "_id": new_id(),
        "companyId": company_id,
        "purchaseNumber": purchase_number(
            stamp(), gst, next_sequence(f"purchases:{company_id}:{'gst' if gst else 'plain'}")
        ),
        "purchaseDate": date.today().isoformat(),
        "purchaseType": "gst" if gst else "non-gst",
        "gstEnabled": gst,
        "supplierName": order.get("supplierName"),
        "supplier": order.get("supplier"),
        "items": order.get("items") or [],
        "totals": order.get("totals") or {"finalTotal": 0},
        "payment": {"paidAmount": as_number(order["payment"].get("paidAmount"))},
        "sourceOrderId": order_id,
        "status": "completed",
        "createdAt": now_iso(),
    }
    refresh_payment(purchase)
    DB["purchases"][purchase["_id"]] = purchase
    order.update({"convertedToPurchaseInvoice": True, "status": "completed", "purchaseInvoiceId": purchase["_id"]})
    details = {
        "convertedAt": conversion.get("convertedAt") or now_iso(),
        "convertedBy": conversion.get("convertedBy") or "system",
        "purchaseInvoiceNumber": purchase["purchaseNumber"],
    }
    return ok(
        {"purchaseOrder": order, "purchaseInvoice": purchase, "conversion": details},
        "Purchase order converted to purchase invoice",
    )


app.include_router(router)
