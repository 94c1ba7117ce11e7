"""Transaction ledger helpers."""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo import DESCENDING
from werkzeug.exceptions import BadRequest

from pennywise.core import isoformat, parse_date, round_money, utcnow

WITHDRAWAL = "withdrawal"
DEPOSIT = "deposit"


def create_transaction(transactions, user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    raw_amount = data.get("amount")
    if isinstance(raw_amount, bool):
        raise BadRequest("Invalid transaction amount")
    try:
        amount = float(raw_amount)
    except (TypeError, ValueError):
        raise BadRequest("Invalid transaction amount")
    if amount != amount:
        raise BadRequest("Invalid transaction amount")

    date_value = data.get("date")
    when = parse_date(date_value) if date_value is not None else utcnow()
    account_id = data.get("accountId")

    document: Dict[str, Any] = {
        "userId": user_id,
        "accountId": account_id,
        "name": data.get("name") or "",
        "amount": round_money(amount),
        "type": data.get("type") or (WITHDRAWAL if amount < 0 else DEPOSIT),
        "category": data.get("category") or "Other",
        "paymentChannel": data.get("paymentChannel") or data.get("channel") or "other",
        "date": when,
        "pending": bool(data.get("pending", False)),
        "senderBankId": data.get("senderBankId") or account_id,
        "receiverBankId": data.get("receiverBankId"),
        "source": data.get("source") or "manual",
        "created_at": utcnow(),
    }
    for key in ("transferId", "plaidTransactionId"):
        if data.get(key):
            document[key] = data[key]

    result = transactions.insert_one(document)
    document["_id"] = result.inserted_id
    return document


def _day_bounds(raw: Optional[str], field: str, end: bool = False) -> Optional[datetime]:
    if not raw:
        return None
    value = parse_date(raw, field)
    start_of_day = datetime(value.year, value.month, value.day)
    return start_of_day + timedelta(days=1) if end else start_of_day


def build_transaction_filter(
    user_id: ObjectId,
    account_id: Optional[ObjectId] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> Dict[str, Any]:
    query: Dict[str, Any] = {"userId": user_id}
    if account_id is not None:
        query["$or"] = [
            {"accountId": account_id},
            {"senderBankId": account_id},
            {"receiverBankId": account_id},
        ]
    if search:
        query["name"] = {"$regex": re.escape(search.strip()), "$options": "i"}
    if category and category != "All":
        query["category"] = category

    start = _day_bounds(date_from, "dateFrom")
    end = _day_bounds(date_to, "dateTo", end=True)
    if start or end:
        date_query: Dict[str, Any] = {}
        if start:
            date_query["$gte"] = start
        if end:
            date_query["$lt"] = end
        query["date"] = date_query
    return query


def list_transactions(
    transactions,
    user_id: ObjectId,
    account_id: Optional[ObjectId] = None,
    limit: Optional[int] = None,
    **filters: Optional[str],
) -> List[Dict[str, Any]]:
    query = build_transaction_filter(user_id, account_id, **filters)
    cursor = transactions.find(query).sort([("date", DESCENDING), ("created_at", DESCENDING)])
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def list_categories(transactions, user_id: ObjectId) -> List[str]:
    return sorted(c for c in transactions.distinct("category", {"userId": user_id}) if c)


def is_withdrawal(txn: Dict[str, Any]) -> bool:
    return float(txn.get("amount") or 0) < 0 or txn.get("type") == WITHDRAWAL


def spending_by_category(transactions: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for txn in transactions:
        if not is_withdrawal(txn):
            continue
        category = txn.get("category") or "Other"
        totals[category] = totals.get(category, 0.0) + abs(float(txn.get("amount") or 0))
    return {key: round_money(value) for key, value in totals.items()}


def total_spending(transactions: Iterable[Dict[str, Any]]) -> float:
    return round_money(sum(spending_by_category(transactions).values()))


def format_transaction_row(doc: Dict[str, Any]) -> Dict[str, Any]:
    def _id(value: Any) -> str:
        return str(value) if value else ""

    return {
        "id": str(doc["_id"]),
        "accountId": _id(doc.get("accountId")),
        "name": doc.get("name", ""),
        "amount": round_money(doc.get("amount") or 0),
        "type": doc.get("type", ""),
        "category": doc.get("category", ""),
        "paymentChannel": doc.get("paymentChannel", ""),
        "date": isoformat(doc.get("date")),
        "pending": bool(doc.get("pending", False)),
        "senderBankId": _id(doc.get("senderBankId")),
        "receiverBankId": _id(doc.get("receiverBankId")),
        "transferId": _id(doc.get("transferId")),
    }
