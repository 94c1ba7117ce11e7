"""Budgets and their computed spending."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from pymongo import DESCENDING
from werkzeug.exceptions import BadRequest

from pennywise.core import find_owned_or_404, isoformat, parse_amount, round_money, utcnow

from .transactions import is_withdrawal

PERIODS = ("monthly", "yearly")


def period_bounds(period: str, year: int, month: Optional[int]) -> Tuple[datetime, datetime]:
    """Inclusive start and end of a budget period."""
    if period == "monthly":
        last_day = calendar.monthrange(year, month)[1]
        start = datetime(year, month, 1)
        end = datetime(year, month, last_day, 23, 59, 59, 999000)
    else:
        start = datetime(year, 1, 1)
        end = datetime(year, 12, 31, 23, 59, 59, 999000)
    return start, end


def _parse_period(data: Dict[str, Any], now: datetime) -> Tuple[str, int, Optional[int]]:
    period = data.get("period") or "monthly"
    if period not in PERIODS:
        raise BadRequest("period must be monthly or yearly")
    try:
        year = int(data.get("year") or now.year)
    except (TypeError, ValueError):
        raise BadRequest("year must be an integer")
    if year < 1970 or year > 9999:
        raise BadRequest("year is out of range")
    month: Optional[int] = None
    if period == "monthly":
        try:
            month = int(data.get("month") or now.month)
        except (TypeError, ValueError):
            raise BadRequest("month must be an integer")
        if month < 1 or month > 12:
            raise BadRequest("month must be between 1 and 12")
    return period, year, month


def create_budget(budgets, user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    category = data.get("category")
    if not isinstance(category, str) or not category.strip():
        raise BadRequest("category is required")
    limit = parse_amount(data.get("limit"), "limit")
    now = utcnow()
    period, year, month = _parse_period(data, now)
    start, end = period_bounds(period, year, month)

    document = {
        "userId": user_id,
        "category": category.strip(),
        "limit": limit,
        "period": period,
        "month": month,
        "year": year,
        "startPeriod": start,
        "endPeriod": end,
        "created_at": now,
        "updated_at": now,
    }
    result = budgets.insert_one(document)
    document["_id"] = result.inserted_id
    return document


def update_budget(budgets, user_id: ObjectId, budget_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
    budget = find_owned_or_404(budgets, budget_id, user_id, label="Budget")
    updates: Dict[str, Any] = {}
    if "category" in data:
        category = data["category"]
        if not isinstance(category, str) or not category.strip():
            raise BadRequest("category must be a non-empty string")
        updates["category"] = category.strip()
    if "limit" in data:
        updates["limit"] = parse_amount(data["limit"], "limit")
    if any(key in data for key in ("period", "month", "year")):
        merged = {
            "period": data.get("period", budget.get("period")),
            "year": data.get("year", budget.get("year")),
            "month": data.get("month", budget.get("month")),
        }
        period, year, month = _parse_period(merged, utcnow())
        start, end = period_bounds(period, year, month)
        updates.update(
            {"period": period, "year": year, "month": month, "startPeriod": start, "endPeriod": end}
        )
    if not updates:
        return budget
    updates["updated_at"] = utcnow()
    budgets.update_one({"_id": budget["_id"]}, {"$set": updates})
    budget.update(updates)
    return budget


def delete_budget(budgets, user_id: ObjectId, budget_id: Any) -> None:
    budget = find_owned_or_404(budgets, budget_id, user_id, label="Budget")
    budgets.delete_one({"_id": budget["_id"]})


def category_matches(budget_category: str, txn_category: Optional[str]) -> bool:
    budget_key = (budget_category or "").lower()
    txn_key = (txn_category or "").lower()
    if not budget_key or not txn_key:
        return False
    return budget_key == txn_key or budget_key in txn_key or txn_key in budget_key


def compute_spending(budget: Dict[str, Any], transactions: Iterable[Dict[str, Any]]) -> float:
    start = budget.get("startPeriod")
    end = budget.get("endPeriod")
    total = 0.0
    for txn in transactions:
        when = txn.get("date")
        if not isinstance(when, datetime):
            continue
        if start and when < start:
            continue
        if end and when > end:
            continue
        if is_withdrawal(txn) and category_matches(budget.get("category", ""), txn.get("category")):
            total += abs(float(txn.get("amount") or 0))
    return round_money(total)


def budget_status(limit: float, spent: float) -> Tuple[float, str]:
    percentage = (spent / limit) * 100 if limit > 0 else 0.0
    if percentage > 90:
        status = "over_budget"
    elif percentage > 75:
        status = "warning"
    else:
        status = "on_track"
    return round(percentage, 1), status


def list_budgets(database, user_id: ObjectId, year: Optional[int] = None, month: Optional[int] = None) -> List[Dict[str, Any]]:
    """Budgets for a user, each annotated with its currentSpending."""
    query: Dict[str, Any] = {"userId": user_id}
    if year is not None:
        query["year"] = year
    if month is not None:
        query["month"] = month
    docs = list(database["budgets"].find(query).sort([("year", DESCENDING), ("month", DESCENDING)]))
    if not docs:
        return []

    earliest = min((doc["startPeriod"] for doc in docs if doc.get("startPeriod")), default=None)
    latest = max((doc["endPeriod"] for doc in docs if doc.get("endPeriod")), default=None)
    txn_query: Dict[str, Any] = {"userId": user_id}
    if earliest is not None and latest is not None:
        txn_query["date"] = {"$gte": earliest, "$lte": latest + timedelta(seconds=1)}
    txns = list(database["transactions"].find(txn_query))
    for doc in docs:
        doc["currentSpending"] = compute_spending(doc, txns)
    return docs


def format_budget(doc: Dict[str, Any]) -> Dict[str, Any]:
    limit = round_money(doc.get("limit") or 0)
    spent = round_money(doc.get("currentSpending") or 0)
    percentage, status = budget_status(limit, spent)
    return {
        "id": str(doc["_id"]),
        "category": doc.get("category", ""),
        "limit": limit,
        "period": doc.get("period", "monthly"),
        "month": doc.get("month"),
        "year": doc.get("year"),
        "startPeriod": isoformat(doc.get("startPeriod")),
        "endPeriod": isoformat(doc.get("endPeriod")),
        "currentSpending": spent,
        "remaining": round_money(limit - spent),
        "percentageUsed": percentage,
        "status": status,
    }
