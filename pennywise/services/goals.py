"""Savings goals."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List

from bson import ObjectId
from pymongo import ASCENDING
from werkzeug.exceptions import BadRequest

from pennywise.core import find_owned_or_404, isoformat, parse_amount, parse_date, round_money, utcnow


def _clean_name(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise BadRequest("name is required")
    return raw.strip()


def _clean_description(raw: Any) -> str:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise BadRequest("description must be a string")
    return raw.strip()


def create_goal(goals, user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    name = _clean_name(data.get("name"))
    target = parse_amount(data.get("targetAmount"), "targetAmount")
    now = utcnow()
    target_date = parse_date(data["targetDate"], "targetDate") if data.get("targetDate") else now + timedelta(days=365)

    document = {
        "userId": user_id,
        "name": name,
        "targetAmount": target,
        "currentAmount": 0.0,
        "targetDate": target_date,
        "description": _clean_description(data.get("description")),
        "startDate": now,
        "created_at": now,
        "updated_at": now,
    }
    result = goals.insert_one(document)
    document["_id"] = result.inserted_id
    return document


def list_goals(goals, user_id: ObjectId) -> List[Dict[str, Any]]:
    return list(goals.find({"userId": user_id}).sort("created_at", ASCENDING))


def update_goal(goals, user_id: ObjectId, goal_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
    goal = find_owned_or_404(goals, goal_id, user_id, label="Savings goal")
    updates: Dict[str, Any] = {}
    if "currentAmount" in data:
        updates["currentAmount"] = parse_amount(data["currentAmount"], "currentAmount", allow_zero=True)
    if "targetAmount" in data:
        updates["targetAmount"] = parse_amount(data["targetAmount"], "targetAmount")
    if "name" in data:
        updates["name"] = _clean_name(data["name"])
    if "targetDate" in data:
        updates["targetDate"] = parse_date(data["targetDate"], "targetDate")
    if "description" in data:
        updates["description"] = _clean_description(data["description"])
    if not updates:
        return goal
    updates["updated_at"] = utcnow()
    goals.update_one({"_id": goal["_id"]}, {"$set": updates})
    goal.update(updates)
    return goal


def contribute(goals, user_id: ObjectId, goal_id: Any, amount: Any) -> Dict[str, Any]:
    goal = find_owned_or_404(goals, goal_id, user_id, label="Savings goal")
    value = parse_amount(amount, "amount")
    goals.update_one(
        {"_id": goal["_id"]},
        {"$inc": {"currentAmount": value}, "$set": {"updated_at": utcnow()}},
    )
    return goals.find_one({"_id": goal["_id"]})


def delete_goal(goals, user_id: ObjectId, goal_id: Any) -> None:
    goal = find_owned_or_404(goals, goal_id, user_id, label="Savings goal")
    goals.delete_one({"_id": goal["_id"]})


def format_goal(doc: Dict[str, Any]) -> Dict[str, Any]:
    target = round_money(doc.get("targetAmount") or 0)
    current = round_money(doc.get("currentAmount") or 0)
    percentage = round((current / target) * 100, 1) if target > 0 else 0.0
    return {
        "id": str(doc["_id"]),
        "name": doc.get("name", ""),
        "targetAmount": target,
        "currentAmount": current,
        "remaining": round_money(max(target - current, 0.0)),
        "percentageComplete": percentage,
        "targetDate": isoformat(doc.get("targetDate")),
        "description": doc.get("description", ""),
        "startDate": isoformat(doc.get("startDate")),
    }
