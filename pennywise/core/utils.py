"""Shared helper utilities."""

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.collection import Collection
from werkzeug.exceptions import BadRequest, NotFound


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what pymongo hands back from the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    if value in (None, ""):
        return None
    return str(value)


def validate_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as exc:
        raise NotFound("Resource not found") from exc


def find_owned_or_404(collection: Collection, doc_id: Any, user_id: ObjectId, label: str = "Resource") -> Dict[str, Any]:
    """Load a document by id, treating documents owned by someone else as missing."""
    try:
        object_id = validate_object_id(doc_id)
    except NotFound:
        raise NotFound(f"{label} not found")
    doc = collection.find_one({"_id": object_id, "userId": user_id})
    if doc is None:
        raise NotFound(f"{label} not found")
    return doc


def round_money(value: float) -> float:
    return round(float(value), 2)


def parse_amount(raw: Any, field: str = "amount", allow_zero: bool = False) -> float:
    if isinstance(raw, bool) or raw is None or raw == "":
        raise BadRequest(f"{field} must be a number")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"{field} must be a number")
    if value != value or value in (float("inf"), float("-inf")):
        raise BadRequest(f"{field} must be a number")
    if value < 0 or (value == 0 and not allow_zero):
        raise BadRequest(f"{field} must be greater than 0" if not allow_zero else f"{field} must not be negative")
    return round_money(value)


def parse_date(raw: Any, field: str = "date") -> datetime:
    """Accept YYYY-MM-DD or an ISO timestamp; return a naive UTC datetime."""
    if isinstance(raw, datetime):
        return raw.astimezone(timezone.utc).replace(tzinfo=None) if raw.tzinfo else raw
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    if not isinstance(raw, str) or not raw.strip():
        raise BadRequest(f"{field} must be a date (YYYY-MM-DD)")
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise BadRequest(f"{field} must be a date (YYYY-MM-DD)")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def get_json_body() -> Dict[str, Any]:
    from flask import request  # Imported lazily to avoid circular imports

    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    return payload
