"""Helper utilities used across route modules."""

from typing import Optional

from bson import ObjectId
from flask import g, request
from werkzeug.exceptions import BadRequest


def current_user_id() -> ObjectId:
    return g.current_user["_id"]


def parse_int_arg(name: str, default: Optional[int] = None, minimum: int = 1, maximum: Optional[int] = None) -> Optional[int]:
    """Parse an integer query parameter, raising 400 when it is malformed or out of range."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise BadRequest(f"{name} must be an integer")
    if value < minimum or (maximum is not None and value > maximum):
        raise BadRequest(f"{name} is out of range")
    return value


def transaction_filters() -> dict:
    return {
        "search": request.args.get("search"),
        "category": request.args.get("category"),
        "date_from": request.args.get("dateFrom"),
        "date_to": request.args.get("dateTo"),
    }
