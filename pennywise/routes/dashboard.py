"""Dashboard summary and demo workspace routes."""

from flask import Blueprint, jsonify
from werkzeug.exceptions import BadRequest

from pennywise.core import get_json_body
from pennywise.services.insights import build_dashboard_summary
from pennywise.services.mock_data import seed_demo_workspace

from .helpers import current_user_id


def _bounded_int(payload, name: str, default: int, low: int, high: int) -> int:
    raw = payload.get(name, default)
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise BadRequest(f"{name} must be an integer")
    if raw < low or raw > high:
        raise BadRequest(f"{name} must be between {low} and {high}")
    return raw


def register_dashboard_routes(bp: Blueprint, database) -> None:
    @bp.get("/dashboard/summary")
    def dashboard_summary():
        return jsonify(build_dashboard_summary(database, current_user_id()))

    @bp.post("/demo/seed")
    def seed_demo():
        payload = get_json_body()
        accounts = _bounded_int(payload, "accounts", 3, 1, 5)
        transactions = _bounded_int(payload, "transactions", 25, 0, 200)
        seed_version = str(payload.get("seedVersion") or "v1")
        result = seed_demo_workspace(database, current_user_id(), accounts, transactions, seed_version)
        return jsonify({"success": True, **result})
