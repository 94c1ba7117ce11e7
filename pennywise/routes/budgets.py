"""Budget routes."""

from flask import Blueprint, jsonify

from pennywise.core import get_json_body
from pennywise.services.budgets import create_budget, delete_budget, format_budget, list_budgets, update_budget

from .helpers import current_user_id, parse_int_arg


def register_budget_routes(bp: Blueprint, database) -> None:
    budgets = database["budgets"]

    def _with_spending(budget_id):
        docs = [doc for doc in list_budgets(database, current_user_id()) if doc["_id"] == budget_id]
        return format_budget(docs[0])

    @bp.get("/budgets")
    def get_budgets():
        docs = list_budgets(
            database,
            current_user_id(),
            year=parse_int_arg("year", minimum=1970, maximum=9999),
            month=parse_int_arg("month", maximum=12),
        )
        return jsonify({"budgets": [format_budget(doc) for doc in docs]})

    @bp.post("/budgets")
    def post_budget():
        budget = create_budget(budgets, current_user_id(), get_json_body())
        return jsonify({"success": True, "budget": _with_spending(budget["_id"])}), 201

    @bp.patch("/budgets/<budget_id>")
    def patch_budget(budget_id: str):
        budget = update_budget(budgets, current_user_id(), budget_id, get_json_body())
        return jsonify({"success": True, "budget": _with_spending(budget["_id"])})

    @bp.delete("/budgets/<budget_id>")
    def remove_budget(budget_id: str):
        delete_budget(budgets, current_user_id(), budget_id)
        return jsonify({"success": True})
