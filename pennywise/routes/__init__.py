"""Blueprint factory for API routes."""

from flask import Blueprint, jsonify

from .accounts import register_account_routes
from .ai import register_ai_routes
from .auth import register_auth_routes
from .budgets import register_budget_routes
from .dashboard import register_dashboard_routes
from .goals import register_goal_routes
from .plaid import register_plaid_routes
from .transactions import register_transaction_routes
from .transfers import register_transfer_routes


def create_api_blueprint(database) -> Blueprint:
    bp = Blueprint("api", __name__, url_prefix="/api")

    @bp.get("/health")
    def health():
        return jsonify({"status": "ok"})

    register_auth_routes(bp, database)
    register_account_routes(bp, database)
    register_transaction_routes(bp, database)
    register_budget_routes(bp, database)
    register_goal_routes(bp, database)
    register_transfer_routes(bp, database)
    register_plaid_routes(bp, database)
    register_ai_routes(bp, database)
    register_dashboard_routes(bp, database)

    return bp
