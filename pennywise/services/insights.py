# pennywise/services/insights.py
from __future__ import annotations

from typing import Any, Dict

from bson import ObjectId

from pennywise.core import round_money

from .accounts import list_accounts, total_current_balance
from .budgets import list_budgets
from .goals import list_goals
from .transactions import format_transaction_row, list_transactions, spending_by_category, total_spending

SUGGESTION_TRANSACTION_LIMIT = 100
RECENT_TRANSACTIONS = 5


def gather_suggestion_inputs(database, user_id: ObjectId) -> Dict[str, Any]:
    """Everything the suggestions prompt needs for one user."""
    accounts = list_accounts(database["accounts"], user_id)
    return {
        "transactions": list_transactions(database["transactions"], user_id, limit=SUGGESTION_TRANSACTION_LIMIT),
        "budgets": list_budgets(database, user_id),
        "goals": list_goals(database["savings_goals"], user_id),
        "total_balance": total_current_balance(accounts),
    }


def build_dashboard_summary(database, user_id: ObjectId) -> Dict[str, Any]:
    accounts = list_accounts(database["accounts"], user_id)
    transactions = list_transactions(database["transactions"], user_id)
    budgets = list_budgets(database, user_id)
    goals = list_goals(database["savings_goals"], user_id)

    return {
        "totalCurrentBalance": total_current_balance(accounts),
        "totalBanks": len(accounts),
        "totalBudget": round_money(sum(float(b.get("limit") or 0) for b in budgets)),
        "totalSpent": total_spending(transactions),
        "totalGoalTarget": round_money(sum(float(g.get("targetAmount") or 0) for g in goals)),
        "totalGoalProgress": round_money(sum(float(g.get("currentAmount") or 0) for g in goals)),
        "spendingByCategory": spending_by_category(transactions),
        "recentTransactions": [format_transaction_row(t) for t in transactions[:RECENT_TRANSACTIONS]],
    }
