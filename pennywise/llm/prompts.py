"""Prompt builders for financial suggestions and chat."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from pennywise.services.transactions import is_withdrawal, spending_by_category


def _money(value: Any) -> str:
    return f"${float(value or 0):,.2f}"


def _date_text(value: Any) -> str:
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d")
    return str(value or "")


def budget_lines(budgets: Sequence[Dict[str, Any]]) -> List[str]:
    lines = []
    for budget in budgets:
        limit = float(budget.get("limit") or 0)
        spent = float(budget.get("currentSpending") or 0)
        percentage = (spent / limit) * 100 if limit > 0 else 0.0
        if percentage > 90:
            label = "OVER BUDGET"
        elif percentage > 75:
            label = "NEAR LIMIT"
        else:
            label = "ON TRACK"
        lines.append(
            f"- {budget.get('category')}: Spent {_money(spent)} of {_money(limit)} ({percentage:.1f}%) - {label}"
        )
    return lines


def goal_lines(goals: Sequence[Dict[str, Any]]) -> List[str]:
    lines = []
    for goal in goals:
        target = float(goal.get("targetAmount") or 0)
        current = float(goal.get("currentAmount") or 0)
        percentage = (current / target) * 100 if target > 0 else 0.0
        lines.append(
            f"- {goal.get('name')}: {_money(current)} saved of {_money(target)} goal "
            f"({percentage:.1f}% complete) - {_money(target - current)} remaining"
        )
    return lines


def build_financial_suggestions_prompt(
    transactions: Sequence[Dict[str, Any]],
    budgets: Sequence[Dict[str, Any]],
    goals: Sequence[Dict[str, Any]],
    total_balance: float,
) -> str:
    by_category = spending_by_category(transactions)
    total_spending = sum(abs(float(t.get("amount") or 0)) for t in transactions if is_withdrawal(t))
    top_categories = sorted(by_category.items(), key=lambda kv: kv[1], reverse=True)[:5]

    recent = [
        f"{i}. {t.get('name')} - {_money(abs(float(t.get('amount') or 0)))} ({t.get('category')}) on {_date_text(t.get('date'))}"
        for i, t in enumerate(transactions[:10], start=1)
    ]
    top = [f"{i}. {category}: {_money(amount)}" for i, (category, amount) in enumerate(top_categories, start=1)]

    sections = [
        "You are a professional financial advisor analyzing a user's financial situation. "
        "Provide personalized, actionable financial advice based on the following comprehensive data:",
        "FINANCIAL OVERVIEW:\n"
        f"- Total Account Balance: {_money(total_balance)}\n"
        f"- Total Spending This Period: {_money(total_spending)}\n"
        f"- Number of Transactions: {len(transactions)}\n"
        f"- Number of Active Budgets: {len(budgets)}\n"
        f"- Number of Savings Goals: {len(goals)}",
        "SPENDING ANALYSIS:\nTop Spending Categories:\n" + ("\n".join(top) or "No spending recorded")
        + "\n\nAll Category Spending:\n" + json.dumps(by_category, indent=2),
        "BUDGET STATUS:\n" + ("\n".join(budget_lines(budgets)) or "No budgets set"),
        "SAVINGS GOALS PROGRESS:\n" + ("\n".join(goal_lines(goals)) or "No savings goals set"),
        "RECENT TRANSACTIONS (Last 10):\n" + ("\n".join(recent) or "No recent transactions"),
        "INSTRUCTIONS:\n"
        "Analyze this financial data and provide exactly 5 personalized, specific, and actionable financial tips. Each tip should:\n"
        "1. Be specific to the user's actual financial situation (reference specific categories, budgets, or goals)\n"
        "2. Be actionable with clear next steps\n"
        "3. Be concise but informative (1-2 sentences)\n"
        "4. Address the most important financial opportunities or concerns visible in their data\n"
        "5. Be written in a friendly, encouraging tone",
        "CRITICAL: Return ONLY a valid JSON array of exactly 5 strings. Do NOT include markdown code blocks, "
        "explanations, or any other text. Return ONLY the JSON array.\n\n"
        'Example format: ["Tip 1 text here", "Tip 2 text here", "Tip 3 text here", "Tip 4 text here", "Tip 5 text here"]',
    ]
    return "\n\n".join(sections)


def financial_suggestions_system_prompt() -> str:
    return (
        "You are an expert financial advisor. Analyze financial data and provide specific, actionable advice. "
        "Always return responses as valid JSON arrays when requested. Never include markdown code blocks or "
        "explanations - only return the requested JSON format."
    )


def chat_system_prompt(context: Optional[Dict[str, Sequence[Any]]]) -> str:
    context_text = ""
    if context is not None:
        context_text = (
            "User's financial context:\n"
            f"- Recent transactions: {len(context.get('transactions') or [])}\n"
            f"- Active budgets: {len(context.get('budgets') or [])}\n"
            f"- Savings goals: {len(context.get('goals') or [])}\n"
        )
    return f"You are a helpful financial advisor. {context_text}Provide clear, practical financial advice."
