"""AI suggestion and advisor chat routes."""

from typing import Any, Dict, List

from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import BadRequest

from pennywise.core import get_json_body
from pennywise.llm import groq
from pennywise.services.budgets import list_budgets
from pennywise.services.goals import list_goals
from pennywise.services.insights import gather_suggestion_inputs
from pennywise.services.transactions import list_transactions

from .helpers import current_user_id

CHAT_CONTEXT_TRANSACTIONS = 20
THROTTLED_ERROR_TYPES = {groq.QUOTA_EXCEEDED, groq.RATE_LIMIT}


def _llm_error_response(exc: groq.LLMError):
    status = 429 if exc.error_type in THROTTLED_ERROR_TYPES else 500
    return jsonify({"error": "ai_error", "message": str(exc), "errorType": exc.error_type}), status


def _sanitize_history(history_payload: Any) -> List[Dict[str, str]]:
    if not isinstance(history_payload, list):
        raise BadRequest("history must be an array")
    sanitized = []
    for entry in history_payload:
        if not isinstance(entry, dict):
            continue
        author = entry.get("author") or entry.get("role")
        content = entry.get("content")
        if author not in {"user", "assistant"}:
            continue
        if not isinstance(content, str) or not content.strip():
            continue
        sanitized.append({"author": author, "content": content.strip()})
    return sanitized


def register_ai_routes(bp: Blueprint, database) -> None:
    @bp.get("/ai/suggestions")
    def get_suggestions():
        user_id = current_user_id()
        cache = current_app.extensions["suggestion_cache"]

        def produce() -> List[str]:
            return groq.get_financial_suggestions(**gather_suggestion_inputs(database, user_id))

        try:
            suggestions = cache.get_or_compute(user_id, produce)
        except groq.LLMError as exc:
            current_app.logger.error("Error getting AI suggestions: %s", exc)
            return _llm_error_response(exc)
        return jsonify({"suggestions": suggestions})

    @bp.post("/ai/chat")
    def chat():
        payload = get_json_body()
        question = payload.get("question")
        if not isinstance(question, str) or not question.strip():
            raise BadRequest("Question is required")
        history = _sanitize_history(payload.get("history") or [])

        user_id = current_user_id()
        context = {
            "transactions": list_transactions(database["transactions"], user_id, limit=CHAT_CONTEXT_TRANSACTIONS),
            "budgets": list_budgets(database, user_id),
            "goals": list_goals(database["savings_goals"], user_id),
        }
        try:
            reply = groq.chat_with_ai(question, context, history)
        except groq.LLMError as exc:
            current_app.logger.error("Error in AI chat: %s", exc)
            return _llm_error_response(exc)
        return jsonify({"response": reply})
