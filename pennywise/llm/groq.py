"""
Groq chat-completions client for financial suggestions and the advisor chat.

Talks to the OpenAI-compatible REST endpoint with `requests`.

Requires:
  * env GROQ_API_KEY (keys start with "gsk_"); without it callers get canned text
  * optional GROQ_MODEL, GROQ_BASE_URL
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Dict, List, Optional, Sequence

import requests

from pennywise.core import get_llm_settings

from .prompts import build_financial_suggestions_prompt, chat_system_prompt, financial_suggestions_system_prompt

logger = logging.getLogger(__name__)

TIMEOUT_SEC = 30
MAX_RETRIES = 2
RETRY_DELAY_SEC = 1.0
MAX_SUGGESTIONS = 5

QUOTA_EXCEEDED = "quota_exceeded"
RATE_LIMIT = "rate_limit"
AUTH = "auth"
UNKNOWN = "unknown"

FALLBACK_SUGGESTIONS = [
    "Consider setting up automatic transfers to your savings account each month.",
    "Your spending on dining out has increased this month. Consider meal planning to save money.",
    "You're on track with your budget goals! Keep up the good work.",
    "Consider reviewing your subscriptions - you might have unused services.",
    "Your emergency fund is growing well. Aim for 3-6 months of expenses.",
]

EMPTY_RESPONSE_SUGGESTIONS = [
    "Consider setting up automatic transfers to your savings account each month.",
    "Review your monthly spending patterns to identify areas for improvement.",
    "Set up a budget for discretionary spending categories.",
    "Consider increasing your emergency fund contributions.",
    "Review and optimize your subscription services regularly.",
]

NO_KEY_CHAT_REPLY = (
    "AI features require a Groq API key to be configured. "
    "Please set GROQ_API_KEY in your environment variables."
)
EMPTY_CHAT_REPLY = "I apologize, but I could not generate a response."


class LLMError(Exception):
    """A failed model call, classified so routes can pick a status code."""

    def __init__(self, message: str, error_type: str = UNKNOWN, status: Optional[int] = None, retry_after: Optional[str] = None):
        super().__init__(message)
        self.error_type = error_type
        self.status = status
        self.retry_after = retry_after

    @property
    def is_rate_limit(self) -> bool:
        return self.error_type == RATE_LIMIT


# --------- Helpers: formatting & safety ---------
PAN_PATTERN = re.compile(r"(?:\d[ -]?){13,19}")


def _luhn_valid(s: str) -> bool:
    digits = [int(c) for c in re.sub(r"\D", "", s)]
    if len(digits) < 13 or len(digits) > 19:
        return False
    total, parity = 0, len(digits) % 2
    for i, d in enumerate(digits):
        if i % 2 == parity:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def redact_pan(text: str) -> str:
    def repl(m: re.Match[str]) -> str:
        raw = m.group(0)
        if _luhn_valid(raw):
            return "[REDACTED CARD NUMBER]"
        return raw

    return PAN_PATTERN.sub(repl, text or "")


def mask_key(api_key: str) -> str:
    if len(api_key) <= 11:
        return "***"
    return f"{api_key[:7]}...{api_key[-4:]}"


def _validated_key(api_key: Optional[str]) -> str:
    key = (api_key or "").strip()
    if not key.startswith("gsk_"):
        logger.error('[Groq] Invalid API key format. Groq API keys should start with "gsk_"')
        raise LLMError(
            'Groq API key is invalid or missing. Please check your environment and ensure the key starts with "gsk_".',
            AUTH,
        )
    return key


def classify_error(response: requests.Response) -> LLMError:
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        error = {}
    code = error.get("code") or error.get("type") or ""
    message = str(error.get("message") or response.text or f"HTTP {status}")[:300]
    lowered = message.lower()

    if status == 429 and (
        code == "insufficient_quota" or any(word in lowered for word in ("quota", "billing", "insufficient"))
    ):
        return LLMError(
            "Groq API quota exceeded. Please check your Groq account at https://console.groq.com/limits",
            QUOTA_EXCEEDED,
            status,
        )
    if status == 401 or code == "invalid_api_key" or "api key" in lowered:
        return LLMError(
            "Groq API key is invalid or expired. Generate a new one at https://console.groq.com/keys if needed.",
            AUTH,
            status,
        )
    if status == 429 or code == "rate_limit_exceeded" or "rate limit" in lowered or "too many requests" in lowered:
        retry_after = response.headers.get("retry-after") or "60"
        return LLMError(
            f"Groq API rate limit exceeded. Please wait {retry_after} seconds before trying again.",
            RATE_LIMIT,
            status,
            retry_after,
        )
    return LLMError(f"Groq API error: {message}", UNKNOWN, status)


def chat_completion(messages: List[Dict[str, str]], max_tokens: int, settings: Dict[str, Any]) -> str:
    """POST a chat completion, retrying HTTP 429 with exponential backoff."""
    api_key = _validated_key(settings.get("api_key"))
    url = f"{settings['base_url']}/chat/completions"
    payload = {
        "model": settings["model"],
        "messages": messages,
        "temperature": 0.7,
        "max_tokens": max_tokens,
    }
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

    for attempt in range(MAX_RETRIES + 1):
        try:
            r = requests.post(url, json=payload, headers=headers, timeout=TIMEOUT_SEC)
        except requests.RequestException as exc:
            raise LLMError(f"Groq API error: {exc}", UNKNOWN) from exc

        if r.status_code == 429 and attempt < MAX_RETRIES:
            wait = RETRY_DELAY_SEC * (2 ** attempt)
            logger.info("[Groq] Rate limit hit, retrying in %.0fms... (%d retries left)", wait * 1000, MAX_RETRIES - attempt)
            time.sleep(wait)
            continue
        if r.status_code >= 400:
            raise classify_error(r)

        try:
            data = r.json()
            return data["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError):
            raise LLMError("Groq API returned an unexpected response", UNKNOWN, r.status_code)


# --------- Suggestion parsing ---------
_KEY_LINE = re.compile(r"""^["']?(tip|suggestion)["']?\s*:""", re.I)


def _clean_items(items: Sequence[Any]) -> List[str]:
    return [item.strip() for item in items if isinstance(item, str) and item.strip()][:MAX_SUGGESTIONS]


def parse_suggestions(text: str) -> List[str]:
    """Pull up to five tips out of a model reply that may or may not be clean JSON."""
    response = (text or "").strip()
    if response.startswith("```"):
        response = re.sub(r"```(?:json)?\n?", "", response).strip()

    if response.startswith("[") and response.endswith("]"):
        try:
            parsed = json.loads(response)
        except ValueError:
            logger.warning("Failed to parse JSON array, trying alternative parsing")
        else:
            if isinstance(parsed, list) and parsed:
                items = _clean_items(parsed)
                if items:
                    return items

    if response.startswith("{") and response.endswith("}"):
        try:
            parsed = json.loads(response)
        except ValueError:
            logger.warning("Failed to parse JSON object")
        else:
            for key in ("suggestions", "tips"):
                if isinstance(parsed.get(key), list):
                    return _clean_items(parsed[key])

    lines = [
        line.strip()
        for line in response.split("\n")
        if line.strip()
        and not line.strip().startswith(("```", "[", "{"))
        and not _KEY_LINE.match(line.strip())
    ]
    if lines:
        return lines[:MAX_SUGGESTIONS]
    return [response] if response else []


# --------- Public entrypoints ---------
def get_financial_suggestions(
    transactions: Sequence[Dict[str, Any]],
    budgets: Sequence[Dict[str, Any]],
    goals: Sequence[Dict[str, Any]],
    total_balance: float,
) -> List[str]:
    settings = get_llm_settings()
    if not settings.get("api_key"):
        logger.warning("[Groq] GROQ_API_KEY not found in environment variables")
        return list(FALLBACK_SUGGESTIONS)

    logger.info("[Groq] Making API call for financial suggestions with key %s", mask_key(settings["api_key"].strip()))
    messages = [
        {"role": "system", "content": financial_suggestions_system_prompt()},
        {"role": "user", "content": build_financial_suggestions_prompt(transactions, budgets, goals, total_balance)},
    ]
    content = chat_completion(messages, max_tokens=800, settings=settings)
    if not content.strip():
        logger.warning("Empty response from Groq, returning fallback suggestions")
        return list(EMPTY_RESPONSE_SUGGESTIONS)
    return parse_suggestions(content)


def chat_with_ai(
    question: str,
    context: Optional[Dict[str, Sequence[Any]]] = None,
    history: Optional[List[Dict[str, str]]] = None,
) -> str:
    settings = get_llm_settings()
    if not settings.get("api_key"):
        return NO_KEY_CHAT_REPLY

    messages: List[Dict[str, str]] = [{"role": "system", "content": chat_system_prompt(context)}]
    for entry in (history or [])[-20:]:
        role = "user" if entry.get("author") == "user" else "assistant"
        # Redact PANs in history to avoid echo
        messages.append({"role": role, "content": redact_pan(entry.get("content") or "")[:2000]})
    messages.append({"role": "user", "content": redact_pan(question.strip())[:2000]})

    logger.info("[Groq] Making API call for chat")
    content = chat_completion(messages, max_tokens=300, settings=settings)
    return content.strip() or EMPTY_CHAT_REPLY
