import json

import pytest
import requests

from pennywise.llm import groq


def make_response(status, body=None, headers=None, text=None):
    response = requests.Response()
    response.status_code = status
    if text is not None:
        response._content = text.encode()
    else:
        response._content = json.dumps(body or {}).encode()
    response.headers.update(headers or {})
    return response


def completion(content):
    return make_response(200, {"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture
def llm_env(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk_test_key_1234567890")
    monkeypatch.delenv("GROQ_MODEL", raising=False)
    monkeypatch.delenv("GROQ_BASE_URL", raising=False)
    sleeps = []
    monkeypatch.setattr(groq.time, "sleep", sleeps.append)
    return sleeps


@pytest.fixture
def post_queue(monkeypatch):
    calls = []
    queue = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        return queue.pop(0)

    monkeypatch.setattr(groq.requests, "post", fake_post)
    return queue, calls


@pytest.mark.parametrize(
    "text, expected",
    [
        ('["a", "b"]', ["a", "b"]),
        ('```json\n["one", " two "]\n```', ["one", "two"]),
        ('{"suggestions": ["x", "y"]}', ["x", "y"]),
        ('{"tips": ["t"]}', ["t"]),
        ('["1","2","3","4","5","6","7"]', ["1", "2", "3", "4", "5"]),
        ("Save more.\n\nSpend less.\ntip: ignored", ["Save more.", "Spend less."]),
        ("[not json]", ["[not json]"]),
    ],
)
def test_parse_suggestions(text, expected):
    assert groq.parse_suggestions(text) == expected


def test_suggestions_without_key_use_fallback(monkeypatch, post_queue):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    _, calls = post_queue
    assert groq.get_financial_suggestions([], [], [], 0) == groq.FALLBACK_SUGGESTIONS
    assert calls == []


def test_key_with_wrong_prefix_is_a_config_error(monkeypatch, post_queue):
    monkeypatch.setenv("GROQ_API_KEY", "sk-openai-style")
    with pytest.raises(groq.LLMError) as excinfo:
        groq.get_financial_suggestions([], [], [], 0)
    assert excinfo.value.error_type == groq.AUTH


def test_suggestions_request_shape(llm_env, post_queue):
    queue, calls = post_queue
    queue.append(completion('["Cook at home", "Automate savings"]'))
    txns = [{"name": "Cafe", "amount": -12, "category": "Food and Drink"}]
    assert groq.get_financial_suggestions(txns, [], [], 1500) == ["Cook at home", "Automate savings"]

    call = calls[0]
    assert call["url"] == "https://api.groq.com/openai/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer gsk_test_key_1234567890"
    payload = call["json"]
    assert payload["model"] == "llama-3.1-8b-instant"
    assert payload["max_tokens"] == 800
    assert payload["temperature"] == 0.7
    assert "$1,500.00" in payload["messages"][1]["content"]


def test_empty_reply_uses_second_fallback(llm_env, post_queue):
    queue, _ = post_queue
    queue.append(completion("   "))
    assert groq.get_financial_suggestions([], [], [], 0) == groq.EMPTY_RESPONSE_SUGGESTIONS


def test_rate_limit_is_retried_with_backoff(llm_env, post_queue):
    queue, calls = post_queue
    queue.extend([make_response(429), make_response(429), completion('["ok"]')])
    assert groq.get_financial_suggestions([], [], [], 0) == ["ok"]
    assert len(calls) == 3
    assert llm_env == [1.0, 2.0]


def test_rate_limit_after_retries_is_classified(llm_env, post_queue):
    queue, calls = post_queue
    limited = {"error": {"message": "Rate limit reached", "code": "rate_limit_exceeded"}}
    queue.extend([make_response(429, limited, {"retry-after": "17"}) for _ in range(3)])
    with pytest.raises(groq.LLMError) as excinfo:
        groq.get_financial_suggestions([], [], [], 0)
    assert excinfo.value.error_type == groq.RATE_LIMIT
    assert "17 seconds" in str(excinfo.value)
    assert len(calls) == 3


@pytest.mark.parametrize(
    "status, body, headers, error_type",
    [
        (429, {"error": {"message": "You exceeded your current quota", "code": "insufficient_quota"}}, {}, groq.QUOTA_EXCEEDED),
        (429, {"error": {"message": "Please check your billing details"}}, {}, groq.QUOTA_EXCEEDED),
        (429, {"error": {"message": "Too many requests"}}, {}, groq.RATE_LIMIT),
        (401, {"error": {"message": "Invalid API Key", "code": "invalid_api_key"}}, {}, groq.AUTH),
        (500, {"error": {"message": "upstream exploded"}}, {}, groq.UNKNOWN),
    ],
)
def test_classify_error(status, body, headers, error_type):
    assert groq.classify_error(make_response(status, body, headers)).error_type == error_type


def test_rate_limit_default_retry_after():
    error = groq.classify_error(make_response(429, {"error": {"message": "slow down"}}))
    assert error.retry_after == "60"
    assert error.is_rate_limit


def test_chat_without_key(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    assert groq.chat_with_ai("hi") == groq.NO_KEY_CHAT_REPLY


def test_chat_redacts_card_numbers_and_maps_history(llm_env, post_queue):
    queue, calls = post_queue
    queue.append(completion("  Pay it off monthly.  "))
    history = [{"author": "user", "content": "my card is 4111 1111 1111 1111"}, {"author": "assistant", "content": "Noted."}]
    context = {"transactions": [{}, {}], "budgets": [{}], "goals": []}
    reply = groq.chat_with_ai("Is 4242-4242-4242-4242 safe? Order 1234567890123 arrived", context, history)
    assert reply == "Pay it off monthly."

    messages = calls[0]["json"]["messages"]
    assert calls[0]["json"]["max_tokens"] == 300
    assert "Recent transactions: 2" in messages[0]["content"]
    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert "4111" not in messages[1]["content"]
    assert "[REDACTED CARD NUMBER]" in messages[3]["content"]
    assert "1234567890123" in messages[3]["content"]


def test_chat_empty_reply_apologizes(llm_env, post_queue):
    queue, _ = post_queue
    queue.append(completion(""))
    assert groq.chat_with_ai("hello") == groq.EMPTY_CHAT_REPLY


def test_redact_pan_keeps_non_luhn_numbers():
    assert groq.redact_pan("4111111111111111") == "[REDACTED CARD NUMBER]"
    assert groq.redact_pan("1234567812345678") == "1234567812345678"
