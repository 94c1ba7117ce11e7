"""Configuration helpers for the Flask application."""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

PLAID_ENV_HOSTS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}


def load_environment() -> None:
    """Load environment variables from a .env file when available."""
    load_dotenv()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def get_session_settings(disable_auth: bool = False) -> Dict[str, Any]:
    """Return session cookie and token settings derived from environment variables."""
    secret = os.environ.get("SESSION_SECRET")
    if not secret:
        if not disable_auth:
            raise RuntimeError("SESSION_SECRET must be set")
        secret = "dev-only-session-secret"
    try:
        ttl_hours = int(os.environ.get("SESSION_TTL_HOURS", "24"))
    except ValueError:
        raise RuntimeError("SESSION_TTL_HOURS must be an integer")
    return {
        "secret": secret,
        "algorithm": "HS256",
        "ttl_hours": ttl_hours,
        "cookie_name": os.environ.get("SESSION_COOKIE_NAME", "pennywise-session"),
        "cookie_secure": _env_flag("SESSION_COOKIE_SECURE", "1"),
    }


def get_plaid_settings() -> Optional[Dict[str, str]]:
    """Return Plaid credentials, or None when the aggregator is not configured."""
    client_id = os.environ.get("PLAID_CLIENT_ID")
    secret = os.environ.get("PLAID_SECRET")
    if not client_id or not secret:
        return None
    env = (os.environ.get("PLAID_ENV") or "sandbox").strip().lower()
    if env not in PLAID_ENV_HOSTS:
        raise RuntimeError(f"Invalid PLAID_ENV: {env}")
    return {
        "client_id": client_id,
        "secret": secret,
        "env": env,
        "host": PLAID_ENV_HOSTS[env],
        "client_name": os.environ.get("PLAID_CLIENT_NAME") or "Banking App",
    }


def get_llm_settings() -> Dict[str, Any]:
    return {
        "api_key": os.environ.get("GROQ_API_KEY"),
        "model": os.environ.get("GROQ_MODEL", "llama-3.1-8b-instant"),
        "base_url": os.environ.get("GROQ_BASE_URL", "https://api.groq.com/openai/v1").rstrip("/"),
    }


def get_cache_ttl_seconds(default: int = 300) -> int:
    raw = os.environ.get("SUGGESTIONS_CACHE_TTL")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def auth_disabled() -> bool:
    return _env_flag("DISABLE_AUTH")
