"""Core utilities for the Pennywise server."""

from .config import (
    auth_disabled,
    get_cache_ttl_seconds,
    get_llm_settings,
    get_plaid_settings,
    get_session_settings,
    load_environment,
)
from .database import ensure_collections, ensure_indexes, get_database, get_mongo_client
from .security import (
    clear_session_cookie,
    create_session,
    resolve_session,
    revoke_session,
    set_session_cookie,
)
from .users import (
    DEFAULT_PREFERENCES,
    PROFILE_FIELDS,
    authenticate_user,
    create_user,
    format_user,
    get_or_create_dev_user,
    merge_preferences,
)
from .utils import (
    find_owned_or_404,
    get_json_body,
    isoformat,
    parse_amount,
    parse_date,
    round_money,
    utcnow,
    validate_object_id,
)

__all__ = [
    "auth_disabled",
    "get_cache_ttl_seconds",
    "get_llm_settings",
    "get_plaid_settings",
    "get_session_settings",
    "load_environment",
    "ensure_collections",
    "ensure_indexes",
    "get_database",
    "get_mongo_client",
    "clear_session_cookie",
    "create_session",
    "resolve_session",
    "revoke_session",
    "set_session_cookie",
    "DEFAULT_PREFERENCES",
    "PROFILE_FIELDS",
    "authenticate_user",
    "create_user",
    "format_user",
    "get_or_create_dev_user",
    "merge_preferences",
    "find_owned_or_404",
    "get_json_body",
    "isoformat",
    "parse_amount",
    "parse_date",
    "round_money",
    "utcnow",
    "validate_object_id",
]
