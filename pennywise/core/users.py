"""User helpers used across routes."""

from typing import Any, Dict, Optional

from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError
from werkzeug.exceptions import BadRequest, Conflict, Unauthorized

from .security import hash_password, verify_password
from .utils import utcnow

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "timezone": "America/New_York",
    "currency": "USD",
    "theme": "system",
    "privacy": {"blurAmounts": False},
    "notifications": {"budget_alerts": True, "weekly_summary": True},
}

PROFILE_FIELDS = ("firstName", "lastName", "address1", "city", "state", "postalCode", "dateOfBirth")

DEV_USER = {
    "email": "dev@local",
    "firstName": "Dev",
    "lastName": "User",
}

MIN_PASSWORD_LENGTH = 8


def merge_preferences(
    existing: Dict[str, Any], updates: Dict[str, Any], defaults: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Merge known preference keys, recursing into nested groups against their own defaults."""
    defaults = DEFAULT_PREFERENCES if defaults is None else defaults
    merged = {**existing}
    for key, value in updates.items():
        if key not in defaults:
            continue
        if isinstance(value, dict) and isinstance(defaults[key], dict):
            merged[key] = merge_preferences(existing.get(key, defaults[key]), value, defaults[key])
        else:
            merged[key] = value
    return merged


def normalize_email(email: Any) -> str:
    if not isinstance(email, str) or "@" not in email:
        raise BadRequest("email must be a valid address")
    return email.strip().lower()


def format_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    first = doc.get("firstName") or ""
    last = doc.get("lastName") or ""
    payload = {
        "userId": str(doc["_id"]),
        "email": doc.get("email"),
        "name": f"{first} {last}".strip() or None,
        "preferences": doc.get("preferences", DEFAULT_PREFERENCES),
    }
    for field in PROFILE_FIELDS:
        payload[field] = doc.get(field) or ""
    return payload


def create_user(users: Collection, data: Dict[str, Any]) -> Dict[str, Any]:
    email = normalize_email(data.get("email"))
    password = data.get("password")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(f"password must be at least {MIN_PASSWORD_LENGTH} characters")

    now = utcnow()
    new_user: Dict[str, Any] = {
        "email": email,
        "password_hash": hash_password(password),
        "preferences": DEFAULT_PREFERENCES,
        "created_at": now,
        "updated_at": now,
    }
    for field in PROFILE_FIELDS:
        value = data.get(field)
        new_user[field] = value.strip() if isinstance(value, str) else ""

    try:
        result = users.insert_one(new_user)
    except DuplicateKeyError:
        raise Conflict("An account with this email already exists")
    new_user["_id"] = result.inserted_id
    return new_user


def authenticate_user(users: Collection, email: Any, password: Any) -> Dict[str, Any]:
    if not isinstance(email, str) or not isinstance(password, str):
        raise Unauthorized("Invalid email or password")
    user_doc: Optional[Dict[str, Any]] = users.find_one({"email": email.strip().lower()})
    if user_doc is None or not verify_password(user_doc.get("password_hash"), password):
        raise Unauthorized("Invalid email or password")
    return user_doc


def get_or_create_dev_user(users: Collection) -> Dict[str, Any]:
    user_doc = users.find_one({"email": DEV_USER["email"]})
    if user_doc is not None:
        return user_doc
    now = utcnow()
    new_user = {
        **DEV_USER,
        "preferences": DEFAULT_PREFERENCES,
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = users.insert_one(new_user)
    except DuplicateKeyError:
        return users.find_one({"email": DEV_USER["email"]})
    new_user["_id"] = result.inserted_id
    return new_user
