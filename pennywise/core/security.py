"""Password hashing and session tokens."""

import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

from flask import request
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from pymongo.collection import Collection
from werkzeug.exceptions import Unauthorized
from werkzeug.security import check_password_hash, generate_password_hash

from .utils import utcnow


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: Optional[str], password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def create_session(sessions: Collection, user_id: Any, settings: Dict[str, Any]) -> str:
    """Persist a session document and return the signed token that refers to it."""
    now = utcnow()
    expires_at = now + timedelta(hours=settings["ttl_hours"])
    session_id = secrets.token_urlsafe(24)
    sessions.insert_one(
        {
            "session_id": session_id,
            "userId": user_id,
            "created_at": now,
            "expires_at": expires_at,
        }
    )
    claims = {
        "sub": str(user_id),
        "sid": session_id,
        "iat": now,
        "exp": expires_at,
    }
    return jwt.encode(claims, settings["secret"], algorithm=settings["algorithm"])


def read_session_token(settings: Dict[str, Any]) -> Optional[str]:
    """Session token from the cookie, or from an Authorization bearer header."""
    token = request.cookies.get(settings["cookie_name"])
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        parts = auth_header.split()
        if len(parts) == 2:
            return parts[1]
    return None


def decode_session_token(token: str, settings: Dict[str, Any]) -> Dict[str, Any]:
    try:
        claims = jwt.decode(token, settings["secret"], algorithms=[settings["algorithm"]])
    except ExpiredSignatureError:
        raise Unauthorized("Session expired")
    except JWTError as exc:
        raise Unauthorized(f"Token verification failed: {exc}")
    if not claims.get("sub") or not claims.get("sid"):
        raise Unauthorized("Token missing subject")
    return claims


def resolve_session(sessions: Collection, settings: Dict[str, Any]) -> Dict[str, Any]:
    """Return the live session document for the current request or raise 401."""
    token = read_session_token(settings)
    if not token:
        raise Unauthorized("No session")
    claims = decode_session_token(token, settings)
    session_doc = sessions.find_one({"session_id": claims["sid"]})
    if session_doc is None:
        raise Unauthorized("Session not found")
    expires_at = session_doc.get("expires_at")
    if expires_at is not None and expires_at <= utcnow():
        sessions.delete_one({"_id": session_doc["_id"]})
        raise Unauthorized("Session expired")
    if str(session_doc.get("userId")) != claims["sub"]:
        raise Unauthorized("Session does not match token")
    return session_doc


def revoke_session(sessions: Collection, settings: Dict[str, Any]) -> None:
    token = read_session_token(settings)
    if not token:
        return
    try:
        claims = jwt.decode(
            token,
            settings["secret"],
            algorithms=[settings["algorithm"]],
            options={"verify_exp": False},
        )
    except JWTError:
        return
    sid = claims.get("sid")
    if sid:
        sessions.delete_one({"session_id": sid})


def set_session_cookie(response, token: str, settings: Dict[str, Any]) -> None:
    response.set_cookie(
        settings["cookie_name"],
        token,
        max_age=settings["ttl_hours"] * 3600,
        path="/",
        httponly=True,
        samesite="Strict",
        secure=settings["cookie_secure"],
    )


def clear_session_cookie(response, settings: Dict[str, Any]) -> None:
    response.delete_cookie(
        settings["cookie_name"],
        path="/",
        httponly=True,
        samesite="Strict",
        secure=settings["cookie_secure"],
    )
