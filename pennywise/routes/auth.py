"""Authentication, session and profile routes."""

from typing import Any, Dict

from flask import Blueprint, current_app, g, jsonify, request
from werkzeug.exceptions import BadRequest, Unauthorized

from pennywise.core import (
    DEFAULT_PREFERENCES,
    authenticate_user,
    clear_session_cookie,
    create_session,
    create_user,
    format_user,
    get_json_body,
    get_or_create_dev_user,
    merge_preferences,
    resolve_session,
    revoke_session,
    set_session_cookie,
    utcnow,
)

PUBLIC_ENDPOINTS = {"api.sign_up", "api.sign_in", "api.sign_out", "api.health"}
PROFILE_UPDATE_FIELDS = ("firstName", "lastName", "address1", "city", "state", "postalCode")
SIGN_UP_REQUIRED = ("email", "password", "firstName", "lastName")


def register_auth_routes(bp: Blueprint, database) -> None:
    users = database["users"]
    sessions = database["sessions"]

    @bp.before_request
    def authenticate_request():
        if request.method == "OPTIONS":
            return ("", 204)
        # unmatched paths fall through to the 404 handler
        if request.endpoint is None or request.endpoint in PUBLIC_ENDPOINTS:
            return None

        if current_app.config.get("DISABLE_AUTH"):
            g.current_user = get_or_create_dev_user(users)
            return None

        session_doc = resolve_session(sessions, current_app.config["SESSION_SETTINGS"])
        user = users.find_one({"_id": session_doc["userId"]})
        if user is None:
            raise Unauthorized("User not found")
        g.current_session = session_doc
        g.current_user = user
        return None

    def _signed_in_response(user: Dict[str, Any], status: int = 200):
        settings = current_app.config["SESSION_SETTINGS"]
        token = create_session(sessions, user["_id"], settings)
        response = jsonify({"success": True, "user": format_user(user)})
        response.status_code = status
        set_session_cookie(response, token, settings)
        return response

    @bp.post("/auth/sign-up")
    def sign_up():
        payload = get_json_body()
        if any(not payload.get(field) for field in SIGN_UP_REQUIRED):
            raise BadRequest("Missing required fields")
        user = create_user(users, payload)
        current_app.logger.info("Created user %s", user["_id"])
        return _signed_in_response(user, status=201)

    @bp.post("/auth/sign-in")
    def sign_in():
        payload = get_json_body()
        if not payload.get("email") or not payload.get("password"):
            raise BadRequest("Email and password are required")
        user = authenticate_user(users, payload["email"], payload["password"])
        return _signed_in_response(user)

    @bp.post("/auth/sign-out")
    def sign_out():
        settings = current_app.config["SESSION_SETTINGS"]
        revoke_session(sessions, settings)
        response = jsonify({"success": True})
        clear_session_cookie(response, settings)
        return response

    @bp.get("/me")
    def get_me():
        return jsonify(format_user(g.current_user))

    @bp.patch("/me")
    def update_me():
        user = g.current_user
        payload = get_json_body()

        updates: Dict[str, Any] = {}
        for field in PROFILE_UPDATE_FIELDS:
            if field not in payload:
                continue
            value = payload[field]
            if value is not None and not isinstance(value, str):
                raise BadRequest(f"{field} must be a string")
            updates[field] = (value or "").strip()
        if "preferences" in payload:
            if not isinstance(payload["preferences"], dict):
                raise BadRequest("preferences must be an object")
            updates["preferences"] = merge_preferences(
                user.get("preferences", DEFAULT_PREFERENCES), payload["preferences"]
            )

        if not updates:
            return jsonify(format_user(user))

        updates["updated_at"] = utcnow()
        users.update_one({"_id": user["_id"]}, {"$set": updates})
        user.update(updates)
        return jsonify(format_user(user))
