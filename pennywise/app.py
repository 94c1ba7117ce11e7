import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import (
    BadRequest,
    Conflict,
    Forbidden,
    HTTPException,
    InternalServerError,
    NotFound,
    TooManyRequests,
    Unauthorized,
)

from pennywise.core import (
    auth_disabled,
    ensure_collections,
    ensure_indexes,
    get_cache_ttl_seconds,
    get_database,
    get_mongo_client,
    get_plaid_settings,
    get_session_settings,
    load_environment,
)
from pennywise.routes import create_api_blueprint
from pennywise.services.plaid_link import build_plaid_client
from pennywise.services.suggestion_cache import SuggestionCache


def _json_error(code: str, error: HTTPException, status: int):
    response = jsonify({"error": code, "message": error.description})
    response.status_code = status
    return response


def create_app(config: Optional[Dict[str, Any]] = None, database=None) -> Flask:
    load_environment()
    app = Flask(__name__)
    overrides = dict(config or {})

    # Local dev switch (set DISABLE_AUTH=1 in your .env)
    disable_auth = overrides.get("DISABLE_AUTH", auth_disabled())
    session_settings = overrides.pop("SESSION_SETTINGS", None) or get_session_settings(disable_auth)
    plaid_settings = overrides.pop("PLAID_SETTINGS", None) or get_plaid_settings()

    allowed_origin = os.environ.get("CLIENT_ORIGIN", "http://localhost:3000").rstrip("/")
    CORS(
        app,
        resources={r"/api/*": {"origins": [allowed_origin, "http://127.0.0.1:3000"]}},
        supports_credentials=True,
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["Content-Type"],
    )

    mongo_client = None
    if database is None:
        mongo_client = get_mongo_client()
        database = get_database(mongo_client)
    ensure_collections(database)
    ensure_indexes(database)

    app.config.update(
        SESSION_SETTINGS=session_settings,
        PLAID_SETTINGS=plaid_settings,
        PLAID_CLIENT_NAME=(plaid_settings or {}).get("client_name", "Banking App"),
        PLAID_CLIENT_FACTORY=lambda: build_plaid_client(plaid_settings),
        MONGO_CLIENT=mongo_client,
        MONGO_DB=database,
        DISABLE_AUTH=disable_auth,
    )
    app.config.update(overrides)
    app.extensions["suggestion_cache"] = SuggestionCache(get_cache_ttl_seconds())

    app.register_blueprint(create_api_blueprint(database))

    @app.errorhandler(Unauthorized)
    def handle_unauthorized(error):
        return _json_error("unauthorized", error, 401)

    @app.errorhandler(BadRequest)
    def handle_bad_request(error):
        return _json_error("bad_request", error, 400)

    @app.errorhandler(Forbidden)
    def handle_forbidden(error):
        return _json_error("forbidden", error, 403)

    @app.errorhandler(NotFound)
    def handle_not_found(error):
        return _json_error("not_found", error, 404)

    @app.errorhandler(Conflict)
    def handle_conflict(error):
        return _json_error("conflict", error, 409)

    @app.errorhandler(TooManyRequests)
    def handle_too_many_requests(error):
        return _json_error("rate_limited", error, 429)

    @app.errorhandler(InternalServerError)
    def handle_internal_error(error):
        return _json_error("internal_error", error, 500)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return _json_error((error.name or "error").lower().replace(" ", "_"), error, error.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        app.logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500

    app.logger.info("Pennywise API ready (auth %s)", "disabled" if disable_auth else "enabled")
    return app


if __name__ == "__main__":
    # Create and run the Flask app directly (use Flask CLI in production)
    app = create_app()
    port = int(os.environ.get("PORT", "8000"))
    debug = os.environ.get("FLASK_DEBUG", "1") in ("1", "true", "True")
    app.run(host="0.0.0.0", port=port, debug=debug)
