"""Plaid Link routes."""

from flask import Blueprint, current_app, jsonify
from plaid.exceptions import ApiException
from werkzeug.exceptions import BadRequest

from pennywise.core import get_json_body
from pennywise.services.plaid_link import BankLinkError, PlaidLinker, PlaidNotConfigured, plaid_error_message

from .helpers import current_user_id


def register_plaid_routes(bp: Blueprint, database) -> None:
    def _linker() -> PlaidLinker:
        client = current_app.config["PLAID_CLIENT_FACTORY"]()
        return PlaidLinker(client, database, current_app.config.get("PLAID_CLIENT_NAME") or "Banking App")

    @bp.post("/plaid/create-link-token")
    def create_link_token():
        try:
            link_token = _linker().create_link_token(current_user_id())
        except PlaidNotConfigured as exc:
            return jsonify({"error": "plaid_not_configured", "message": str(exc)}), 500
        except ApiException as exc:
            current_app.logger.error("Error creating link token: %s", plaid_error_message(exc))
            return jsonify({"error": "plaid_error", "message": plaid_error_message(exc, "Failed to create link token")}), 500
        return jsonify({"linkToken": link_token})

    @bp.post("/plaid/exchange-token")
    def exchange_token():
        payload = get_json_body()
        public_token = payload.get("publicToken")
        if not isinstance(public_token, str) or not public_token.strip():
            raise BadRequest("Public token is required")
        try:
            result = _linker().exchange_public_token(current_user_id(), public_token)
        except PlaidNotConfigured as exc:
            return jsonify({"error": "plaid_not_configured", "message": str(exc)}), 500
        except BankLinkError as exc:
            return jsonify({"error": "bad_request", "message": str(exc), "details": exc.details}), 400
        except ApiException as exc:
            current_app.logger.error("Error exchanging public token: %s", plaid_error_message(exc))
            return jsonify({"error": "plaid_error", "message": plaid_error_message(exc, "Failed to exchange token")}), 500
        return jsonify(result)
