"""Fund transfer routes."""

from flask import Blueprint, jsonify

from pennywise.core import get_json_body
from pennywise.services.transfers import execute_transfer, format_transfer, list_transfers

from .helpers import current_user_id, parse_int_arg


def register_transfer_routes(bp: Blueprint, database) -> None:
    @bp.post("/transfers")
    def post_transfer():
        transfer = execute_transfer(database, current_user_id(), get_json_body())
        return jsonify({"success": True, "transfer": format_transfer(transfer)})

    @bp.get("/transfers")
    def get_transfers():
        docs = list_transfers(database["transfers"], current_user_id(), limit=parse_int_arg("limit", 50, maximum=500))
        return jsonify({"transfers": [format_transfer(doc) for doc in docs]})
