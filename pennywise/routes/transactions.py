"""Transaction history routes."""

from flask import Blueprint, jsonify

from pennywise.services.transactions import format_transaction_row, list_categories, list_transactions

from .helpers import current_user_id, parse_int_arg, transaction_filters


def register_transaction_routes(bp: Blueprint, database) -> None:
    transactions = database["transactions"]

    @bp.get("/transactions")
    def get_transactions():
        txns = list_transactions(
            transactions,
            current_user_id(),
            limit=parse_int_arg("limit", maximum=1000),
            **transaction_filters(),
        )
        return jsonify({"transactions": [format_transaction_row(t) for t in txns]})

    @bp.get("/transactions/categories")
    def get_categories():
        return jsonify({"categories": list_categories(transactions, current_user_id())})
