"""Bank account routes."""

from flask import Blueprint, jsonify

from pennywise.services.accounts import (
    delete_account,
    format_account_row,
    get_account,
    list_accounts,
    total_current_balance,
)
from pennywise.services.transactions import format_transaction_row, list_transactions

from .helpers import current_user_id, parse_int_arg, transaction_filters


def register_account_routes(bp: Blueprint, database) -> None:
    accounts = database["accounts"]
    transactions = database["transactions"]

    @bp.get("/accounts")
    def get_accounts():
        docs = list_accounts(accounts, current_user_id())
        return jsonify(
            {
                "accounts": [format_account_row(doc) for doc in docs],
                "totalBanks": len(docs),
                "totalCurrentBalance": total_current_balance(docs),
            }
        )

    @bp.get("/accounts/<account_id>")
    def get_account_detail(account_id: str):
        user_id = current_user_id()
        account = get_account(accounts, user_id, account_id)
        txns = list_transactions(transactions, user_id, account_id=account["_id"])
        return jsonify(
            {
                "account": format_account_row(account),
                "transactions": [format_transaction_row(t) for t in txns],
            }
        )

    @bp.get("/accounts/<account_id>/transactions")
    def get_account_transactions(account_id: str):
        user_id = current_user_id()
        account = get_account(accounts, user_id, account_id)
        txns = list_transactions(
            transactions,
            user_id,
            account_id=account["_id"],
            limit=parse_int_arg("limit", maximum=1000),
            **transaction_filters(),
        )
        return jsonify({"transactions": [format_transaction_row(t) for t in txns]})

    @bp.delete("/accounts/<account_id>")
    def remove_account(account_id: str):
        removed = delete_account(database, current_user_id(), account_id)
        return jsonify({"success": True, "transactionsRemoved": removed})
