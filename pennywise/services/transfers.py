"""Transfers between a user's own accounts."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from bson import ObjectId
from pymongo import DESCENDING
from werkzeug.exceptions import BadRequest, InternalServerError

from pennywise.core import find_owned_or_404, isoformat, round_money, utcnow

from .accounts import display_name
from .transactions import DEPOSIT, WITHDRAWAL, create_transaction

logger = logging.getLogger(__name__)


def _parse_transfer_amount(raw: Any) -> float:
    if isinstance(raw, bool):
        raise BadRequest("Amount must be a number")
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        raise BadRequest("Amount must be a number")
    if amount != amount or amount <= 0:
        raise BadRequest("Amount must be greater than 0")
    return round_money(amount)


def _set_status(transfers, transfer: Dict[str, Any], status: str) -> None:
    transfers.update_one({"_id": transfer["_id"]}, {"$set": {"status": status, "updated_at": utcnow()}})
    transfer["status"] = status


def execute_transfer(database, user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Move money between two accounts owned by user_id.

    The debit and the credit are separate updates. The debit only applies while the
    available balance still covers the amount. A failed credit reverses the debit,
    and a failed ledger write reverses both legs.
    """
    from_id = data.get("fromAccountId")
    to_id = data.get("toAccountId")
    raw_amount = data.get("amount")
    if not from_id or not to_id or raw_amount in (None, "", 0):
        raise BadRequest("Missing required fields")
    amount = _parse_transfer_amount(raw_amount)
    if str(from_id) == str(to_id):
        raise BadRequest("Cannot transfer to the same account")

    accounts = database["accounts"]
    transfers = database["transfers"]
    from_account = find_owned_or_404(accounts, from_id, user_id, label="Account")
    to_account = find_owned_or_404(accounts, to_id, user_id, label="Account")

    if amount > float(from_account.get("availableBalance") or 0):
        raise BadRequest("Insufficient funds")

    description = data.get("description")
    if description is not None and not isinstance(description, str):
        raise BadRequest("description must be a string")

    now = utcnow()
    transfer: Dict[str, Any] = {
        "userId": user_id,
        "fromAccountId": from_account["_id"],
        "toAccountId": to_account["_id"],
        "amount": amount,
        "description": (description or "").strip() or "Transfer",
        "status": "pending",
        "created_at": now,
        "updated_at": now,
    }
    transfer["_id"] = transfers.insert_one(transfer).inserted_id

    debit = accounts.update_one(
        {"_id": from_account["_id"], "userId": user_id, "availableBalance": {"$gte": amount}},
        {"$inc": {"currentBalance": -amount, "availableBalance": -amount}, "$set": {"updated_at": now}},
    )
    if debit.modified_count == 0:
        _set_status(transfers, transfer, "failed")
        raise BadRequest("Insufficient funds")

    try:
        credit = accounts.update_one(
            {"_id": to_account["_id"], "userId": user_id},
            {"$inc": {"currentBalance": amount, "availableBalance": amount}, "$set": {"updated_at": now}},
        )
        credited = credit.modified_count == 1
    except Exception:
        logger.exception("Credit leg of transfer %s failed", transfer["_id"])
        credited = False

    if not credited:
        accounts.update_one(
            {"_id": from_account["_id"]},
            {"$inc": {"currentBalance": amount, "availableBalance": amount}, "$set": {"updated_at": utcnow()}},
        )
        _set_status(transfers, transfer, "failed")
        raise InternalServerError("Transfer failed")

    ledger = database["transactions"]
    try:
        _record_ledger_entries(ledger, user_id, transfer, from_account, to_account, now)
    except Exception:
        logger.exception("Ledger entries for transfer %s could not be written", transfer["_id"])
        ledger.delete_many({"transferId": transfer["_id"]})
        accounts.update_one(
            {"_id": to_account["_id"]},
            {"$inc": {"currentBalance": -amount, "availableBalance": -amount}, "$set": {"updated_at": utcnow()}},
        )
        accounts.update_one(
            {"_id": from_account["_id"]},
            {"$inc": {"currentBalance": amount, "availableBalance": amount}, "$set": {"updated_at": utcnow()}},
        )
        _set_status(transfers, transfer, "failed")
        raise InternalServerError("Transfer failed")

    _set_status(transfers, transfer, "completed")
    logger.info("Transfer %s completed: %.2f from %s to %s", transfer["_id"], amount, from_account["_id"], to_account["_id"])
    return transfer


def _record_ledger_entries(ledger, user_id, transfer, from_account, to_account, now) -> None:
    amount = transfer["amount"]
    common = {
        "category": "Transfer",
        "paymentChannel": "online",
        "date": now,
        "pending": False,
        "senderBankId": from_account["_id"],
        "receiverBankId": to_account["_id"],
        "transferId": transfer["_id"],
        "source": "transfer",
    }
    create_transaction(
        ledger,
        user_id,
        {
            **common,
            "accountId": from_account["_id"],
            "name": f"Transfer to {to_account.get('name') or display_name(to_account)}",
            "amount": -amount,
            "type": WITHDRAWAL,
        },
    )
    create_transaction(
        ledger,
        user_id,
        {
            **common,
            "accountId": to_account["_id"],
            "name": f"Transfer from {from_account.get('name') or display_name(from_account)}",
            "amount": amount,
            "type": DEPOSIT,
        },
    )


def list_transfers(transfers, user_id: ObjectId, limit: int = 50) -> List[Dict[str, Any]]:
    return list(transfers.find({"userId": user_id}).sort("created_at", DESCENDING).limit(limit))


def format_transfer(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "fromAccountId": str(doc.get("fromAccountId")),
        "toAccountId": str(doc.get("toAccountId")),
        "amount": round_money(doc.get("amount") or 0),
        "description": doc.get("description", ""),
        "status": doc.get("status", "pending"),
        "createdAt": isoformat(doc.get("created_at")),
    }
