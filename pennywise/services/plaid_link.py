"""
Bank linking through Plaid.

The exchange flow tolerates partial failure: an account that fails to save is
reported and skipped, a transaction that fails to save is skipped, and a failed
transaction fetch keeps the account that was already created.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from bson import ObjectId
import plaid
from plaid.api import plaid_api
from plaid.exceptions import ApiException
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_get_request import TransactionsGetRequest
from plaid.model.transactions_get_request_options import TransactionsGetRequestOptions
from werkzeug.exceptions import BadRequest

from pennywise.core import utcnow

from .accounts import create_bank_account
from .transactions import DEPOSIT, WITHDRAWAL, create_transaction

logger = logging.getLogger(__name__)

TRANSACTION_WINDOW_DAYS = 90
MAX_TRANSACTIONS_PER_ACCOUNT = 100


class PlaidNotConfigured(RuntimeError):
    """Raised when PLAID_CLIENT_ID / PLAID_SECRET are missing."""


class BankLinkError(Exception):
    """No account could be created from a linked item."""

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.details = details or []


def build_plaid_client(settings: Optional[Dict[str, str]]) -> plaid_api.PlaidApi:
    if not settings:
        raise PlaidNotConfigured(
            "Plaid is not configured. Please add PLAID_CLIENT_ID and PLAID_SECRET to your environment."
        )
    configuration = plaid.Configuration(
        host=settings["host"],
        api_key={"clientId": settings["client_id"], "secret": settings["secret"]},
    )
    return plaid_api.PlaidApi(plaid.ApiClient(configuration))


def plaid_error_message(error: BaseException, default: str = "An error occurred") -> str:
    """Readable message from a Plaid ApiException body, or the exception itself."""
    if isinstance(error, ApiException):
        try:
            body = json.loads(error.body or "{}")
        except (TypeError, ValueError):
            body = {}
        message = body.get("display_message") or body.get("error_message")
        if message:
            return str(message)
        return f"Plaid API error ({error.status})"
    text = str(error)
    return text or default


def _as_dict(response: Any) -> Dict[str, Any]:
    if hasattr(response, "to_dict"):
        return response.to_dict()
    return dict(response)


def _enum_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(getattr(value, "value", value)) or default


def _pick_category(txn: Dict[str, Any]) -> str:
    categories = txn.get("category") or []
    for candidate in categories[:2]:
        if candidate:
            return candidate
    pfc = txn.get("personal_finance_category") or {}
    primary = pfc.get("primary") if isinstance(pfc, dict) else None
    if primary:
        return primary.replace("_", " ").title()
    return "Other"


def plaid_transaction_to_ledger(txn: Dict[str, Any], account_id: ObjectId) -> Dict[str, Any]:
    """Plaid reports money out as a positive amount; the ledger stores it negative."""
    raw_amount = float(txn.get("amount") or 0)
    is_debit = raw_amount > 0
    channel = _enum_text(txn.get("payment_channel"), "other")
    when = txn.get("date")
    if isinstance(when, str):
        when = datetime.strptime(when, "%Y-%m-%d")
    elif isinstance(when, date) and not isinstance(when, datetime):
        when = datetime(when.year, when.month, when.day)
    return {
        "accountId": account_id,
        "name": txn.get("name") or txn.get("merchant_name") or "",
        "amount": -abs(raw_amount) if is_debit else abs(raw_amount),
        "type": WITHDRAWAL if is_debit else DEPOSIT,
        "category": _pick_category(txn),
        "paymentChannel": channel,
        "date": when,
        "pending": bool(txn.get("pending", False)),
        "senderBankId": account_id if is_debit else None,
        "receiverBankId": None if is_debit else account_id,
        "plaidTransactionId": txn.get("transaction_id"),
        "source": "plaid",
    }


class PlaidLinker:
    def __init__(self, client: Any, database, client_name: str = "Banking App"):
        self.client = client
        self.database = database
        self.client_name = client_name

    def create_link_token(self, user_id: ObjectId) -> str:
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id=str(user_id)),
            client_name=self.client_name,
            products=[Products("auth"), Products("transactions")],
            country_codes=[CountryCode("US")],
            language="en",
        )
        response = _as_dict(self.client.link_token_create(request))
        return response["link_token"]

    def _institution_name(self, institution_id: Optional[str]) -> str:
        if not institution_id:
            return "Unknown Bank"
        try:
            response = _as_dict(
                self.client.institutions_get_by_id(
                    InstitutionsGetByIdRequest(
                        institution_id=institution_id,
                        country_codes=[CountryCode("US")],
                    )
                )
            )
        except ApiException as exc:
            logger.warning("Institution lookup failed for %s: %s", institution_id, plaid_error_message(exc))
            return "Unknown Bank"
        institution = response.get("institution") or {}
        return institution.get("name") or "Unknown Bank"

    def _store_item(self, user_id: ObjectId, access_token: str, item_id: str, institution_id: str, institution_name: str) -> None:
        self.database["plaid_items"].update_one(
            {"itemId": item_id},
            {
                "$set": {
                    "userId": user_id,
                    "accessToken": access_token,
                    "institutionId": institution_id,
                    "institutionName": institution_name,
                    "updated_at": utcnow(),
                },
                "$setOnInsert": {"created_at": utcnow()},
            },
            upsert=True,
        )

    def _import_transactions(self, user_id: ObjectId, access_token: str, plaid_account_id: str, account_id: ObjectId) -> int:
        today = utcnow().date()
        request = TransactionsGetRequest(
            access_token=access_token,
            start_date=today - timedelta(days=TRANSACTION_WINDOW_DAYS),
            end_date=today,
            options=TransactionsGetRequestOptions(
                account_ids=[plaid_account_id],
                count=MAX_TRANSACTIONS_PER_ACCOUNT,
            ),
        )
        response = _as_dict(self.client.transactions_get(request))
        created = 0
        for txn in (response.get("transactions") or [])[:MAX_TRANSACTIONS_PER_ACCOUNT]:
            try:
                create_transaction(
                    self.database["transactions"],
                    user_id,
                    plaid_transaction_to_ledger(txn, account_id),
                )
                created += 1
            except Exception as exc:
                logger.warning("Failed to create transaction %s: %s", txn.get("transaction_id"), exc)
        return created

    def exchange_public_token(self, user_id: ObjectId, public_token: Any) -> Dict[str, Any]:
        if not isinstance(public_token, str) or not public_token.strip():
            raise BadRequest("Public token is required")

        exchange = _as_dict(
            self.client.item_public_token_exchange(ItemPublicTokenExchangeRequest(public_token=public_token.strip()))
        )
        access_token = exchange["access_token"]
        item_id = exchange["item_id"]

        accounts_response = _as_dict(self.client.accounts_get(AccountsGetRequest(access_token=access_token)))
        plaid_accounts = accounts_response.get("accounts") or []
        if not plaid_accounts:
            logger.error("No accounts returned from Plaid for item %s", item_id)
            raise BadRequest("No accounts found. Please make sure you have accounts connected in Plaid.")

        item = accounts_response.get("item") or {}
        institution_id = item.get("institution_id") or ""
        institution_name = self._institution_name(institution_id)
        self._store_item(user_id, access_token, item_id, institution_id, institution_name)

        logger.info(
            "Processing %d account(s) from %s (institution_id: %s)",
            len(plaid_accounts),
            institution_name,
            institution_id,
        )

        created_accounts: List[Dict[str, Any]] = []
        account_errors: List[str] = []
        transactions_created = 0

        for plaid_account in plaid_accounts:
            name = plaid_account.get("name") or "Account"
            balances = plaid_account.get("balances") or {}
            current = balances.get("current") or 0
            available = balances.get("available")
            if available is None:
                available = current
            try:
                account = create_bank_account(
                    self.database["accounts"],
                    user_id,
                    {
                        "name": name,
                        "officialName": plaid_account.get("official_name") or name,
                        "mask": plaid_account.get("mask") or "",
                        "type": _enum_text(plaid_account.get("type"), "depository"),
                        "subtype": _enum_text(plaid_account.get("subtype"), "checking"),
                        "currentBalance": current,
                        "availableBalance": available,
                        "institutionId": institution_id,
                        "institutionName": institution_name,
                        "plaidAccountId": plaid_account.get("account_id"),
                        "itemId": item_id,
                        "source": "plaid",
                    },
                )
            except Exception as exc:
                message = plaid_error_message(exc)
                logger.error('Failed to create account "%s": %s', name, message)
                account_errors.append(f"{name}: {message}")
                continue

            created_accounts.append(account)
            logger.info("Created account %s (%s)", account["_id"], name)

            try:
                transactions_created += self._import_transactions(
                    user_id, access_token, plaid_account.get("account_id"), account["_id"]
                )
            except Exception as exc:
                # account stays; its history can be fetched later
                logger.warning("Failed to fetch transactions for %s: %s", name, plaid_error_message(exc))

        if not created_accounts:
            details = f" Errors: {'; '.join(account_errors)}" if account_errors else " No accounts were returned from Plaid."
            logger.error("No accounts created.%s", details)
            raise BankLinkError(f"No accounts were created.{details}", account_errors)

        logger.info("Created %d out of %d account(s)", len(created_accounts), len(plaid_accounts))
        return {
            "success": True,
            "accountsCreated": len(created_accounts),
            "transactionsCreated": transactions_created,
            "errors": account_errors,
            "message": f"{institution_name} connected successfully! {len(created_accounts)} account(s) added.",
        }
