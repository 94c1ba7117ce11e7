"""Bank account documents: creation, lookup and display formatting."""

from __future__ import annotations

import random
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING

from pennywise.core import find_owned_or_404, isoformat, round_money, utcnow

ACCOUNT_TYPE_WORDS = ("checking", "savings", "credit", "card", "loan", "mortgage", "investment", "total", "premier")

DEFAULT_LOGO = {"logoUrl": "", "backgroundColor": "#0179FE"}

BANK_LOGOS: Dict[str, Dict[str, str]] = {
    "chase": {"logoUrl": "https://logo.clearbit.com/chase.com", "backgroundColor": "#117ACA"},
    "bank of america": {"logoUrl": "https://logo.clearbit.com/bankofamerica.com", "backgroundColor": "#E31837"},
    "wells fargo": {"logoUrl": "https://logo.clearbit.com/wellsfargo.com", "backgroundColor": "#D71E28"},
    "citi": {"logoUrl": "https://logo.clearbit.com/citi.com", "backgroundColor": "#003B70"},
    "us bank": {"logoUrl": "https://logo.clearbit.com/usbank.com", "backgroundColor": "#0C2074"},
    "capital one": {"logoUrl": "https://logo.clearbit.com/capitalone.com", "backgroundColor": "#004977"},
    "pnc": {"logoUrl": "https://logo.clearbit.com/pnc.com", "backgroundColor": "#EF7622"},
    "td bank": {"logoUrl": "https://logo.clearbit.com/td.com", "backgroundColor": "#34A853"},
}

BANK_ALIASES = {
    "bofa": "bank of america",
    "boa": "bank of america",
    "citibank": "citi",
    "chase bank": "chase",
    "jpmorgan chase": "chase",
    "u.s. bank": "us bank",
}


def map_account_type(account_type: Optional[str], subtype: Optional[str]) -> str:
    """Collapse aggregator type/subtype into checking, savings or business."""
    normalized = (subtype or "").strip().lower()
    if normalized == "checking":
        return "checking"
    if normalized == "savings":
        return "savings"
    return "business"


def extract_institution_name(official_name: Optional[str]) -> str:
    """Best-effort bank name from an official account name like 'Chase Total Checking'."""
    if not official_name:
        return ""
    lowered = official_name.lower()
    cleaned = lowered
    for word in ACCOUNT_TYPE_WORDS:
        cleaned = re.sub(rf"\b{word}\b", "", cleaned, flags=re.IGNORECASE).strip()
    cleaned = re.sub(r"[-–—]", " ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if len(cleaned) > 2 and cleaned != lowered:
        return " ".join(cleaned.split(" ")[:2])
    return ""


def bank_logo(institution_name: Optional[str], institution_id: Optional[str] = None) -> Dict[str, str]:
    for candidate in (institution_name, institution_id):
        if not candidate:
            continue
        key = candidate.strip().lower()
        key = re.sub(r"_\d+$", "", key)
        key = BANK_ALIASES.get(key, key)
        if key in BANK_LOGOS:
            return BANK_LOGOS[key]
        # longest names first so "bank of america" wins over shorter keys
        for name in sorted(BANK_LOGOS, key=len, reverse=True):
            if re.search(rf"\b{re.escape(name)}\b", key):
                return BANK_LOGOS[name]
    return DEFAULT_LOGO


def display_name(doc: Dict[str, Any]) -> str:
    institution = doc.get("institutionName") or extract_institution_name(doc.get("officialName"))
    account_type = doc.get("accountType") or "Account"
    last4 = (doc.get("mask") or "")[-4:]
    if institution:
        return f"{institution} {account_type} ••••{last4}"
    return f"{account_type} ••••{last4}"


def format_account_row(doc: Dict[str, Any]) -> Dict[str, Any]:
    institution = doc.get("institutionName") or extract_institution_name(doc.get("officialName"))
    name = doc.get("name") or display_name(doc)
    return {
        "id": str(doc["_id"]),
        "userId": str(doc.get("userId")),
        "name": name,
        "officialName": doc.get("officialName") or display_name(doc),
        "mask": doc.get("mask", ""),
        "type": doc.get("type") or doc.get("accountType", ""),
        "subtype": doc.get("subtype", ""),
        "accountType": doc.get("accountType", "business"),
        "currentBalance": round_money(doc.get("currentBalance") or 0),
        "availableBalance": round_money(doc.get("availableBalance") or 0),
        "institutionId": doc.get("institutionId", ""),
        "institutionName": institution,
        "logo": bank_logo(institution, doc.get("institutionId")),
        "source": doc.get("source", "manual"),
        "createdAt": isoformat(doc.get("created_at")),
    }


def build_account_document(user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    current = round_money(data.get("currentBalance") or 0)
    available = data.get("availableBalance")
    available = current if available is None else round_money(available)
    mask = (data.get("mask") or "").strip() or "".join(random.choice("0123456789") for _ in range(10))
    account_type = data.get("type") or "depository"
    subtype = data.get("subtype") or "checking"

    now = utcnow()
    document: Dict[str, Any] = {
        "userId": user_id,
        "name": data.get("name") or "",
        "officialName": data.get("officialName") or data.get("name") or "",
        "mask": mask,
        "type": account_type,
        "subtype": subtype,
        "accountType": map_account_type(account_type, subtype),
        "currentBalance": current,
        "availableBalance": available,
        "institutionId": data.get("institutionId") or "",
        "institutionName": data.get("institutionName") or "",
        "source": data.get("source") or "manual",
        "created_at": now,
        "updated_at": now,
    }
    # sparse unique indexes: only set these when present
    for key in ("plaidAccountId", "itemId", "synthetic_key"):
        if data.get(key):
            document[key] = data[key]
    return document


def create_bank_account(accounts, user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert an account document and return it with its id."""
    document = build_account_document(user_id, data)
    result = accounts.insert_one(document)
    document["_id"] = result.inserted_id
    return document


def list_accounts(accounts, user_id: ObjectId) -> List[Dict[str, Any]]:
    return list(accounts.find({"userId": user_id}).sort("created_at", ASCENDING))


def get_account(accounts, user_id: ObjectId, account_id: Any) -> Dict[str, Any]:
    return find_owned_or_404(accounts, account_id, user_id, label="Account")


def total_current_balance(account_docs: List[Dict[str, Any]]) -> float:
    return round_money(sum(float(doc.get("currentBalance") or 0) for doc in account_docs))


def update_account_balance(accounts, account_id: ObjectId, current_balance: float, available_balance: float) -> None:
    accounts.update_one(
        {"_id": account_id},
        {
            "$set": {
                "currentBalance": round_money(current_balance),
                "availableBalance": round_money(available_balance),
                "updated_at": utcnow(),
            }
        },
    )


def delete_account(database, user_id: ObjectId, account_id: Any) -> int:
    """Remove an owned account and its transactions; returns removed transaction count."""
    account = get_account(database["accounts"], user_id, account_id)
    result = database["transactions"].delete_many({"userId": user_id, "accountId": account["_id"]})
    database["accounts"].delete_one({"_id": account["_id"]})
    return result.deleted_count
