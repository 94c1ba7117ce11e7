# mock_data.py
from __future__ import annotations

import hashlib
import math
import random
from datetime import timedelta
from typing import Any, Dict, List, Tuple

from bson import ObjectId
from pymongo.collection import Collection

from pennywise.core import round_money, utcnow

from .accounts import build_account_document
from .transactions import DEPOSIT, WITHDRAWAL

# ----------- demo banks + merchant catalog -----------
BANKS: List[Dict[str, str]] = [
    {"name": "Chase Bank", "id": "chase_001"},
    {"name": "Bank of America", "id": "bofa_001"},
    {"name": "Wells Fargo", "id": "wells_001"},
    {"name": "Citibank", "id": "citi_001"},
    {"name": "US Bank", "id": "usbank_001"},
]

ACCOUNT_SUBTYPES = ["checking", "savings", "checking", "savings", "business"]

MERCHANTS: List[Dict[str, Any]] = [
    {"id": "starbucks", "name": "Starbucks", "category": "Food and Drink", "mean": 12, "std": 6, "online_ratio": 0.0, "weight": 1.3},
    {"id": "chipotle", "name": "Chipotle", "category": "Food and Drink", "mean": 16, "std": 7, "online_ratio": 0.0, "weight": 1.0},
    {"id": "whole_foods", "name": "Whole Foods", "category": "Groceries", "mean": 85, "std": 40, "online_ratio": 0.1, "weight": 1.2},
    {"id": "costco", "name": "Costco", "category": "Groceries", "mean": 140, "std": 60, "online_ratio": 0.2, "weight": 0.9},
    {"id": "amazon", "name": "Amazon", "category": "Shopping", "mean": 40, "std": 30, "online_ratio": 1.0, "weight": 1.6},
    {"id": "target", "name": "Target", "category": "Shopping", "mean": 45, "std": 25, "online_ratio": 0.5, "weight": 1.0},
    {"id": "shell", "name": "Shell", "category": "Gas Stations", "mean": 45, "std": 15, "online_ratio": 0.0, "weight": 1.1},
    {"id": "netflix", "name": "Netflix", "category": "Entertainment", "mean": 15.49, "std": 0.5, "online_ratio": 1.0, "weight": 0.6},
    {"id": "spotify", "name": "Spotify", "category": "Entertainment", "mean": 10.99, "std": 0.5, "online_ratio": 1.0, "weight": 0.6},
    {"id": "electric", "name": "Electric Company", "category": "Bills", "mean": 120, "std": 30, "online_ratio": 1.0, "weight": 0.5},
    {"id": "united", "name": "United Airlines", "category": "Travel", "mean": 320, "std": 120, "online_ratio": 1.0, "weight": 0.2},
]

CATEGORY_WEIGHTS = {
    "Food and Drink": 0.22, "Groceries": 0.22, "Shopping": 0.20,
    "Gas Stations": 0.12, "Entertainment": 0.08, "Bills": 0.10, "Travel": 0.06,
}

CLAMPS = {
    "Food and Drink": (5, 60), "Groceries": (20, 300), "Shopping": (5, 300),
    "Gas Stations": (20, 90), "Entertainment": (5, 30), "Bills": (40, 250), "Travel": (90, 900),
}

PAYCHECK_SHARE = 0.08


# ----------- util helpers -----------
def _rng(*parts: str) -> random.Random:
    h = hashlib.sha256("|".join(parts).encode()).hexdigest()
    return random.Random(int(h, 16) % (2**63 - 1))


def _weighted_choice(rng: random.Random, items: List[Tuple[Any, float]]) -> Any:
    total = sum(w for _, w in items)
    r = rng.random() * total
    upto = 0.0
    for item, w in items:
        upto += w
        if r <= upto:
            return item
    return items[-1][0]


def _pick_merchant(rng: random.Random) -> Dict[str, Any]:
    category = _weighted_choice(rng, list(CATEGORY_WEIGHTS.items()))
    pool = [(m, m["weight"]) for m in MERCHANTS if m["category"] == category]
    return _weighted_choice(rng, pool)


def _sample_amount(rng: random.Random, mean: float, std: float, category: str) -> float:
    # lognormal-ish around mean/std
    mu = math.log(max(1.0, mean)) - 0.05
    sigma = 0.05 if std <= 1 else min(0.75, std / max(5.0, mean))
    amt = rng.lognormvariate(mu, sigma)
    low, high = CLAMPS.get(category, (5, 250))
    return round(max(low, min(high, amt)), 2)


# ----------- accounts -----------
def mock_account_data(user_id: str, index: int, seed_version: str = "v1") -> Dict[str, Any]:
    bank = BANKS[index % len(BANKS)]
    subtype = ACCOUNT_SUBTYPES[index % len(ACCOUNT_SUBTYPES)]
    rng = _rng(user_id, str(index), seed_version, "account")
    balance = round_money(rng.uniform(1000, 15000) if subtype != "savings" else rng.uniform(5000, 40000))
    mask = "".join(rng.choice("0123456789") for _ in range(10))
    return {
        "name": f"{subtype.capitalize()} ••••{mask[-4:]}",
        "officialName": f"{bank['name']} - {subtype}",
        "mask": mask,
        "type": "depository",
        "subtype": subtype,
        "currentBalance": balance,
        "availableBalance": balance,
        "institutionId": bank["id"],
        "institutionName": bank["name"],
        "source": "demo",
        "synthetic_key": hashlib.sha1(f"{user_id}|{index}|{seed_version}".encode()).hexdigest(),
    }


def seed_mock_accounts(db, user_id: ObjectId, count: int = 3, seed_version: str = "v1") -> List[Dict[str, Any]]:
    """Upsert `count` deterministic demo accounts; returns all of them, new or existing."""
    acct_col: Collection = db["accounts"]
    seeded: List[Dict[str, Any]] = []
    for i in range(count):
        doc = build_account_document(user_id, mock_account_data(str(user_id), i, seed_version))
        acct_col.update_one({"synthetic_key": doc["synthetic_key"]}, {"$setOnInsert": doc}, upsert=True)
        seeded.append(acct_col.find_one({"synthetic_key": doc["synthetic_key"]}))
    return seeded


# ----------- transactions -----------
def generate_mock_transactions(
    db,
    user_id: ObjectId,
    account_id: ObjectId,
    *,
    N: int = 25,
    days: int = 60,
    seed_version: str = "v1",
) -> int:
    """Create N seeded synthetic transactions for (user, account). Returns inserted count."""
    tx_col: Collection = db["transactions"]
    rng = _rng(str(user_id), str(account_id), seed_version)
    now = utcnow()
    start = now - timedelta(days=days)

    inserted = 0
    for i in range(N):
        day = start + timedelta(days=rng.randint(0, days))
        hr = _weighted_choice(rng, [(8, 1), (9, 2), (12, 3), (17, 3), (19, 2), (21, 1)])
        when = day.replace(hour=hr, minute=rng.randint(0, 59), second=0, microsecond=0)

        if rng.random() < PAYCHECK_SHARE:
            name, category, channel = "Payroll Deposit", "Income", "other"
            amount = round(rng.uniform(1200, 2600), 2)
        else:
            m = _pick_merchant(rng)
            name, category = m["name"], m["category"]
            channel = "online" if rng.random() < float(m["online_ratio"]) else "in store"
            amount = -_sample_amount(rng, m["mean"], m["std"], category)

        key_src = f"{user_id}|{account_id}|{seed_version}|{i}"
        synthetic_key = hashlib.sha1(key_src.encode()).hexdigest()

        doc = {
            "synthetic_key": synthetic_key,
            "userId": user_id,
            "accountId": account_id,
            "name": name,
            "amount": amount,
            "type": WITHDRAWAL if amount < 0 else DEPOSIT,
            "category": category,
            "paymentChannel": channel,
            "date": when,
            "pending": rng.random() < 0.05,
            "senderBankId": account_id,
            "receiverBankId": None,
            "source": "demo",
            "created_at": now,
        }
        res = tx_col.update_one({"synthetic_key": synthetic_key}, {"$setOnInsert": doc}, upsert=True)
        if res.upserted_id is not None:
            inserted += 1

    return inserted


def seed_demo_workspace(db, user_id: ObjectId, accounts: int = 3, transactions: int = 25, seed_version: str = "v1") -> Dict[str, int]:
    seeded = seed_mock_accounts(db, user_id, count=accounts, seed_version=seed_version)
    inserted = 0
    if seeded and transactions > 0:
        inserted = generate_mock_transactions(db, user_id, seeded[0]["_id"], N=transactions, seed_version=seed_version)
    return {"accounts": len(seeded), "transactionsCreated": inserted}
