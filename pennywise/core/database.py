"""Database helpers and index management."""

import logging
import os
from typing import Any

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import CollectionInvalid, DuplicateKeyError, OperationFailure

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "users",
    "sessions",
    "accounts",
    "plaid_items",
    "transactions",
    "budgets",
    "savings_goals",
    "transfers",
)


def get_mongo_client() -> MongoClient:
    uri = os.environ.get("MONGODB_URI")
    if not uri:
        raise RuntimeError("MONGODB_URI must be set")
    return MongoClient(uri, tlsAllowInvalidCertificates=False)


def get_database(client: MongoClient) -> Database:
    db_name = os.environ.get("MONGODB_DB")
    if db_name:
        return client[db_name]
    database = client.get_default_database()
    if database is None:
        raise RuntimeError("Database name must be provided via connection string or MONGODB_DB")
    return database


def _safe_create_index(coll, keys, **opts):
    """
    Create an index but be forgiving:
      - Ignore differing options / specs conflicts (codes 85, 86)
      - Skip if data currently violates a unique index (code 11000)
    """
    try:
        return coll.create_index(keys, **opts)
    except DuplicateKeyError:
        logger.warning("[indexes] Skipped creating index %s due to duplicate key", opts.get("name") or keys)
        return None
    except OperationFailure as exc:
        code = getattr(exc, "code", None)
        if code in (85, 86):
            # 85 IndexOptionsConflict, 86 IndexKeySpecsConflict
            logger.warning("[indexes] Ignored conflict for %s (code %s)", opts.get("name") or keys, code)
            return None
        raise


def ensure_collections(database: Any) -> None:
    """Create required collections if they do not already exist."""
    existing = set(database.list_collection_names())
    for name in COLLECTIONS:
        if name not in existing:
            try:
                database.create_collection(name)
            except CollectionInvalid:
                pass  # created concurrently


def ensure_indexes(database: Any) -> None:
    users = database["users"]
    _safe_create_index(users, [("email", ASCENDING)], unique=True, name="email_1")

    sessions = database["sessions"]
    _safe_create_index(sessions, [("session_id", ASCENDING)], unique=True, name="session_id_1")
    # TTL: Mongo drops sessions once expires_at has passed
    _safe_create_index(sessions, [("expires_at", ASCENDING)], expireAfterSeconds=0, name="expires_at_ttl")

    accounts = database["accounts"]
    _safe_create_index(accounts, [("userId", ASCENDING)], name="accounts_userId")
    _safe_create_index(
        accounts,
        [("plaidAccountId", ASCENDING)],
        unique=True,
        sparse=True,
        name="plaidAccountId_1",
    )
    _safe_create_index(accounts, [("synthetic_key", ASCENDING)], unique=True, sparse=True, name="accounts_synthetic_key")

    items = database["plaid_items"]
    _safe_create_index(items, [("itemId", ASCENDING)], unique=True, name="itemId_1")
    _safe_create_index(items, [("userId", ASCENDING)])

    tx = database["transactions"]
    _safe_create_index(tx, [("userId", ASCENDING), ("date", DESCENDING)])
    _safe_create_index(tx, [("userId", ASCENDING), ("accountId", ASCENDING), ("date", DESCENDING)])
    _safe_create_index(
        tx,
        [("plaidTransactionId", ASCENDING)],
        unique=True,
        sparse=True,
        name="plaidTransactionId_1",
    )
    _safe_create_index(tx, [("synthetic_key", ASCENDING)], unique=True, sparse=True, name="tx_synthetic_key")

    budgets = database["budgets"]
    _safe_create_index(budgets, [("userId", ASCENDING), ("year", DESCENDING), ("month", DESCENDING)])

    goals = database["savings_goals"]
    _safe_create_index(goals, [("userId", ASCENDING), ("created_at", DESCENDING)])

    transfers = database["transfers"]
    _safe_create_index(transfers, [("userId", ASCENDING), ("created_at", DESCENDING)])

    logger.info("Indexes ensured.")
