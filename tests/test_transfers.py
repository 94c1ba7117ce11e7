import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure
from werkzeug.exceptions import BadRequest, InternalServerError

from conftest import sign_up
from pennywise.services.transfers import execute_transfer


@pytest.fixture
def two_accounts(user_id, make_account):
    source = make_account(user_id, name="Checking", currentBalance=500, availableBalance=400)
    dest = make_account(user_id, name="Savings", subtype="savings", currentBalance=100, mask="7777")
    return source, dest


def _transfer(client, source, dest, amount, **extra):
    payload = {"fromAccountId": str(source["_id"]), "toAccountId": str(dest["_id"]), "amount": amount, **extra}
    return client.post("/api/transfers", json=payload)


def test_successful_transfer_moves_money_and_writes_ledger(auth_client, user_id, two_accounts, database):
    source, dest = two_accounts
    response = _transfer(auth_client, source, dest, 150, description="Rent buffer")
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["transfer"]["status"] == "completed"
    assert body["transfer"]["amount"] == 150

    accounts = database["accounts"]
    assert accounts.find_one({"_id": source["_id"]})["currentBalance"] == 350
    assert accounts.find_one({"_id": source["_id"]})["availableBalance"] == 250
    assert accounts.find_one({"_id": dest["_id"]})["currentBalance"] == 250

    entries = {t["name"]: t for t in database["transactions"].find({"userId": user_id})}
    outgoing = entries["Transfer to Savings"]
    incoming = entries["Transfer from Checking"]
    assert (outgoing["amount"], outgoing["type"], outgoing["category"]) == (-150, "withdrawal", "Transfer")
    assert (incoming["amount"], incoming["type"]) == (150, "deposit")
    assert outgoing["paymentChannel"] == "online"
    assert outgoing["accountId"] == source["_id"] and incoming["accountId"] == dest["_id"]
    assert str(outgoing["transferId"]) == body["transfer"]["id"]

    listed = auth_client.get("/api/transfers").get_json()["transfers"]
    assert [t["id"] for t in listed] == [body["transfer"]["id"]]


def test_insufficient_funds_checks_available_balance(auth_client, two_accounts, database):
    source, dest = two_accounts
    response = _transfer(auth_client, source, dest, 450)
    assert response.status_code == 400
    assert response.get_json()["message"] == "Insufficient funds"
    assert database["accounts"].find_one({"_id": source["_id"]})["currentBalance"] == 500
    assert database["transactions"].count_documents({}) == 0


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"toAccountId": "x", "amount": 5}, "Missing required fields"),
        ({"fromAccountId": "x", "toAccountId": "y"}, "Missing required fields"),
        ({"fromAccountId": "x", "toAccountId": "y", "amount": -5}, "Amount must be greater than 0"),
        ({"fromAccountId": "x", "toAccountId": "x", "amount": 5}, "Cannot transfer to the same account"),
    ],
)
def test_transfer_validation(auth_client, payload, message):
    response = auth_client.post("/api/transfers", json=payload)
    assert response.status_code == 400
    assert response.get_json()["message"] == message


def test_malformed_account_ids_read_as_missing_accounts(auth_client):
    response = auth_client.post(
        "/api/transfers", json={"fromAccountId": "not-an-id", "toAccountId": "also-not-an-id", "amount": 5}
    )
    assert response.status_code == 404
    assert response.get_json()["message"] == "Account not found"


def test_cannot_transfer_from_someone_elses_account(app, auth_client, two_accounts, make_account):
    other = app.test_client()
    sign_up(other, email="mallory@example.com")
    mallory_id = ObjectId(other.get("/api/me").get_json()["userId"])
    mallory_account = make_account(mallory_id, mask="6666")

    source, _ = two_accounts
    response = _transfer(other, source, mallory_account, 10)
    assert response.status_code == 404
    assert response.get_json()["message"] == "Account not found"


def test_user_id_in_body_is_ignored(auth_client, two_accounts):
    source, dest = two_accounts
    response = _transfer(auth_client, source, dest, 10, userId=str(ObjectId()))
    assert response.status_code == 200


class FailingCreditAccounts:
    """Accounts collection whose credit update errors out."""

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def update_one(self, query, update, *args, **kwargs):
        if update.get("$inc", {}).get("currentBalance", 0) > 0 and "userId" in query:
            raise OperationFailure("write conflict")
        return self.inner.update_one(query, update, *args, **kwargs)


def test_failed_credit_reverses_debit(user_id, two_accounts, database):
    source, dest = two_accounts
    wrapped = {
        "accounts": FailingCreditAccounts(database["accounts"]),
        "transfers": database["transfers"],
        "transactions": database["transactions"],
    }
    with pytest.raises(InternalServerError):
        execute_transfer(wrapped, user_id, {"fromAccountId": source["_id"], "toAccountId": dest["_id"], "amount": 50})

    assert database["accounts"].find_one({"_id": source["_id"]})["availableBalance"] == 400
    assert database["accounts"].find_one({"_id": dest["_id"]})["currentBalance"] == 100
    assert database["transfers"].find_one({})["status"] == "failed"
    assert database["transactions"].count_documents({}) == 0


class DrainedBeforeDebitAccounts:
    """Accounts collection where another writer empties the source between the check and the debit."""

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def update_one(self, query, update, *args, **kwargs):
        if "availableBalance" in query:
            query = {**query, "availableBalance": {"$gte": float("inf")}}
        return self.inner.update_one(query, update, *args, **kwargs)


def test_debit_that_loses_the_race_fails_cleanly(user_id, two_accounts, database):
    source, dest = two_accounts
    wrapped = {
        "accounts": DrainedBeforeDebitAccounts(database["accounts"]),
        "transfers": database["transfers"],
        "transactions": database["transactions"],
    }
    with pytest.raises(BadRequest) as excinfo:
        execute_transfer(wrapped, user_id, {"fromAccountId": source["_id"], "toAccountId": dest["_id"], "amount": 50})
    assert excinfo.value.description == "Insufficient funds"

    stored_source = database["accounts"].find_one({"_id": source["_id"]})
    assert (stored_source["currentBalance"], stored_source["availableBalance"]) == (500, 400)
    assert database["accounts"].find_one({"_id": dest["_id"]})["currentBalance"] == 100
    assert database["transfers"].find_one({})["status"] == "failed"
    assert database["transactions"].count_documents({}) == 0


class FailingSecondInsertLedger:
    """Transactions collection that accepts one insert and then errors out."""

    def __init__(self, inner):
        self.inner = inner
        self.inserts = 0

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def insert_one(self, document, *args, **kwargs):
        self.inserts += 1
        if self.inserts > 1:
            raise OperationFailure("disk full")
        return self.inner.insert_one(document, *args, **kwargs)


def test_ledger_write_failure_marks_transfer_failed(user_id, two_accounts, database):
    source, dest = two_accounts
    wrapped = {
        "accounts": database["accounts"],
        "transfers": database["transfers"],
        "transactions": FailingSecondInsertLedger(database["transactions"]),
    }
    with pytest.raises(InternalServerError):
        execute_transfer(wrapped, user_id, {"fromAccountId": source["_id"], "toAccountId": dest["_id"], "amount": 50})

    stored_source = database["accounts"].find_one({"_id": source["_id"]})
    stored_dest = database["accounts"].find_one({"_id": dest["_id"]})
    assert (stored_source["currentBalance"], stored_source["availableBalance"]) == (500, 400)
    assert (stored_dest["currentBalance"], stored_dest["availableBalance"]) == (100, 1000)
    assert database["transfers"].find_one({})["status"] == "failed"
    assert database["transactions"].count_documents({}) == 0
