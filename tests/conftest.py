import mongomock
import pytest
from bson import ObjectId

from pennywise import create_app
from pennywise.services.accounts import create_bank_account

SESSION_SETTINGS = {
    "secret": "test-session-secret",
    "algorithm": "HS256",
    "ttl_hours": 24,
    "cookie_name": "pennywise-session",
    "cookie_secure": False,
}

DEFAULT_SIGN_UP = {
    "email": "Ada@Example.com",
    "password": "correct-horse",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "address1": "12 Analytical Way",
    "city": "Houston",
    "state": "TX",
    "postalCode": "77005",
    "dateOfBirth": "1990-12-10",
}


@pytest.fixture
def database():
    return mongomock.MongoClient()["pennywise_test"]


@pytest.fixture
def app_factory(database, monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    monkeypatch.delenv("PLAID_CLIENT_ID", raising=False)
    monkeypatch.delenv("PLAID_SECRET", raising=False)
    monkeypatch.delenv("SUGGESTIONS_CACHE_TTL", raising=False)

    def factory(**config):
        settings = {"TESTING": True, "DISABLE_AUTH": False, "SESSION_SETTINGS": SESSION_SETTINGS}
        settings.update(config)
        return create_app(settings, database=database)

    return factory


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest.fixture
def client(app):
    return app.test_client()


def sign_up(client, **overrides):
    payload = {**DEFAULT_SIGN_UP, **overrides}
    return client.post("/api/auth/sign-up", json=payload)


def session_token(response) -> str:
    for header in response.headers.getlist("Set-Cookie"):
        name, _, rest = header.partition("=")
        if name == SESSION_SETTINGS["cookie_name"]:
            return rest.split(";", 1)[0]
    raise AssertionError("no session cookie set")


@pytest.fixture
def auth_client(client):
    response = sign_up(client)
    assert response.status_code == 201
    return client


@pytest.fixture
def user_id(auth_client):
    return ObjectId(auth_client.get("/api/me").get_json()["userId"])


@pytest.fixture
def make_account(database):
    def factory(user_id, **overrides):
        data = {
            "name": "Everyday Checking",
            "officialName": "Chase Total Checking",
            "mask": "1234567890",
            "type": "depository",
            "subtype": "checking",
            "currentBalance": 1000.0,
            "availableBalance": 1000.0,
            "institutionName": "Chase",
        }
        data.update(overrides)
        return create_bank_account(database["accounts"], user_id, data)

    return factory
