from conftest import DEFAULT_SIGN_UP, session_token, sign_up


def test_sign_up_creates_user_and_sets_session_cookie(client, database):
    response = sign_up(client)
    assert response.status_code == 201
    body = response.get_json()
    assert body["success"] is True
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["firstName"] == "Ada"
    assert "password_hash" not in body["user"]

    cookie = next(h for h in response.headers.getlist("Set-Cookie") if h.startswith("pennywise-session="))
    assert "HttpOnly" in cookie
    assert "SameSite=Strict" in cookie

    stored = database["users"].find_one({"email": "ada@example.com"})
    assert stored["password_hash"] != DEFAULT_SIGN_UP["password"]
    assert "ssn" not in stored
    assert database["sessions"].count_documents({"userId": stored["_id"]}) == 1


def test_sign_up_requires_core_fields(client):
    response = client.post("/api/auth/sign-up", json={"email": "a@b.co", "password": "longenough"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "bad_request", "message": "Missing required fields"}


def test_sign_up_rejects_short_password(client):
    response = sign_up(client, password="short")
    assert response.status_code == 400
    assert "at least 8" in response.get_json()["message"]


def test_duplicate_email_conflicts(client):
    assert sign_up(client).status_code == 201
    response = sign_up(client, email="ADA@example.com")
    assert response.status_code == 409
    assert response.get_json()["error"] == "conflict"


def test_sign_in_with_wrong_password(app, client):
    sign_up(client)
    other = app.test_client()
    response = other.post("/api/auth/sign-in", json={"email": "ada@example.com", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.get_json()["message"] == "Invalid email or password"


def test_sign_in_requires_both_fields(client):
    response = client.post("/api/auth/sign-in", json={"email": "ada@example.com"})
    assert response.status_code == 400


def test_sign_in_then_me(app, client):
    sign_up(client)
    other = app.test_client()
    response = other.post("/api/auth/sign-in", json={"email": "ADA@example.com", "password": "correct-horse"})
    assert response.status_code == 200
    me = other.get("/api/me")
    assert me.status_code == 200
    assert me.get_json()["name"] == "Ada Lovelace"


def test_protected_route_without_session(client):
    response = client.get("/api/me")
    assert response.status_code == 401
    assert response.get_json() == {"error": "unauthorized", "message": "No session"}


def test_health_is_public(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}


def test_unknown_api_path_is_not_found_without_session(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


def test_bearer_token_is_accepted(app, client):
    token = session_token(sign_up(client))
    response = app.test_client().get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200


def test_sign_out_revokes_server_session(app, client, database):
    token = session_token(sign_up(client))
    response = client.post("/api/auth/sign-out")
    assert response.get_json() == {"success": True}
    assert database["sessions"].count_documents({}) == 0

    replay = app.test_client().get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert replay.status_code == 401


def test_garbage_token_is_rejected(client):
    response = client.get("/api/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_patch_me_updates_profile_and_merges_preferences(auth_client):
    response = auth_client.patch(
        "/api/me",
        json={"city": "Austin", "preferences": {"theme": "dark", "privacy": {"blurAmounts": True}, "bogus": 1}},
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["city"] == "Austin"
    assert body["preferences"]["theme"] == "dark"
    assert body["preferences"]["privacy"] == {"blurAmounts": True}
    assert body["preferences"]["currency"] == "USD"
    assert "bogus" not in body["preferences"]


def test_patch_me_keeps_sibling_keys_in_nested_preferences(auth_client):
    response = auth_client.patch("/api/me", json={"preferences": {"notifications": {"budget_alerts": False, "sms": True}}})
    assert response.status_code == 200
    assert response.get_json()["preferences"]["notifications"] == {"budget_alerts": False, "weekly_summary": True}


def test_patch_me_rejects_non_object_preferences(auth_client):
    response = auth_client.patch("/api/me", json={"preferences": "dark"})
    assert response.status_code == 400


def test_disable_auth_uses_dev_user(app_factory):
    app = app_factory(DISABLE_AUTH=True)
    response = app.test_client().get("/api/me")
    assert response.status_code == 200
    assert response.get_json()["email"] == "dev@local"
