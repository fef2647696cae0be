from datetime import timedelta

from storefront import auth

from conftest import bearer


def test_register_returns_tokens_and_customer_role(client):
    res = client.post("/api/auth/register", json={"email": "Bob@Shop.com", "password": "secret123", "name": "Bob"})
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "bob@shop.com"
    assert body["data"]["user"]["role"] == "customer"
    assert "hashed_password" not in body["data"]["user"]
    assert body["data"]["access_token"] and body["data"]["refresh_token"]


def test_register_validation_errors(client, register):
    register()
    cases = [
        ({"email": "x@shop.com", "password": "secret123"}, 400, "MISSING_FIELDS"),
        ({"email": "not-an-email", "password": "secret123", "name": "X"}, 400, "INVALID_EMAIL"),
        ({"email": "x@shop.com", "password": "123", "name": "X"}, 400, "WEAK_PASSWORD"),
        ({"email": "alice@shop.com", "password": "secret123", "name": "Again"}, 409, "EMAIL_EXISTS"),
    ]
    for payload, status_code, code in cases:
        res = client.post("/api/auth/register", json=payload)
        assert res.status_code == status_code
        assert res.json() == {"success": False, "message": res.json()["message"], "code": code}


def test_login_and_me(client, register):
    register()
    res = client.post("/api/auth/login", json={"email": "alice@shop.com", "password": "secret123"})
    assert res.status_code == 200
    token = res.json()["data"]["access_token"]

    me = client.get("/api/auth/me", headers=bearer(token))
    assert me.status_code == 200
    assert me.json()["data"]["name"] == "Alice"


def test_login_wrong_password(client, register):
    register()
    res = client.post("/api/auth/login", json={"email": "alice@shop.com", "password": "wrong-pass"})
    assert res.status_code == 401
    assert res.json()["code"] == "INVALID_CREDENTIALS"


def test_protected_route_requires_token(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json()["code"] == "NO_TOKEN"

    res = client.get("/api/auth/me", headers=bearer("garbage"))
    assert res.status_code == 401
    assert res.json()["code"] == "INVALID_TOKEN"


def test_expired_access_token(client, customer):
    user_id = customer["user"]["id"]
    token = auth.create_access_token(user_id, "customer", expires_delta=timedelta(seconds=-5))
    res = client.get("/api/auth/me", headers=bearer(token))
    assert res.status_code == 401
    assert res.json()["code"] == "TOKEN_EXPIRED"


def test_refresh_token_cannot_be_used_as_access_token(client, customer):
    res = client.get("/api/auth/me", headers=bearer(customer["refresh_token"]))
    assert res.status_code == 401
    assert res.json()["code"] == "INVALID_TOKEN"


def test_refresh_then_logout_revokes(client, customer):
    res = client.post("/api/auth/refresh", json={"refresh_token": customer["refresh_token"]})
    assert res.status_code == 200
    new_access = res.json()["data"]["access_token"]
    assert client.get("/api/auth/me", headers=bearer(new_access)).status_code == 200

    assert client.post("/api/auth/logout", json={"refresh_token": customer["refresh_token"]}).status_code == 200
    res = client.post("/api/auth/refresh", json={"refresh_token": customer["refresh_token"]})
    assert res.status_code == 401
    assert res.json()["code"] == "INVALID_TOKEN"


def test_refresh_requires_token(client):
    res = client.post("/api/auth/refresh", json={})
    assert res.status_code == 400
    assert res.json()["code"] == "MISSING_TOKEN"


def test_logout_ignores_malformed_token(client):
    res = client.post("/api/auth/logout", json={"refresh_token": "not-a-jwt"})
    assert res.status_code == 200


def test_customer_cannot_reach_admin_routes(client, customer):
    res = client.get("/api/admin/stats", headers=customer["headers"])
    assert res.status_code == 403
    assert res.json()["code"] == "FORBIDDEN"
