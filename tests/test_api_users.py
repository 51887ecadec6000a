from txn_categorizer.database import User
from txn_categorizer.security import verify_password


def test_create_user_strips_password(client):
    resp = client.post(
        "/api/users",
        json={"email": " Alice@Example.com ", "name": " Alice ", "password": "secret1"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["email"] == "alice@example.com"
    assert body["name"] == "Alice"
    assert "password" not in body
    assert "password_hash" not in body


def test_password_is_stored_hashed(client, db_session, user):
    row = db_session.get(User, user["id"])
    assert row.password_hash != "secret1"
    assert verify_password("secret1", row.password_hash)
    assert not verify_password("wrong", row.password_hash)


def test_duplicate_email_rejected(client, user):
    resp = client.post("/api/users", json={"email": "DEMO@example.com", "name": "Again", "password": "secret1"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "DUPLICATE_EMAIL"


def test_missing_fields(client):
    resp = client.post("/api/users", json={"email": "a@b.c", "name": "A"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "MISSING_PASSWORD"

    resp = client.post("/api/users", json={"email": "  ", "name": "A", "password": "secret1"})
    assert resp.json()["code"] == "MISSING_EMAIL"


def test_list_and_search_users(client):
    for i in range(12):
        client.post("/api/users", json={"email": f"u{i}@example.com", "name": f"User {i}", "password": "secret1"})

    assert len(client.get("/api/users").json()) == 10
    assert len(client.get("/api/users", params={"limit": 500}).json()) == 12
    found = client.get("/api/users", params={"search": "u11@"}).json()
    assert [u["email"] for u in found] == ["u11@example.com"]


def test_get_missing_user(client):
    resp = client.get("/api/users/999")
    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found", "code": "USER_NOT_FOUND"}


def test_update_user(client, db_session, user):
    resp = client.patch(f"/api/users/{user['id']}", json={"name": "Renamed", "password": "newsecret"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Renamed"
    row = db_session.get(User, user["id"])
    assert verify_password("newsecret", row.password_hash)


def test_update_user_rejects_short_password(client, user):
    resp = client.patch(f"/api/users/{user['id']}", json={"password": "123"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_PASSWORD"


def test_update_user_requires_fields(client, user):
    resp = client.patch(f"/api/users/{user['id']}", json={})
    assert resp.status_code == 400
    assert resp.json()["code"] == "NO_UPDATES"


def test_delete_user_with_transactions_is_blocked(client, user, transaction):
    resp = client.delete(f"/api/users/{user['id']}")
    assert resp.status_code == 400
    assert resp.json()["code"] == "FOREIGN_KEY_CONSTRAINT"
    assert client.get(f"/api/users/{user['id']}").status_code == 200


def test_delete_user(client, user):
    resp = client.delete(f"/api/users/{user['id']}")
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert client.get(f"/api/users/{user['id']}").status_code == 404
