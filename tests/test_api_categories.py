from txn_categorizer.database import Category


def test_default_categories_are_seeded(client):
    resp = client.get("/api/categories")
    assert resp.status_code == 200
    names = [c["name"] for c in resp.json()]
    assert names[:2] == ["Groceries", "Dining"]
    assert names[-1] == "Other"
    assert all(c["user_id"] is None for c in resp.json())


def test_create_category(client):
    resp = client.post("/api/categories", json={"name": " Travel ", "color_hex": "#abc", "icon": "plane"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["name"] == "Travel"
    assert body["color_hex"] == "#abc"
    assert body["id"] == 10


def test_duplicate_category_name(client):
    resp = client.post("/api/categories", json={"name": "Dining", "color_hex": "#FF5722"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "DUPLICATE_NAME"


def test_category_validation_codes(client):
    assert client.post("/api/categories", json={"name": "X"}).json()["code"] == "MISSING_COLOR_HEX"
    assert client.post("/api/categories", json={"color_hex": "#fff"}).json()["code"] == "MISSING_NAME"
    resp = client.post("/api/categories", json={"name": "X", "color_hex": "red"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_COLOR_HEX"
    # eight-digit colours are only accepted on update
    assert client.post("/api/categories", json={"name": "X", "color_hex": "#AABBCCDD"}).status_code == 400


def test_category_for_unknown_user(client):
    resp = client.post("/api/categories", json={"name": "Mine", "color_hex": "#fff", "user_id": 999})
    assert resp.status_code == 400
    assert resp.json()["code"] == "FOREIGN_KEY_CONSTRAINT"


def test_limit_is_clamped(client, db_session):
    db_session.add_all(Category(name=f"Custom {i}", color_hex="#000") for i in range(95))
    db_session.commit()

    assert len(client.get("/api/categories").json()) == 100
    assert len(client.get("/api/categories", params={"limit": 500}).json()) == 100
    assert len(client.get("/api/categories", params={"limit": 5}).json()) == 5
    assert client.get("/api/categories", params={"limit": 0}).json() == []
    assert client.get("/api/categories", params={"limit": -3}).json() == []
    page = client.get("/api/categories", params={"limit": 10, "offset": 100}).json()
    assert [c["name"] for c in page] == ["Custom 91", "Custom 92", "Custom 93", "Custom 94"]


def test_user_scoped_listing(client, user):
    client.post("/api/categories", json={"name": "Mine", "color_hex": "#123456", "user_id": user["id"]})
    own = client.get("/api/categories", params={"user_id": user["id"]}).json()
    assert [c["name"] for c in own] == ["Mine"]
    with_defaults = client.get("/api/categories", params={"user_id": user["id"], "include_defaults": True}).json()
    assert len(with_defaults) == 10


def test_invalid_ids(client):
    for path in ("/api/categories/abc", "/api/categories/0", "/api/categories/-4"):
        resp = client.get(path)
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_ID"


def test_get_missing_category(client):
    resp = client.get("/api/categories/999")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Category not found", "code": "NOT_FOUND"}


def test_update_category(client):
    resp = client.patch("/api/categories/1", json={"color_hex": "#AABBCCDD", "description": "Food at home"})
    assert resp.status_code == 200
    assert resp.json()["color_hex"] == "#AABBCCDD"
    assert resp.json()["description"] == "Food at home"


def test_update_category_errors(client):
    assert client.patch("/api/categories/1", json={}).json()["code"] == "NO_UPDATES"
    assert client.patch("/api/categories/999", json={"name": "X"}).status_code == 404
    assert client.patch("/api/categories/1", json={"name": "  "}).json()["code"] == "INVALID_NAME"
    assert client.patch("/api/categories/1", json={"name": "Dining"}).json()["code"] == "DUPLICATE_NAME"


def test_delete_referenced_category_is_blocked(client, transaction):
    pred = client.post(
        "/api/predictions",
        json={"transaction_id": transaction["id"], "category_id": 2, "confidence": 0.9},
    )
    assert pred.status_code == 201

    resp = client.delete("/api/categories/2")
    assert resp.status_code == 400
    assert resp.json()["code"] == "FOREIGN_KEY_CONSTRAINT"
    assert client.get("/api/categories/2").status_code == 200


def test_delete_category(client):
    created = client.post("/api/categories", json={"name": "Temp", "color_hex": "#fff"}).json()
    resp = client.delete(f"/api/categories/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Category deleted successfully"}
    assert client.get(f"/api/categories/{created['id']}").status_code == 404
