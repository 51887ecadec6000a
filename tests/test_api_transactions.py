import pytest

from txn_categorizer.database import Transaction


@pytest.fixture
def dated_transactions(client, user):
    rows = [
        {"user_id": user["id"], "description": "Morning coffee", "amount": 4.5, "transaction_date": "2024-01-15T08:00:00"},
        {"user_id": user["id"], "description": "Fuel stop", "merchant_name": "Shell", "transaction_date": "2024-03-01T12:00:00"},
    ]
    resp = client.post("/api/transactions/bulk", json={"transactions": rows})
    assert resp.status_code == 201
    return resp.json()["transactions"]


def test_create_transaction(client, user):
    resp = client.post(
        "/api/transactions",
        json={"user_id": user["id"], "description": "  Lunch  ", "amount": "12.5", "merchant_name": " "},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["description"] == "Lunch"
    assert body["amount"] == 12.5
    assert body["merchant_name"] is None
    assert body["transaction_date"]


def test_create_transaction_for_unknown_user(client):
    resp = client.post("/api/transactions", json={"user_id": 999, "description": "Lunch"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "USER_NOT_FOUND"


@pytest.mark.parametrize(
    "payload, code",
    [
        ({"description": "Lunch"}, "MISSING_USER_ID"),
        ({"user_id": 1}, "MISSING_DESCRIPTION"),
        ({"user_id": 1, "description": "   "}, "MISSING_DESCRIPTION"),
        ({"user_id": 1, "description": "Lunch", "amount": "abc"}, "INVALID_AMOUNT"),
        ({"user_id": 1, "description": "Lunch", "transaction_date": "yesterday"}, "INVALID_TRANSACTION_DATE"),
    ],
)
def test_create_transaction_validation(client, user, payload, code):
    resp = client.post("/api/transactions", json=payload)
    assert resp.status_code == 400
    assert resp.json()["code"] == code


def test_invalid_json_body(client):
    resp = client.post("/api/transactions", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_JSON"


def test_bulk_create(dated_transactions):
    assert len(dated_transactions) == 2
    assert dated_transactions[1]["merchant_name"] == "Shell"


def test_bulk_create_is_all_or_nothing(client, db_session, user):
    rows = [
        {"user_id": user["id"], "description": "ok"},
        {"user_id": 999, "description": "orphan"},
    ]
    resp = client.post("/api/transactions/bulk", json={"transactions": rows})
    assert resp.status_code == 400
    assert resp.json()["code"] == "FOREIGN_KEY_CONSTRAINT"
    assert db_session.query(Transaction).count() == 0


def test_bulk_create_validation(client, user):
    resp = client.post("/api/transactions/bulk", json={"transactions": []})
    assert resp.json()["code"] == "EMPTY_TRANSACTIONS_ARRAY"
    resp = client.post("/api/transactions/bulk", json={})
    assert resp.json()["code"] == "MISSING_TRANSACTIONS"
    resp = client.post(
        "/api/transactions/bulk",
        json={"transactions": [{"user_id": user["id"], "description": "ok"}, {"description": "no user"}]},
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "MISSING_USER_ID"
    assert resp.json()["error"].startswith("transactions.1.user_id")


def test_bulk_create_reports_row_index_for_custom_errors(client, db_session, user):
    rows = [
        {"user_id": user["id"], "description": "ok"},
        {"user_id": user["id"], "description": "ok too"},
        {"user_id": user["id"], "description": "   "},
    ]
    resp = client.post("/api/transactions/bulk", json={"transactions": rows})
    assert resp.status_code == 400
    assert resp.json() == {
        "error": "transactions.2.description: description is required and must be a non-empty string",
        "code": "MISSING_DESCRIPTION",
    }
    assert db_session.query(Transaction).count() == 0


def test_single_create_keeps_plain_custom_message(client, user):
    resp = client.post("/api/transactions", json={"user_id": user["id"], "description": "  "})
    assert resp.json()["error"] == "description is required and must be a non-empty string"


def test_list_filters(client, user, dated_transactions):
    by_text = client.get("/api/transactions", params={"search": "COFFEE"}).json()
    assert [t["description"] for t in by_text] == ["Morning coffee"]

    by_merchant = client.get("/api/transactions", params={"search": "shell"}).json()
    assert [t["description"] for t in by_merchant] == ["Fuel stop"]

    after = client.get("/api/transactions", params={"start_date": "2024-02-01T00:00:00"}).json()
    assert [t["description"] for t in after] == ["Fuel stop"]

    before = client.get("/api/transactions", params={"end_date": "2024-02-01T00:00:00"}).json()
    assert [t["description"] for t in before] == ["Morning coffee"]

    assert client.get("/api/transactions", params={"user_id": user["id"] + 1}).json() == []


def test_update_transaction(client, dated_transactions):
    tx_id = dated_transactions[0]["id"]
    resp = client.patch(f"/api/transactions/{tx_id}", json={"amount": None, "merchant_name": "Blue Bottle"})
    assert resp.status_code == 200
    assert resp.json()["amount"] is None
    assert resp.json()["merchant_name"] == "Blue Bottle"


def test_update_transaction_errors(client, dated_transactions):
    tx_id = dated_transactions[0]["id"]
    assert client.patch(f"/api/transactions/{tx_id}", json={"description": ""}).json()["code"] == "INVALID_DESCRIPTION"
    assert client.patch(f"/api/transactions/{tx_id}", json={"user_id": None}).json()["code"] == "INVALID_USER_ID"
    assert client.patch(f"/api/transactions/{tx_id}", json={"user_id": 999}).json()["code"] == "FOREIGN_KEY_CONSTRAINT"
    assert client.patch("/api/transactions/999", json={"description": "x"}).status_code == 404


def test_delete_transaction_cascades(client, user, transaction):
    pred = client.post(f"/api/transactions/{transaction['id']}/predict").json()
    fb = client.post(
        "/api/feedback",
        json={"transaction_id": transaction["id"], "corrected_category_id": 1, "user_id": user["id"]},
    ).json()

    resp = client.delete(f"/api/transactions/{transaction['id']}")
    assert resp.status_code == 200
    assert client.get(f"/api/predictions/{pred['id']}").status_code == 404
    assert client.get(f"/api/feedback/{fb['id']}").status_code == 404


def test_predict_stored_transaction(client, transaction):
    resp = client.post(f"/api/transactions/{transaction['id']}/predict")
    assert resp.status_code == 201
    body = resp.json()
    assert body["transaction_id"] == transaction["id"]
    assert body["category_id"] == 2
    # merchant "Starbucks" matches the first keyword, boosted and capped
    assert body["confidence"] == pytest.approx(0.99)
    assert body["influential_tokens"] == ["starbucks", "coffee"]
    assert body["model_version"] == "v1.0"

    listed = client.get("/api/predictions", params={"transaction_id": transaction["id"]}).json()
    assert [p["id"] for p in listed] == [body["id"]]


def test_predict_missing_transaction(client):
    assert client.post("/api/transactions/999/predict").status_code == 404
