import os

# Must be set before the package is imported: the engine is built at import time.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

from txn_categorizer.classifier import TransactionClassifier
from txn_categorizer.database import Base, SessionLocal, engine
from txn_categorizer.main import app, get_classifier
from txn_categorizer.seed import seed_categories


class FixedRandom:
    """Stand-in random source returning a constant."""

    def __init__(self, value=0.5):
        self.value = value

    def random(self):
        return self.value


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_categories(session)
    finally:
        session.close()
    yield


@pytest.fixture
def db_session():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def classifier():
    return TransactionClassifier(rng=FixedRandom(0.5))


@pytest.fixture
def client(classifier):
    app.dependency_overrides[get_classifier] = lambda: classifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user(client):
    resp = client.post("/api/users", json={"email": "demo@example.com", "name": "Demo", "password": "secret1"})
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
def transaction(client, user):
    resp = client.post(
        "/api/transactions",
        json={
            "user_id": user["id"],
            "description": "STARBUCKS COFFEE #2390",
            "amount": 5.45,
            "merchant_name": "Starbucks",
        },
    )
    assert resp.status_code == 201
    return resp.json()
