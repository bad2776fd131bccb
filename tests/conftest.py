from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import get_db
from database import create_document, ensure_indexes
from main import app
from schemas import CurrentUser, Drone


@pytest.fixture
def db():
    database = mongomock.MongoClient().storefront
    ensure_indexes(database)
    return database


@pytest.fixture
def user():
    return CurrentUser(id="user-1", email="pilot@example.com")


@pytest.fixture
def drones(db):
    """Three catalog drones keyed by a short name."""
    rows = {
        "sentinel": Drone(name="Sentinel X4", price=4899.0, produced=True, quantity=14, category="survey"),
        "relay": Drone(name="Relay R2", price=2199.0, produced=True, quantity=30, category="survey"),
        "atlas": Drone(name="Atlas Heavy", price=18500.0, in_stock=False, produced=False, quote=True,
                       category="lift"),
    }
    return {key: create_document("droneslist", drone, using=db) for key, drone in rows.items()}


@pytest.fixture
def reviews(db):
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for n in range(12):
        db["reviews"].insert_one({
            "name": f"Reviewer {n}",
            "title": f"Review {n}",
            "body": "Flew great.",
            "rating": 5,
            "submitted_at": start + timedelta(days=n),
        })


@pytest.fixture
def api(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session_token(db, user):
    db["session"].insert_one({"token": "tok-123", "user_id": user.id, "email": user.email})
    return "tok-123"
