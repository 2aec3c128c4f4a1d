"""Shared fixtures: settings env, fake Mongo database, API client."""

import os

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB", "catalog_test")
os.environ.setdefault("MONGO_TLS", "false")

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from fakes import FakeDatabase

from app.api.deps import image_processor_dep, mongo_db, notifier_dep, redis_dep
from app.domain.services.images import LocalImageProcessor
from app.domain.services.notifier import Notifier
from app.main import app

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.events: List[tuple] = []

    async def notify(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def add_product(fake_db):
    """Insert a product document; `age` days shifts created_at back from BASE_TIME + 30d."""
    counter = {"n": 0}

    def _add(title: str = None, *, age: int = None, reviews: List[float] = (), **fields) -> ObjectId:
        counter["n"] += 1
        n = counter["n"]
        created = BASE_TIME + timedelta(days=30 - (age if age is not None else 0), minutes=n)
        doc = {
            "_id": ObjectId(),
            "title": title or f"Product {n}",
            "description": fields.pop("description", "plain item"),
            "price": fields.pop("price", 10.0),
            "stock": fields.pop("stock", 5),
            "categories": fields.pop("categories", ["cat-a"]),
            "seller_id": fields.pop("seller_id", "seller-1"),
            "images": fields.pop("images", []),
            "is_active": fields.pop("is_active", True),
            "deleted_at": fields.pop("deleted_at", None),
            "created_at": fields.pop("created_at", created),
            "updated_at": created,
        }
        doc.update(fields)
        fake_db["products"].docs.append(doc)
        for rating in reviews:
            fake_db["views"].docs.append({"_id": ObjectId(), "product_id": doc["_id"], "rating": rating})
        return doc["_id"]

    return _add


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(fake_db, notifier, tmp_path) -> TestClient:
    """Test client wired to the fake database; lifespan is not run."""
    app.dependency_overrides[mongo_db] = lambda: fake_db
    app.dependency_overrides[redis_dep] = lambda: None
    app.dependency_overrides[notifier_dep] = lambda: notifier
    app.dependency_overrides[image_processor_dep] = lambda: LocalImageProcessor(str(tmp_path), "/media/products")
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seller_headers() -> Dict[str, str]:
    return {"X-Seller-Id": "seller-1"}
