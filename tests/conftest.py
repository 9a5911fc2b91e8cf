from datetime import datetime, timedelta, timezone

import httpx
import pytest

from main import RatingsApp
from schemas import Session, SessionUser
from stub_backend import StubDB, create_app

PASSWORD = "Secret@123"


def make_session(role: str = "user", user_id: int = 1) -> Session:
    return Session(
        token="test-token",
        user=SessionUser(id=user_id, name="Test Person", email=f"{role}@example.com", role=role),
    )


@pytest.fixture
def stub_db() -> StubDB:
    db = StubDB()
    db.add_user("Admin Person", "admin@example.com", PASSWORD, role="admin")
    owner = db.add_user("Owner Person", "owner@example.com", PASSWORD, role="owner")
    alice = db.add_user("Alice Rater", "alice@example.com", PASSWORD, role="user")
    bob = db.add_user("Bob Rater", "bob@example.com", PASSWORD, role="user")
    db.add_user("Carol Plain", "carol@example.com", PASSWORD, role="user")
    store = db.add_store("Corner Books", "books@example.com", owner["id"], address="1 Main St")
    now = datetime.now(timezone.utc)
    db.rate(alice["id"], store["id"], 2, created_at=now - timedelta(days=2))
    db.rate(bob["id"], store["id"], 4, created_at=now - timedelta(days=1))
    return db


@pytest.fixture
def stub_app(stub_db):
    transport = httpx.ASGITransport(app=create_app(stub_db))
    return RatingsApp(base_url="http://stub", transport=transport)
