from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["SEED_DEMO_DATA"] = "false"

import pytest

from cancelflow.db.base import Base
from cancelflow.db.repositories import Repository
from cancelflow.db.session import SessionLocal, engine


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def make_account(db):
    counter = {"n": 0}

    def _make(monthly_price: int = 2500, status: str = "active") -> int:
        counter["n"] += 1
        repo = Repository(db)
        with repo.atomic():
            user = repo.create_user(f"user{counter['n']}@example.com")
            repo.create_subscription(user_id=user.id, monthly_price=monthly_price, status=status)
            user_id = user.id
        return user_id

    return _make
