from __future__ import annotations

from cancelflow.config import get_settings
from cancelflow.db.base import Base
from cancelflow.db.session import SessionLocal, engine
from cancelflow.db import models  # noqa: F401
from cancelflow.db.seed import seed_demo_accounts


def ensure_data_directories() -> None:
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def init_database(seed: bool | None = None) -> dict[str, int]:
    settings = get_settings()
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)

    inserted = 0
    if seed if seed is not None else settings.seed_demo_data:
        with SessionLocal() as session:
            inserted = seed_demo_accounts(session)
    return {"seeded_accounts": inserted}
