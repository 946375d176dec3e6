from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from cancelflow.core.service import CancellationService
from cancelflow.db.session import get_db_session


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_service(db: Session = Depends(get_db)) -> CancellationService:
    return CancellationService(db)
