from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cancelflow.db.models import Cancellation, FoundJobSurvey, Subscription, User
from cancelflow.errors import (
    CancellationFlowError,
    ConflictError,
    TransactionError,
    already_resolved,
    cancellation_not_found,
)
from cancelflow.types import Resolution, SubscriptionStatus

logger = logging.getLogger(__name__)

SURVEY_FIELDS = (
    "via_migrate_mate",
    "roles_applied",
    "companies_emailed",
    "companies_interviewed",
    "feedback",
    "visa_lawyer",
    "visa_type",
)


class Repository:
    """Row-level access for the cancellation flow.

    Write helpers only flush; callers group them inside ``atomic()`` so that a
    transition either lands completely or not at all.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def atomic(self) -> Iterator[Session]:
        try:
            yield self.session
            self.session.commit()
        except CancellationFlowError:
            self.session.rollback()
            raise
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Constraint violation, transaction rolled back: %s", exc.orig)
            raise ConflictError("the change conflicts with existing data", code="CONSTRAINT_CONFLICT") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Transaction rolled back")
            raise TransactionError("the change could not be saved") from exc
        except Exception:
            self.session.rollback()
            raise

    def create_user(self, email: str) -> User:
        user = User(email=email)
        self.session.add(user)
        self.session.flush()
        return user

    def get_user_by_email(self, email: str) -> User | None:
        return self.session.scalar(select(User).where(User.email == email))

    def create_subscription(
        self, *, user_id: int, monthly_price: int, status: SubscriptionStatus = "active"
    ) -> Subscription:
        subscription = Subscription(user_id=user_id, monthly_price=monthly_price, status=status)
        self.session.add(subscription)
        self.session.flush()
        return subscription

    def get_subscription(self, subscription_id: int) -> Subscription | None:
        return self.session.get(Subscription, subscription_id)

    def get_subscription_for_user(
        self, user_id: int, statuses: tuple[str, ...] | None = None
    ) -> Subscription | None:
        statement = select(Subscription).where(Subscription.user_id == user_id)
        if statuses:
            statement = statement.where(Subscription.status.in_(statuses))
        statement = statement.order_by(Subscription.id.asc()).limit(1)
        return self.session.scalar(statement)

    def set_subscription_status(self, subscription_id: int, status: SubscriptionStatus) -> Subscription:
        subscription = self.session.get(Subscription, subscription_id)
        if not subscription:
            raise ValueError(f"subscription {subscription_id} not found")
        subscription.status = status
        self.session.flush()
        return subscription

    def get_cancellation(self, cancellation_id: int) -> Cancellation | None:
        return self.session.get(Cancellation, cancellation_id)

    def get_unresolved_cancellation(self, user_id: int) -> Cancellation | None:
        statement = select(Cancellation).where(
            and_(Cancellation.user_id == user_id, Cancellation.resolved_at.is_(None))
        )
        return self.session.scalar(statement)

    def get_latest_cancellation(self, user_id: int) -> Cancellation | None:
        statement = (
            select(Cancellation)
            .where(Cancellation.user_id == user_id)
            .order_by(Cancellation.created_at.desc(), Cancellation.id.desc())
            .limit(1)
        )
        return self.session.scalar(statement)

    def get_latest_accepted_offer(self, user_id: int) -> Cancellation | None:
        statement = (
            select(Cancellation)
            .where(
                and_(
                    Cancellation.user_id == user_id,
                    Cancellation.flow_type == "offer_accepted",
                    Cancellation.resolved_at.is_not(None),
                )
            )
            .order_by(Cancellation.resolved_at.desc(), Cancellation.id.desc())
            .limit(1)
        )
        return self.session.scalar(statement)

    def list_cancellations(self) -> list[Cancellation]:
        return list(self.session.scalars(select(Cancellation).order_by(Cancellation.id.asc())).all())

    def count_unresolved_cancellations(self, user_id: int) -> int:
        statement = select(func.count(Cancellation.id)).where(
            and_(Cancellation.user_id == user_id, Cancellation.resolved_at.is_(None))
        )
        return int(self.session.scalar(statement) or 0)

    def create_cancellation(
        self,
        *,
        user_id: int,
        subscription_id: int,
        downsell_variant: str,
        flow_type: str,
        flow_decision: str,
        current_step: str = "start",
    ) -> Cancellation:
        cancellation = Cancellation(
            user_id=user_id,
            subscription_id=subscription_id,
            downsell_variant=downsell_variant,
            flow_type=flow_type,
            flow_decision=flow_decision,
            current_step=current_step,
            details={},
        )
        self.session.add(cancellation)
        self.session.flush()
        return cancellation

    def update_cancellation(self, cancellation_id: int, **values: Any) -> Cancellation:
        cancellation = self.session.get(Cancellation, cancellation_id)
        if not cancellation:
            raise ValueError(f"cancellation {cancellation_id} not found")
        for key, value in values.items():
            setattr(cancellation, key, value)
        self.session.flush()
        return cancellation

    def resolve_cancellation(
        self, cancellation_id: int, *, resolution: Resolution, **values: Any
    ) -> Cancellation:
        """Resolve an open cancellation, or raise if another writer got there first.

        The update is conditional on `resolved_at IS NULL`, so a concurrent resolution
        matches no row and the caller's whole transaction is rolled back.
        """
        statement = (
            update(Cancellation)
            .where(Cancellation.id == cancellation_id, Cancellation.resolved_at.is_(None))
            .values(resolution=resolution, resolved_at=datetime.now(UTC), **values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        if result.rowcount == 0:
            if self.session.get(Cancellation, cancellation_id) is None:
                raise cancellation_not_found(cancellation_id)
            raise already_resolved(cancellation_id)

        cancellation = self.session.get(Cancellation, cancellation_id)
        self.session.refresh(cancellation)
        return cancellation

    def get_survey(self, cancellation_id: int) -> FoundJobSurvey | None:
        return self.session.scalar(
            select(FoundJobSurvey).where(FoundJobSurvey.cancellation_id == cancellation_id)
        )

    def list_surveys(self) -> list[FoundJobSurvey]:
        return list(self.session.scalars(select(FoundJobSurvey).order_by(FoundJobSurvey.id.asc())).all())

    def upsert_survey(self, cancellation_id: int, values: dict[str, Any]) -> FoundJobSurvey:
        existing = self.get_survey(cancellation_id)
        if existing:
            for key, value in values.items():
                if key in SURVEY_FIELDS:
                    setattr(existing, key, value)
            obj = existing
        else:
            obj = FoundJobSurvey(
                cancellation_id=cancellation_id,
                **{key: value for key, value in values.items() if key in SURVEY_FIELDS},
            )
            self.session.add(obj)

        self.session.flush()
        return obj
