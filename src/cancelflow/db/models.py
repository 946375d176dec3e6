from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from cancelflow.db.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class Subscription(TimestampMixin, Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'pending_cancellation', 'cancelled')",
            name="ck_subscriptions_status",
        ),
        CheckConstraint("monthly_price >= 0", name="ck_subscriptions_monthly_price"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    monthly_price: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(40), default="active", nullable=False)


class Cancellation(TimestampMixin, Base):
    __tablename__ = "cancellations"
    __table_args__ = (
        CheckConstraint("downsell_variant IN ('A', 'B')", name="ck_cancellations_variant"),
        CheckConstraint(
            "flow_type IN ('standard', 'found_job', 'offer_accepted')",
            name="ck_cancellations_flow_type",
        ),
        Index(
            "uq_cancellations_user_unresolved",
            "user_id",
            unique=True,
            sqlite_where=text("resolved_at IS NULL"),
            postgresql_where=text("resolved_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    subscription_id: Mapped[int] = mapped_column(
        ForeignKey("subscriptions.id", ondelete="CASCADE"), index=True
    )
    downsell_variant: Mapped[str] = mapped_column(String(1), nullable=False)
    flow_type: Mapped[str] = mapped_column(String(40), default="standard", nullable=False)
    flow_decision: Mapped[str] = mapped_column(String(60), default="step1Offer", nullable=False)
    current_step: Mapped[str] = mapped_column(String(60), default="start", nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    accepted_downsell: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    resolution: Mapped[str | None] = mapped_column(String(40), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class FoundJobSurvey(TimestampMixin, Base):
    __tablename__ = "found_job_surveys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cancellation_id: Mapped[int] = mapped_column(
        ForeignKey("cancellations.id", ondelete="CASCADE"), unique=True
    )
    via_migrate_mate: Mapped[str | None] = mapped_column(String(3), nullable=True)
    roles_applied: Mapped[str | None] = mapped_column(String(10), nullable=True)
    companies_emailed: Mapped[str | None] = mapped_column(String(10), nullable=True)
    companies_interviewed: Mapped[str | None] = mapped_column(String(10), nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    visa_lawyer: Mapped[str | None] = mapped_column(String(3), nullable=True)
    visa_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
