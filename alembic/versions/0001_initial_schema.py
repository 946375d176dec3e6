"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("monthly_price", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=40), nullable=False, server_default="active"),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('active', 'pending_cancellation', 'cancelled')",
            name="ck_subscriptions_status",
        ),
        sa.CheckConstraint("monthly_price >= 0", name="ck_subscriptions_monthly_price"),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])

    op.create_table(
        "cancellations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "subscription_id",
            sa.Integer(),
            sa.ForeignKey("subscriptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("downsell_variant", sa.String(length=1), nullable=False),
        sa.Column("flow_type", sa.String(length=40), nullable=False, server_default="standard"),
        sa.Column("current_step", sa.String(length=60), nullable=False, server_default="start"),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column("accepted_downsell", sa.Boolean(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("downsell_variant IN ('A', 'B')", name="ck_cancellations_variant"),
        sa.CheckConstraint(
            "flow_type IN ('standard', 'found_job', 'offer_accepted')",
            name="ck_cancellations_flow_type",
        ),
    )
    op.create_index("ix_cancellations_user_id", "cancellations", ["user_id"])
    op.create_index("ix_cancellations_subscription_id", "cancellations", ["subscription_id"])
    op.create_index(
        "uq_cancellations_user_unresolved",
        "cancellations",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("resolved_at IS NULL"),
        postgresql_where=sa.text("resolved_at IS NULL"),
    )

    op.create_table(
        "found_job_surveys",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "cancellation_id",
            sa.Integer(),
            sa.ForeignKey("cancellations.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("via_migrate_mate", sa.String(length=3), nullable=True),
        sa.Column("roles_applied", sa.String(length=10), nullable=True),
        sa.Column("companies_emailed", sa.String(length=10), nullable=True),
        sa.Column("companies_interviewed", sa.String(length=10), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("visa_lawyer", sa.String(length=3), nullable=True),
        sa.Column("visa_type", sa.String(length=100), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("found_job_surveys")
    op.drop_index("uq_cancellations_user_unresolved", table_name="cancellations")
    op.drop_index("ix_cancellations_subscription_id", table_name="cancellations")
    op.drop_index("ix_cancellations_user_id", table_name="cancellations")
    op.drop_table("cancellations")
    op.drop_index("ix_subscriptions_user_id", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_table("users")
