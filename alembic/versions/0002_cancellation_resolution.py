"""Cancellation resolution and flow decision

Revision ID: 0002_cancellation_resolution
Revises: 0001_initial_schema
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_cancellation_resolution"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def _has_column(insp: sa.Inspector, table: str, column: str) -> bool:
    if table not in insp.get_table_names():
        return False
    cols = {c["name"] for c in insp.get_columns(table)}
    return column in cols


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # Plain ALTER TABLE keeps the partial unique index intact on SQLite.
    if not _has_column(insp, "cancellations", "flow_decision"):
        op.add_column(
            "cancellations",
            sa.Column("flow_decision", sa.String(length=60), nullable=False, server_default="step1Offer"),
        )
    if not _has_column(insp, "cancellations", "resolution"):
        op.add_column("cancellations", sa.Column("resolution", sa.String(length=40), nullable=True))

    # Rows resolved before this revision were completed cancellations or accepted offers.
    op.execute(
        "UPDATE cancellations SET resolution = CASE WHEN flow_type = 'offer_accepted' "
        "THEN 'offer_accepted' ELSE 'cancelled' END "
        "WHERE resolved_at IS NOT NULL AND resolution IS NULL"
    )


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if _has_column(insp, "cancellations", "resolution"):
        op.drop_column("cancellations", "resolution")
    if _has_column(insp, "cancellations", "flow_decision"):
        op.drop_column("cancellations", "flow_decision")
