"""Economic calendar events table."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_create_economic_events"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "economic_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("event_name", sa.String(length=255), nullable=False),
        sa.Column("impact", sa.String(length=16), nullable=False, server_default="Low"),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("event_time", sa.DateTime(timezone=True)),
        sa.Column("time_utc", sa.DateTime(timezone=True)),
        sa.Column("unix_timestamp", sa.BigInteger()),
        sa.Column("actual_value", sa.String(length=64)),
        sa.Column("forecast_value", sa.String(length=64)),
        sa.Column("previous_value", sa.String(length=64)),
        sa.Column("actual_result_type", sa.String(length=16)),
        sa.Column("country", sa.String(length=64)),
        sa.Column("flag_code", sa.String(length=8)),
        sa.Column("flag_url", sa.String(length=255)),
        sa.Column("is_all_day", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("description", sa.Text()),
        sa.Column("source_url", sa.String(length=255)),
        sa.Column("data_source", sa.String(length=32), nullable=False, server_default="myfxbook"),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("external_id", name="uq_economic_events_external_id"),
        sa.CheckConstraint("impact IN ('High', 'Medium', 'Low')", name="ck_economic_events_impact"),
    )
    op.create_index("ix_economic_events_name_currency", "economic_events", ["event_name", "currency"])
    op.create_index("ix_economic_events_event_date", "economic_events", ["event_date"])
    op.create_index("ix_economic_events_currency", "economic_events", ["currency"])


def downgrade() -> None:
    op.drop_index("ix_economic_events_currency", table_name="economic_events")
    op.drop_index("ix_economic_events_event_date", table_name="economic_events")
    op.drop_index("ix_economic_events_name_currency", table_name="economic_events")
    op.drop_table("economic_events")
