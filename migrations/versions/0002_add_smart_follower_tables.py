"""add smart_account_scores and smart_followers_snapshots

Revision ID: 0002
Revises: 0001
Create Date: 2026-03-02

One row per account per run date, one snapshot per entity per day.
Earlier dates are kept as history; downgrade drops both tables cleanly.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "smart_account_scores",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("handle", sa.String(64), nullable=False),
        sa.Column("as_of_date", sa.Date(), nullable=False),
        sa.Column("importance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("bot_risk", sa.Float(), nullable=False, server_default="0"),
        sa.Column("smart_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_smart", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("account_age_days", sa.Integer(), nullable=True),
        sa.Column("converged", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_smart_account_scores_handle", "smart_account_scores", ["handle"])
    op.create_index("ix_smart_account_scores_as_of_date", "smart_account_scores", ["as_of_date"])
    op.create_unique_constraint(
        "uq_smart_account_handle_date", "smart_account_scores", ["handle", "as_of_date"]
    )

    op.create_table(
        "smart_followers_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity_id", sa.Integer(), sa.ForeignKey("tracked_entities.id"), nullable=False),
        sa.Column("as_of_date", sa.Date(), nullable=False),
        sa.Column("smart_followers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_followers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("smart_followers_pct", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_estimate", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_smart_followers_snapshots_entity_id", "smart_followers_snapshots", ["entity_id"])
    op.create_index("ix_smart_followers_snapshots_as_of_date", "smart_followers_snapshots", ["as_of_date"])
    op.create_unique_constraint(
        "uq_smart_followers_entity_date", "smart_followers_snapshots", ["entity_id", "as_of_date"]
    )


def downgrade() -> None:
    op.drop_constraint("uq_smart_followers_entity_date", "smart_followers_snapshots", type_="unique")
    op.drop_index("ix_smart_followers_snapshots_as_of_date", table_name="smart_followers_snapshots")
    op.drop_index("ix_smart_followers_snapshots_entity_id", table_name="smart_followers_snapshots")
    op.drop_table("smart_followers_snapshots")
    op.drop_constraint("uq_smart_account_handle_date", "smart_account_scores", type_="unique")
    op.drop_index("ix_smart_account_scores_as_of_date", table_name="smart_account_scores")
    op.drop_index("ix_smart_account_scores_handle", table_name="smart_account_scores")
    op.drop_table("smart_account_scores")
