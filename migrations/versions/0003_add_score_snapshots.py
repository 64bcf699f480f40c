"""add mindshare_snapshots and signal_score_results

Revision ID: 0003
Revises: 0002
Create Date: 2026-03-03

Both tables are upserted by natural key on every run.
mindshare_bps rows of one (time_window, as_of_date) sum to 10000.
"""
from alembic import op
import sqlalchemy as sa

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "mindshare_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("tracked_entities.id"), nullable=False),
        sa.Column("time_window", sa.String(8), nullable=False),
        sa.Column("as_of_date", sa.Date(), nullable=False),
        sa.Column("attention_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("mindshare_bps", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_mindshare_snapshots_project_id", "mindshare_snapshots", ["project_id"])
    op.create_index("ix_mindshare_snapshots_time_window", "mindshare_snapshots", ["time_window"])
    op.create_index("ix_mindshare_snapshots_as_of_date", "mindshare_snapshots", ["as_of_date"])
    op.create_unique_constraint(
        "uq_mindshare_project_window_date",
        "mindshare_snapshots",
        ["project_id", "time_window", "as_of_date"],
    )

    op.create_table(
        "signal_score_results",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("creator_key", sa.String(64), nullable=False),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("tracked_entities.id"), nullable=False),
        sa.Column("time_window", sa.String(8), nullable=False),
        sa.Column("as_of_date", sa.Date(), nullable=False),
        sa.Column("raw_points", sa.Float(), nullable=False, server_default="0"),
        sa.Column("signal_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("trust_band", sa.String(1), nullable=False, server_default="D"),
        sa.Column("contribution_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_signal_score_results_creator_key", "signal_score_results", ["creator_key"])
    op.create_index("ix_signal_score_results_project_id", "signal_score_results", ["project_id"])
    op.create_index("ix_signal_score_results_as_of_date", "signal_score_results", ["as_of_date"])
    op.create_unique_constraint(
        "uq_signal_creator_project_window",
        "signal_score_results",
        ["creator_key", "project_id", "time_window"],
    )


def downgrade() -> None:
    op.drop_constraint("uq_signal_creator_project_window", "signal_score_results", type_="unique")
    op.drop_index("ix_signal_score_results_as_of_date", table_name="signal_score_results")
    op.drop_index("ix_signal_score_results_project_id", table_name="signal_score_results")
    op.drop_index("ix_signal_score_results_creator_key", table_name="signal_score_results")
    op.drop_table("signal_score_results")
    op.drop_constraint("uq_mindshare_project_window_date", "mindshare_snapshots", type_="unique")
    op.drop_index("ix_mindshare_snapshots_as_of_date", table_name="mindshare_snapshots")
    op.drop_index("ix_mindshare_snapshots_time_window", table_name="mindshare_snapshots")
    op.drop_index("ix_mindshare_snapshots_project_id", table_name="mindshare_snapshots")
    op.drop_table("mindshare_snapshots")
