"""add signal score and smart follower pct to leaderboard_entries

Revision ID: 0005
Revises: 0004
Create Date: 2026-03-05

Copied from signal_score_results (7d window) and smart_followers_snapshots
when a leaderboard is rebuilt; NULL when the creator has no such row.
"""
from alembic import op
import sqlalchemy as sa

revision = "0005"
down_revision = "0004"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("leaderboard_entries", sa.Column("signal_score", sa.Float(), nullable=True))
    op.add_column("leaderboard_entries", sa.Column("trust_band", sa.String(1), nullable=True))
    op.add_column("leaderboard_entries", sa.Column("smart_followers_pct", sa.Float(), nullable=True))


def downgrade() -> None:
    op.drop_column("leaderboard_entries", "smart_followers_pct")
    op.drop_column("leaderboard_entries", "trust_band")
    op.drop_column("leaderboard_entries", "signal_score")
