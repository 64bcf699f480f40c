"""tracked entities, profiles and raw activity

Revision ID: 0001
Revises:
Create Date: 2026-03-02 00:00:00.000000

Input tables owned by the ingestion/onboarding side. The scoring pipeline
only reads them (except tracked_profiles, which it enrolls into).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    entity_kind_enum = sa.Enum("project", "creator", name="entity_kind_enum")
    entity_kind_enum.create(op.get_bind(), checkfirst=True)

    # --- tracked_entities ---
    op.create_table(
        "tracked_entities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.Enum("project", "creator", name="entity_kind_enum", create_type=False), nullable=False),
        sa.Column("handle", sa.String(64), nullable=False),
        sa.Column("display_name", sa.String(256), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("keywords", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("kind", "handle", name="uq_tracked_entity_kind_handle"),
    )
    op.create_index("ix_tracked_entities_id", "tracked_entities", ["id"])
    op.create_index("ix_tracked_entities_kind", "tracked_entities", ["kind"])
    op.create_index("ix_tracked_entities_handle", "tracked_entities", ["handle"])

    # --- tracked_profiles ---
    op.create_table(
        "tracked_profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("handle", sa.String(64), nullable=False),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("account_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tracked_profiles_id", "tracked_profiles", ["id"])
    op.create_index("ix_tracked_profiles_handle", "tracked_profiles", ["handle"], unique=True)

    # --- contribution_events ---
    op.create_table(
        "contribution_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("tracked_entities.id"), nullable=False),
        sa.Column("author_handle", sa.String(64), nullable=True),
        sa.Column("author_key", sa.String(64), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("content_type", sa.String(32), nullable=True),
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("replies", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("retweets", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sentiment", sa.String(16), nullable=True),
        sa.Column("sentiment_score", sa.Float(), nullable=True),
        sa.Column("is_official", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("text", sa.Text(), nullable=True),
        sa.Column("ingested_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_id", name="uq_contribution_external_id"),
    )
    op.create_index("ix_contribution_events_id", "contribution_events", ["id"])
    op.create_index("ix_contribution_events_project_id", "contribution_events", ["project_id"])
    op.create_index("ix_contribution_events_author_key", "contribution_events", ["author_key"])
    op.create_index("ix_contribution_events_created_at", "contribution_events", ["created_at"])

    # --- follow_edges ---
    op.create_table(
        "follow_edges",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("follower_key", sa.String(64), nullable=False),
        sa.Column("followee_key", sa.String(64), nullable=False),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("follower_key", "followee_key", name="uq_follow_edge_pair"),
    )
    op.create_index("ix_follow_edges_id", "follow_edges", ["id"])
    op.create_index("ix_follow_edges_follower_key", "follow_edges", ["follower_key"])
    op.create_index("ix_follow_edges_followee_key", "follow_edges", ["followee_key"])

    # --- community_heat_daily ---
    op.create_table(
        "community_heat_daily",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("tracked_entities.id"), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("heat", sa.Float(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "day", name="uq_heat_project_day"),
    )
    op.create_index("ix_community_heat_daily_id", "community_heat_daily", ["id"])
    op.create_index("ix_community_heat_daily_project_id", "community_heat_daily", ["project_id"])
    op.create_index("ix_community_heat_daily_day", "community_heat_daily", ["day"])


def downgrade() -> None:
    op.drop_table("community_heat_daily")
    op.drop_table("follow_edges")
    op.drop_table("contribution_events")
    op.drop_table("tracked_profiles")
    op.drop_table("tracked_entities")
    sa.Enum(name="entity_kind_enum").drop(op.get_bind(), checkfirst=True)
