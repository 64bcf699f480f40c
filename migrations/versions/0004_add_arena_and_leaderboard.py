"""add arena ledger and leaderboard_entries

Revision ID: 0004
Revises: 0003
Create Date: 2026-03-04

arenas / arena_participants / point_adjustments / follow_verifications are
the explicit-join ledger written by the application. leaderboard_entries is
replaced per project on every merge run.
"""
from alembic import op
import sqlalchemy as sa

revision = "0004"
down_revision = "0003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    arena_status_enum = sa.Enum("draft", "active", "ended", name="arena_status_enum")
    arena_status_enum.create(op.get_bind(), checkfirst=True)
    arena_ring_enum = sa.Enum("core", "momentum", "discovery", name="arena_ring_enum")
    arena_ring_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "arenas",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("tracked_entities.id"), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column(
            "status",
            sa.Enum("draft", "active", "ended", name="arena_status_enum", create_type=False),
            nullable=False,
        ),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_arenas_project_id", "arenas", ["project_id"])

    op.create_table(
        "arena_participants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("arena_id", sa.Integer(), sa.ForeignKey("arenas.id"), nullable=False),
        sa.Column("handle", sa.String(64), nullable=False),
        sa.Column("arc_points", sa.Float(), nullable=False, server_default="0"),
        sa.Column(
            "ring",
            sa.Enum("core", "momentum", "discovery", name="arena_ring_enum", create_type=False),
            nullable=True,
        ),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("arena_id", "handle", name="uq_arena_participant_handle"),
    )
    op.create_index("ix_arena_participants_arena_id", "arena_participants", ["arena_id"])
    op.create_index("ix_arena_participants_handle", "arena_participants", ["handle"])

    op.create_table(
        "point_adjustments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("arena_id", sa.Integer(), sa.ForeignKey("arenas.id"), nullable=False),
        sa.Column("handle", sa.String(64), nullable=False),
        sa.Column("points_delta", sa.Float(), nullable=False, server_default="0"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_point_adjustments_arena_id", "point_adjustments", ["arena_id"])
    op.create_index("ix_point_adjustments_handle", "point_adjustments", ["handle"])

    op.create_table(
        "follow_verifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("tracked_entities.id"), nullable=False),
        sa.Column("handle", sa.String(64), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("project_id", "handle", name="uq_follow_verification_project_handle"),
    )
    op.create_index("ix_follow_verifications_project_id", "follow_verifications", ["project_id"])
    op.create_index("ix_follow_verifications_handle", "follow_verifications", ["handle"])

    op.create_table(
        "leaderboard_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("tracked_entities.id"), nullable=False),
        sa.Column("identity", sa.String(64), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("base_points", sa.Float(), nullable=False, server_default="0"),
        sa.Column("multiplier", sa.Float(), nullable=False, server_default="1"),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_joined", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_auto_tracked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("follow_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ring", sa.String(16), nullable=True),
        sa.Column("smart_followers_count", sa.Integer(), nullable=True),
        sa.Column("smart_followers_is_estimate", sa.Boolean(), nullable=True),
        sa.Column("as_of_date", sa.Date(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_leaderboard_entries_project_id", "leaderboard_entries", ["project_id"])
    op.create_index("ix_leaderboard_entries_identity", "leaderboard_entries", ["identity"])
    op.create_unique_constraint(
        "uq_leaderboard_project_identity", "leaderboard_entries", ["project_id", "identity"]
    )


def downgrade() -> None:
    op.drop_constraint("uq_leaderboard_project_identity", "leaderboard_entries", type_="unique")
    op.drop_table("leaderboard_entries")
    op.drop_table("follow_verifications")
    op.drop_table("point_adjustments")
    op.drop_table("arena_participants")
    op.drop_table("arenas")
    sa.Enum(name="arena_ring_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="arena_status_enum").drop(op.get_bind(), checkfirst=True)
