"""
Tests for the Leaderboard Merge Engine.

Merge rules:
  - identity in both sources → one row, points summed, both flags set
  - boost applies only to joined + follow-verified identities
  - no boost configured → multiplier 1.0
  - score = floor(base × multiplier), ranks by score desc then identity
  - joined-only identity with zero points is left out

DB run:
  - only projects with an active arena get a leaderboard
  - mentions outside the arena period and official posts are ignored
  - manual adjustments are added to joined points
  - re-running replaces the project's rows
  - 7d signal score, trust band and smart-follower numbers copied per row
  - an ended arena keeps its last standings
  - one failing project does not stop the others
"""
from __future__ import annotations

from datetime import date, timedelta

import pytest

from signalboard.core.config import EngagementWeights, LeaderboardConfig, ScoringConfig
from signalboard.core.errors import EntityNotFoundError
from signalboard.core.windows import as_of_instant
from signalboard.models.arena import (
    Arena,
    ArenaParticipant,
    ArenaStatus,
    FollowVerification,
    PointAdjustment,
    Ring,
)
from signalboard.models.contribution import ContributionEvent
from signalboard.models.entity import EntityKind, TrackedEntity
from signalboard.models.leaderboard import LeaderboardEntry
from signalboard.models.signal_score import SignalScoreResult
from signalboard.models.smart_account import SmartFollowersSnapshot
from signalboard.services import leaderboard as leaderboard_service
from signalboard.services.leaderboard import (
    AutoRecord,
    JoinedRecord,
    auto_points,
    get_leaderboard,
    merge_leaderboard,
    run_leaderboards,
)

AS_OF = date(2094, 1, 25)
NOW = as_of_instant(AS_OF)
BOOSTED = ScoringConfig(leaderboard=LeaderboardConfig(follow_boost=1.5))


# ---------------------------------------------------------------------------
# Pure merge
# ---------------------------------------------------------------------------

class TestAutoPoints:
    def test_weights_and_identity_merge(self):
        records = auto_points(
            [("@Alice", 2, 1, 1), ("alice", 3, 0, 0), ("", 50, 0, 0), (None, 9, 9, 9)],
            EngagementWeights(),
        )
        assert set(records) == {"alice"}
        assert records["alice"].points == 10.0
        assert records["alice"].mentions == 2


class TestMerge:
    def test_both_sources_single_row(self):
        rows = merge_leaderboard(
            {"alice": AutoRecord(points=10, mentions=2)},
            {"alice": JoinedRecord(points=5, ring="core")},
            {"alice"},
            1.5,
        )
        assert len(rows) == 1
        row = rows[0]
        assert row.is_joined and row.is_auto_tracked and row.follow_verified
        assert row.base_points == 15
        assert row.multiplier == 1.5
        assert row.score == 22
        assert row.ring == "core"
        assert row.rank == 1

    def test_unverified_gets_no_boost(self):
        rows = merge_leaderboard({}, {"bob": JoinedRecord(points=10)}, set(), 1.5)
        assert rows[0].multiplier == 1.0
        assert rows[0].score == 10

    def test_auto_only_never_boosted(self):
        rows = merge_leaderboard({"carol": AutoRecord(points=10, mentions=1)}, {}, {"carol"}, 1.5)
        assert rows[0].is_joined is False
        assert rows[0].multiplier == 1.0

    def test_missing_boost_is_neutral(self):
        rows = merge_leaderboard({}, {"bob": JoinedRecord(points=10)}, {"bob"}, None)
        assert rows[0].multiplier == 1.0

    def test_score_is_floored(self):
        rows = merge_leaderboard({}, {"bob": JoinedRecord(points=3.3)}, {"bob"}, 1.5)
        assert rows[0].score == 4

    def test_ties_ranked_by_identity(self):
        rows = merge_leaderboard(
            {"zed": AutoRecord(5, 1), "amy": AutoRecord(5, 1), "top": AutoRecord(9, 1)},
            {},
            set(),
            None,
        )
        assert [(r.identity, r.rank) for r in rows] == [("top", 1), ("amy", 2), ("zed", 3)]

    def test_zero_point_joiner_excluded(self):
        rows = merge_leaderboard({}, {"idle": JoinedRecord(points=0)}, {"idle"}, 1.5)
        assert rows == []

    def test_negative_adjustments_floor_at_zero(self):
        rows = merge_leaderboard({}, {"penalized": JoinedRecord(points=-12)}, set(), None)
        assert rows[0].base_points == 0
        assert rows[0].score == 0


# ---------------------------------------------------------------------------
# DB-backed run
# ---------------------------------------------------------------------------

def _entity(db, kind, handle) -> TrackedEntity:
    e = TrackedEntity(kind=kind, handle=handle)
    db.add(e)
    db.commit()
    return e


def _mention(db, project, external_id, author, hours_ago, likes=0, replies=0, retweets=0, official=False):
    db.add(ContributionEvent(
        external_id=external_id,
        project_id=project.id,
        author_handle=author,
        author_key=author.lower(),
        created_at=NOW - timedelta(hours=hours_ago),
        likes=likes,
        replies=replies,
        retweets=retweets,
        is_official=official,
    ))


@pytest.fixture()
def arena_project(db):
    project = _entity(db, EntityKind.project, "arcproj")
    arena = Arena(
        project_id=project.id,
        name="Season 1",
        status=ArenaStatus.active,
        starts_at=NOW - timedelta(days=10),
    )
    db.add(arena)
    db.commit()

    _mention(db, project, "m1", "alice", 5, likes=2, replies=1, retweets=1)
    _mention(db, project, "m2", "alice", 30, likes=3)
    _mention(db, project, "m3", "bob", 6, likes=1)
    _mention(db, project, "m4", "dave", 24 * 20, likes=100)
    _mention(db, project, "m5", "arcproj", 2, likes=500, official=True)

    db.add(ArenaParticipant(arena_id=arena.id, handle="Bob", arc_points=20, ring=Ring.core))
    db.add(ArenaParticipant(arena_id=arena.id, handle="carol", arc_points=8))
    db.add(PointAdjustment(arena_id=arena.id, handle="bob", points_delta=5, reason="bonus"))
    db.add(FollowVerification(project_id=project.id, handle="bob", verified_at=NOW - timedelta(days=1)))
    db.add(FollowVerification(project_id=project.id, handle="carol", verified_at=None))
    db.commit()
    return project


class TestRunLeaderboards:
    def test_merged_ranking(self, db, arena_project):
        result = run_leaderboards(db, AS_OF, BOOSTED)
        assert result.projects == 1
        assert result.entries_written == 3

        entries = get_leaderboard(db, "arcproj")
        assert [(e.identity, e.score, e.rank) for e in entries] == [
            ("bob", 39, 1), ("alice", 10, 2), ("carol", 8, 3),
        ]
        bob = entries[0]
        assert bob.is_joined and bob.is_auto_tracked and bob.follow_verified
        assert bob.base_points == 26
        assert bob.multiplier == 1.5
        assert bob.ring == "core"
        carol = entries[2]
        assert carol.follow_verified is False
        assert carol.is_auto_tracked is False

    def test_smart_followers_attached(self, db, arena_project):
        creator = _entity(db, EntityKind.creator, "bob")
        db.add(SmartFollowersSnapshot(
            entity_id=creator.id, as_of_date=AS_OF, smart_followers_count=12,
            total_followers=300, smart_followers_pct=4.0, is_estimate=False,
        ))
        db.commit()
        run_leaderboards(db, AS_OF, BOOSTED)
        by_identity = {e.identity: e for e in get_leaderboard(db, "arcproj")}
        assert by_identity["bob"].smart_followers_count == 12
        assert by_identity["bob"].smart_followers_pct == 4.0
        assert by_identity["bob"].smart_followers_is_estimate is False
        assert by_identity["alice"].smart_followers_count is None

    def test_signal_scores_attached(self, db, arena_project):
        db.add_all([
            SignalScoreResult(creator_key="bob", project_id=arena_project.id, time_window="7d",
                              as_of_date=AS_OF, signal_score=72.5, trust_band="B", contribution_count=1),
            SignalScoreResult(creator_key="bob", project_id=arena_project.id, time_window="24h",
                              as_of_date=AS_OF, signal_score=90.0, trust_band="A", contribution_count=1),
        ])
        db.commit()
        run_leaderboards(db, AS_OF, BOOSTED)
        by_identity = {e.identity: e for e in get_leaderboard(db, "arcproj")}
        assert (by_identity["bob"].signal_score, by_identity["bob"].trust_band) == (72.5, "B")
        assert by_identity["carol"].signal_score is None
        assert by_identity["carol"].trust_band is None

    def test_ended_arena_keeps_final_standings(self, db, arena_project):
        run_leaderboards(db, AS_OF, BOOSTED)
        before = [(e.identity, e.score) for e in get_leaderboard(db, "arcproj")]

        arena = db.query(Arena).filter(Arena.project_id == arena_project.id).one()
        arena.status = ArenaStatus.ended
        _mention(db, arena_project, "late", "zoe", 1, likes=50)
        db.commit()

        result = run_leaderboards(db, AS_OF + timedelta(days=1), BOOSTED)
        assert result.projects == 0
        assert [(e.identity, e.score) for e in get_leaderboard(db, "arcproj")] == before

    def test_failing_project_is_skipped(self, db, arena_project, monkeypatch):
        other = _entity(db, EntityKind.project, "zzproj")
        db.add(Arena(project_id=other.id, name="S1", status=ArenaStatus.active))
        _mention(db, other, "z1", "yan", 3, likes=2)
        db.commit()
        real = leaderboard_service.build_project_leaderboard

        def flaky(session, project, arena, as_of_date, config):
            if project.handle == "arcproj":
                raise RuntimeError("boom")
            return real(session, project, arena, as_of_date, config)

        monkeypatch.setattr(leaderboard_service, "build_project_leaderboard", flaky)
        result = run_leaderboards(db, AS_OF, BOOSTED)
        assert result.projects == 1
        assert result.errors == ["project arcproj: boom"]
        assert [e.identity for e in get_leaderboard(db, "zzproj")] == ["yan"]

    def test_rerun_replaces_rows(self, db, arena_project):
        run_leaderboards(db, AS_OF, BOOSTED)
        run_leaderboards(db, AS_OF, ScoringConfig())
        entries = get_leaderboard(db, "arcproj")
        assert len(entries) == 3
        assert db.query(LeaderboardEntry).count() == 3
        assert {e.identity: e.score for e in entries}["bob"] == 26

    def test_project_without_active_arena_skipped(self, db):
        project = _entity(db, EntityKind.project, "noarena")
        db.add(Arena(project_id=project.id, name="Draft", status=ArenaStatus.draft))
        _mention(db, project, "x1", "alice", 3, likes=4)
        db.commit()
        result = run_leaderboards(db, AS_OF, BOOSTED)
        assert result.projects == 0
        assert get_leaderboard(db, "noarena") == []

    def test_unknown_project(self, db):
        with pytest.raises(EntityNotFoundError):
            get_leaderboard(db, "ghost")
