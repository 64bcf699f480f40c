"""
Tests for the Mindshare Engine.

Normalization properties:
  - sum == 10000 whenever at least one project is present
  - monotonic in attention value
  - all-zero → even split, remainder to the first projects by key
  - single nonzero project takes everything
  - [300, 100, 0] → [7500, 2500, 0]; [300, 100, 1] keeps the order

Engine:
  - neutral multipliers and zero weights when unconfigured
  - keyword relevance filtering
  - DB run: upsert, idempotent re-run, deactivated project removed,
    invariant violation persists nothing, per-project failure isolated
  - follow edges and bot-risk rows are matched on normalized handles
  - query helper: latest date, deltas, 404 when nothing exists
"""
from __future__ import annotations

import math
from datetime import date, timedelta

import pytest

from signalboard.core.config import Bounds, MindshareConfig, ScoringConfig
from signalboard.core.errors import SnapshotNotFoundError
from signalboard.core.windows import TimeWindow, as_of_instant
from signalboard.models.contribution import ContributionEvent
from signalboard.models.entity import EntityKind, TrackedEntity
from signalboard.models.follow_edge import FollowEdge
from signalboard.models.mindshare import MindshareSnapshot
from signalboard.models.smart_account import SmartAccountScore
from signalboard.services import mindshare as mindshare_service
from signalboard.services.mindshare import (
    ProjectInputs,
    compute_attention_value,
    gather_inputs,
    get_mindshare,
    keyword_strength,
    matches_keywords,
    normalize_to_bps,
    run_mindshare,
)

AS_OF = date(2093, 8, 20)
NOW = as_of_instant(AS_OF)
POSTS_ONLY = ScoringConfig(mindshare=MindshareConfig(w_posts=1.0))


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

class TestNormalizeToBps:
    def test_worked_example(self):
        assert normalize_to_bps({"a": 300, "b": 100, "c": 0}) == {"a": 7500, "b": 2500, "c": 0}

    def test_small_third_project(self):
        bps = normalize_to_bps({"a": 300, "b": 100, "c": 1})
        assert sum(bps.values()) == 10000
        assert bps["a"] > bps["b"] > bps["c"] > 0
        assert bps == {"a": 7481, "b": 2494, "c": 25}

    def test_all_zero_even_split(self):
        bps = normalize_to_bps({"zeta": 0, "alpha": 0, "mid": 0})
        assert bps == {"alpha": 3334, "mid": 3333, "zeta": 3333}

    def test_single_nonzero_takes_all(self):
        assert normalize_to_bps({"a": 0, "b": 0.001, "c": 0}) == {"a": 0, "b": 10000, "c": 0}

    def test_ties_broken_by_key(self):
        bps = normalize_to_bps({"b": 1.0, "a": 1.0, "c": 1.0})
        assert bps == {"a": 3334, "b": 3333, "c": 3333}

    @pytest.mark.parametrize("values", [
        [1.0],
        [0.1, 0.2, 0.3],
        [1e-9, 5.5, 123456.789, 0.0, 7.0],
        [1 / 3] * 7,
        [float(i) for i in range(1, 40)],
    ])
    def test_sum_and_monotonic(self, values):
        keyed = {f"p{i:02d}": v for i, v in enumerate(values)}
        bps = normalize_to_bps(keyed)
        assert sum(bps.values()) == 10000
        for a in keyed:
            for b in keyed:
                if keyed[a] > keyed[b]:
                    assert bps[a] >= bps[b]

    def test_bad_values_count_as_zero(self):
        bps = normalize_to_bps({"a": -5.0, "b": math.nan, "c": 2.0})
        assert bps == {"a": 0, "b": 0, "c": 10000}

    def test_rerun_is_identical(self):
        values = {"x": 0.37, "y": 1.91, "z": 0.37}
        assert normalize_to_bps(values) == normalize_to_bps(dict(reversed(list(values.items()))))

    def test_empty(self):
        assert normalize_to_bps({}) == {}


# ---------------------------------------------------------------------------
# Attention value
# ---------------------------------------------------------------------------

class TestAttention:
    def test_unconfigured_weights_give_zero(self):
        assert compute_attention_value(ProjectInputs("p", mentions=50, engagement=900), MindshareConfig()) == 0.0

    def test_log_scaled_core(self):
        cfg = MindshareConfig(w_posts=0.25, w_creators=0.25, w_engagement=0.30, w_heat=0.20)
        inputs = ProjectInputs("p", mentions=9, unique_creators=4, engagement=99, heat=50)
        expected = 0.25 * math.log1p(9) + 0.25 * math.log1p(4) + 0.30 * math.log1p(99) + 0.20 * math.log1p(50)
        assert compute_attention_value(inputs, cfg) == pytest.approx(expected)

    def test_heat_is_log_scaled(self):
        value = compute_attention_value(ProjectInputs("p", heat=50), MindshareConfig(w_heat=1.0))
        assert value == pytest.approx(math.log1p(50))

    def test_multipliers_bounded(self):
        cfg = MindshareConfig(
            w_posts=1.0,
            creator_organic=Bounds(floor=0.5, cap=1.5),
            originality=Bounds(floor=0.7, cap=1.3),
        )
        base = ProjectInputs("p", mentions=10)
        low = ProjectInputs("p", mentions=10, creator_organic=0.0, originality=0.0)
        assert compute_attention_value(low, cfg) == pytest.approx(
            compute_attention_value(base, cfg) * 0.5 * 0.7
        )

    def test_smart_boost_ignored_for_estimates(self):
        cfg = MindshareConfig(w_posts=1.0, smart_followers=Bounds(floor=1.0, cap=1.5))
        graph = ProjectInputs("p", mentions=10, smart_followers_pct=30, smart_followers_is_estimate=False)
        estimate = ProjectInputs("p", mentions=10, smart_followers_pct=30, smart_followers_is_estimate=True)
        assert compute_attention_value(graph, cfg) == pytest.approx(
            compute_attention_value(estimate, cfg) * 1.3
        )

    def test_keyword_strength(self):
        cfg = MindshareConfig(keyword_match_strength=1.0, no_keyword_strength=0.8)
        assert keyword_strength(True, cfg) == 1.0
        assert keyword_strength(False, cfg) == 0.8
        assert keyword_strength(False, MindshareConfig()) == 1.0

    def test_matches_keywords(self):
        assert matches_keywords("gm to the $abc fam", ["abc"])
        assert matches_keywords("anything", [])
        assert not matches_keywords("nothing relevant", ["abc"])
        assert not matches_keywords(None, ["abc"])


# ---------------------------------------------------------------------------
# DB-backed runs
# ---------------------------------------------------------------------------

def _project(db, handle, keywords=None) -> TrackedEntity:
    p = TrackedEntity(kind=EntityKind.project, handle=handle, keywords=keywords)
    db.add(p)
    db.commit()
    return p


def _mentions(db, project, n, prefix, text=None) -> None:
    for i in range(n):
        db.add(ContributionEvent(
            external_id=f"{prefix}-{i}",
            project_id=project.id,
            author_handle=f"user{i}",
            author_key=f"user{i}",
            created_at=NOW - timedelta(hours=2 + i),
            likes=i,
            text=text or f"{prefix} post number {i} with unique words {i * 7}",
        ))
    db.commit()


class TestRunMindshare:
    def _seed(self, db):
        alpha = _project(db, "alpha")
        beta = _project(db, "beta")
        gamma = _project(db, "gamma")
        _mentions(db, alpha, 3, "alpha")
        _mentions(db, beta, 1, "beta")
        return alpha, beta, gamma

    def test_run_writes_normalized_snapshots(self, db):
        self._seed(db)
        result = run_mindshare(db, AS_OF, POSTS_ONLY, windows=[TimeWindow.h24, TimeWindow.d7])
        assert result.windows_written == ["24h", "7d"]
        assert result.windows_failed == []

        view = get_mindshare(db, TimeWindow.h24, AS_OF)
        assert [(r.project, r.mindshare_bps) for r in view.rows] == [
            ("alpha", 6667), ("beta", 3333), ("gamma", 0),
        ]
        for window in ("24h", "7d"):
            total = sum(
                s.mindshare_bps for s in db.query(MindshareSnapshot).filter(
                    MindshareSnapshot.time_window == window, MindshareSnapshot.as_of_date == AS_OF
                )
            )
            assert total == 10000

    def test_rerun_is_idempotent(self, db):
        self._seed(db)
        run_mindshare(db, AS_OF, POSTS_ONLY, windows=[TimeWindow.h24])
        first = [(r.project, r.mindshare_bps) for r in get_mindshare(db, TimeWindow.h24, AS_OF).rows]
        run_mindshare(db, AS_OF, POSTS_ONLY, windows=[TimeWindow.h24])
        second = [(r.project, r.mindshare_bps) for r in get_mindshare(db, TimeWindow.h24, AS_OF).rows]
        assert first == second
        assert db.query(MindshareSnapshot).count() == 3

    def test_deactivated_project_removed_on_rerun(self, db):
        _, beta, _ = self._seed(db)
        run_mindshare(db, AS_OF, POSTS_ONLY, windows=[TimeWindow.h24])
        beta.is_active = False
        db.commit()
        run_mindshare(db, AS_OF, POSTS_ONLY, windows=[TimeWindow.h24])
        rows = get_mindshare(db, TimeWindow.h24, AS_OF).rows
        assert {r.project for r in rows} == {"alpha", "gamma"}
        assert sum(r.mindshare_bps for r in rows) == 10000

    def test_all_zero_window_still_sums(self, db):
        self._seed(db)
        run_mindshare(db, AS_OF, ScoringConfig(), windows=[TimeWindow.h24])
        rows = get_mindshare(db, TimeWindow.h24, AS_OF).rows
        assert [(r.project, r.mindshare_bps) for r in rows] == [
            ("alpha", 3334), ("beta", 3333), ("gamma", 3333),
        ]

    def test_invariant_violation_persists_nothing(self, db, monkeypatch):
        self._seed(db)
        monkeypatch.setattr(mindshare_service, "normalize_to_bps", lambda values: {k: 1 for k in values})
        result = run_mindshare(db, AS_OF, POSTS_ONLY, windows=[TimeWindow.h24])
        assert result.windows_failed == ["24h"]
        assert result.windows_written == []
        assert db.query(MindshareSnapshot).count() == 0

    def test_project_failure_is_isolated(self, db, monkeypatch):
        self._seed(db)
        real = mindshare_service.compute_attention_value

        def flaky(inputs, config):
            if inputs.project == "beta":
                raise RuntimeError("boom")
            return real(inputs, config)

        monkeypatch.setattr(mindshare_service, "compute_attention_value", flaky)
        result = run_mindshare(db, AS_OF, POSTS_ONLY, windows=[TimeWindow.h24])
        assert result.windows_written == ["24h"]
        assert any("beta" in e for e in result.errors)
        bps = {r.project: r.mindshare_bps for r in get_mindshare(db, TimeWindow.h24, AS_OF).rows}
        assert bps == {"alpha": 10000, "beta": 0, "gamma": 0}

    def test_inputs_failure_is_isolated(self, db, monkeypatch):
        self._seed(db)
        real = mindshare_service.gather_inputs

        def flaky(db_, project, *args):
            if project.handle == "beta":
                raise RuntimeError("read failed")
            return real(db_, project, *args)

        monkeypatch.setattr(mindshare_service, "gather_inputs", flaky)
        result = run_mindshare(db, AS_OF, POSTS_ONLY, windows=[TimeWindow.h24])
        assert result.windows_written == ["24h"]
        assert result.errors == ["project beta window 24h: read failed"]
        bps = {r.project: r.mindshare_bps for r in get_mindshare(db, TimeWindow.h24, AS_OF).rows}
        assert bps == {"alpha": 10000, "beta": 0, "gamma": 0}

    def test_audience_organic_matches_handles_loosely(self, db):
        proj = _project(db, "proj")
        db.add(FollowEdge(follower_key="@Alice", followee_key="@Proj", first_seen_at=NOW - timedelta(days=3)))
        db.add(SmartAccountScore(handle="alice", as_of_date=AS_OF, bot_risk=0.0))
        db.commit()
        inputs = gather_inputs(db, proj, TimeWindow.h24, AS_OF, POSTS_ONLY)
        assert inputs.audience_organic == 100.0

    def test_keyword_filter(self, db):
        kw = _project(db, "kwproj", keywords="KWP, kwp token")
        _mentions(db, kw, 2, "kw-hit", text="bullish on $KWP today")
        _mentions(db, kw, 3, "kw-miss", text="random chatter")
        inputs = gather_inputs(db, kw, TimeWindow.h24, AS_OF, POSTS_ONLY)
        assert inputs.mentions == 2
        assert inputs.has_keywords is True


class TestGetMindshare:
    def test_latest_date_and_deltas(self, db):
        alpha = _project(db, "alpha")
        _project(db, "beta")
        _mentions(db, alpha, 3, "alpha")
        run_mindshare(db, AS_OF, POSTS_ONLY, windows=[TimeWindow.h24])
        db.add(MindshareSnapshot(
            project_id=alpha.id, time_window="24h", as_of_date=AS_OF - timedelta(days=1),
            attention_value=1.0, mindshare_bps=4000,
        ))
        db.commit()

        view = get_mindshare(db, TimeWindow.h24)
        assert view.as_of_date == AS_OF
        by_project = {r.project: r for r in view.rows}
        assert by_project["alpha"].mindshare_bps == 10000
        assert by_project["alpha"].delta_1d == 6000
        assert by_project["alpha"].delta_7d is None
        assert by_project["beta"].delta_1d is None

    def test_missing_snapshot(self, db):
        with pytest.raises(SnapshotNotFoundError):
            get_mindshare(db, TimeWindow.d30)
        with pytest.raises(SnapshotNotFoundError):
            get_mindshare(db, TimeWindow.d30, date(2000, 1, 1))
