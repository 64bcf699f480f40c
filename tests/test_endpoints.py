"""
Integration tests for API endpoints using the SQLite test DB.
"""
from datetime import date, timedelta

from signalboard.core.config import MindshareConfig, ScoringConfig
from signalboard.core.windows import TimeWindow, as_of_instant
from signalboard.models.contribution import ContributionEvent
from signalboard.models.entity import EntityKind, TrackedEntity
from signalboard.models.smart_account import SmartFollowersSnapshot
from signalboard.services.mindshare import run_mindshare

AS_OF = date(2096, 2, 14)


def _projects(db):
    alpha = TrackedEntity(kind=EntityKind.project, handle="alpha")
    beta = TrackedEntity(kind=EntityKind.project, handle="beta")
    db.add_all([alpha, beta])
    db.commit()
    return alpha, beta


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["db"] == "ok"


class TestMindshare:
    def test_window_snapshot(self, client, db):
        alpha, _ = _projects(db)
        db.add(ContributionEvent(
            external_id="e1", project_id=alpha.id, author_handle="alice", author_key="alice",
            created_at=as_of_instant(AS_OF) - timedelta(hours=1), text="alpha is moving",
        ))
        db.commit()
        run_mindshare(db, AS_OF, ScoringConfig(mindshare=MindshareConfig(w_posts=1.0)), windows=[TimeWindow.d7])

        r = client.get("/mindshare/7d")
        assert r.status_code == 200
        body = r.json()
        assert body["window"] == "7d"
        assert body["as_of_date"] == str(AS_OF)
        assert [p["project"] for p in body["projects"]] == ["alpha", "beta"]
        assert sum(p["mindshare_bps"] for p in body["projects"]) == 10000
        assert body["projects"][0]["delta_1d"] is None

    def test_explicit_date(self, client, db):
        _projects(db)
        run_mindshare(db, AS_OF, ScoringConfig(), windows=[TimeWindow.h24])
        r = client.get("/mindshare/24h", params={"as_of_date": str(AS_OF)})
        assert r.status_code == 200
        assert [p["mindshare_bps"] for p in r.json()["projects"]] == [5000, 5000]

    def test_invalid_window(self, client):
        r = client.get("/mindshare/90d")
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "INVALID_WINDOW"
        assert body["details"]["allowed"] == ["24h", "48h", "7d", "30d"]

    def test_no_snapshot(self, client):
        r = client.get("/mindshare/24h")
        assert r.status_code == 404
        assert r.json()["code"] == "SNAPSHOT_NOT_FOUND"


class TestSignalScore:
    def test_unscored_creator_gets_empty_case(self, client, db):
        _projects(db)
        r = client.get("/signal-score/@Alice/alpha")
        assert r.status_code == 200
        body = r.json()
        assert body["creator"] == "alice"
        assert body["window"] == "7d"
        assert body["signal_score"] == 0
        assert body["trust_band"] == "D"
        assert body["contribution_count"] == 0

    def test_unknown_project(self, client):
        r = client.get("/signal-score/alice/ghost")
        assert r.status_code == 404
        assert r.json()["code"] == "ENTITY_NOT_FOUND"

    def test_invalid_window(self, client, db):
        _projects(db)
        r = client.get("/signal-score/alice/alpha", params={"window": "1y"})
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_WINDOW"


class TestSmartFollowers:
    def test_snapshot(self, client, db):
        alpha, _ = _projects(db)
        db.add(SmartFollowersSnapshot(
            entity_id=alpha.id, as_of_date=AS_OF, smart_followers_count=40,
            total_followers=400, smart_followers_pct=10.0, is_estimate=True,
        ))
        db.commit()
        r = client.get("/smart-followers/ALPHA")
        assert r.status_code == 200
        body = r.json()
        assert body["entity"] == "alpha"
        assert body["kind"] == "project"
        assert body["count"] == 40
        assert body["pct"] == 10.0
        assert body["is_estimate"] is True
        assert body["delta_7d"] is None

    def test_unknown_entity(self, client):
        r = client.get("/smart-followers/ghost")
        assert r.status_code == 404
        assert r.json()["code"] == "ENTITY_NOT_FOUND"

    def test_missing_snapshot(self, client, db):
        _projects(db)
        r = client.get("/smart-followers/alpha", params={"as_of_date": "2000-01-01"})
        assert r.status_code == 404
        assert r.json()["code"] == "SNAPSHOT_NOT_FOUND"


class TestLeaderboard:
    def test_empty_leaderboard(self, client, db):
        _projects(db)
        r = client.get("/leaderboard/alpha")
        assert r.status_code == 200
        assert r.json() == {"project": "alpha", "entries": []}

    def test_unknown_project(self, client):
        r = client.get("/leaderboard/ghost")
        assert r.status_code == 404


class TestPipelineRun:
    def test_run_selected_stages(self, client, db):
        _projects(db)
        r = client.post("/pipeline/run", json={"as_of_date": str(AS_OF), "stages": ["mindshare", "universe"]})
        assert r.status_code == 200
        body = r.json()
        assert body["as_of_date"] == str(AS_OF)
        assert body["stages_completed"] == ["universe", "mindshare"]
        assert body["errors"] == []

        r = client.get("/mindshare/30d")
        assert r.status_code == 200
        assert sum(p["mindshare_bps"] for p in r.json()["projects"]) == 10000

    def test_unknown_stage_rejected(self, client):
        r = client.post("/pipeline/run", json={"stages": ["everything"]})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"
