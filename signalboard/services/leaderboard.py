"""
Leaderboard Merge Engine — one ranked list per project arena.

Two sources are merged by normalized identity:

  auto-tracked  Σ engagement points (likes + 2·replies + 3·retweets) over
                non-official mentions inside the arena period
  joined        participant arc_points + Σ manual point adjustments

  both sources  → one row, base_points = auto + joined, is_joined=true,
                  is_auto_tracked=true
  auto only     → is_auto_tracked=true
  joined only   → is_joined=true

  multiplier = LEADERBOARD_FOLLOW_BOOST iff is_joined and follow_verified
  score      = floor(base_points × multiplier)
  rank       = score desc, ties by identity key

Identities with no contribution in either source are left out. A missing
boost leaves every multiplier at 1.0. Rows are display data only; being
listed grants nothing. Each row also carries the creator's 7d signal score
and trust band for the project and the day's smart-follower numbers.

Only projects with an active arena are rebuilt. Once an arena ends (or the
project is deactivated) its rows are left as they were last written and
serve as the final standings until a new arena becomes active.

Public API
----------
auto_points(contributions, weights)              -> dict[str, AutoRecord]
merge_leaderboard(auto, joined, verified, boost) -> list[LeaderboardRow]
run_leaderboards(db, as_of_date, config)         -> LeaderboardRunResult
get_leaderboard(db, project)                     -> list[LeaderboardEntry]
"""
from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from signalboard.core.config import EngagementWeights, ScoringConfig
from signalboard.core.errors import EntityNotFoundError
from signalboard.core.identity import normalize
from signalboard.core.logging import get_logger
from signalboard.core.windows import TimeWindow, as_of_instant
from signalboard.models.arena import Arena, ArenaParticipant, ArenaStatus, FollowVerification, PointAdjustment
from signalboard.models.contribution import ContributionEvent
from signalboard.models.entity import EntityKind, TrackedEntity
from signalboard.models.leaderboard import LeaderboardEntry
from signalboard.models.signal_score import SignalScoreResult
from signalboard.models.smart_account import SmartFollowersSnapshot

logger = get_logger(__name__)

# Signal score shown next to each creator on the leaderboard.
LEADERBOARD_SIGNAL_WINDOW = TimeWindow.d7


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class AutoRecord:
    points: float = 0.0
    mentions: int = 0


@dataclass
class JoinedRecord:
    points: float = 0.0
    ring: Optional[str] = None


@dataclass
class LeaderboardRow:
    identity: str
    base_points: float
    multiplier: float
    score: int
    is_joined: bool
    is_auto_tracked: bool
    follow_verified: bool
    ring: Optional[str] = None
    rank: int = 0


@dataclass
class LeaderboardRunResult:
    as_of_date: date
    projects: int = 0
    entries_written: int = 0
    errors: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Core — pure computation
# ---------------------------------------------------------------------------

def auto_points(
    mentions: Iterable[tuple[Optional[str], int, int, int]],
    weights: EngagementWeights,
) -> dict[str, AutoRecord]:
    """Aggregate (author, likes, replies, retweets) rows by normalized author."""
    records: dict[str, AutoRecord] = defaultdict(AutoRecord)
    for author, likes, replies, retweets in mentions:
        key = normalize(author)
        if not key:
            continue
        record = records[key]
        record.points += weights.points(likes, replies, retweets)
        record.mentions += 1
    return dict(records)


def follow_multiplier(is_joined: bool, follow_verified: bool, boost: Optional[float]) -> float:
    if not (is_joined and follow_verified) or boost is None:
        return 1.0
    return max(1.0, boost)


def merge_leaderboard(
    auto: dict[str, AutoRecord],
    joined: dict[str, JoinedRecord],
    verified: set[str],
    boost: Optional[float],
) -> list[LeaderboardRow]:
    rows = []
    for identity in sorted(set(auto) | set(joined)):
        auto_record = auto.get(identity)
        joined_record = joined.get(identity)
        is_auto = auto_record is not None and auto_record.mentions > 0
        is_joined = joined_record is not None
        if not is_auto and not (is_joined and joined_record.points != 0):
            continue

        base_points = max(
            0.0,
            (auto_record.points if auto_record else 0.0)
            + (joined_record.points if joined_record else 0.0),
        )
        follow_verified = identity in verified
        multiplier = follow_multiplier(is_joined, follow_verified, boost)
        rows.append(LeaderboardRow(
            identity=identity,
            base_points=round(base_points, 4),
            multiplier=multiplier,
            score=math.floor(base_points * multiplier),
            is_joined=is_joined,
            is_auto_tracked=is_auto,
            follow_verified=follow_verified,
            ring=joined_record.ring if joined_record else None,
        ))

    rows.sort(key=lambda r: (-r.score, r.identity))
    for position, row in enumerate(rows, start=1):
        row.rank = position
    return rows


# ---------------------------------------------------------------------------
# DB helpers
# ---------------------------------------------------------------------------

def active_arena(db: Session, project_id: int) -> Optional[Arena]:
    return (
        db.query(Arena)
        .filter(Arena.project_id == project_id, Arena.status == ArenaStatus.active)
        .order_by(Arena.starts_at.desc(), Arena.id.desc())
        .first()
    )


def _arena_mentions(db: Session, arena: Arena, as_of_date: date):
    query = db.query(
        ContributionEvent.author_handle,
        ContributionEvent.likes,
        ContributionEvent.replies,
        ContributionEvent.retweets,
    ).filter(
        ContributionEvent.project_id == arena.project_id,
        ContributionEvent.is_official == False,  # noqa: E712
        ContributionEvent.created_at < as_of_instant(as_of_date),
    )
    if arena.starts_at is not None:
        query = query.filter(ContributionEvent.created_at >= arena.starts_at)
    if arena.ends_at is not None:
        query = query.filter(ContributionEvent.created_at < arena.ends_at)
    return query.all()


def _joined(db: Session, arena: Arena) -> dict[str, JoinedRecord]:
    adjustments: dict[str, float] = defaultdict(float)
    for handle, delta in db.query(PointAdjustment.handle, PointAdjustment.points_delta).filter(
        PointAdjustment.arena_id == arena.id
    ):
        adjustments[normalize(handle)] += delta or 0.0

    joined: dict[str, JoinedRecord] = {}
    for participant in db.query(ArenaParticipant).filter(ArenaParticipant.arena_id == arena.id):
        key = normalize(participant.handle)
        if not key:
            continue
        record = joined.setdefault(key, JoinedRecord())
        record.points += participant.arc_points or 0.0
        if participant.ring is not None:
            record.ring = getattr(participant.ring, "value", participant.ring)
    for key, record in joined.items():
        record.points += adjustments.get(key, 0.0)
    return joined


def _verified(db: Session, project_id: int) -> set[str]:
    rows = db.query(FollowVerification.handle).filter(
        FollowVerification.project_id == project_id,
        FollowVerification.verified_at.is_not(None),
    )
    return {key for key in (normalize(h) for (h,) in rows) if key}


def _smart_followers(
    db: Session, identities: list[str], as_of_date: date
) -> dict[str, tuple[int, float, bool]]:
    if not identities:
        return {}
    rows = (
        db.query(
            TrackedEntity.handle,
            SmartFollowersSnapshot.smart_followers_count,
            SmartFollowersSnapshot.smart_followers_pct,
            SmartFollowersSnapshot.is_estimate,
        )
        .join(SmartFollowersSnapshot, SmartFollowersSnapshot.entity_id == TrackedEntity.id)
        .filter(
            TrackedEntity.kind == EntityKind.creator,
            SmartFollowersSnapshot.as_of_date == as_of_date,
        )
    )
    wanted = set(identities)
    return {
        normalize(handle): (count, pct, is_estimate)
        for handle, count, pct, is_estimate in rows
        if normalize(handle) in wanted
    }


def _signal_scores(db: Session, project_id: int, identities: list[str]) -> dict[str, tuple[float, str]]:
    if not identities:
        return {}
    wanted = set(identities)
    rows = db.query(
        SignalScoreResult.creator_key, SignalScoreResult.signal_score, SignalScoreResult.trust_band
    ).filter(
        SignalScoreResult.project_id == project_id,
        SignalScoreResult.time_window == LEADERBOARD_SIGNAL_WINDOW.value,
    )
    return {
        normalize(creator): (score, band)
        for creator, score, band in rows
        if normalize(creator) in wanted
    }


def build_project_leaderboard(
    db: Session, project: TrackedEntity, arena: Arena, as_of_date: date, config: ScoringConfig
) -> list[LeaderboardRow]:
    return merge_leaderboard(
        auto_points(_arena_mentions(db, arena, as_of_date), config.engagement),
        _joined(db, arena),
        _verified(db, project.id),
        config.leaderboard.follow_boost,
    )


def _replace_entries(db: Session, project_id: int, rows: list[LeaderboardRow], as_of_date: date) -> None:
    db.query(LeaderboardEntry).filter(LeaderboardEntry.project_id == project_id).delete(
        synchronize_session=False
    )
    identities = [r.identity for r in rows]
    smart = _smart_followers(db, identities, as_of_date)
    signal = _signal_scores(db, project_id, identities)
    for row in rows:
        count, pct, is_estimate = smart.get(row.identity, (None, None, None))
        signal_score, band = signal.get(row.identity, (None, None))
        db.add(LeaderboardEntry(
            project_id=project_id,
            identity=row.identity,
            rank=row.rank,
            base_points=row.base_points,
            multiplier=row.multiplier,
            score=row.score,
            is_joined=row.is_joined,
            is_auto_tracked=row.is_auto_tracked,
            follow_verified=row.follow_verified,
            ring=row.ring,
            smart_followers_count=count,
            smart_followers_pct=pct,
            smart_followers_is_estimate=is_estimate,
            signal_score=signal_score,
            trust_band=band,
            as_of_date=as_of_date,
        ))


# ---------------------------------------------------------------------------
# Public — batch run
# ---------------------------------------------------------------------------

def run_leaderboards(db: Session, as_of_date: date, config: ScoringConfig) -> LeaderboardRunResult:
    """
    Rebuild the leaderboard of every active project with an active arena.
    The previous rows of a project are replaced as a whole.
    """
    result = LeaderboardRunResult(as_of_date=as_of_date)
    projects = (
        db.query(TrackedEntity)
        .filter(TrackedEntity.kind == EntityKind.project, TrackedEntity.is_active == True)  # noqa: E712
        .order_by(TrackedEntity.handle)
        .all()
    )
    for project in projects:
        arena = active_arena(db, project.id)
        if arena is None:
            continue
        handle = project.handle
        try:
            rows = build_project_leaderboard(db, project, arena, as_of_date, config)
            _replace_entries(db, project.id, rows, as_of_date)
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.error("Leaderboard failed", project=handle, error=str(exc))
            result.errors.append(f"project {handle}: {exc}")
            continue
        result.projects += 1
        result.entries_written += len(rows)

    logger.info(
        "Leaderboards computed",
        as_of_date=str(as_of_date),
        projects=result.projects,
        entries=result.entries_written,
        errors=len(result.errors),
    )
    return result


# ---------------------------------------------------------------------------
# Public — query helper
# ---------------------------------------------------------------------------

def get_leaderboard(db: Session, project: str) -> list[LeaderboardEntry]:
    key = normalize(project)
    entity = (
        db.query(TrackedEntity)
        .filter(TrackedEntity.kind == EntityKind.project, TrackedEntity.handle == key)
        .first()
    )
    if entity is None:
        raise EntityNotFoundError("project", key)
    return (
        db.query(LeaderboardEntry)
        .filter(LeaderboardEntry.project_id == entity.id)
        .order_by(LeaderboardEntry.score.desc(), LeaderboardEntry.identity)
        .all()
    )
