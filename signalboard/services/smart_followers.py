"""
Smart Followers Graph Engine — which followers of an entity are "smart".

Two modes per run:

  graph_available    PageRank over the follow graph restricted to the tracked
                     universe, discounted by a bot-risk heuristic; the top
                     accounts are marked smart and each entity's smart
                     followers are counted from its in-edges.
  graph_unavailable  No edges inside the universe. Audience-estimate mode:
                     count = round(followers_count × ESTIMATE_SMART_RATIO),
                     flagged is_estimate=true. Downstream multipliers built on
                     an estimate are neutral (1.0).

The PageRank loop stops on convergence (L1 change < epsilon), the iteration
cap or the wall-clock timeout; the last iterate is always returned, flagged
`converged=False` when it did not settle.

Public API
----------
build_tracked_universe(db, as_of_date)          -> int
pagerank(nodes, edges, ...)                     -> PageRankResult
bot_risk(profile, as_of_date, config)           -> float
mark_smart(accounts, config)                    -> list[AccountScore]
estimate_smart_followers(followers, config)     -> int
smart_followers_boost(pct, is_estimate, bounds) -> float
run_smart_followers(db, as_of_date, config)     -> SmartFollowersRunResult
get_smart_followers(db, entity, as_of_date)     -> SmartFollowersView
"""
from __future__ import annotations

import math
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from signalboard.core.config import Bounds, ScoringConfig, SmartFollowersConfig
from signalboard.core.errors import EntityNotFoundError, SnapshotNotFoundError
from signalboard.core.identity import normalize
from signalboard.core.logging import get_logger
from signalboard.core.windows import as_of_instant, as_utc
from signalboard.models.arena import ArenaParticipant
from signalboard.models.contribution import ContributionEvent
from signalboard.models.entity import EntityKind, TrackedEntity
from signalboard.models.follow_edge import FollowEdge
from signalboard.models.profile import TrackedProfile
from signalboard.models.smart_account import SmartAccountScore, SmartFollowersSnapshot

logger = get_logger(__name__)

# Mention authors seen in this many days are enrolled into the universe.
UNIVERSE_LOOKBACK_DAYS = 30


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class PageRankResult:
    scores: dict[str, float]
    converged: bool
    iterations: int


@dataclass
class AccountProfile:
    handle: str
    followers_count: int = 0
    following_count: int = 0
    account_created_at: Optional[datetime] = None


@dataclass
class AccountScore:
    handle: str
    importance: float
    bot_risk: float
    smart_score: float
    is_smart: bool = False
    account_age_days: Optional[int] = None


@dataclass
class SmartFollowersRunResult:
    as_of_date: date
    mode: str
    accounts_scored: int = 0
    snapshots_written: int = 0
    converged: bool = True
    iterations: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class SmartFollowersView:
    entity: str
    kind: str
    as_of_date: date
    count: int
    pct: float
    total_followers: int
    is_estimate: bool
    delta_7d: Optional[int]
    delta_30d: Optional[int]


# ---------------------------------------------------------------------------
# Universe
# ---------------------------------------------------------------------------

def build_tracked_universe(db: Session, as_of_date: date) -> int:
    """
    Enroll every handle the pipeline needs graph data for: tracked projects
    and creators, arena participants, and authors who mentioned a project in
    the last UNIVERSE_LOOKBACK_DAYS. Existing profiles are left untouched.

    Returns the number of newly enrolled handles.
    """
    end = as_of_instant(as_of_date)
    start = end - timedelta(days=UNIVERSE_LOOKBACK_DAYS)

    handles: set[str] = set()
    for (handle,) in db.query(TrackedEntity.handle).filter(TrackedEntity.is_active == True):  # noqa: E712
        handles.add(normalize(handle))
    for (handle,) in db.query(ArenaParticipant.handle):
        handles.add(normalize(handle))
    for (author,) in (
        db.query(ContributionEvent.author_key)
        .filter(ContributionEvent.created_at >= start, ContributionEvent.created_at < end)
        .distinct()
    ):
        handles.add(normalize(author))
    handles.discard("")

    known = {normalize(h) for (h,) in db.query(TrackedProfile.handle)}
    added = sorted(handles - known)
    for handle in added:
        db.add(TrackedProfile(handle=handle))
    db.commit()

    logger.info("Tracked universe built", as_of_date=str(as_of_date), total=len(handles), added=len(added))
    return len(added)


# ---------------------------------------------------------------------------
# Core — pure computation
# ---------------------------------------------------------------------------

def pagerank(
    nodes: Iterable[str],
    edges: Iterable[tuple[str, str]],
    damping: float = 0.85,
    max_iterations: int = 100,
    epsilon: float = 1e-6,
    timeout_seconds: Optional[float] = None,
) -> PageRankResult:
    """
    Power-iteration PageRank over (follower, followee) edges.

    Edges touching a node outside `nodes` are ignored. Mass from nodes with
    no out-edges is spread uniformly so the scores always sum to 1.
    """
    node_list = sorted(set(nodes))
    n = len(node_list)
    if n == 0:
        return PageRankResult(scores={}, converged=True, iterations=0)

    node_set = set(node_list)
    incoming: dict[str, list[str]] = defaultdict(list)
    out_degree: dict[str, int] = defaultdict(int)
    for src, dst in sorted(set(edges)):
        if src == dst or src not in node_set or dst not in node_set:
            continue
        incoming[dst].append(src)
        out_degree[src] += 1

    damping = min(1.0, max(0.0, damping))
    deadline = time.monotonic() + timeout_seconds if timeout_seconds else None
    scores = {node: 1.0 / n for node in node_list}
    converged = False
    iterations = 0

    while iterations < max_iterations:
        dangling = sum(scores[node] for node in node_list if out_degree[node] == 0)
        base = (1.0 - damping) / n + damping * dangling / n
        updated = {
            node: base + damping * sum(scores[src] / out_degree[src] for src in incoming[node])
            for node in node_list
        }
        delta = sum(abs(updated[node] - scores[node]) for node in node_list)
        scores = updated
        iterations += 1
        if delta < epsilon:
            converged = True
            break
        if deadline is not None and time.monotonic() >= deadline:
            break

    return PageRankResult(scores=scores, converged=converged, iterations=iterations)


def account_age_days(created_at: Optional[datetime], as_of_date: date) -> Optional[int]:
    if created_at is None:
        return None
    return max(0, (as_of_instant(as_of_date) - as_utc(created_at)).days)


def bot_risk(profile: AccountProfile, as_of_date: date, config: SmartFollowersConfig) -> float:
    """
    Heuristic 0-1 bot risk (higher = riskier):
      +0.3 account younger than MIN_ACCOUNT_AGE_DAYS, +0.2 age unknown
      +0.4 followers/following < 0.1, +0.2 < 0.5
      +0.3 nobody followed and no followers
      +0.2 fewer than 10 followers
    """
    risk = 0.0
    age = account_age_days(profile.account_created_at, as_of_date)
    if age is None:
        risk += 0.2
    elif config.min_account_age_days is not None and age < config.min_account_age_days:
        risk += 0.3

    followers = max(0, profile.followers_count or 0)
    following = max(0, profile.following_count or 0)
    if following > 0:
        ratio = followers / following
        if ratio < 0.1:
            risk += 0.4
        elif ratio < 0.5:
            risk += 0.2
    elif followers == 0:
        risk += 0.3

    if 0 < followers < 10:
        risk += 0.2

    return min(1.0, risk)


def smart_quota(n_accounts: int, config: SmartFollowersConfig) -> int:
    """How many top-ranked accounts qualify: max(top_n, floor(n × top_pct))."""
    by_count = config.top_n or 0
    by_pct = math.floor(n_accounts * config.top_pct) if config.top_pct else 0
    return min(n_accounts, max(by_count, by_pct))


def mark_smart(accounts: list[AccountScore], config: SmartFollowersConfig) -> list[AccountScore]:
    """
    Rank by smart_score (ties by handle) and mark the top quota as smart.
    Accounts at or above the bot-risk threshold, or with no importance at
    all, are not eligible and never take a quota slot.
    """
    ranked = sorted(accounts, key=lambda a: (-a.smart_score, a.handle))
    quota = smart_quota(len(ranked), config)
    threshold = config.bot_risk_threshold
    eligible = [
        a for a in ranked
        if a.smart_score > 0 and (threshold is None or a.bot_risk < threshold)
    ]
    smart = {a.handle for a in eligible[:quota]}
    for account in ranked:
        account.is_smart = account.handle in smart
    return ranked


def score_accounts(
    profiles: list[AccountProfile],
    edges: list[tuple[str, str]],
    as_of_date: date,
    config: SmartFollowersConfig,
) -> tuple[list[AccountScore], PageRankResult]:
    result = pagerank(
        [p.handle for p in profiles],
        edges,
        damping=config.damping,
        max_iterations=config.max_iterations,
        epsilon=config.epsilon,
        timeout_seconds=config.timeout_seconds,
    )
    top = max(result.scores.values(), default=0.0)
    accounts = []
    for profile in profiles:
        importance = result.scores.get(profile.handle, 0.0) / top if top > 0 else 0.0
        risk = bot_risk(profile, as_of_date, config)
        accounts.append(AccountScore(
            handle=profile.handle,
            importance=round(importance, 6),
            bot_risk=round(risk, 4),
            smart_score=round(importance * (1.0 - risk), 6),
            account_age_days=account_age_days(profile.account_created_at, as_of_date),
        ))
    return mark_smart(accounts, config), result


def smart_pct(count: int, total_followers: int) -> float:
    if total_followers <= 0:
        return 0.0
    return round(min(100.0, max(0.0, count / total_followers * 100.0)), 4)


def estimate_smart_followers(followers_count: int, config: SmartFollowersConfig) -> int:
    if not config.estimate_smart_ratio or followers_count <= 0:
        return 0
    ratio = min(1.0, max(0.0, config.estimate_smart_ratio))
    return int(round(followers_count * ratio))


def smart_followers_boost(pct: Optional[float], is_estimate: bool, bounds: Bounds) -> float:
    """Mindshare multiplier: 1 + pct/100 within bounds; neutral on estimates."""
    if pct is None or is_estimate:
        return 1.0
    return bounds.clamp(1.0 + pct / 100.0)


# ---------------------------------------------------------------------------
# DB helpers
# ---------------------------------------------------------------------------

def _load_profiles(db: Session) -> dict[str, AccountProfile]:
    profiles: dict[str, AccountProfile] = {}
    for row in db.query(TrackedProfile).order_by(TrackedProfile.handle):
        key = normalize(row.handle)
        if not key:
            continue
        profiles[key] = AccountProfile(
            handle=key,
            followers_count=row.followers_count or 0,
            following_count=row.following_count or 0,
            account_created_at=row.account_created_at,
        )
    return profiles


def _load_edges(db: Session, universe: set[str], as_of_date: date) -> list[tuple[str, str]]:
    """Edges first seen before the end of the as-of day, both ends tracked."""
    cutoff = as_of_instant(as_of_date)
    edges = []
    for follower, followee in db.query(FollowEdge.follower_key, FollowEdge.followee_key).filter(
        FollowEdge.first_seen_at < cutoff
    ):
        src, dst = normalize(follower), normalize(followee)
        if src in universe and dst in universe and src != dst:
            edges.append((src, dst))
    return edges


def _upsert_account(db: Session, account: AccountScore, as_of_date: date, converged: bool) -> None:
    row = (
        db.query(SmartAccountScore)
        .filter(SmartAccountScore.handle == account.handle, SmartAccountScore.as_of_date == as_of_date)
        .first()
    )
    if row is None:
        row = SmartAccountScore(handle=account.handle, as_of_date=as_of_date)
        db.add(row)
    row.importance = account.importance
    row.bot_risk = account.bot_risk
    row.smart_score = account.smart_score
    row.is_smart = account.is_smart
    row.account_age_days = account.account_age_days
    row.converged = converged


def _upsert_snapshot(
    db: Session,
    entity_id: int,
    as_of_date: date,
    count: int,
    total_followers: int,
    is_estimate: bool,
) -> None:
    row = (
        db.query(SmartFollowersSnapshot)
        .filter(
            SmartFollowersSnapshot.entity_id == entity_id,
            SmartFollowersSnapshot.as_of_date == as_of_date,
        )
        .first()
    )
    if row is None:
        row = SmartFollowersSnapshot(entity_id=entity_id, as_of_date=as_of_date)
        db.add(row)
    row.smart_followers_count = count
    row.total_followers = total_followers
    row.smart_followers_pct = smart_pct(count, total_followers)
    row.is_estimate = is_estimate


# ---------------------------------------------------------------------------
# Public — batch run
# ---------------------------------------------------------------------------

def run_smart_followers(db: Session, as_of_date: date, config: ScoringConfig) -> SmartFollowersRunResult:
    """
    Score the tracked universe and snapshot every active entity for the day.

    SmartAccountScore rows are only written in graph mode; rows for earlier
    dates are never touched. Zero usable edges is not an error: the run
    falls back to estimate mode and logs a warning.
    """
    cfg = config.smart_followers
    profiles = _load_profiles(db)
    edges = _load_edges(db, set(profiles), as_of_date)
    entities = (
        db.query(TrackedEntity)
        .filter(TrackedEntity.is_active == True)  # noqa: E712
        .order_by(TrackedEntity.kind, TrackedEntity.handle)
        .all()
    )

    if not edges:
        logger.warning(
            "No follow graph available, using audience estimate",
            as_of_date=str(as_of_date),
            profiles=len(profiles),
        )
        result = SmartFollowersRunResult(as_of_date=as_of_date, mode="estimate")
        for entity in entities:
            profile = profiles.get(normalize(entity.handle))
            total = profile.followers_count if profile else 0
            _upsert_snapshot(db, entity.id, as_of_date, estimate_smart_followers(total, cfg), total, True)
            result.snapshots_written += 1
        db.commit()
        return result

    accounts, rank = score_accounts(list(profiles.values()), edges, as_of_date, cfg)
    if not rank.converged:
        logger.warning(
            "PageRank did not converge, keeping best approximation",
            as_of_date=str(as_of_date),
            iterations=rank.iterations,
        )

    result = SmartFollowersRunResult(
        as_of_date=as_of_date,
        mode="graph",
        converged=rank.converged,
        iterations=rank.iterations,
    )
    for account in accounts:
        _upsert_account(db, account, as_of_date, rank.converged)
        result.accounts_scored += 1

    smart = {a.handle for a in accounts if a.is_smart}
    smart_in_edges: dict[str, int] = defaultdict(int)
    for src, dst in edges:
        if src in smart:
            smart_in_edges[dst] += 1

    for entity in entities:
        key = normalize(entity.handle)
        profile = profiles.get(key)
        total = profile.followers_count if profile else 0
        _upsert_snapshot(db, entity.id, as_of_date, smart_in_edges.get(key, 0), total, False)
        result.snapshots_written += 1

    db.commit()
    logger.info(
        "Smart followers computed",
        as_of_date=str(as_of_date),
        accounts=result.accounts_scored,
        smart=len(smart),
        edges=len(edges),
        converged=rank.converged,
        iterations=rank.iterations,
    )
    return result


# ---------------------------------------------------------------------------
# Public — query helpers
# ---------------------------------------------------------------------------

def find_entity(db: Session, handle: str, kind: Optional[EntityKind] = None) -> TrackedEntity:
    """Resolve a handle to a tracked entity; projects win when both exist."""
    key = normalize(handle)
    query = db.query(TrackedEntity).filter(TrackedEntity.handle == key)
    if kind is not None:
        query = query.filter(TrackedEntity.kind == kind)
    matches = {e.kind: e for e in query.all()}
    entity = matches.get(EntityKind.project) or matches.get(EntityKind.creator)
    if entity is None:
        raise EntityNotFoundError(kind.value if kind else "entity", key)
    return entity


def snapshot_for(db: Session, entity_id: int, as_of_date: date) -> Optional[SmartFollowersSnapshot]:
    return (
        db.query(SmartFollowersSnapshot)
        .filter(
            SmartFollowersSnapshot.entity_id == entity_id,
            SmartFollowersSnapshot.as_of_date == as_of_date,
        )
        .first()
    )


def _delta(current: SmartFollowersSnapshot, previous: Optional[SmartFollowersSnapshot]) -> Optional[int]:
    # Graph counts and estimates are not comparable.
    if previous is None or previous.is_estimate != current.is_estimate:
        return None
    return current.smart_followers_count - previous.smart_followers_count


def get_smart_followers(
    db: Session,
    entity: str,
    as_of_date: Optional[date] = None,
    kind: Optional[EntityKind] = None,
) -> SmartFollowersView:
    """Snapshot for an entity on a date (latest when omitted) with 7d/30d deltas."""
    tracked = find_entity(db, entity, kind)
    if as_of_date is None:
        as_of_date = (
            db.query(func.max(SmartFollowersSnapshot.as_of_date))
            .filter(SmartFollowersSnapshot.entity_id == tracked.id)
            .scalar()
        )
    current = snapshot_for(db, tracked.id, as_of_date) if as_of_date else None
    if current is None:
        raise SnapshotNotFoundError("smart followers", as_of_date)

    return SmartFollowersView(
        entity=tracked.handle,
        kind=EntityKind(tracked.kind).value,
        as_of_date=current.as_of_date,
        count=current.smart_followers_count,
        pct=current.smart_followers_pct,
        total_followers=current.total_followers,
        is_estimate=current.is_estimate,
        delta_7d=_delta(current, snapshot_for(db, tracked.id, as_of_date - timedelta(days=7))),
        delta_30d=_delta(current, snapshot_for(db, tracked.id, as_of_date - timedelta(days=30))),
    )
