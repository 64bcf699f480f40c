"""
Mindshare Engine — attention value per project and its share of 10,000 bps.

Attention
---------
  core      = w_posts·log1p(mentions) + w_creators·log1p(unique creators)
            + w_engagement·log1p(engagement) + w_heat·log1p(heat)
  attention = core × creator_organic × audience_organic × originality
                   × sentiment × smart_followers × keyword_strength

Every multiplier is clamped to its configured [floor, cap] and is 1.0 when
the bounds are not configured or its input is unknown. A missing weight is 0.
Projects with no activity keep attention 0 and still take part in the
normalization.

Normalization (per window and as-of date)
-----------------------------------------
  all zero  → floor(10000 / n) each, remainder to the first projects by key
  otherwise → floor(share × 10000), remaining units one at a time to the
              largest fractional remainders, ties by identity key

Shares are computed with exact rational arithmetic, so the sum is exactly
10,000 and the result is identical on every re-run. If it somehow is not,
nothing is written for that window (NormalizationInvariantError).

Public API
----------
compute_attention_value(inputs, config)   -> float
normalize_to_bps(values)                  -> dict[str, int]
run_mindshare(db, as_of_date, config)     -> MindshareRunResult
get_mindshare(db, window, as_of_date)     -> MindshareView
"""
from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, timedelta
from fractions import Fraction
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from signalboard.core.config import MindshareConfig, ScoringConfig
from signalboard.core.errors import NormalizationInvariantError, SnapshotNotFoundError
from signalboard.core.identity import normalize
from signalboard.core.logging import get_logger
from signalboard.core.windows import ALL_WINDOWS, TimeWindow, as_of_instant
from signalboard.models.community_heat import CommunityHeat
from signalboard.models.entity import EntityKind, TrackedEntity
from signalboard.models.follow_edge import FollowEdge
from signalboard.models.mindshare import MindshareSnapshot
from signalboard.models.smart_account import SmartAccountScore, SmartFollowersSnapshot
from signalboard.services.signal_score import (
    Contribution,
    average_sentiment,
    find_near_duplicates,
    load_window_contributions,
)
from signalboard.services.smart_followers import smart_followers_boost

logger = get_logger(__name__)

TOTAL_BPS = 10_000


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class ProjectInputs:
    """Aggregated per-project inputs for one window. Scores are 0-100."""
    project: str
    mentions: int = 0
    unique_creators: int = 0
    engagement: float = 0.0
    heat: float = 0.0
    creator_organic: Optional[float] = None
    audience_organic: Optional[float] = None
    originality: Optional[float] = None
    sentiment: Optional[float] = None
    smart_followers_pct: Optional[float] = None
    smart_followers_is_estimate: bool = True
    has_keywords: bool = False


@dataclass
class MindshareRunResult:
    as_of_date: date
    windows_written: list[str] = field(default_factory=list)
    windows_failed: list[str] = field(default_factory=list)
    snapshots_written: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class MindshareRow:
    project: str
    mindshare_bps: int
    attention_value: float
    delta_1d: Optional[int]
    delta_7d: Optional[int]


@dataclass
class MindshareView:
    window: str
    as_of_date: date
    rows: list[MindshareRow]


# ---------------------------------------------------------------------------
# Core — pure computation
# ---------------------------------------------------------------------------

def _weight(value: Optional[float]) -> float:
    return value if value is not None else 0.0


def _log_input(value: float) -> float:
    return math.log1p(max(0.0, value))


def _score_multiplier(score: Optional[float], bounds) -> float:
    if score is None:
        return 1.0
    return bounds.clamp(score / 100.0)


def _sentiment_multiplier(avg: Optional[float], cfg: MindshareConfig) -> float:
    bounds = cfg.sentiment
    if avg is None or not bounds.configured:
        return 1.0
    low, high = sorted((bounds.floor, bounds.cap))
    return bounds.clamp(low + (avg / 100.0) * (high - low))


def keyword_strength(has_keywords: bool, cfg: MindshareConfig) -> float:
    strength = cfg.keyword_match_strength if has_keywords else cfg.no_keyword_strength
    if strength is None:
        return 1.0
    if cfg.keyword.configured:
        return cfg.keyword.clamp(strength)
    return max(0.0, strength)


def compute_attention_value(inputs: ProjectInputs, config: MindshareConfig) -> float:
    core = (
        _weight(config.w_posts) * _log_input(inputs.mentions)
        + _weight(config.w_creators) * _log_input(inputs.unique_creators)
        + _weight(config.w_engagement) * _log_input(inputs.engagement)
        + _weight(config.w_heat) * _log_input(inputs.heat)
    )
    attention = (
        core
        * _score_multiplier(inputs.creator_organic, config.creator_organic)
        * _score_multiplier(inputs.audience_organic, config.audience_organic)
        * _score_multiplier(inputs.originality, config.originality)
        * _sentiment_multiplier(inputs.sentiment, config)
        * smart_followers_boost(
            inputs.smart_followers_pct, inputs.smart_followers_is_estimate, config.smart_followers
        )
        * keyword_strength(inputs.has_keywords, config)
    )
    if not math.isfinite(attention):
        return 0.0
    return max(0.0, attention)


def normalize_to_bps(values: dict[str, float]) -> dict[str, int]:
    """
    Largest-remainder apportionment of TOTAL_BPS over attention values.

    Monotonic: a strictly larger attention value never gets fewer bps.
    Negative or non-finite values count as 0.
    """
    if not values:
        return {}
    keys = sorted(values)
    exact = {
        k: Fraction(values[k]) if math.isfinite(values[k]) and values[k] > 0 else Fraction(0)
        for k in keys
    }
    total = sum(exact.values(), Fraction(0))
    n = len(keys)

    if total == 0:
        share, remainder = divmod(TOTAL_BPS, n)
        return {k: share + (1 if i < remainder else 0) for i, k in enumerate(keys)}

    quotas = {k: exact[k] * TOTAL_BPS / total for k in keys}
    bps = {k: math.floor(quotas[k]) for k in keys}
    remainder = TOTAL_BPS - sum(bps.values())
    by_fraction = sorted(keys, key=lambda k: (-(quotas[k] - bps[k]), k))
    for k in by_fraction[:remainder]:
        bps[k] += 1
    return bps


# ---------------------------------------------------------------------------
# Input gathering
# ---------------------------------------------------------------------------

def matches_keywords(text: Optional[str], keywords: list[str]) -> bool:
    """Plain, $cashtag or @mention occurrence of any keyword."""
    if not keywords:
        return True
    body = (text or "").lower()
    return any(k in body or f"${k}" in body or f"@{k}" in body for k in keywords)


def _creator_organic(db: Session, authors: set[str], as_of_date: date) -> Optional[float]:
    if not authors:
        return None
    risks = [
        r for (r,) in db.query(SmartAccountScore.bot_risk).filter(
            SmartAccountScore.handle.in_(sorted(authors)),
            SmartAccountScore.as_of_date == as_of_date,
        )
    ]
    if not risks:
        return None
    return 100.0 * (1.0 - sum(risks) / len(risks))


def _audience_organic(db: Session, project_key: str, as_of_date: date) -> Optional[float]:
    cutoff = as_of_instant(as_of_date)
    followers = {
        normalize(follower)
        for follower, followee in db.query(FollowEdge.follower_key, FollowEdge.followee_key).filter(
            FollowEdge.first_seen_at < cutoff
        )
        if normalize(followee) == project_key
    }
    followers.discard("")
    if not followers:
        return None
    risks = [
        r for (r,) in db.query(SmartAccountScore.bot_risk).filter(
            SmartAccountScore.handle.in_(sorted(followers)),
            SmartAccountScore.as_of_date == as_of_date,
        )
    ]
    if not risks:
        return None
    return 100.0 * (1.0 - sum(risks) / len(risks))


def _heat(db: Session, project_id: int, as_of_date: date) -> float:
    row = (
        db.query(CommunityHeat)
        .filter(CommunityHeat.project_id == project_id, CommunityHeat.day <= as_of_date)
        .order_by(CommunityHeat.day.desc())
        .first()
    )
    return row.heat if row else 0.0


def gather_inputs(
    db: Session,
    project: TrackedEntity,
    window: TimeWindow,
    as_of_date: date,
    config: ScoringConfig,
) -> ProjectInputs:
    keywords = project.keyword_list
    mentions: list[Contribution] = [
        c for c in load_window_contributions(db, project.id, window, as_of_date)
        if matches_keywords(c.text, keywords)
    ]
    authors = {c.author_key for c in mentions}
    engagement = sum(config.engagement.points(c.likes, c.replies, c.retweets) for c in mentions)

    originality = None
    if mentions:
        duplicates = find_near_duplicates(mentions, config.signal.duplicate_similarity)
        originality = 100.0 * (1.0 - len(duplicates) / len(mentions))

    snapshot = (
        db.query(SmartFollowersSnapshot)
        .filter(
            SmartFollowersSnapshot.entity_id == project.id,
            SmartFollowersSnapshot.as_of_date == as_of_date,
        )
        .first()
    )

    return ProjectInputs(
        project=project.handle,
        mentions=len(mentions),
        unique_creators=len(authors),
        engagement=engagement,
        heat=_heat(db, project.id, as_of_date),
        creator_organic=_creator_organic(db, authors, as_of_date),
        audience_organic=_audience_organic(db, normalize(project.handle), as_of_date),
        originality=originality,
        sentiment=average_sentiment(mentions),
        smart_followers_pct=snapshot.smart_followers_pct if snapshot else None,
        smart_followers_is_estimate=snapshot.is_estimate if snapshot else True,
        has_keywords=bool(keywords),
    )


# ---------------------------------------------------------------------------
# Public — batch run
# ---------------------------------------------------------------------------

def _attention_for(inputs: ProjectInputs, config: MindshareConfig) -> tuple[str, float, Optional[str]]:
    try:
        return inputs.project, compute_attention_value(inputs, config), None
    except Exception as exc:
        return inputs.project, 0.0, str(exc)


def compute_window(
    db: Session,
    projects: list[TrackedEntity],
    window: TimeWindow,
    as_of_date: date,
    config: ScoringConfig,
) -> tuple[dict[str, float], dict[str, int], list[str]]:
    """
    Attention values and bps for one window, without writing anything.

    Inputs are read on the calling thread (the session is not thread-safe);
    the pure attention computation fans out over a thread pool; the
    normalization runs once after every project has reported.
    """
    errors: list[str] = []
    inputs: list[ProjectInputs] = []
    for project in projects:
        handle = project.handle
        try:
            inputs.append(gather_inputs(db, project, window, as_of_date, config))
        except Exception as exc:
            # Reads only; rolling back clears a failed transaction for the next project.
            db.rollback()
            logger.warning(
                "Mindshare inputs unavailable, using zero activity",
                project=handle,
                window=window.value,
                error=str(exc),
            )
            errors.append(f"project {handle} window {window.value}: {exc}")
            inputs.append(ProjectInputs(project=handle))

    attention: dict[str, float] = {}
    workers = max(1, config.mindshare.max_workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for project_key, value, error in pool.map(
            lambda i: _attention_for(i, config.mindshare), inputs
        ):
            if error is not None:
                logger.warning(
                    "Attention computation failed, using zero",
                    project=project_key,
                    window=window.value,
                    error=error,
                )
                errors.append(f"project {project_key} window {window.value}: {error}")
            attention[project_key] = value

    bps = normalize_to_bps(attention)
    total = sum(bps.values())
    if attention and total != TOTAL_BPS:
        raise NormalizationInvariantError(window.value, as_of_date, total)
    return attention, bps, errors


def _write_window(
    db: Session,
    projects: list[TrackedEntity],
    window: TimeWindow,
    as_of_date: date,
    attention: dict[str, float],
    bps: dict[str, int],
) -> int:
    ids = {p.handle: p.id for p in projects}
    existing = {
        row.project_id: row
        for row in db.query(MindshareSnapshot).filter(
            MindshareSnapshot.time_window == window.value,
            MindshareSnapshot.as_of_date == as_of_date,
        )
    }
    # Rows of projects that left the run would break the 10,000 total.
    for project_id, row in existing.items():
        if project_id not in ids.values():
            db.delete(row)

    for handle, project_id in ids.items():
        row = existing.get(project_id)
        if row is None:
            row = MindshareSnapshot(project_id=project_id, time_window=window.value, as_of_date=as_of_date)
            db.add(row)
        row.attention_value = round(attention[handle], 6)
        row.mindshare_bps = bps[handle]
    return len(ids)


def run_mindshare(
    db: Session,
    as_of_date: date,
    config: ScoringConfig,
    windows: Iterable[TimeWindow] = ALL_WINDOWS,
) -> MindshareRunResult:
    """
    Compute and upsert mindshare snapshots for every window.

    Each window commits on its own. An invariant violation discards that
    window only; the other windows still proceed.
    """
    result = MindshareRunResult(as_of_date=as_of_date)
    projects = (
        db.query(TrackedEntity)
        .filter(TrackedEntity.kind == EntityKind.project, TrackedEntity.is_active == True)  # noqa: E712
        .order_by(TrackedEntity.handle)
        .all()
    )
    if not projects:
        logger.info("No active projects, skipping mindshare", as_of_date=str(as_of_date))
        return result

    for window in windows:
        try:
            attention, bps, errors = compute_window(db, projects, window, as_of_date, config)
        except NormalizationInvariantError as exc:
            logger.error(
                "Mindshare normalization invariant violated, window not persisted",
                window=window.value,
                as_of_date=str(as_of_date),
                total_bps=exc.details["total_bps"],
            )
            result.windows_failed.append(window.value)
            result.errors.append(exc.message)
            continue

        result.errors.extend(errors)
        result.snapshots_written += _write_window(db, projects, window, as_of_date, attention, bps)
        db.commit()
        result.windows_written.append(window.value)

    logger.info(
        "Mindshare computed",
        as_of_date=str(as_of_date),
        projects=len(projects),
        windows=result.windows_written,
        failed=result.windows_failed,
    )
    return result


# ---------------------------------------------------------------------------
# Public — query helpers
# ---------------------------------------------------------------------------

def latest_as_of_date(db: Session, window: TimeWindow) -> Optional[date]:
    return (
        db.query(func.max(MindshareSnapshot.as_of_date))
        .filter(MindshareSnapshot.time_window == window.value)
        .scalar()
    )


def _bps_on(db: Session, window: TimeWindow, as_of_date: date) -> dict[int, int]:
    return {
        project_id: bps
        for project_id, bps in db.query(MindshareSnapshot.project_id, MindshareSnapshot.mindshare_bps).filter(
            MindshareSnapshot.time_window == window.value,
            MindshareSnapshot.as_of_date == as_of_date,
        )
    }


def get_mindshare(db: Session, window: TimeWindow, as_of_date: Optional[date] = None) -> MindshareView:
    """
    Snapshot rows for (window, date), sorted by bps descending then project.
    Without a date the latest available one is used. Deltas are None when
    the comparison day has no snapshot for the project.
    """
    if as_of_date is None:
        as_of_date = latest_as_of_date(db, window)
    rows = []
    if as_of_date is not None:
        rows = (
            db.query(MindshareSnapshot, TrackedEntity.handle)
            .join(TrackedEntity, TrackedEntity.id == MindshareSnapshot.project_id)
            .filter(
                MindshareSnapshot.time_window == window.value,
                MindshareSnapshot.as_of_date == as_of_date,
            )
            .all()
        )
    if not rows:
        raise SnapshotNotFoundError(f"mindshare {window.value}", as_of_date)

    previous_day = _bps_on(db, window, as_of_date - timedelta(days=1))
    previous_week = _bps_on(db, window, as_of_date - timedelta(days=7))

    def delta(project_id: int, bps: int, previous: dict[int, int]) -> Optional[int]:
        if project_id not in previous:
            return None
        return bps - previous[project_id]

    result = [
        MindshareRow(
            project=handle,
            mindshare_bps=snap.mindshare_bps,
            attention_value=snap.attention_value,
            delta_1d=delta(snap.project_id, snap.mindshare_bps, previous_day),
            delta_7d=delta(snap.project_id, snap.mindshare_bps, previous_week),
        )
        for snap, handle in rows
    ]
    result.sort(key=lambda r: (-r.mindshare_bps, r.project))
    return MindshareView(window=window.value, as_of_date=as_of_date, rows=result)
