"""
Signal Score Engine — creator signal score and trust band per project/window.

Definition
----------
  per_event  = engagement × recency × content_type × originality
  raw_points = Σ per_event × authenticity × sentiment (× join bonus)
  signal     = min(100, raw_points × score_scale)
  trust_band = A/B/C/D by configured minimums (A highest)

  engagement  = log1p(likes·w_l + replies·w_r + retweets·w_rt)
  recency     = 2^(-age_hours / half_life[window])
  originality = penalty factor for near-duplicate text, else 1.0

Neutral behaviour when a knob is not configured
-----------------------------------------------
  half-life missing          → recency 1.0 (no decay)
  content weight missing     → 1.0 (and `unknown` type is always 1.0)
  originality penalty missing→ 1.0
  duplicate similarity       → 1.0 (only exact normalized duplicates)
  auth / sentiment bounds    → multiplier 1.0
  join weight missing        → no bonus
  score scale missing        → 1.0
  band minimum missing       → that band is unreachable

Empty contribution set → signal 0, band D. This is the defined empty case,
not an error.

Public API
----------
compute_signal_score(contributions, window, as_of, config, ...) -> SignalScore
find_near_duplicates(contributions, threshold)                  -> set[str]
trust_band(score, config)                                       -> TrustBand
run_signal_scores(db, as_of_date, config, windows)              -> SignalRunResult
get_signal_score(db, creator, project, window)                  -> SignalScore
"""
from __future__ import annotations

import math
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from signalboard.core.config import EngagementWeights, ScoringConfig, SignalConfig
from signalboard.core.errors import EntityNotFoundError
from signalboard.core.identity import normalize
from signalboard.core.logging import get_logger
from signalboard.core.windows import ALL_WINDOWS, TimeWindow, as_of_instant, as_utc, window_bounds
from signalboard.models.arena import Arena, ArenaParticipant, ArenaStatus
from signalboard.models.contribution import ContentType, ContributionEvent, SentimentLabel
from signalboard.models.entity import EntityKind, TrackedEntity
from signalboard.models.signal_score import SignalScoreResult, TrustBand
from signalboard.models.smart_account import SmartAccountScore, SmartFollowersSnapshot

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class Contribution:
    """Engine-side view of one ContributionEvent (no ORM)."""
    key: str
    author_key: str
    created_at: datetime
    content_type: ContentType = ContentType.unknown
    likes: int = 0
    replies: int = 0
    retweets: int = 0
    sentiment: SentimentLabel = SentimentLabel.unknown
    sentiment_score: Optional[float] = None
    text: Optional[str] = None


@dataclass
class Authenticity:
    """Creator authenticity inputs from the smart-followers engine."""
    smart_followers_pct: Optional[float] = None  # 0-100
    bot_risk: Optional[float] = None             # 0-1


@dataclass
class SignalScore:
    creator_key: str
    raw_points: float
    signal_score: float
    trust_band: TrustBand
    contribution_count: int


@dataclass
class SignalRunResult:
    as_of_date: date
    windows: list[str]
    results_written: int = 0
    results_zeroed: int = 0
    errors: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Label → 0-100 score when the classifier gave no numeric score.
_LABEL_SCORES: dict[SentimentLabel, Optional[float]] = {
    SentimentLabel.positive: 100.0,
    SentimentLabel.neutral: 50.0,
    SentimentLabel.negative: 0.0,
    SentimentLabel.unknown: None,
}

# Originality factor never goes below this, so a duplicate never vanishes.
_MIN_ORIGINALITY = 0.01
# Join bonus is bounded to [1.0, _MAX_JOIN_BONUS].
_MAX_JOIN_BONUS = 2.0
_MAX_SIGNAL = 100.0

_TOKEN_RE = re.compile(r"[a-z0-9$#@_]+")
_URL_RE = re.compile(r"https?://\S+")


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------

def engagement_score(
    likes: int, replies: int, retweets: int, weights: EngagementWeights
) -> float:
    return math.log1p(max(0.0, weights.points(likes, replies, retweets)))


def recency_weight(age_hours: float, half_life: Optional[float]) -> float:
    if half_life is None or half_life <= 0:
        return 1.0
    return 2.0 ** (-max(0.0, age_hours) / half_life)


def content_weight(content_type: ContentType, cfg: SignalConfig) -> float:
    if content_type is ContentType.unknown:
        return 1.0
    weight = cfg.content_weights.get(content_type.value)
    if weight is None or weight < 0:
        return 1.0
    return weight


def originality_factor(is_duplicate: bool, cfg: SignalConfig) -> float:
    if not is_duplicate or cfg.originality_penalty is None:
        return 1.0
    return max(_MIN_ORIGINALITY, min(1.0, cfg.originality_penalty))


def authenticity_weight(auth: Optional[Authenticity], cfg: SignalConfig) -> float:
    """
    0.6 × smart-follower share + 0.4 × (1 − bot risk), doubled so that the
    all-unknown case (0.5 each) lands on the neutral 1.0, then bounded.
    """
    if auth is None:
        return 1.0
    smart = 0.5 if auth.smart_followers_pct is None else min(1.0, max(0.0, auth.smart_followers_pct / 100.0))
    organic = 0.5 if auth.bot_risk is None else 1.0 - min(1.0, max(0.0, auth.bot_risk))
    return cfg.authenticity.clamp((0.6 * smart + 0.4 * organic) * 2.0)


def _event_sentiment(c: Contribution) -> Optional[float]:
    if c.sentiment_score is not None:
        return min(100.0, max(0.0, c.sentiment_score))
    return _LABEL_SCORES[c.sentiment]


def average_sentiment(contributions: Iterable[Contribution]) -> Optional[float]:
    values = [v for v in (_event_sentiment(c) for c in contributions) if v is not None]
    if not values:
        return None
    return sum(values) / len(values)


def sentiment_weight(avg_sentiment: Optional[float], cfg: SignalConfig) -> float:
    """Map 0-100 average sentiment linearly onto [floor, cap]."""
    bounds = cfg.sentiment
    if avg_sentiment is None or not bounds.configured:
        return 1.0
    low, high = sorted((bounds.floor, bounds.cap))
    return bounds.clamp(low + (avg_sentiment / 100.0) * (high - low))


def join_bonus(is_joined: bool, cfg: SignalConfig) -> float:
    if not is_joined or cfg.join_weight_max is None:
        return 1.0
    return max(1.0, min(_MAX_JOIN_BONUS, cfg.join_weight_max))


def trust_band(score: float, cfg: SignalConfig) -> TrustBand:
    """Total mapping: every score, including 0, lands in exactly one band."""
    if score <= 0:
        return TrustBand.D
    for band, minimum in (
        (TrustBand.A, cfg.band_a_min),
        (TrustBand.B, cfg.band_b_min),
        (TrustBand.C, cfg.band_c_min),
    ):
        if minimum is not None and score >= minimum:
            return band
    return TrustBand.D


# ---------------------------------------------------------------------------
# Originality
# ---------------------------------------------------------------------------

def _tokens(text: Optional[str]) -> frozenset[str]:
    if not text:
        return frozenset()
    return frozenset(_TOKEN_RE.findall(_URL_RE.sub(" ", text.lower())))


def _jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def find_near_duplicates(
    contributions: Iterable[Contribution], threshold: Optional[float]
) -> set[str]:
    """
    Keys of contributions whose text near-duplicates an EARLIER contribution
    (by any creator) in the same set. The earliest copy stays original.
    Ties on created_at are broken by key so the result is deterministic.
    """
    limit = 1.0 if threshold is None else min(1.0, max(0.0, threshold))
    ordered = sorted(contributions, key=lambda c: (as_utc(c.created_at), c.key))
    seen: list[frozenset[str]] = []
    exact: set[frozenset[str]] = set()
    duplicates: set[str] = set()
    for c in ordered:
        tokens = _tokens(c.text)
        if not tokens:
            continue
        if tokens in exact or (
            limit < 1.0 and any(_jaccard(tokens, prev) >= limit for prev in seen)
        ):
            duplicates.add(c.key)
            continue
        exact.add(tokens)
        seen.append(tokens)
    return duplicates


# ---------------------------------------------------------------------------
# Core — pure computation
# ---------------------------------------------------------------------------

def compute_signal_score(
    contributions: list[Contribution],
    window: TimeWindow,
    as_of: datetime,
    config: ScoringConfig,
    creator_key: str = "",
    authenticity: Optional[Authenticity] = None,
    is_joined: bool = False,
    duplicate_keys: frozenset[str] | set[str] = frozenset(),
) -> SignalScore:
    cfg = config.signal
    if not contributions:
        return SignalScore(
            creator_key=creator_key,
            raw_points=0.0,
            signal_score=0.0,
            trust_band=TrustBand.D,
            contribution_count=0,
        )

    half_life = cfg.half_lives.get(window.value)
    reference = as_utc(as_of)
    total = 0.0
    for c in contributions:
        age_hours = (reference - as_utc(c.created_at)).total_seconds() / 3600.0
        total += (
            engagement_score(c.likes, c.replies, c.retweets, config.engagement)
            * recency_weight(age_hours, half_life)
            * content_weight(c.content_type, cfg)
            * originality_factor(c.key in duplicate_keys, cfg)
        )

    raw_points = (
        total
        * authenticity_weight(authenticity, cfg)
        * sentiment_weight(average_sentiment(contributions), cfg)
        * join_bonus(is_joined, cfg)
    )
    scale = 1.0 if cfg.score_scale is None else max(0.0, cfg.score_scale)
    score = round(min(_MAX_SIGNAL, max(0.0, raw_points * scale)), 2)

    return SignalScore(
        creator_key=creator_key,
        raw_points=round(raw_points, 4),
        signal_score=score,
        trust_band=trust_band(score, cfg),
        contribution_count=len(contributions),
    )


# ---------------------------------------------------------------------------
# DB helpers
# ---------------------------------------------------------------------------

def to_contribution(event: ContributionEvent) -> Contribution:
    return Contribution(
        key=event.external_id,
        author_key=normalize(event.author_key or event.author_handle),
        created_at=event.created_at,
        content_type=ContentType.parse(event.content_type),
        likes=event.likes or 0,
        replies=event.replies or 0,
        retweets=event.retweets or 0,
        sentiment=SentimentLabel.parse(event.sentiment),
        sentiment_score=event.sentiment_score,
        text=event.text,
    )


def load_window_contributions(
    db: Session, project_id: int, window: TimeWindow, as_of_date: date
) -> list[Contribution]:
    """Non-official, attributable mentions of a project inside the window."""
    start, end = window_bounds(window, as_of_date)
    events = (
        db.query(ContributionEvent)
        .filter(
            ContributionEvent.project_id == project_id,
            ContributionEvent.is_official == False,  # noqa: E712
            ContributionEvent.created_at >= start,
            ContributionEvent.created_at < end,
        )
        .order_by(ContributionEvent.created_at, ContributionEvent.external_id)
        .all()
    )
    contributions = [to_contribution(e) for e in events]
    return [c for c in contributions if c.author_key]


def _authenticity_for(db: Session, creator_key: str, as_of_date: date) -> Optional[Authenticity]:
    """
    Authenticity inputs as of the run date. Estimate-mode snapshots are
    ignored so the multiplier stays neutral without a follow graph.
    """
    account = (
        db.query(SmartAccountScore)
        .filter(SmartAccountScore.handle == creator_key, SmartAccountScore.as_of_date == as_of_date)
        .first()
    )
    snapshot = (
        db.query(SmartFollowersSnapshot)
        .join(TrackedEntity, TrackedEntity.id == SmartFollowersSnapshot.entity_id)
        .filter(
            TrackedEntity.kind == EntityKind.creator,
            TrackedEntity.handle == creator_key,
            SmartFollowersSnapshot.as_of_date == as_of_date,
            SmartFollowersSnapshot.is_estimate == False,  # noqa: E712
        )
        .first()
    )
    if account is None and snapshot is None:
        return None
    return Authenticity(
        smart_followers_pct=snapshot.smart_followers_pct if snapshot else None,
        bot_risk=account.bot_risk if account else None,
    )


def joined_handles(db: Session, project_id: int) -> set[str]:
    rows = (
        db.query(ArenaParticipant.handle)
        .join(Arena, Arena.id == ArenaParticipant.arena_id)
        .filter(Arena.project_id == project_id, Arena.status == ArenaStatus.active)
        .all()
    )
    return {key for key in (normalize(r.handle) for r in rows) if key}


def _upsert_result(
    db: Session,
    project_id: int,
    window: TimeWindow,
    as_of_date: date,
    score: SignalScore,
    existing: Optional[SignalScoreResult],
) -> None:
    row = existing
    if row is None:
        row = SignalScoreResult(
            creator_key=score.creator_key,
            project_id=project_id,
            time_window=window.value,
        )
        db.add(row)
    row.as_of_date = as_of_date
    row.raw_points = score.raw_points
    row.signal_score = score.signal_score
    row.trust_band = score.trust_band.value
    row.contribution_count = score.contribution_count


def _write_project_window(
    db: Session,
    project_id: int,
    window: TimeWindow,
    as_of_date: date,
    scores: dict[str, SignalScore],
    config: ScoringConfig,
) -> tuple[int, int]:
    existing = {
        row.creator_key: row
        for row in db.query(SignalScoreResult).filter(
            SignalScoreResult.project_id == project_id,
            SignalScoreResult.time_window == window.value,
        )
    }
    for creator, score in scores.items():
        _upsert_result(db, project_id, window, as_of_date, score, existing.get(creator))
    zeroed = 0
    for creator, row in existing.items():
        if creator in scores:
            continue
        empty = compute_signal_score([], window, as_of_instant(as_of_date), config, creator)
        _upsert_result(db, project_id, window, as_of_date, empty, row)
        zeroed += 1
    return len(scores), zeroed


# ---------------------------------------------------------------------------
# Public — batch run
# ---------------------------------------------------------------------------

def score_project_window(
    db: Session,
    project: TrackedEntity,
    window: TimeWindow,
    as_of_date: date,
    config: ScoringConfig,
) -> dict[str, SignalScore]:
    """Compute (no writes) every creator's score for one project and window."""
    contributions = load_window_contributions(db, project.id, window, as_of_date)
    duplicates = find_near_duplicates(contributions, config.signal.duplicate_similarity)
    joined = joined_handles(db, project.id)
    as_of = as_of_instant(as_of_date)

    by_creator: dict[str, list[Contribution]] = defaultdict(list)
    for c in contributions:
        by_creator[c.author_key].append(c)

    return {
        creator: compute_signal_score(
            items,
            window,
            as_of,
            config,
            creator_key=creator,
            authenticity=_authenticity_for(db, creator, as_of_date),
            is_joined=creator in joined,
            duplicate_keys=duplicates,
        )
        for creator, items in sorted(by_creator.items())
    }


def run_signal_scores(
    db: Session,
    as_of_date: date,
    config: ScoringConfig,
    windows: Iterable[TimeWindow] = ALL_WINDOWS,
) -> SignalRunResult:
    """
    Recompute and upsert SignalScoreResult rows for every active project.

    Creators that had a row but no contributions in the new window are reset
    to the empty case (0 / D) instead of keeping a stale score. Each project
    commits on its own; a failing project is rolled back, logged and skipped,
    and never aborts the batch.
    """
    windows = list(windows)
    result = SignalRunResult(as_of_date=as_of_date, windows=[w.value for w in windows])
    projects = (
        db.query(TrackedEntity)
        .filter(TrackedEntity.kind == EntityKind.project, TrackedEntity.is_active == True)  # noqa: E712
        .order_by(TrackedEntity.handle)
        .all()
    )

    for window in windows:
        for project in projects:
            handle = project.handle
            try:
                scores = score_project_window(db, project, window, as_of_date, config)
                written, zeroed = _write_project_window(db, project.id, window, as_of_date, scores, config)
                db.commit()
            except Exception as exc:
                db.rollback()
                logger.error("Signal score failed", project=handle, window=window.value, error=str(exc))
                result.errors.append(f"project {handle} window {window.value}: {exc}")
                continue
            result.results_written += written
            result.results_zeroed += zeroed

    logger.info(
        "Signal scores computed",
        as_of_date=str(as_of_date),
        written=result.results_written,
        zeroed=result.results_zeroed,
        errors=len(result.errors),
    )
    return result


# ---------------------------------------------------------------------------
# Public — query helper
# ---------------------------------------------------------------------------

def get_signal_score(
    db: Session,
    creator: str,
    project: str,
    window: TimeWindow = TimeWindow.d7,
) -> SignalScore:
    """
    Latest stored score for (creator, project, window). A creator with no
    stored result gets the empty case (0 / D), not an error.
    """
    project_key = normalize(project)
    creator_key = normalize(creator)
    entity = (
        db.query(TrackedEntity)
        .filter(TrackedEntity.kind == EntityKind.project, TrackedEntity.handle == project_key)
        .first()
    )
    if entity is None:
        raise EntityNotFoundError("project", project_key)

    row = (
        db.query(SignalScoreResult)
        .filter(
            SignalScoreResult.project_id == entity.id,
            SignalScoreResult.creator_key == creator_key,
            SignalScoreResult.time_window == window.value,
        )
        .first()
    )
    if row is None:
        return SignalScore(
            creator_key=creator_key,
            raw_points=0.0,
            signal_score=0.0,
            trust_band=TrustBand.D,
            contribution_count=0,
        )
    return SignalScore(
        creator_key=row.creator_key,
        raw_points=row.raw_points,
        signal_score=row.signal_score,
        trust_band=TrustBand(row.trust_band),
        contribution_count=row.contribution_count,
    )
