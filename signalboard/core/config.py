"""
Runtime settings and the immutable per-run scoring configuration.

Settings are read from the environment / `.env` by pydantic-settings.
Every scoring knob is Optional: `None` means "not configured", and each
engine documents the neutral behaviour it falls back to. Engines never read
`settings` directly. The pipeline calls `load_scoring_config()` once at run
start and passes the frozen `ScoringConfig` down, so a run is reproducible
from its configuration snapshot.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://signalboard:signalboard@db:5432/signalboard"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    # --- Mindshare: core weights (log1p-scaled inputs) ---
    MINDSHARE_W1_POSTS: Optional[float] = None
    MINDSHARE_W2_CREATORS: Optional[float] = None
    MINDSHARE_W3_ENGAGEMENT: Optional[float] = None
    MINDSHARE_W4_CT_HEAT: Optional[float] = None

    # --- Mindshare: quality multiplier bounds ---
    MINDSHARE_CREATOR_ORG_FLOOR: Optional[float] = None
    MINDSHARE_CREATOR_ORG_CAP: Optional[float] = None
    MINDSHARE_AUDIENCE_ORG_FLOOR: Optional[float] = None
    MINDSHARE_AUDIENCE_ORG_CAP: Optional[float] = None
    MINDSHARE_ORIGINALITY_FLOOR: Optional[float] = None
    MINDSHARE_ORIGINALITY_CAP: Optional[float] = None
    MINDSHARE_SENTIMENT_FLOOR: Optional[float] = None
    MINDSHARE_SENTIMENT_CAP: Optional[float] = None
    MINDSHARE_SMART_FOLLOWERS_FLOOR: Optional[float] = None
    MINDSHARE_SMART_FOLLOWERS_CAP: Optional[float] = None
    MINDSHARE_KEYWORD_FLOOR: Optional[float] = None
    MINDSHARE_KEYWORD_CAP: Optional[float] = None
    MINDSHARE_KEYWORD_MATCH_STRENGTH: Optional[float] = None
    MINDSHARE_NO_KEYWORD_STRENGTH: Optional[float] = None
    MINDSHARE_MAX_WORKERS: int = 4

    # --- Signal score ---
    SIGNAL_RECENCY_HALFLIFE_24H: Optional[float] = None
    SIGNAL_RECENCY_HALFLIFE_48H: Optional[float] = None
    SIGNAL_RECENCY_HALFLIFE_7D: Optional[float] = None
    SIGNAL_RECENCY_HALFLIFE_30D: Optional[float] = None
    SIGNAL_CONTENT_WEIGHT_THREAD: Optional[float] = None
    SIGNAL_CONTENT_WEIGHT_ANALYSIS: Optional[float] = None
    SIGNAL_CONTENT_WEIGHT_MEME: Optional[float] = None
    SIGNAL_CONTENT_WEIGHT_QUOTE: Optional[float] = None
    SIGNAL_CONTENT_WEIGHT_RETWEET: Optional[float] = None
    SIGNAL_CONTENT_WEIGHT_REPLY: Optional[float] = None
    SIGNAL_CONTENT_WEIGHT_ORIGINAL: Optional[float] = None
    SIGNAL_ORIGINALITY_PENALTY: Optional[float] = None
    SIGNAL_DUPLICATE_SIMILARITY: Optional[float] = None
    SIGNAL_AUTH_WEIGHT_FLOOR: Optional[float] = None
    SIGNAL_AUTH_WEIGHT_CAP: Optional[float] = None
    SIGNAL_SENTIMENT_WEIGHT_FLOOR: Optional[float] = None
    SIGNAL_SENTIMENT_WEIGHT_CAP: Optional[float] = None
    SIGNAL_JOIN_WEIGHT_MAX: Optional[float] = None
    SIGNAL_SCORE_SCALE: Optional[float] = None
    SIGNAL_TRUST_BAND_A_MIN: Optional[float] = None
    SIGNAL_TRUST_BAND_B_MIN: Optional[float] = None
    SIGNAL_TRUST_BAND_C_MIN: Optional[float] = None

    # --- Smart followers ---
    SMART_FOLLOWERS_TOP_N: Optional[int] = None
    SMART_FOLLOWERS_TOP_PCT: Optional[float] = None
    BOT_RISK_THRESHOLD: Optional[float] = None
    MIN_ACCOUNT_AGE_DAYS: Optional[int] = None
    PAGERANK_DAMPING: float = 0.85
    PAGERANK_MAX_ITERATIONS: int = 100
    PAGERANK_EPSILON: float = 1e-6
    PAGERANK_TIMEOUT_SECONDS: float = 30.0
    ESTIMATE_SMART_RATIO: Optional[float] = None

    # --- Leaderboard ---
    LEADERBOARD_FOLLOW_BOOST: Optional[float] = None
    ENGAGEMENT_WEIGHT_LIKES: float = 1.0
    ENGAGEMENT_WEIGHT_REPLIES: float = 2.0
    ENGAGEMENT_WEIGHT_RETWEETS: float = 3.0

    # --- Worker ---
    WORKER_JOB: str = "pipeline"
    # Overrides the per-job interval when set.
    WORKER_INTERVAL_MINUTES: Optional[int] = None

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()


# ---------------------------------------------------------------------------
# Immutable scoring configuration
# ---------------------------------------------------------------------------

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Bounds(_Frozen):
    """
    Floor/cap pair for a quality multiplier.

    A multiplier is only active when BOTH bounds are configured; otherwise
    `clamp()` returns the neutral 1.0 so an unconfigured multiplier can
    neither zero out nor inflate a score.
    """
    floor: Optional[float] = None
    cap: Optional[float] = None

    @property
    def configured(self) -> bool:
        return self.floor is not None and self.cap is not None

    def clamp(self, value: float) -> float:
        if not self.configured:
            return 1.0
        low, high = sorted((self.floor, self.cap))
        return max(low, min(high, value))


class EngagementWeights(_Frozen):
    likes: float = 1.0
    replies: float = 2.0
    retweets: float = 3.0

    def points(self, likes: int | None, replies: int | None, retweets: int | None) -> float:
        return (
            self.likes * (likes or 0)
            + self.replies * (replies or 0)
            + self.retweets * (retweets or 0)
        )


class MindshareConfig(_Frozen):
    w_posts: Optional[float] = None
    w_creators: Optional[float] = None
    w_engagement: Optional[float] = None
    w_heat: Optional[float] = None
    creator_organic: Bounds = Bounds()
    audience_organic: Bounds = Bounds()
    originality: Bounds = Bounds()
    sentiment: Bounds = Bounds()
    smart_followers: Bounds = Bounds()
    keyword: Bounds = Bounds()
    keyword_match_strength: Optional[float] = None
    no_keyword_strength: Optional[float] = None
    max_workers: int = 4


class SignalConfig(_Frozen):
    # keyed by TimeWindow value ("24h", "48h", "7d", "30d")
    half_lives: dict[str, float] = {}
    # keyed by ContentType value
    content_weights: dict[str, float] = {}
    originality_penalty: Optional[float] = None
    duplicate_similarity: Optional[float] = None
    authenticity: Bounds = Bounds()
    sentiment: Bounds = Bounds()
    join_weight_max: Optional[float] = None
    score_scale: Optional[float] = None
    band_a_min: Optional[float] = None
    band_b_min: Optional[float] = None
    band_c_min: Optional[float] = None


class SmartFollowersConfig(_Frozen):
    top_n: Optional[int] = None
    top_pct: Optional[float] = None
    bot_risk_threshold: Optional[float] = None
    min_account_age_days: Optional[int] = None
    damping: float = 0.85
    max_iterations: int = 100
    epsilon: float = 1e-6
    timeout_seconds: float = 30.0
    estimate_smart_ratio: Optional[float] = None
    boost: Bounds = Bounds()


class LeaderboardConfig(_Frozen):
    follow_boost: Optional[float] = None


class ScoringConfig(_Frozen):
    mindshare: MindshareConfig = MindshareConfig()
    signal: SignalConfig = SignalConfig()
    smart_followers: SmartFollowersConfig = SmartFollowersConfig()
    leaderboard: LeaderboardConfig = LeaderboardConfig()
    engagement: EngagementWeights = EngagementWeights()


def _drop_none(mapping: dict[str, Optional[float]]) -> dict[str, float]:
    return {k: v for k, v in mapping.items() if v is not None}


def load_scoring_config(s: Settings | None = None) -> ScoringConfig:
    """Snapshot the scoring knobs from settings into a frozen ScoringConfig."""
    s = s or settings
    smart_boost = Bounds(
        floor=s.MINDSHARE_SMART_FOLLOWERS_FLOOR,
        cap=s.MINDSHARE_SMART_FOLLOWERS_CAP,
    )
    return ScoringConfig(
        mindshare=MindshareConfig(
            w_posts=s.MINDSHARE_W1_POSTS,
            w_creators=s.MINDSHARE_W2_CREATORS,
            w_engagement=s.MINDSHARE_W3_ENGAGEMENT,
            w_heat=s.MINDSHARE_W4_CT_HEAT,
            creator_organic=Bounds(floor=s.MINDSHARE_CREATOR_ORG_FLOOR, cap=s.MINDSHARE_CREATOR_ORG_CAP),
            audience_organic=Bounds(floor=s.MINDSHARE_AUDIENCE_ORG_FLOOR, cap=s.MINDSHARE_AUDIENCE_ORG_CAP),
            originality=Bounds(floor=s.MINDSHARE_ORIGINALITY_FLOOR, cap=s.MINDSHARE_ORIGINALITY_CAP),
            sentiment=Bounds(floor=s.MINDSHARE_SENTIMENT_FLOOR, cap=s.MINDSHARE_SENTIMENT_CAP),
            smart_followers=smart_boost,
            keyword=Bounds(floor=s.MINDSHARE_KEYWORD_FLOOR, cap=s.MINDSHARE_KEYWORD_CAP),
            keyword_match_strength=s.MINDSHARE_KEYWORD_MATCH_STRENGTH,
            no_keyword_strength=s.MINDSHARE_NO_KEYWORD_STRENGTH,
            max_workers=s.MINDSHARE_MAX_WORKERS,
        ),
        signal=SignalConfig(
            half_lives=_drop_none({
                "24h": s.SIGNAL_RECENCY_HALFLIFE_24H,
                "48h": s.SIGNAL_RECENCY_HALFLIFE_48H,
                "7d": s.SIGNAL_RECENCY_HALFLIFE_7D,
                "30d": s.SIGNAL_RECENCY_HALFLIFE_30D,
            }),
            content_weights=_drop_none({
                "thread": s.SIGNAL_CONTENT_WEIGHT_THREAD,
                "analysis": s.SIGNAL_CONTENT_WEIGHT_ANALYSIS,
                "meme": s.SIGNAL_CONTENT_WEIGHT_MEME,
                "quote": s.SIGNAL_CONTENT_WEIGHT_QUOTE,
                "retweet": s.SIGNAL_CONTENT_WEIGHT_RETWEET,
                "reply": s.SIGNAL_CONTENT_WEIGHT_REPLY,
                "original": s.SIGNAL_CONTENT_WEIGHT_ORIGINAL,
            }),
            originality_penalty=s.SIGNAL_ORIGINALITY_PENALTY,
            duplicate_similarity=s.SIGNAL_DUPLICATE_SIMILARITY,
            authenticity=Bounds(floor=s.SIGNAL_AUTH_WEIGHT_FLOOR, cap=s.SIGNAL_AUTH_WEIGHT_CAP),
            sentiment=Bounds(floor=s.SIGNAL_SENTIMENT_WEIGHT_FLOOR, cap=s.SIGNAL_SENTIMENT_WEIGHT_CAP),
            join_weight_max=s.SIGNAL_JOIN_WEIGHT_MAX,
            score_scale=s.SIGNAL_SCORE_SCALE,
            band_a_min=s.SIGNAL_TRUST_BAND_A_MIN,
            band_b_min=s.SIGNAL_TRUST_BAND_B_MIN,
            band_c_min=s.SIGNAL_TRUST_BAND_C_MIN,
        ),
        smart_followers=SmartFollowersConfig(
            top_n=s.SMART_FOLLOWERS_TOP_N,
            top_pct=s.SMART_FOLLOWERS_TOP_PCT,
            bot_risk_threshold=s.BOT_RISK_THRESHOLD,
            min_account_age_days=s.MIN_ACCOUNT_AGE_DAYS,
            damping=s.PAGERANK_DAMPING,
            max_iterations=s.PAGERANK_MAX_ITERATIONS,
            epsilon=s.PAGERANK_EPSILON,
            timeout_seconds=s.PAGERANK_TIMEOUT_SECONDS,
            estimate_smart_ratio=s.ESTIMATE_SMART_RATIO,
            boost=smart_boost,
        ),
        leaderboard=LeaderboardConfig(follow_boost=s.LEADERBOARD_FOLLOW_BOOST),
        engagement=EngagementWeights(
            likes=s.ENGAGEMENT_WEIGHT_LIKES,
            replies=s.ENGAGEMENT_WEIGHT_REPLIES,
            retweets=s.ENGAGEMENT_WEIGHT_RETWEETS,
        ),
    )
