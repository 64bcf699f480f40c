"""
Tests for settings → ScoringConfig and the neutral behaviour of unset knobs.
"""
import pytest
from pydantic import ValidationError

from signalboard.core.config import (
    Bounds,
    EngagementWeights,
    ScoringConfig,
    Settings,
    load_scoring_config,
)


class TestBounds:
    def test_unconfigured_is_neutral(self):
        assert Bounds().clamp(0.0) == 1.0
        assert Bounds(floor=0.5).clamp(5.0) == 1.0
        assert Bounds(cap=1.5).clamp(5.0) == 1.0

    def test_clamps(self):
        b = Bounds(floor=0.5, cap=1.5)
        assert b.clamp(0.1) == 0.5
        assert b.clamp(1.2) == 1.2
        assert b.clamp(9.0) == 1.5

    def test_swapped_bounds_are_sorted(self):
        assert Bounds(floor=1.5, cap=0.5).clamp(2.0) == 1.5

    def test_frozen(self):
        with pytest.raises(ValidationError):
            Bounds(floor=0.5, cap=1.5).floor = 0.1


class TestEngagementWeights:
    def test_default_points(self):
        assert EngagementWeights().points(10, 2, 1) == 10 + 4 + 3

    def test_none_counts_as_zero(self):
        assert EngagementWeights().points(None, None, 5) == 15


class TestLoadScoringConfig:
    def test_empty_settings_give_neutral_config(self):
        cfg = load_scoring_config(Settings(_env_file=None))
        assert cfg.mindshare.w_posts is None
        assert cfg.signal.half_lives == {}
        assert cfg.signal.content_weights == {}
        assert cfg.smart_followers.top_n is None
        assert cfg.leaderboard.follow_boost is None
        assert cfg.smart_followers.damping == 0.85

    def test_values_are_mapped(self):
        s = Settings(
            _env_file=None,
            MINDSHARE_W1_POSTS=0.25,
            MINDSHARE_SMART_FOLLOWERS_FLOOR=1.0,
            MINDSHARE_SMART_FOLLOWERS_CAP=1.5,
            SIGNAL_RECENCY_HALFLIFE_7D=84,
            SIGNAL_CONTENT_WEIGHT_THREAD=2.0,
            SMART_FOLLOWERS_TOP_N=1000,
            LEADERBOARD_FOLLOW_BOOST=1.5,
        )
        cfg = load_scoring_config(s)
        assert cfg.mindshare.w_posts == 0.25
        assert cfg.signal.half_lives == {"7d": 84}
        assert cfg.signal.content_weights == {"thread": 2.0}
        assert cfg.mindshare.smart_followers == cfg.smart_followers.boost
        assert cfg.smart_followers.top_n == 1000
        assert cfg.leaderboard.follow_boost == 1.5

    def test_default_scoring_config_constructs(self):
        assert ScoringConfig().engagement.retweets == 3.0
