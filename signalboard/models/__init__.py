from .entity import TrackedEntity, EntityKind
from .profile import TrackedProfile
from .contribution import ContributionEvent, ContentType, SentimentLabel
from .follow_edge import FollowEdge
from .community_heat import CommunityHeat
from .smart_account import SmartAccountScore, SmartFollowersSnapshot
from .mindshare import MindshareSnapshot
from .signal_score import SignalScoreResult, TrustBand
from .arena import Arena, ArenaParticipant, ArenaStatus, FollowVerification, PointAdjustment, Ring
from .leaderboard import LeaderboardEntry

__all__ = [
    "TrackedEntity",
    "EntityKind",
    "TrackedProfile",
    "ContributionEvent",
    "ContentType",
    "SentimentLabel",
    "FollowEdge",
    "CommunityHeat",
    "SmartAccountScore",
    "SmartFollowersSnapshot",
    "MindshareSnapshot",
    "SignalScoreResult",
    "TrustBand",
    "Arena",
    "ArenaParticipant",
    "ArenaStatus",
    "FollowVerification",
    "PointAdjustment",
    "Ring",
    "LeaderboardEntry",
]
