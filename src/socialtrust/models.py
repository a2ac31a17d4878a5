"""socialtrust.models — Data model for social trust and reputation.

Plain dataclasses with to_dict()/from_dict(). Timestamps are timezone-aware
UTC datetimes and serialise as ISO-8601 strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .errors import InvalidInput


class ConnectionType(str, Enum):
    FOLLOW = "follow"
    TRUST = "trust"
    VERIFIED = "verified"


class InteractionType(str, Enum):
    UPVOTE = "upvote"
    SAVE = "save"
    SHARE = "share"
    DOWNVOTE = "downvote"


class VerificationLevel(str, Enum):
    BASIC = "basic"
    VERIFIED = "verified"
    EXPERT = "expert"


class ConfidenceLevel(str, Enum):
    VERY_LOW = "very_low"    # < 0.2
    LOW = "low"              # 0.2 - 0.4
    MEDIUM = "medium"        # 0.4 - 0.6
    HIGH = "high"            # 0.6 - 0.8
    VERY_HIGH = "very_high"  # >= 0.8


def confidence_level(confidence: float) -> ConfidenceLevel:
    if confidence < 0.2:
        return ConfidenceLevel.VERY_LOW
    if confidence < 0.4:
        return ConfidenceLevel.LOW
    if confidence < 0.6:
        return ConfidenceLevel.MEDIUM
    if confidence < 0.8:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.VERY_HIGH


# ─── Graph ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SocialConnection:
    """Directed edge in the social graph, as supplied to the calculator."""
    from_user_id: str
    to_user_id: str
    connection_type: ConnectionType = ConnectionType.FOLLOW
    established_at: Optional[datetime] = None
    trust_weight: float = 1.0

    def __post_init__(self):
        _require_id(self.from_user_id, "from_user_id")
        _require_id(self.to_user_id, "to_user_id")
        if self.from_user_id == self.to_user_id:
            raise InvalidInput(f"Self-loop connection for {self.from_user_id}", field="to_user_id")
        if not isinstance(self.connection_type, ConnectionType):
            object.__setattr__(self, "connection_type", _enum(ConnectionType, self.connection_type,
                                                              "connection_type"))
        if not isinstance(self.trust_weight, (int, float)) or not 0.0 <= self.trust_weight <= 1.0:
            raise InvalidInput(f"trust_weight must be within [0, 1], got {self.trust_weight!r}",
                               field="trust_weight")
        if self.established_at is not None:
            _require_aware(self.established_at, "established_at")

    def to_dict(self) -> dict:
        return {
            "from_user_id": self.from_user_id,
            "to_user_id": self.to_user_id,
            "connection_type": self.connection_type.value,
            "established_at": _iso(self.established_at),
            "trust_weight": self.trust_weight,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SocialConnection":
        return cls(
            from_user_id=data.get("from_user_id", ""),
            to_user_id=data.get("to_user_id", ""),
            connection_type=data.get("connection_type", ConnectionType.FOLLOW),
            established_at=(parse_dt(data["established_at"], "established_at")
                            if data.get("established_at") else None),
            trust_weight=data.get("trust_weight", 1.0),
        )


@dataclass(frozen=True)
class FollowRelationship:
    """An active follow edge as held by the graph store."""
    follower_id: str
    followed_id: str
    timestamp: datetime
    trust_weight: float = 0.75
    distance: int = 1

    def __post_init__(self):
        _require_id(self.follower_id, "follower_id")
        _require_id(self.followed_id, "followed_id")
        if self.follower_id == self.followed_id:
            raise InvalidInput(f"User {self.follower_id} cannot follow themselves",
                               field="followed_id")
        _require_aware(self.timestamp, "timestamp")

    def to_connection(self) -> SocialConnection:
        return SocialConnection(
            from_user_id=self.follower_id,
            to_user_id=self.followed_id,
            connection_type=ConnectionType.FOLLOW,
            established_at=self.timestamp,
            trust_weight=self.trust_weight,
        )

    def to_dict(self) -> dict:
        return {
            "follower_id": self.follower_id,
            "followed_id": self.followed_id,
            "timestamp": _iso(self.timestamp),
            "distance": self.distance,
            "trust_weight": self.trust_weight,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FollowRelationship":
        return cls(
            follower_id=data["follower_id"],
            followed_id=data["followed_id"],
            timestamp=parse_dt(data["timestamp"], "timestamp"),
            trust_weight=float(data.get("trust_weight", 0.75)),
            distance=int(data.get("distance", 1)),
        )


# ─── Content & interactions ────────────────────────────────────────

@dataclass(frozen=True)
class ContentMetadata:
    content_id: str
    author_id: str
    created_at: datetime
    category: str = ""
    tags: tuple[str, ...] = ()

    def __post_init__(self):
        _require_id(self.content_id, "content_id")
        _require_id(self.author_id, "author_id")
        _require_aware(self.created_at, "created_at")
        if not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", tuple(self.tags))

    def to_dict(self) -> dict:
        return {
            "content_id": self.content_id,
            "author_id": self.author_id,
            "created_at": _iso(self.created_at),
            "category": self.category,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ContentMetadata":
        return cls(
            content_id=data.get("content_id", ""),
            author_id=data.get("author_id", ""),
            created_at=parse_dt(data.get("created_at"), "created_at"),
            category=data.get("category", ""),
            tags=tuple(data.get("tags", ())),
        )


@dataclass(frozen=True)
class UserInteraction:
    user_id: str
    content_id: str
    interaction_type: InteractionType
    timestamp: datetime
    social_distance: Optional[int] = None  # as reported by the caller; informational

    def __post_init__(self):
        _require_id(self.user_id, "user_id")
        _require_id(self.content_id, "content_id")
        if not isinstance(self.interaction_type, InteractionType):
            object.__setattr__(self, "interaction_type", _enum(InteractionType, self.interaction_type,
                                                               "interaction_type"))
        _require_aware(self.timestamp, "timestamp")

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "content_id": self.content_id,
            "interaction_type": self.interaction_type.value,
            "timestamp": _iso(self.timestamp),
            "social_distance": self.social_distance,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserInteraction":
        return cls(
            user_id=data.get("user_id", ""),
            content_id=data.get("content_id", ""),
            interaction_type=data.get("interaction_type", ""),
            timestamp=parse_dt(data.get("timestamp"), "timestamp"),
            social_distance=data.get("social_distance"),
        )


# ─── Reputation ────────────────────────────────────────────────────

@dataclass(frozen=True)
class LedgerReceipt:
    """Audit reference for a committed mutation."""
    commit_number: int
    object_id: str
    signature: str = ""

    def to_dict(self) -> dict:
        return {"commit_number": self.commit_number, "object_id": self.object_id,
                "signature": self.signature}

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerReceipt":
        return cls(int(data["commit_number"]), data["object_id"], data.get("signature", ""))


@dataclass
class ReputationProfile:
    """Per-user reputation state.

    reputation_score and verification_level are derived fields: the engine
    recomputes them from the counters (or from score_override) on every
    write. Never assign them directly.
    """
    user_id: str
    active_since: datetime
    total_recommendations: int = 0
    upvotes_received: int = 0
    downvotes_received: int = 0
    reputation_score: float = 0.0
    verification_level: VerificationLevel = VerificationLevel.BASIC
    specializations: set[str] = field(default_factory=set)
    token_rewards_earned: float = 0.0
    followers: int = 0
    following: int = 0
    score_override: Optional[float] = None
    ledger: Optional[LedgerReceipt] = None

    COUNTER_FIELDS = ("total_recommendations", "upvotes_received", "downvotes_received",
                      "followers", "following")

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "active_since": _iso(self.active_since),
            "total_recommendations": self.total_recommendations,
            "upvotes_received": self.upvotes_received,
            "downvotes_received": self.downvotes_received,
            "reputation_score": self.reputation_score,
            "verification_level": self.verification_level.value,
            "specializations": sorted(self.specializations),
            "token_rewards_earned": self.token_rewards_earned,
            "followers": self.followers,
            "following": self.following,
            "score_override": self.score_override,
            "ledger": self.ledger.to_dict() if self.ledger else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReputationProfile":
        ledger = data.get("ledger")
        return cls(
            user_id=data["user_id"],
            active_since=parse_dt(data["active_since"], "active_since"),
            total_recommendations=int(data.get("total_recommendations", 0)),
            upvotes_received=int(data.get("upvotes_received", 0)),
            downvotes_received=int(data.get("downvotes_received", 0)),
            reputation_score=float(data.get("reputation_score", 0.0)),
            verification_level=VerificationLevel(data.get("verification_level", "basic")),
            specializations=set(data.get("specializations") or ()),
            token_rewards_earned=float(data.get("token_rewards_earned", 0.0)),
            followers=int(data.get("followers", 0)),
            following=int(data.get("following", 0)),
            score_override=data.get("score_override"),
            ledger=LedgerReceipt.from_dict(ledger) if ledger else None,
        )


# ─── Results ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class TrustBreakdown:
    social_trust_weight: float
    quality_signals: float
    recency_factor: float
    diversity_bonus: float

    def to_dict(self) -> dict:
        return {
            "social_trust_weight": self.social_trust_weight,
            "quality_signals": self.quality_signals,
            "recency_factor": self.recency_factor,
            "diversity_bonus": self.diversity_bonus,
        }


@dataclass(frozen=True)
class SocialPathEntry:
    user_id: str
    distance: int
    contribution_weight: float

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "distance": self.distance,
                "contribution_weight": self.contribution_weight}


@dataclass(frozen=True)
class TrustScoreResult:
    final_score: float  # 0-10
    breakdown: TrustBreakdown
    social_path: tuple[SocialPathEntry, ...]
    confidence: float  # 0-1
    confidence_level: ConfidenceLevel
    explanation: str = ""

    def to_dict(self) -> dict:
        return {
            "final_score": self.final_score,
            "breakdown": self.breakdown.to_dict(),
            "social_path": [e.to_dict() for e in self.social_path],
            "confidence": self.confidence,
            "confidence_level": self.confidence_level.value,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class Page:
    """One page of a paginated query."""
    items: list[Any]
    total: int
    offset: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total

    def to_dict(self) -> dict:
        return {
            "items": [i.to_dict() if hasattr(i, "to_dict") else i for i in self.items],
            "total": self.total,
            "pagination": {"offset": self.offset, "limit": self.limit, "has_more": self.has_more},
        }


# ─── Helpers ───────────────────────────────────────────────────────

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_dt(value, field_name: str = "timestamp") -> datetime:
    """Parse an ISO-8601 string (or pass through a datetime). Naive values are rejected."""
    if isinstance(value, datetime):
        _require_aware(value, field_name)
        return value
    if not isinstance(value, str) or not value:
        raise InvalidInput(f"{field_name} is required", field=field_name)
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidInput(f"{field_name} is not an ISO-8601 timestamp: {value!r}",
                           field=field_name) from None
    _require_aware(dt, field_name)
    return dt


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _require_aware(value, field_name: str) -> None:
    if not isinstance(value, datetime):
        raise InvalidInput(f"{field_name} must be a datetime, got {type(value).__name__}",
                           field=field_name)
    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidInput(f"{field_name} must be timezone-aware", field=field_name)


def _require_id(value, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field_name} must be a non-empty string", field=field_name)


def _enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidInput(f"{field_name} must be one of: {allowed}; got {value!r}",
                           field=field_name) from None


__all__ = [
    "ConnectionType",
    "InteractionType",
    "VerificationLevel",
    "ConfidenceLevel",
    "confidence_level",
    "SocialConnection",
    "FollowRelationship",
    "ContentMetadata",
    "UserInteraction",
    "LedgerReceipt",
    "ReputationProfile",
    "TrustBreakdown",
    "SocialPathEntry",
    "TrustScoreResult",
    "Page",
    "utcnow",
    "parse_dt",
]
