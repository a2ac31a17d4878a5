"""socialtrust.actions — Validated payloads crossing the engine/store boundary.

Every mutation committed to a store is one of three tagged variants,
discriminated by `kind`:

    reputation  — profile create/update
    follow      — new follow edge
    unfollow    — removed follow edge

Each is validated when constructed. Callers should go through validated()
so pydantic's ValidationError surfaces as InvalidInput.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from .errors import InvalidInput
from .models import VerificationLevel

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
MAX_ID_LENGTH = 200


class RecommendationActionType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


class RecommendationAction(BaseModel):
    """Something a user did to a recommendation."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    type: RecommendationActionType
    user_id: str = Field(..., min_length=1, max_length=MAX_ID_LENGTH)
    recommendation_id: Optional[str] = Field(None, max_length=MAX_ID_LENGTH)


class ProfileUpdate(BaseModel):
    """Partial profile update. Only fields actually supplied are merged.

    reputation_score and verification_level are deliberately absent: they are
    derived. An admin sets score_override instead; passing score_override=None
    explicitly clears it.
    """
    model_config = ConfigDict(extra="forbid")

    total_recommendations: Optional[int] = Field(None, ge=0)
    upvotes_received: Optional[int] = Field(None, ge=0)
    downvotes_received: Optional[int] = Field(None, ge=0)
    followers: Optional[int] = Field(None, ge=0)
    following: Optional[int] = Field(None, ge=0)
    specializations: Optional[set[str]] = None
    active_since: Optional[datetime] = None
    token_rewards_earned: Optional[float] = Field(None, ge=0)
    score_override: Optional[float] = Field(None, ge=0.0, le=1.0)

    @field_validator("active_since")
    @classmethod
    def _aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            raise ValueError("active_since must be timezone-aware")
        return v

    @property
    def supplied(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


# ─── Ledger actions ────────────────────────────────────────────────

class _LedgerAction(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ReputationUpdateAction(_LedgerAction):
    kind: Literal["reputation"] = "reputation"
    operation: Literal["create", "update"]
    user_id: str = Field(..., min_length=1, max_length=MAX_ID_LENGTH)
    profile: dict[str, Any]

    @model_validator(mode="after")
    def _profile_matches_user(self):
        if self.profile.get("user_id") != self.user_id:
            raise ValueError("profile.user_id does not match user_id")
        return self


class _PairAction(_LedgerAction):
    follower_id: str = Field(..., min_length=1, max_length=MAX_ID_LENGTH)
    followed_id: str = Field(..., min_length=1, max_length=MAX_ID_LENGTH)

    @model_validator(mode="after")
    def _no_self_edge(self):
        if self.follower_id == self.followed_id:
            raise ValueError("follower_id and followed_id must differ")
        return self


class FollowAction(_PairAction):
    kind: Literal["follow"] = "follow"
    timestamp: datetime
    trust_weight: float = Field(..., ge=0.0, le=1.0)
    distance: Literal[1] = 1


class UnfollowAction(_PairAction):
    kind: Literal["unfollow"] = "unfollow"


LedgerAction = Annotated[
    Union[ReputationUpdateAction, FollowAction, UnfollowAction],
    Field(discriminator="kind"),
]

_ACTION_ADAPTER = TypeAdapter(LedgerAction)


def parse_action(data: dict) -> Union[ReputationUpdateAction, FollowAction, UnfollowAction]:
    """Parse a serialized ledger action back into its tagged variant."""
    try:
        return _ACTION_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise _invalid(e) from None


# ─── Queries ───────────────────────────────────────────────────────

class Pagination(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    offset: int = Field(0, ge=0)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)


class ReputationFilter(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    user_id: Optional[str] = Field(None, min_length=1, max_length=MAX_ID_LENGTH)
    min_reputation_score: Optional[float] = Field(None, ge=0.0, le=1.0)
    verification_level: Optional[VerificationLevel] = None
    specialization: Optional[str] = Field(None, min_length=1)


def validated(model_cls, data: Optional[dict] = None, **kwargs):
    """Construct a pydantic model, converting validation failures to InvalidInput."""
    if isinstance(data, model_cls):
        return data
    payload = dict(data or {}, **kwargs)
    try:
        return model_cls.model_validate(payload)
    except ValidationError as e:
        raise _invalid(e) from None


def _invalid(error: ValidationError) -> InvalidInput:
    first = error.errors()[0] if error.errors() else {}
    loc = ".".join(str(p) for p in first.get("loc", ()))
    msg = first.get("msg", str(error))
    return InvalidInput(f"{loc}: {msg}" if loc else msg, field=loc or None)


__all__ = [
    "RecommendationActionType",
    "RecommendationAction",
    "ProfileUpdate",
    "ReputationUpdateAction",
    "FollowAction",
    "UnfollowAction",
    "LedgerAction",
    "parse_action",
    "Pagination",
    "ReputationFilter",
    "validated",
    "MAX_PAGE_SIZE",
    "DEFAULT_PAGE_SIZE",
]
