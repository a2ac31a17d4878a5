"""
ReputationScoreEngine — per-user reputation state, follow-graph mutation and
pairwise trust weight.

Reputation score (0-1), each term capped on its own:

    0.1
    + min(0.3, recommendations × 0.01)
    + min(0.4, upvotes × 0.005)
    − min(0.3, downvotes × 0.01)
    + min(0.2, followers × 0.002)

clamped to [0, 1] and rounded to 3 decimals.

Verification level: ≥0.8 EXPERT, ≥0.5 VERIFIED, else BASIC.

Pairwise trust weight: same user 1.0, direct follow 0.75, two hops 0.25,
otherwise 0.0 (weights from TrustConfig).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Union

from .actions import (
    Pagination, ProfileUpdate, RecommendationAction, RecommendationActionType,
    ReputationFilter, validated,
)
from .config import DEFAULT_CONFIG, TrustConfig
from .errors import AlreadyFollowing, InvalidInput, NotFollowing, ProfileNotFound
from .log import bind_operation
from .models import (
    FollowRelationship, LedgerReceipt, Page, ReputationProfile, VerificationLevel, utcnow,
)
from .resolver import SocialDistance, SocialDistanceResolver, check_depth
from .stores import GraphStore, ProfileStore

logger = logging.getLogger(__name__)

BASE_SCORE = 0.1
MAX_SCORE = 1.0

RECOMMENDATION_FACTOR = 0.01
UPVOTE_FACTOR = 0.005
DOWNVOTE_FACTOR = 0.01
FOLLOWER_FACTOR = 0.002

RECOMMENDATION_CAP = 0.3
UPVOTE_CAP = 0.4
DOWNVOTE_CAP = 0.3
FOLLOWER_CAP = 0.2

VERIFIED_THRESHOLD = 0.5
EXPERT_THRESHOLD = 0.8


def calculate_reputation_score(total_recommendations: int, upvotes_received: int,
                               downvotes_received: int, followers: int) -> float:
    """Reputation score from activity counters."""
    score = (
        BASE_SCORE
        + min(RECOMMENDATION_CAP, total_recommendations * RECOMMENDATION_FACTOR)
        + min(UPVOTE_CAP, upvotes_received * UPVOTE_FACTOR)
        - min(DOWNVOTE_CAP, downvotes_received * DOWNVOTE_FACTOR)
        + min(FOLLOWER_CAP, followers * FOLLOWER_FACTOR)
    )
    score = max(0.0, min(MAX_SCORE, score))
    return round(score, 3)


def determine_verification_level(score: float) -> VerificationLevel:
    if score >= EXPERT_THRESHOLD:
        return VerificationLevel.EXPERT
    if score >= VERIFIED_THRESHOLD:
        return VerificationLevel.VERIFIED
    return VerificationLevel.BASIC


def derive(profile: ReputationProfile) -> ReputationProfile:
    """Recompute the derived fields in place. Returns the profile for chaining."""
    if profile.score_override is not None:
        profile.reputation_score = profile.score_override
    else:
        profile.reputation_score = calculate_reputation_score(
            profile.total_recommendations, profile.upvotes_received,
            profile.downvotes_received, profile.followers,
        )
    profile.verification_level = determine_verification_level(profile.reputation_score)
    return profile


@dataclass
class FollowResult:
    """Outcome of a follow/unfollow: the edge, both profiles, applied deltas, receipts."""
    relationship: FollowRelationship
    follower: ReputationProfile
    followed: ReputationProfile
    deltas: dict[str, int]
    receipts: list[LedgerReceipt] = field(default_factory=list)
    success: bool = True

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "relationship": self.relationship.to_dict(),
            "follower": self.follower.to_dict(),
            "followed": self.followed.to_dict(),
            "deltas": dict(self.deltas),
            "receipts": [r.to_dict() for r in self.receipts],
        }


@dataclass
class ReconcileReport:
    user_id: str
    followers_before: int
    followers_after: int
    following_before: int
    following_after: int
    profile: Optional[ReputationProfile] = None

    @property
    def changed(self) -> bool:
        return (self.followers_before != self.followers_after
                or self.following_before != self.following_after)


class ReputationScoreEngine:
    """Reputation profiles, follow relationships and pairwise trust.

    All reads and writes go through the injected stores. Operations on the
    same user pair must be serialised by the caller; the store enforces edge
    uniqueness. follow/unfollow run inside the profile store's transaction.
    """

    def __init__(
        self,
        graph: GraphStore,
        profiles: ProfileStore,
        config: TrustConfig = DEFAULT_CONFIG,
        clock: Optional[Callable[[], datetime]] = None,
        resolver: Optional[SocialDistanceResolver] = None,
    ):
        self._graph = graph
        self._profiles = profiles
        self._config = config
        self._clock = clock or utcnow
        self._resolver = resolver or SocialDistanceResolver(graph, config)
        if graph is not profiles or not profiles.supports_transactions:
            logger.info("Follow edge writes are not covered by the profile transaction; "
                        "run reconcile_follow_counts after partial failures")

    @property
    def config(self) -> TrustConfig:
        return self._config

    # ── Profiles ──

    async def get_profile(self, user_id: str) -> ReputationProfile:
        return await self._profiles.get_profile(user_id)

    async def upsert_profile(self, user_id: str,
                             partial: Union[ProfileUpdate, dict, None] = None,
                             **fields) -> ReputationProfile:
        """Merge only the supplied fields into the profile, creating it if needed."""
        update = validated(ProfileUpdate, partial, **fields)
        _check_id(user_id, "user_id")
        with bind_operation():
            profile, created = await self._load_or_default(user_id)
            self._merge(profile, update, created)
            committed = await self._profiles.put_profile(derive(profile), created=created)
            logger.info("Profile %s %s (score=%.3f, level=%s)", user_id,
                        "created" if created else "updated",
                        committed.reputation_score, committed.verification_level.value)
            return committed

    async def record_token_reward(self, user_id: str, amount: float) -> ReputationProfile:
        if not isinstance(amount, (int, float)) or amount < 0:
            raise InvalidInput(f"Reward amount must be a non-negative number, got {amount!r}",
                               field="amount")
        _check_id(user_id, "user_id")
        with bind_operation():
            profile, created = await self._load_or_default(user_id)
            profile.token_rewards_earned += amount
            return await self._profiles.put_profile(derive(profile), created=created)

    async def update_reputation_from_action(
        self, action: Union[RecommendationAction, dict],
    ) -> ReputationProfile:
        """Apply an action to the acting user's profile.

        Only CREATE changes counters (total_recommendations). Votes are
        credited to the content author through update_reputation_from_votes.
        """
        action = validated(RecommendationAction, action)
        with bind_operation():
            profile, created = await self._load_or_default(action.user_id)
            if action.type == RecommendationActionType.CREATE:
                profile.total_recommendations += 1
            elif not created:
                return profile
            committed = await self._profiles.put_profile(derive(profile), created=created)
            logger.debug("Action %s by %s -> score %.3f", action.type.value, action.user_id,
                         committed.reputation_score)
            return committed

    async def update_reputation_from_votes(self, author_id: str, is_upvote: bool) -> ReputationProfile:
        """Credit a vote received on the author's content."""
        _check_id(author_id, "author_id")
        with bind_operation():
            profile, created = await self._load_or_default(author_id)
            if is_upvote:
                profile.upvotes_received += 1
            else:
                profile.downvotes_received += 1
            committed = await self._profiles.put_profile(derive(profile), created=created)
            logger.debug("%s for %s -> score %.3f", "Upvote" if is_upvote else "Downvote",
                         author_id, committed.reputation_score)
            return committed

    async def query_reputations(self, filter: Union[ReputationFilter, dict, None] = None,
                                pagination: Union[Pagination, dict, None] = None) -> Page:
        flt = validated(ReputationFilter, filter)
        page = validated(Pagination, pagination)
        profiles, total = await self._profiles.query_profiles(flt, page.offset, page.limit)
        return Page(profiles, total, page.offset, page.limit)

    # ── Follow graph ──

    async def follow(self, follower_id: str, followed_id: str) -> FollowResult:
        """Create a follow edge and bump both counters as one unit."""
        _check_pair(follower_id, followed_id)
        with bind_operation():
            async with self._profiles.transaction():
                if await self._graph.get_edge(follower_id, followed_id) is not None:
                    raise AlreadyFollowing(follower_id, followed_id)
                relationship = FollowRelationship(
                    follower_id=follower_id,
                    followed_id=followed_id,
                    timestamp=self._clock(),
                    trust_weight=self._config.direct_follow_weight,
                )
                edge_receipt = await self._graph.add_edge(relationship)
                follower, followed, deltas = await self._apply_follow_delta(
                    follower_id, followed_id, +1)
            logger.info("Follow %s -> %s committed (commit #%d)", follower_id, followed_id,
                        edge_receipt.commit_number)
            return FollowResult(relationship, follower, followed, deltas,
                                [edge_receipt, follower.ledger, followed.ledger])

    async def unfollow(self, follower_id: str, followed_id: str) -> FollowResult:
        """Remove a follow edge and decrement both counters as one unit."""
        _check_pair(follower_id, followed_id)
        with bind_operation():
            async with self._profiles.transaction():
                relationship = await self._graph.get_edge(follower_id, followed_id)
                if relationship is None:
                    raise NotFollowing(follower_id, followed_id)
                edge_receipt = await self._graph.remove_edge(follower_id, followed_id)
                follower, followed, deltas = await self._apply_follow_delta(
                    follower_id, followed_id, -1)
            logger.info("Unfollow %s -> %s committed (commit #%d)", follower_id, followed_id,
                        edge_receipt.commit_number)
            return FollowResult(relationship, follower, followed, deltas,
                                [edge_receipt, follower.ledger, followed.ledger])

    async def get_following(self, user_id: str,
                            pagination: Union[Pagination, dict, None] = None) -> Page:
        page = validated(Pagination, pagination)
        items = await self._graph.get_outbound_edges(user_id, limit=page.limit, offset=page.offset)
        total = await self._graph.count_outbound(user_id)
        return Page(items, total, page.offset, page.limit)

    async def get_followers(self, user_id: str,
                            pagination: Union[Pagination, dict, None] = None) -> Page:
        page = validated(Pagination, pagination)
        items = await self._graph.get_inbound_edges(user_id, limit=page.limit, offset=page.offset)
        total = await self._graph.count_inbound(user_id)
        return Page(items, total, page.offset, page.limit)

    async def reconcile_follow_counts(self, user_id: str) -> ReconcileReport:
        """Recount followers/following from the edge store and repair drift."""
        followers = await self._graph.count_inbound(user_id)
        following = await self._graph.count_outbound(user_id)
        async with self._profiles.transaction():
            profile, created = await self._load_or_default(user_id)
            report = ReconcileReport(user_id, profile.followers, followers,
                                     profile.following, following)
            if report.changed or created:
                if report.changed:
                    logger.warning("Follow counts for %s drifted: followers %d->%d, following %d->%d",
                                   user_id, report.followers_before, followers,
                                   report.following_before, following)
                profile.followers = followers
                profile.following = following
                profile = await self._profiles.put_profile(derive(profile), created=created)
            report.profile = profile
            return report

    # ── Trust ──

    async def social_distance(self, source_id: str, target_id: str,
                              max_depth: Optional[int] = None,
                              deadline: Optional[float] = None) -> SocialDistance:
        return await self._resolver.resolve(source_id, target_id, max_depth, deadline)

    async def trust_weight(self, source_id: str, target_id: str, max_depth: Optional[int] = None,
                           deadline: Optional[float] = None) -> float:
        """Pairwise trust (0-1) from source toward target.

        Two-hop trust is the best single path, never a sum over paths.
        GraphUnavailable propagates; it is not reported as 0.0.
        """
        depth = check_depth(max_depth, self._config)
        if source_id == target_id:
            return 1.0
        resolved = await self._resolver.resolve(source_id, target_id, depth, deadline)
        return self._config.distance_weight(resolved.distance)

    # ── Internals ──

    async def _load_or_default(self, user_id: str) -> tuple[ReputationProfile, bool]:
        try:
            return await self._profiles.get_profile(user_id), False
        except ProfileNotFound:
            logger.debug("Creating default profile for %s", user_id)
            return derive(ReputationProfile(user_id=user_id, active_since=self._clock())), True

    async def _apply_follow_delta(self, follower_id: str, followed_id: str,
                                  delta: int) -> tuple[ReputationProfile, ReputationProfile, dict]:
        follower, follower_created = await self._load_or_default(follower_id)
        followed, followed_created = await self._load_or_default(followed_id)

        following_after = max(0, follower.following + delta)
        followers_after = max(0, followed.followers + delta)
        if following_after != follower.following + delta or followers_after != followed.followers + delta:
            logger.warning("Follow counter for %s/%s would go negative; clamped at 0",
                           follower_id, followed_id)
        deltas = {
            "follower_following": following_after - follower.following,
            "followed_followers": followers_after - followed.followers,
        }
        follower.following = following_after
        followed.followers = followers_after

        follower = await self._profiles.put_profile(derive(follower), created=follower_created)
        followed = await self._profiles.put_profile(derive(followed), created=followed_created)
        return follower, followed, deltas

    @staticmethod
    def _merge(profile: ReputationProfile, update: ProfileUpdate, created: bool) -> None:
        supplied = update.supplied
        if "active_since" in supplied and supplied["active_since"] is not None:
            if created:
                profile.active_since = supplied["active_since"]
            elif supplied["active_since"] != profile.active_since:
                raise InvalidInput("active_since cannot change once set", field="active_since")
        if "token_rewards_earned" in supplied and supplied["token_rewards_earned"] is not None:
            if supplied["token_rewards_earned"] < profile.token_rewards_earned:
                raise InvalidInput("token_rewards_earned cannot decrease",
                                   field="token_rewards_earned")
            profile.token_rewards_earned = supplied["token_rewards_earned"]
        if "specializations" in supplied and supplied["specializations"] is not None:
            profile.specializations = set(supplied["specializations"])
        if "score_override" in supplied:
            profile.score_override = supplied["score_override"]
        for name in ReputationProfile.COUNTER_FIELDS:
            if supplied.get(name) is not None:
                setattr(profile, name, supplied[name])


def _check_id(value, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field_name} must be a non-empty string", field=field_name)


def _check_pair(follower_id: str, followed_id: str) -> None:
    _check_id(follower_id, "follower_id")
    _check_id(followed_id, "followed_id")
    if follower_id == followed_id:
        raise InvalidInput(f"User {follower_id} cannot follow themselves", field="followed_id")


__all__ = [
    "ReputationScoreEngine",
    "FollowResult",
    "ReconcileReport",
    "calculate_reputation_score",
    "determine_verification_level",
    "derive",
    "VERIFIED_THRESHOLD",
    "EXPERT_THRESHOLD",
]
