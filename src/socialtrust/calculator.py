"""
TrustScoreCalculator — per-content trust score as seen by one evaluating user.

Factors (each 0-1), combined with fixed weights from TrustConfig:

    social trust   40%  — evaluator's distance to the author (1.0 / 0.75 / 0.25 / 0)
    quality        30%  — interactions weighted by actor distance and type
    recency        20%  — exponential decay of content age, floored above zero
    diversity      10%  — spread of signals across distances and interaction types

final_score = 10 × Σ(weight × factor), rounded to 2 decimals.

Confidence is reported separately and depends only on how much evidence
(contributing interactions, connections around the evaluator) backed the
score.

The calculator is pure: no I/O, no clock reads, no randomness. Identical
inputs, including `now`, give identical results.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .config import DEFAULT_CONFIG, TrustConfig
from .errors import InvalidInput
from .models import (
    ContentMetadata, InteractionType, SocialConnection, SocialPathEntry, TrustBreakdown,
    TrustScoreResult, UserInteraction, confidence_level, ConfidenceLevel,
)
from .resolver import AdjacencyIndex, Neighbourhood, SocialDistance

INTERACTION_VALUES = {
    InteractionType.UPVOTE: 1.0,
    InteractionType.SAVE: 0.8,
    InteractionType.SHARE: 0.6,
    InteractionType.DOWNVOTE: -0.5,
}

NEUTRAL_QUALITY = 0.5
INTERACTION_EVIDENCE_SHARE = 0.7
CONNECTION_EVIDENCE_SHARE = 0.3
SECONDS_PER_DAY = 86400.0

TRUST_CATEGORIES = (
    (8.0, "Highly Trusted"),
    (6.0, "Trusted"),
    (4.0, "Moderately Trusted"),
    (2.0, "Low Trust"),
)


@dataclass(frozen=True)
class _Signal:
    """One interaction after social weighting."""
    user_id: str
    interaction_type: InteractionType
    distance: int
    cluster: str
    weight: float
    value: float
    timestamp: datetime

    @property
    def contribution(self) -> float:
        return abs(self.value) * self.weight


class TrustScoreCalculator:
    """Combine social position, interaction quality, recency and diversity."""

    def __init__(self, config: TrustConfig = DEFAULT_CONFIG):
        self._config = config

    @property
    def config(self) -> TrustConfig:
        return self._config

    def calculate_trust_score(
        self,
        evaluating_user_id: str,
        connections: Iterable[SocialConnection],
        interactions: Iterable[UserInteraction],
        metadata: ContentMetadata,
        now: datetime,
    ) -> TrustScoreResult:
        """Score one piece of content for one evaluating user.

        Raises:
            InvalidInput: malformed ids, naive datetimes, wrong element types,
                or duplicate edges for an ordered pair.
        """
        interactions = self._validate(evaluating_user_id, interactions, metadata, now)

        # 1. Request-scoped adjacency
        index = AdjacencyIndex(connections, self._config)
        hood = index.neighbourhood(evaluating_user_id)

        # 2. Social trust weight
        author = hood.get(metadata.author_id)
        social = self._config.distance_weight(author.distance)

        # 3. Quality signals
        relevant = sorted(
            (i for i in interactions if i.content_id == metadata.content_id),
            key=lambda i: (i.timestamp, i.user_id, i.interaction_type.value),
        )
        signals = self._weigh_interactions(relevant, hood)
        quality = self._quality_signals(signals)

        # 4. Recency
        recency = self._recency_factor(metadata.created_at, signals, now)

        # 5. Diversity
        diversity = self._diversity_bonus(signals)

        # 6. Combine
        final_score = self._combine(social, quality, recency, diversity)

        # 7. Confidence
        confidence = self._confidence(len(signals), hood.edges_examined)
        level = confidence_level(confidence)

        # 8. Social path
        social_path = self._social_path(author, signals)

        return TrustScoreResult(
            final_score=final_score,
            breakdown=TrustBreakdown(
                social_trust_weight=social,
                quality_signals=round(quality, 6),
                recency_factor=round(recency, 6),
                diversity_bonus=round(diversity, 6),
            ),
            social_path=social_path,
            confidence=confidence,
            confidence_level=level,
            explanation=self._explain(social, quality, len(signals), final_score, level),
        )

    # ── Public utilities ──

    def meets_trust_threshold(self, trust_score: float) -> bool:
        return trust_score >= self._config.min_trust_threshold

    def get_trust_category(self, trust_score: float) -> str:
        for floor, label in TRUST_CATEGORIES:
            if trust_score >= floor:
                return label
        return "Untrusted"

    def breakdown_percentages(self, result: TrustScoreResult) -> dict[str, float]:
        """Share of the weighted sum contributed by each factor, in percent."""
        weights = self._config.factor_weights
        b = result.breakdown
        parts = {
            "social": b.social_trust_weight * weights["social"],
            "quality": b.quality_signals * weights["quality"],
            "recency": b.recency_factor * weights["recency"],
            "diversity": b.diversity_bonus * weights["diversity"],
        }
        total = sum(parts.values())
        if total == 0:
            return {k: 0.0 for k in parts}
        return {k: round(v / total * 100, 2) for k, v in parts.items()}

    # ── Pipeline steps ──

    def _validate(self, evaluating_user_id, interactions, metadata, now) -> list[UserInteraction]:
        if not isinstance(evaluating_user_id, str) or not evaluating_user_id.strip():
            raise InvalidInput("evaluating_user_id must be a non-empty string",
                               field="evaluating_user_id")
        if not isinstance(metadata, ContentMetadata):
            raise InvalidInput(f"metadata must be ContentMetadata, got {type(metadata).__name__}",
                               field="metadata")
        if not isinstance(now, datetime) or now.tzinfo is None or now.utcoffset() is None:
            raise InvalidInput("now must be a timezone-aware datetime", field="now")
        if interactions is None:
            raise InvalidInput("interactions must be a list (may be empty)", field="interactions")
        interactions = list(interactions)
        for i in interactions:
            if not isinstance(i, UserInteraction):
                raise InvalidInput(f"Expected UserInteraction, got {type(i).__name__}",
                                   field="interactions")
        return interactions

    def _weigh_interactions(self, interactions: list[UserInteraction],
                            hood: Neighbourhood) -> list[_Signal]:
        """Weight each interaction by its actor's distance, decaying repeats per cluster.

        A cluster is the evaluator's direct follow through which the actor is
        reached. The n-th signal from one cluster is scaled by (1 - decay)^n,
        and one actor's total weight never exceeds max_trust_multiplier times
        their distance weight.
        """
        decay = self._config.interaction_weight_decay
        cluster_counts: dict[str, int] = {}
        actor_totals: dict[str, float] = {}
        signals = []
        for interaction in interactions:
            resolved = hood.get(interaction.user_id)
            base = self._config.distance_weight(resolved.distance)
            if base <= 0:
                continue
            cluster = resolved.first_hop or interaction.user_id
            n = cluster_counts.get(cluster, 0)

            cap = base * self._config.max_trust_multiplier
            used = actor_totals.get(interaction.user_id, 0.0)
            if used >= cap:
                continue
            weight = base * (1.0 - decay) ** n
            if used + weight >= cap:
                weight = cap - used
                actor_totals[interaction.user_id] = cap
            else:
                actor_totals[interaction.user_id] = used + weight
            signals.append(_Signal(
                user_id=interaction.user_id,
                interaction_type=interaction.interaction_type,
                distance=resolved.distance,
                cluster=cluster,
                weight=weight,
                value=INTERACTION_VALUES[interaction.interaction_type],
                timestamp=interaction.timestamp,
            ))
            cluster_counts[cluster] = n + 1
        return signals

    def _quality_signals(self, signals: list[_Signal]) -> float:
        total_weight = sum(s.weight for s in signals)
        if total_weight <= 0:
            return NEUTRAL_QUALITY
        score = sum(s.value * s.weight for s in signals) / total_weight
        return max(0.0, min(score, 1.0))

    def _recency_factor(self, created_at: datetime, signals: list[_Signal],
                        now: datetime) -> float:
        """Content age decay plus a boost for recent signals from reachable actors."""
        cfg = self._config
        age_days = max(0.0, (now - created_at).total_seconds() / SECONDS_PER_DAY)
        decay = math.exp(-age_days * math.log(2) / cfg.recency_half_life_days)
        content_recency = cfg.recency_floor + (1.0 - cfg.recency_floor) * decay

        recent = sum(
            1 for s in signals
            if (now - s.timestamp).total_seconds() <= cfg.recent_interaction_window_days * SECONDS_PER_DAY
        )
        boost = min(recent * cfg.recent_interaction_boost, cfg.max_recent_interaction_boost)
        return min(content_recency + boost, 1.0)

    def _diversity_bonus(self, signals: list[_Signal]) -> float:
        """Mean normalised entropy over distance buckets and interaction types."""
        if len(signals) < 2:
            return 0.0
        distance_spread = _normalised_entropy(
            [s.distance for s in signals], self._config.max_social_distance + 1)
        type_spread = _normalised_entropy(
            [s.interaction_type.value for s in signals], len(InteractionType))
        return (distance_spread + type_spread) / 2

    def _combine(self, social: float, quality: float, recency: float, diversity: float) -> float:
        w = self._config.factor_weights
        raw = (social * w["social"] + quality * w["quality"]
               + recency * w["recency"] + diversity * w["diversity"])
        score = raw * self._config.max_trust_score
        return round(max(0.0, min(score, self._config.max_trust_score)), 2)

    def _confidence(self, contributing: int, edges_examined: int) -> float:
        interaction_evidence = 1.0 - math.exp(-contributing / self._config.interaction_evidence_scale)
        connection_evidence = 1.0 - math.exp(-edges_examined / self._config.connection_evidence_scale)
        confidence = (INTERACTION_EVIDENCE_SHARE * interaction_evidence
                      + CONNECTION_EVIDENCE_SHARE * connection_evidence)
        return round(min(max(confidence, 0.0), 1.0), 4)

    def _social_path(self, author: SocialDistance, signals: list[_Signal]) -> tuple[SocialPathEntry, ...]:
        """Evaluator→author hops first, then the strongest interaction actors."""
        entries = [
            SocialPathEntry(user_id, hop, round(self._config.distance_weight(hop), 4))
            for hop, user_id in enumerate(author.path)
        ]
        seen = {e.user_id for e in entries}

        contributions: dict[str, float] = {}
        distances: dict[str, int] = {}
        for s in signals:
            contributions[s.user_id] = contributions.get(s.user_id, 0.0) + s.contribution
            distances[s.user_id] = s.distance
        ranked = sorted(contributions.items(), key=lambda kv: (-kv[1], kv[0]))

        limit = max(self._config.social_path_limit, len(entries))
        for user_id, contribution in ranked:
            if len(entries) >= limit:
                break
            if user_id in seen:
                continue
            entries.append(SocialPathEntry(user_id, distances[user_id], round(contribution, 4)))
        return tuple(entries)

    def _explain(self, social: float, quality: float, contributing: int,
                 final_score: float, level: ConfidenceLevel) -> str:
        parts = []
        if social >= 1.0:
            parts.append("Your own recommendation")
        elif social >= self._config.direct_follow_weight:
            parts.append("From someone you follow")
        elif social > 0:
            parts.append("From your extended network")

        if contributing:
            if quality >= 0.7:
                parts.append("well received by people you trust")
            elif quality < 0.3:
                parts.append("mixed reactions from people you trust")

        confidence_text = {
            ConfidenceLevel.VERY_HIGH: "high confidence",
            ConfidenceLevel.HIGH: "good confidence",
            ConfidenceLevel.MEDIUM: "moderate confidence",
        }.get(level, "limited data")

        if parts:
            return f"{', '.join(parts)} ({confidence_text})"
        return f"Trust score {final_score:.1f}/10 ({confidence_text})"


def calculate_trust_score(
    evaluating_user_id: str,
    connections: Iterable[SocialConnection],
    interactions: Iterable[UserInteraction],
    metadata: ContentMetadata,
    now: datetime,
    config: Optional[TrustConfig] = None,
) -> TrustScoreResult:
    """Functional entry point around TrustScoreCalculator."""
    return TrustScoreCalculator(config or DEFAULT_CONFIG).calculate_trust_score(
        evaluating_user_id, connections, interactions, metadata, now)


def _normalised_entropy(values: list, buckets: int) -> float:
    if buckets < 2 or not values:
        return 0.0
    counts: dict = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    total = len(values)
    entropy = -sum((c / total) * math.log(c / total) for c in counts.values())
    return min(entropy / math.log(buckets), 1.0)


__all__ = [
    "TrustScoreCalculator",
    "calculate_trust_score",
    "INTERACTION_VALUES",
    "TRUST_CATEGORIES",
]
