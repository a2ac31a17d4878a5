"""socialtrust.config — The one configuration object shared by every component.

The resolver, the reputation engine and the trust-score calculator all read
their weights, caps and decay constants from a single TrustConfig instance
passed in at construction. There is no module-level mutable config.

Environment overrides (TrustConfig.from_env):
    SOCIALTRUST_DIRECT_FOLLOW_WEIGHT=0.75
    SOCIALTRUST_FAN_OUT_CAP=100
    ...one variable per field, upper-cased, with the SOCIALTRUST_ prefix.
"""

from __future__ import annotations

import dataclasses
import math
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from .errors import InvalidInput

ENV_PREFIX = "SOCIALTRUST_"

# Distances beyond two hops are out of scope for the resolver.
MAX_SUPPORTED_DISTANCE = 2


@dataclass(frozen=True)
class TrustConfig:
    """Weights, caps and decay constants for trust and reputation scoring."""

    # Social distance weights
    direct_follow_weight: float = 0.75
    secondary_follower_weight: float = 0.25
    max_social_distance: int = 2
    fan_out_cap: int = 100

    # Thresholds
    max_trust_multiplier: float = 3.0
    min_trust_threshold: float = 0.25
    max_trust_score: float = 10.0

    # Time decay
    recency_half_life_days: float = 30.0
    recency_floor: float = 0.1
    recent_interaction_window_days: float = 7.0
    recent_interaction_boost: float = 0.1
    max_recent_interaction_boost: float = 0.5
    interaction_weight_decay: float = 0.1

    # Factor weights (must sum to 1)
    social_factor_weight: float = 0.4
    quality_factor_weight: float = 0.3
    recency_factor_weight: float = 0.2
    diversity_factor_weight: float = 0.1

    # Confidence
    interaction_evidence_scale: float = 10.0
    connection_evidence_scale: float = 5.0

    social_path_limit: int = 5

    def __post_init__(self):
        for name in ("direct_follow_weight", "secondary_follower_weight", "min_trust_threshold",
                     "recency_floor", "interaction_weight_decay"):
            _check_range(name, getattr(self, name), 0.0, 1.0)
        if not 1 <= self.max_social_distance <= MAX_SUPPORTED_DISTANCE:
            raise InvalidInput(
                f"max_social_distance must be 1 or 2, got {self.max_social_distance}",
                field="max_social_distance",
            )
        if self.fan_out_cap < 1:
            raise InvalidInput("fan_out_cap must be positive", field="fan_out_cap")
        if self.social_path_limit < 1:
            raise InvalidInput("social_path_limit must be positive", field="social_path_limit")
        for name in ("max_trust_multiplier", "max_trust_score", "recency_half_life_days",
                     "interaction_evidence_scale", "connection_evidence_scale"):
            if getattr(self, name) <= 0:
                raise InvalidInput(f"{name} must be positive", field=name)
        for name in ("recent_interaction_window_days", "recent_interaction_boost",
                     "max_recent_interaction_boost"):
            if getattr(self, name) < 0:
                raise InvalidInput(f"{name} must not be negative", field=name)

        weights = self.factor_weights
        if any(w < 0 for w in weights.values()):
            raise InvalidInput("factor weights must not be negative", field="factor_weights")
        if not math.isclose(sum(weights.values()), 1.0, abs_tol=1e-9):
            raise InvalidInput(
                f"factor weights must sum to 1, got {sum(weights.values()):.6f}",
                field="factor_weights",
            )

    @property
    def factor_weights(self) -> dict[str, float]:
        return {
            "social": self.social_factor_weight,
            "quality": self.quality_factor_weight,
            "recency": self.recency_factor_weight,
            "diversity": self.diversity_factor_weight,
        }

    def distance_weight(self, distance: Optional[int]) -> float:
        """Trust weight applied to a signal arriving from `distance` hops away."""
        if distance is None:
            return 0.0
        if distance == 0:
            return 1.0
        if distance > self.max_social_distance:
            return 0.0
        if distance == 1:
            return self.direct_follow_weight
        if distance == 2:
            return self.secondary_follower_weight
        return 0.0

    def replace(self, **changes) -> "TrustConfig":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 prefix: str = ENV_PREFIX) -> "TrustConfig":
        """Build a config from SOCIALTRUST_* variables, defaults for the rest."""
        env = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = env.get(prefix + f.name.upper())
            if raw is None or raw == "":
                continue
            caster = int if f.type in ("int", int) else float
            try:
                overrides[f.name] = caster(raw)
            except ValueError:
                raise InvalidInput(
                    f"{prefix}{f.name.upper()}={raw!r} is not a valid {caster.__name__}",
                    field=f.name,
                ) from None
        return cls(**overrides)


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise InvalidInput(f"{name} must be within [{low}, {high}], got {value}", field=name)


DEFAULT_CONFIG = TrustConfig()

__all__ = ["TrustConfig", "DEFAULT_CONFIG", "ENV_PREFIX", "MAX_SUPPORTED_DISTANCE"]
