"""Tests for TrustConfig — validation, distance weights, environment overrides."""

import pytest

from socialtrust.config import DEFAULT_CONFIG, TrustConfig
from socialtrust.errors import InvalidInput


class TestDefaults:
    def test_distance_weights(self):
        assert DEFAULT_CONFIG.distance_weight(0) == 1.0
        assert DEFAULT_CONFIG.distance_weight(1) == 0.75
        assert DEFAULT_CONFIG.distance_weight(2) == 0.25
        assert DEFAULT_CONFIG.distance_weight(3) == 0.0
        assert DEFAULT_CONFIG.distance_weight(None) == 0.0

    def test_factor_weights_sum_to_one(self):
        assert sum(DEFAULT_CONFIG.factor_weights.values()) == pytest.approx(1.0)
        assert DEFAULT_CONFIG.factor_weights == {
            "social": 0.4, "quality": 0.3, "recency": 0.2, "diversity": 0.1,
        }

    def test_frozen(self):
        with pytest.raises(Exception):
            DEFAULT_CONFIG.fan_out_cap = 5

    def test_one_hop_config_ignores_second_hop(self):
        cfg = TrustConfig(max_social_distance=1)
        assert cfg.distance_weight(2) == 0.0


class TestValidation:
    def test_weights_must_sum_to_one(self):
        with pytest.raises(InvalidInput) as exc:
            TrustConfig(social_factor_weight=0.5)
        assert exc.value.field == "factor_weights"

    def test_distance_out_of_range(self):
        with pytest.raises(InvalidInput):
            TrustConfig(max_social_distance=3)
        with pytest.raises(InvalidInput):
            TrustConfig(max_social_distance=0)

    def test_bad_fan_out_cap(self):
        with pytest.raises(InvalidInput):
            TrustConfig(fan_out_cap=0)

    def test_weight_out_of_unit_range(self):
        with pytest.raises(InvalidInput):
            TrustConfig(direct_follow_weight=1.5)

    def test_replace_revalidates(self):
        cfg = DEFAULT_CONFIG.replace(fan_out_cap=10)
        assert cfg.fan_out_cap == 10
        with pytest.raises(InvalidInput):
            DEFAULT_CONFIG.replace(recency_half_life_days=0)


class TestFromEnv:
    def test_overrides(self):
        cfg = TrustConfig.from_env({
            "SOCIALTRUST_FAN_OUT_CAP": "50",
            "SOCIALTRUST_DIRECT_FOLLOW_WEIGHT": "0.8",
            "UNRELATED": "x",
        })
        assert cfg.fan_out_cap == 50
        assert isinstance(cfg.fan_out_cap, int)
        assert cfg.direct_follow_weight == 0.8
        assert cfg.secondary_follower_weight == 0.25

    def test_empty_values_ignored(self):
        cfg = TrustConfig.from_env({"SOCIALTRUST_FAN_OUT_CAP": ""})
        assert cfg.fan_out_cap == 100

    def test_bad_value(self):
        with pytest.raises(InvalidInput) as exc:
            TrustConfig.from_env({"SOCIALTRUST_FAN_OUT_CAP": "many"})
        assert exc.value.field == "fan_out_cap"

    def test_custom_prefix(self):
        cfg = TrustConfig.from_env({"X_SOCIAL_PATH_LIMIT": "3"}, prefix="X_")
        assert cfg.social_path_limit == 3

    def test_to_dict(self):
        d = DEFAULT_CONFIG.to_dict()
        assert d["max_trust_multiplier"] == 3.0
        assert d["min_trust_threshold"] == 0.25
