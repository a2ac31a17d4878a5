"""Tests for TrustScoreCalculator — pipeline factors, determinism, confidence, thresholds."""

import math
import random
from datetime import datetime, timedelta

import pytest

from socialtrust.calculator import TrustScoreCalculator, calculate_trust_score
from socialtrust.config import TrustConfig
from socialtrust.errors import InvalidInput
from socialtrust.models import ConfidenceLevel, InteractionType, SocialPathEntry

from conftest import NOW, act, conn, meta

UP = InteractionType.UPVOTE
DOWN = InteractionType.DOWNVOTE
SAVE = InteractionType.SAVE
SHARE = InteractionType.SHARE


@pytest.fixture
def calc():
    return TrustScoreCalculator()


def expected_confidence(n, m):
    return round(0.7 * (1 - math.exp(-n / 10)) + 0.3 * (1 - math.exp(-m / 5)), 4)


def wide_network():
    """e follows f0..f9; each f_i follows two second-hop users; b is the author."""
    connections = [conn("e", "b", days_ago=30)]
    for i in range(10):
        connections.append(conn("e", f"f{i}", days_ago=20 - i))
        connections.append(conn(f"f{i}", f"s{i}a"))
        connections.append(conn(f"f{i}", f"s{i}b"))
    return connections


class TestDirectFollowScenario:
    def test_single_upvote_from_evaluator(self, calc):
        connections = [conn("a", "b")]
        result = calc.calculate_trust_score("a", connections, [act("a")], meta("b"), NOW)
        b = result.breakdown
        assert b.social_trust_weight == 0.75
        assert b.quality_signals == 1.0
        assert b.recency_factor == 1.0
        assert b.diversity_bonus == 0.0
        assert result.final_score == pytest.approx(8.0)
        assert result.confidence == expected_confidence(1, 1)
        assert "From someone you follow" in result.explanation

    def test_upvote_beats_no_interactions(self, calc):
        connections = [conn("a", "b")]
        with_vote = calc.calculate_trust_score("a", connections, [act("a")], meta("b"), NOW)
        without = calc.calculate_trust_score("a", connections, [], meta("b"), NOW)
        assert without.breakdown.quality_signals == 0.5
        assert without.final_score == pytest.approx(6.5)
        assert with_vote.final_score > without.final_score

    def test_more_evidence_more_confidence(self, calc):
        connections = wide_network()
        one = calc.calculate_trust_score("e", connections, [act("f0")], meta("b"), NOW)
        actors = [f"f{i}" for i in range(10)] + [f"s{i}a" for i in range(10)]
        kinds = [UP, SAVE, SHARE, DOWN]
        many = [act(u, kinds[i % 4], hours_ago=i + 1) for i, u in enumerate(actors)]
        twenty = calc.calculate_trust_score("e", connections, many, meta("b"), NOW)
        assert one.confidence < twenty.confidence
        assert twenty.confidence_level in (ConfidenceLevel.HIGH, ConfidenceLevel.VERY_HIGH)

    def test_confidence_monotone_in_interactions(self, calc):
        connections = wide_network()
        actors = [f"f{i}" for i in range(10)]
        previous = None
        for n in range(len(actors), -1, -1):
            result = calc.calculate_trust_score(
                "e", connections, [act(u) for u in actors[:n]], meta("b"), NOW)
            if previous is not None:
                assert result.confidence <= previous
            previous = result.confidence
        assert previous == expected_confidence(0, 31)


class TestSocialWeight:
    def test_own_content(self, calc):
        result = calc.calculate_trust_score("a", [], [], meta("a"), NOW)
        assert result.breakdown.social_trust_weight == 1.0
        assert result.social_path == (SocialPathEntry("a", 0, 1.0),)

    def test_second_hop(self, calc):
        result = calc.calculate_trust_score("a", [conn("a", "m"), conn("m", "b")], [], meta("b"), NOW)
        assert result.breakdown.social_trust_weight == 0.25
        assert [e.user_id for e in result.social_path] == ["a", "m", "b"]

    def test_unreachable(self, calc):
        connections = [conn("a", "m"), conn("m", "x"), conn("x", "b")]
        result = calc.calculate_trust_score("a", connections, [], meta("b"), NOW)
        assert result.breakdown.social_trust_weight == 0.0
        assert result.social_path == ()

    def test_one_hop_config(self):
        calc = TrustScoreCalculator(TrustConfig(max_social_distance=1))
        result = calc.calculate_trust_score("a", [conn("a", "m"), conn("m", "b")], [], meta("b"), NOW)
        assert result.breakdown.social_trust_weight == 0.0


class TestQuality:
    def test_downvote_only_clamps_to_zero(self, calc):
        result = calc.calculate_trust_score("a", [conn("a", "f")], [act("f", DOWN)], meta("b"), NOW)
        assert result.breakdown.quality_signals == 0.0

    def test_mixed_votes(self, calc):
        connections = [conn("a", "f"), conn("a", "g")]
        interactions = [act("f", UP, hours_ago=2), act("g", DOWN, hours_ago=1)]
        result = calc.calculate_trust_score("a", connections, interactions, meta("b"), NOW)
        assert result.breakdown.quality_signals == pytest.approx(0.25)

    def test_type_values_ordered(self, calc):
        scores = {}
        for kind in (UP, SAVE, SHARE, DOWN):
            r = calc.calculate_trust_score("a", [conn("a", "f")], [act("f", kind)], meta("b"), NOW)
            scores[kind] = r.breakdown.quality_signals
        assert scores[UP] > scores[SAVE] > scores[SHARE] > scores[DOWN]

    def test_strangers_and_other_content_ignored(self, calc):
        interactions = [act("stranger", DOWN), act("f", DOWN, content="other")]
        result = calc.calculate_trust_score("a", [conn("a", "f")], interactions, meta("b"), NOW)
        assert result.breakdown.quality_signals == 0.5
        assert result.confidence == expected_confidence(0, 1)

    def test_same_cluster_decays(self, calc):
        connections = [conn("e", "f1"), conn("f1", "s1"), conn("f1", "s2"), conn("f1", "s3")]
        interactions = [act("s1", hours_ago=3), act("s2", hours_ago=2), act("s3", hours_ago=1)]
        result = calc.calculate_trust_score("e", connections, interactions, meta("f1"), NOW)
        assert result.social_path == (
            SocialPathEntry("e", 0, 1.0),
            SocialPathEntry("f1", 1, 0.75),
            SocialPathEntry("s1", 2, 0.25),
            SocialPathEntry("s2", 2, 0.225),
            SocialPathEntry("s3", 2, 0.2025),
        )

    def test_single_actor_capped(self, calc):
        interactions = [act("f", hours_ago=h) for h in range(5, 0, -1)]
        result = calc.calculate_trust_score("e", [conn("e", "f")], interactions, meta("x"), NOW)
        assert result.social_path[0].user_id == "f"
        assert result.social_path[0].contribution_weight == pytest.approx(2.25)
        assert result.confidence == expected_confidence(4, 1)

    def test_capped_interaction_does_not_decay_cluster(self, calc):
        connections = [conn("e", "f"), conn("f", "s1"), conn("f", "s2")]
        interactions = [act("s1", hours_ago=h) for h in range(10, 5, -1)] + [act("s2", hours_ago=1)]
        result = calc.calculate_trust_score("e", connections, interactions, meta("x"), NOW)
        weights = {e.user_id: e.contribution_weight for e in result.social_path}
        assert weights["s1"] == pytest.approx(0.75)
        assert weights["s2"] == pytest.approx(round(0.25 * 0.9 ** 4, 4))

    def test_caller_supplied_distance_ignored(self, calc):
        from socialtrust.models import UserInteraction
        lying = UserInteraction("stranger", "rec-1", UP, NOW, social_distance=1)
        result = calc.calculate_trust_score("a", [], [lying], meta("b"), NOW)
        assert result.breakdown.quality_signals == 0.5


class TestRecency:
    def test_half_life(self, calc):
        result = calc.calculate_trust_score("a", [], [], meta("b", days_old=30), NOW)
        assert result.breakdown.recency_factor == pytest.approx(0.55)

    def test_old_content_floored(self, calc):
        result = calc.calculate_trust_score("a", [], [], meta("b", days_old=3650), NOW)
        assert result.breakdown.recency_factor >= 0.1
        assert result.breakdown.recency_factor == pytest.approx(0.1, abs=1e-6)

    def test_future_content_treated_as_new(self, calc):
        result = calc.calculate_trust_score("a", [], [], meta("b", days_old=-2), NOW)
        assert result.breakdown.recency_factor == 1.0

    def test_recent_interaction_boost(self, calc):
        connections = [conn("a", f"u{i}") for i in range(3)]
        interactions = [act(f"u{i}", hours_ago=i + 1) for i in range(3)]
        result = calc.calculate_trust_score("a", connections, interactions, meta("b", days_old=30), NOW)
        assert result.breakdown.recency_factor == pytest.approx(0.85)

    def test_boost_capped(self, calc):
        connections = [conn("a", f"u{i}") for i in range(8)]
        interactions = [act(f"u{i}", hours_ago=i + 1) for i in range(8)]
        result = calc.calculate_trust_score("a", connections, interactions, meta("b", days_old=60), NOW)
        assert result.breakdown.recency_factor == pytest.approx(0.1 + 0.9 * 0.25 + 0.5)

    def test_stale_interactions_no_boost(self, calc):
        interactions = [act("u", hours_ago=24 * 10)]
        result = calc.calculate_trust_score("a", [conn("a", "u")], interactions, meta("b", days_old=30), NOW)
        assert result.breakdown.recency_factor == pytest.approx(0.55)

    def test_unreachable_actors_no_boost(self, calc):
        interactions = [act(f"bot{i}", hours_ago=i + 1) for i in range(5)]
        flooded = calc.calculate_trust_score("a", [], interactions, meta("b", days_old=60), NOW)
        quiet = calc.calculate_trust_score("a", [], [], meta("b", days_old=60), NOW)
        assert flooded.breakdown.recency_factor == pytest.approx(0.325)
        assert flooded.final_score == quiet.final_score
        assert flooded.confidence == 0.0


class TestDiversity:
    def test_single_signal_no_bonus(self, calc):
        result = calc.calculate_trust_score("a", [conn("a", "f")], [act("f")], meta("b"), NOW)
        assert result.breakdown.diversity_bonus == 0.0

    def test_two_distances(self, calc):
        connections = [conn("a", "f"), conn("f", "s")]
        interactions = [act("f", hours_ago=2), act("s", hours_ago=1)]
        result = calc.calculate_trust_score("a", connections, interactions, meta("b"), NOW)
        assert result.breakdown.diversity_bonus == pytest.approx(math.log(2) / math.log(3) / 2, abs=1e-6)

    def test_spread_beats_concentration(self, calc):
        connections = [conn("a", f"f{i}") for i in range(4)]
        same = [act(f"f{i}", UP, hours_ago=i + 1) for i in range(4)]
        mixed = [act(f"f{i}", kind, hours_ago=i + 1) for i, kind in enumerate((UP, SAVE, SHARE, DOWN))]
        concentrated = calc.calculate_trust_score("a", connections, same, meta("b"), NOW)
        spread = calc.calculate_trust_score("a", connections, mixed, meta("b"), NOW)
        assert spread.breakdown.diversity_bonus > concentrated.breakdown.diversity_bonus


class TestDeterminism:
    def test_identical_inputs_identical_output(self, calc):
        connections = wide_network()
        interactions = [act(f"f{i}", (UP, SAVE)[i % 2], hours_ago=i) for i in range(10)]
        first = calc.calculate_trust_score("e", connections, interactions, meta("b"), NOW)
        second = calc.calculate_trust_score("e", connections, interactions, meta("b"), NOW)
        assert first == second

    def test_input_order_irrelevant(self, calc):
        connections = wide_network()
        interactions = [act(f"s{i}a", (UP, DOWN, SHARE)[i % 3], hours_ago=i % 4) for i in range(10)]
        baseline = calc.calculate_trust_score("e", connections, interactions, meta("b"), NOW)
        rng = random.Random(7)
        for _ in range(5):
            c, i = list(connections), list(interactions)
            rng.shuffle(c)
            rng.shuffle(i)
            assert calc.calculate_trust_score("e", c, i, meta("b"), NOW) == baseline

    def test_functional_entry_point(self, calc):
        args = ("a", [conn("a", "b")], [act("a")], meta("b"), NOW)
        assert calculate_trust_score(*args) == calc.calculate_trust_score(*args)


class TestInvalidInput:
    def test_naive_now(self, calc):
        with pytest.raises(InvalidInput):
            calc.calculate_trust_score("a", [], [], meta("b"), datetime(2024, 1, 1))

    def test_duplicate_connection(self, calc):
        with pytest.raises(InvalidInput):
            calc.calculate_trust_score("a", [conn("a", "b"), conn("a", "b")], [], meta("b"), NOW)

    def test_wrong_interaction_type(self, calc):
        with pytest.raises(InvalidInput):
            calc.calculate_trust_score("a", [], [{"user_id": "x"}], meta("b"), NOW)

    def test_wrong_connection_type(self, calc):
        with pytest.raises(InvalidInput):
            calc.calculate_trust_score("a", [("a", "b")], [], meta("b"), NOW)

    def test_missing_evaluator(self, calc):
        with pytest.raises(InvalidInput):
            calc.calculate_trust_score("", [], [], meta("b"), NOW)

    def test_interactions_none(self, calc):
        with pytest.raises(InvalidInput):
            calc.calculate_trust_score("a", [], None, meta("b"), NOW)

    def test_metadata_type(self, calc):
        with pytest.raises(InvalidInput):
            calc.calculate_trust_score("a", [], [], {"content_id": "x"}, NOW)


class TestUtilities:
    def test_threshold(self, calc):
        assert calc.meets_trust_threshold(0.25)
        assert not calc.meets_trust_threshold(0.24)

    @pytest.mark.parametrize("score,label", [
        (10.0, "Highly Trusted"),
        (8.0, "Highly Trusted"),
        (7.99, "Trusted"),
        (6.0, "Trusted"),
        (4.5, "Moderately Trusted"),
        (2.0, "Low Trust"),
        (1.99, "Untrusted"),
        (0.0, "Untrusted"),
    ])
    def test_categories(self, calc, score, label):
        assert calc.get_trust_category(score) == label

    def test_breakdown_percentages(self, calc):
        result = calc.calculate_trust_score("a", [conn("a", "b")], [act("a")], meta("b"), NOW)
        pct = calc.breakdown_percentages(result)
        assert sum(pct.values()) == pytest.approx(100.0, abs=0.05)
        assert pct["social"] == pytest.approx(37.5)
        assert pct["diversity"] == 0.0

    def test_path_limit(self):
        calc = TrustScoreCalculator(TrustConfig(social_path_limit=2))
        connections = [conn("e", f"f{i}") for i in range(4)]
        interactions = [act(f"f{i}", hours_ago=i + 1) for i in range(4)]
        result = calc.calculate_trust_score("e", connections, interactions, meta("x"), NOW)
        assert len(result.social_path) == 2

    def test_result_serialises(self, calc):
        result = calc.calculate_trust_score("a", [conn("a", "b")], [act("a")], meta("b"), NOW)
        d = result.to_dict()
        assert d["confidence_level"] == result.confidence_level.value
        assert d["social_path"][0] == {"user_id": "a", "distance": 0, "contribution_weight": 1.0}
