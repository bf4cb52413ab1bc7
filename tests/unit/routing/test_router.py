"""
Unit tests for capability routing.
"""

import pytest

from pitwall.capabilities import CapabilityTable
from pitwall.capabilities.registry import DEFAULT_CAPABILITIES
from pitwall.features import FeatureExtractor
from pitwall.memory.models import ConversationContext
from pitwall.routing import CapabilityRouter, RoutingPolicy

from tests.support.settings import make_settings

pytestmark = pytest.mark.unit


@pytest.fixture
def extractor() -> FeatureExtractor:
    return FeatureExtractor()


@pytest.fixture
def router() -> CapabilityRouter:
    return CapabilityRouter(CapabilityTable(), RoutingPolicy())


def route(router, extractor, query, context=None):
    return router.route(query, extractor.extract(query), context)


class TestScoring:
    """Tests for raw keyword scoring."""

    def test_keywords_and_specializations(self, router):
        constructor = CapabilityTable().get("constructor")

        score = router.score(constructor, "explain the ferrari team strategy and pit stop performance")

        # team, strategy, pit stop keywords; team, strategy, stop, performance words
        assert score == pytest.approx(5.0)

    def test_id_and_name_mentions(self, router):
        championship = CapabilityTable().get("championship")

        score = router.score(championship, "ask the championship agent")

        # keyword (1.0) + "championship" in three specializations (1.5) + id (3.0) + name (2.0)
        assert score == pytest.approx(7.5)

    def test_underscored_id_matches_spaced_form(self, router):
        race_results = CapabilityTable().get("race_results")

        assert router.score(race_results, "race results please") >= 3.0


class TestRoute:
    """Tests for routing decisions."""

    def test_comparison_routes_to_driver_with_multi(self, router, extractor):
        decision = route(router, extractor, "Compare Hamilton and Verstappen")

        assert decision.primary == "driver"
        assert decision.confidence == pytest.approx(0.36)
        assert decision.multi_capability is True
        assert decision.strategy == "multi"
        assert decision.alternatives[0].capability_id == "historical"
        assert decision.alternatives[0].confidence == pytest.approx(0.15)

    def test_ties_keep_declaration_order(self, router, extractor):
        decision = route(router, extractor, "Compare Hamilton and Verstappen")

        # circuit, constructor, race_results and championship all score zero
        assert [alt.capability_id for alt in decision.alternatives] == [
            "historical",
            "circuit",
            "constructor",
        ]

    def test_clear_winner_is_single(self, router, extractor):
        decision = route(router, extractor, "Explain the Ferrari team strategy and pit stop performance")

        assert decision.primary == "constructor"
        assert decision.confidence == 1.0
        assert decision.multi_capability is False
        assert decision.fallback is False

    def test_at_most_three_alternatives(self, router, extractor):
        decision = route(router, extractor, "Who won the Monaco Grand Prix race?")

        assert decision.primary == "race_results"
        assert decision.confidence == pytest.approx(0.6)
        assert len(decision.alternatives) == 3
        assert len(decision.scores) == len(DEFAULT_CAPABILITIES)

    def test_confidences_stay_in_unit_interval(self, router, extractor):
        queries = [
            "",
            "historical history era decade evolution comparison trend legacy record",
            "Compare Hamilton, Verstappen, Senna, Prost, Lauda, Schumacher and Fangio",
            "Will Ferrari, Mercedes, McLaren, Red Bull and Alpine win the championship?",
        ]
        for query in queries:
            decision = route(router, extractor, query)
            assert 0.0 <= decision.confidence <= 1.0
            assert all(0.0 <= alt.confidence <= 1.0 for alt in decision.alternatives)

    def test_deterministic(self, router, extractor):
        query = "How has Red Bull's performance at Silverstone changed since 2019?"

        assert route(router, extractor, query) == route(router, extractor, query)

    def test_entity_count_triggers_multi(self, router, extractor):
        decision = route(router, extractor, "Ferrari team strategy at Monza in 2019")

        assert decision.multi_capability is True

    def test_continuity_boost_for_tracked_entities(self, router, extractor):
        query = "Leclerc qualifying"
        context = ConversationContext(
            entities={"driver": ["leclerc"]},
            last_capability="race_results",
        )

        without = route(router, extractor, query)
        with_context = route(router, extractor, query, context)

        assert with_context.scores["race_results"] == pytest.approx(
            without.scores["race_results"] + 0.05
        )

    def test_no_continuity_boost_for_untracked_entities(self, router, extractor):
        query = "Leclerc qualifying"
        context = ConversationContext(
            entities={"driver": ["norris"]},
            last_capability="race_results",
        )

        assert route(router, extractor, query, context).scores == route(
            router, extractor, query
        ).scores


class TestFallback:
    """Routing never raises."""

    def test_failure_returns_fallback_decision(self, extractor):
        router = CapabilityRouter(CapabilityTable(descriptors=()), RoutingPolicy())

        decision = route(router, extractor, "Who won in 2021?")

        assert decision.primary == "driver"
        assert decision.confidence == pytest.approx(0.3)
        assert decision.alternatives == []
        assert decision.multi_capability is False
        assert decision.fallback is True

    def test_policy_from_settings(self):
        policy = RoutingPolicy.from_settings(
            make_settings(default_capability="historical", fallback_confidence=0.2)
        )

        assert policy.default_capability == "historical"
        assert policy.fallback_confidence == 0.2
