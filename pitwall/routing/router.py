"""
Capability Router

Scores every capability against a query and its features, applies boosts,
and picks a primary capability plus ranked alternatives. Routing never
raises: any internal failure degrades to a fixed fallback decision.
"""

from dataclasses import dataclass, field

import structlog
from pydantic import BaseModel, Field

from pitwall.capabilities.registry import CapabilityDescriptor, CapabilityTable
from pitwall.config import Settings, get_settings
from pitwall.errors import RoutingDegradation
from pitwall.features import Complexity, FeatureBundle
from pitwall.memory.models import ConversationContext

logger = structlog.get_logger()

MIN_SPECIALIZATION_WORD = 4
MAX_ALTERNATIVES = 3


@dataclass(frozen=True)
class RoutingPolicy:
    """Tunable scoring constants."""

    keyword_weight: float = 1.0
    specialization_weight: float = 0.5
    id_mention_bonus: float = 3.0
    name_mention_bonus: float = 2.0
    normalization_divisor: float = 5.0
    entity_boost_factor: float = 0.1
    complex_boost: float = 0.1
    continuity_boost: float = 0.05
    multi_capability_gap: float = 0.2
    multi_capability_entity_count: int = 3
    default_capability: str = "driver"
    fallback_confidence: float = 0.3
    # query-type tag -> ((capability id, boost), ...)
    query_type_boosts: dict[str, tuple[tuple[str, float], ...]] = field(
        default_factory=lambda: {
            "comparison": (("historical", 0.15),),
            "prediction": (("championship", 0.2),),
            "historical": (("historical", 0.25),),
            "statistical": (("driver", 0.1), ("constructor", 0.1)),
        }
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RoutingPolicy":
        return cls(
            keyword_weight=settings.keyword_weight,
            specialization_weight=settings.specialization_weight,
            id_mention_bonus=settings.id_mention_bonus,
            name_mention_bonus=settings.name_mention_bonus,
            normalization_divisor=settings.normalization_divisor,
            entity_boost_factor=settings.entity_boost_factor,
            multi_capability_gap=settings.multi_capability_gap,
            multi_capability_entity_count=settings.multi_capability_entity_count,
            default_capability=settings.default_capability,
            fallback_confidence=settings.fallback_confidence,
        )


class Alternative(BaseModel):
    capability_id: str
    confidence: float = Field(ge=0.0, le=1.0)


class RoutingDecision(BaseModel):
    """Primary capability, ranked alternatives and execution strategy."""

    primary: str
    confidence: float = Field(ge=0.0, le=1.0)
    alternatives: list[Alternative] = Field(default_factory=list, max_length=MAX_ALTERNATIVES)
    multi_capability: bool = False
    strategy: str = "single"
    fallback: bool = False
    scores: dict[str, float] = Field(default_factory=dict)

    def ranked(self) -> list[Alternative]:
        return [Alternative(capability_id=self.primary, confidence=self.confidence), *self.alternatives]


def _clamp(value: float) -> float:
    return max(0.0, min(value, 1.0))


class CapabilityRouter:
    """Keyword scorer with boosts over the capability table."""

    def __init__(
        self,
        capabilities: CapabilityTable,
        policy: RoutingPolicy | None = None,
    ):
        self.capabilities = capabilities
        self.policy = policy or RoutingPolicy.from_settings(get_settings())

    def route(
        self,
        query: str,
        features: FeatureBundle,
        context: ConversationContext | None = None,
    ) -> RoutingDecision:
        try:
            return self._route(query, features, context)
        except Exception as e:
            logger.warning("Routing degraded to fallback", error=str(e))
            return self.fallback_decision()

    def fallback_decision(self) -> RoutingDecision:
        return RoutingDecision(
            primary=self.policy.default_capability,
            confidence=self.policy.fallback_confidence,
            alternatives=[],
            multi_capability=False,
            strategy="single",
            fallback=True,
        )

    def _route(
        self,
        query: str,
        features: FeatureBundle,
        context: ConversationContext | None,
    ) -> RoutingDecision:
        if len(self.capabilities) == 0:
            raise RoutingDegradation("No capabilities registered")

        normalized = query.lower().strip()
        confidences = {
            descriptor.id: min(
                self.score(descriptor, normalized) / self.policy.normalization_divisor, 1.0
            )
            for descriptor in self.capabilities
        }
        self._apply_boosts(confidences, features, context)

        ranked = sorted(
            confidences.items(),
            key=lambda item: (-item[1], self.capabilities.order(item[0])),
        )

        primary_id, primary_confidence = ranked[0]
        multi = self._should_use_multi(features, ranked)

        decision = RoutingDecision(
            primary=primary_id,
            confidence=round(primary_confidence, 4),
            alternatives=[
                Alternative(capability_id=cid, confidence=round(conf, 4))
                for cid, conf in ranked[1 : 1 + MAX_ALTERNATIVES]
            ],
            multi_capability=multi,
            strategy="multi" if multi else "single",
            scores={cid: round(conf, 4) for cid, conf in ranked},
        )

        logger.info(
            "Query routed",
            primary=decision.primary,
            confidence=decision.confidence,
            multi_capability=decision.multi_capability,
        )
        return decision

    def score(self, descriptor: CapabilityDescriptor, normalized_query: str) -> float:
        """Raw keyword score for one capability."""
        policy = self.policy
        score = 0.0

        for keyword in descriptor.keywords:
            if keyword in normalized_query:
                score += policy.keyword_weight

        for specialization in descriptor.specializations:
            for word in specialization.lower().split():
                if len(word) >= MIN_SPECIALIZATION_WORD and word in normalized_query:
                    score += policy.specialization_weight

        if any(form in normalized_query for form in descriptor.mention_forms):
            score += policy.id_mention_bonus
        if descriptor.name.lower() in normalized_query:
            score += policy.name_mention_bonus

        return score

    def _apply_boosts(
        self,
        confidences: dict[str, float],
        features: FeatureBundle,
        context: ConversationContext | None,
    ) -> None:
        policy = self.policy
        mentioned = features.mentioned()

        for descriptor in self.capabilities:
            hits = sum(1 for name in mentioned if name in descriptor.entity_keywords)
            if hits:
                confidences[descriptor.id] = _clamp(
                    confidences[descriptor.id] + descriptor.boost * policy.entity_boost_factor * hits
                )

        if features.complexity == Complexity.COMPLEX:
            for descriptor in self.capabilities:
                if descriptor.synthesis_suited:
                    confidences[descriptor.id] = _clamp(
                        confidences[descriptor.id] + policy.complex_boost
                    )

        for tag in features.query_types:
            for capability_id, boost in policy.query_type_boosts.get(tag, ()):
                if capability_id in confidences:
                    confidences[capability_id] = _clamp(confidences[capability_id] + boost)

        if context is not None and context.last_capability in confidences:
            if mentioned and context.tracks_any(mentioned):
                confidences[context.last_capability] = _clamp(
                    confidences[context.last_capability] + policy.continuity_boost
                )

    def _should_use_multi(self, features: FeatureBundle, ranked: list[tuple[str, float]]) -> bool:
        if features.complexity == Complexity.COMPLEX:
            return True
        if len(ranked) >= 2 and ranked[0][1] - ranked[1][1] < self.policy.multi_capability_gap:
            return True
        if "comparison" in features.query_types:
            return True
        return features.entity_count >= self.policy.multi_capability_entity_count
