"""
Feature Extractor

Turns raw query text into a structured feature bundle: mentioned entities,
query-type tags, a complexity bucket and temporal markers. Pure keyword and
pattern matching against the static vocabularies.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, Field

from .vocabulary import (
    COMPLEXITY_INDICATORS,
    CURRENT_PERIOD_PATTERN,
    ENTITY_VOCABULARIES,
    FUTURE_PERIOD_PATTERN,
    HISTORICAL_PERIOD_PATTERN,
    PERIOD_PATTERN,
    QUERY_TYPE_PATTERNS,
    TOPICS,
    VocabularyEntry,
)


class Complexity(str, Enum):
    """Query complexity buckets."""

    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class TemporalMarkers(BaseModel):
    """Time references found in a query."""

    is_current_period: bool = False
    is_historical: bool = False
    is_future: bool = False
    explicit_periods: list[int] = Field(default_factory=list)

    @property
    def has_period(self) -> bool:
        return bool(self.explicit_periods) or self.is_current_period or self.is_historical


class FeatureBundle(BaseModel):
    """Structured features extracted from one query."""

    entities: dict[str, list[str]] = Field(default_factory=dict)
    query_types: list[str] = Field(default_factory=lambda: ["general"])
    complexity: Complexity = Complexity.SIMPLE
    complexity_score: float = 0.0
    temporal: TemporalMarkers = Field(default_factory=TemporalMarkers)

    @property
    def entity_count(self) -> int:
        """Distinct entities referenced, explicit periods included."""
        named = sum(len(names) for names in self.entities.values())
        return named + len(self.temporal.explicit_periods)

    def mentioned(self) -> set[str]:
        """All entity names across kinds."""
        return {name for names in self.entities.values() for name in names}


@dataclass(frozen=True)
class ComplexityPolicy:
    """Weights and thresholds for the complexity score."""

    words_per_point: float = 15.0
    max_word_points: float = 2.0
    indicator_weight: float = 0.5
    entity_weight: float = 0.3
    conjunction_weight: float = 1.0
    simple_max: float = 1.5
    moderate_max: float = 3.0


@lru_cache(maxsize=None)
def _alias_pattern(alias: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(alias)}\b")


def _matches(entry: VocabularyEntry, text: str) -> bool:
    return any(_alias_pattern(alias).search(text) for alias in entry.surface_forms)


class FeatureExtractor:
    """Keyword-based feature extraction shared by routing and memory."""

    def __init__(
        self,
        vocabularies: dict[str, tuple[VocabularyEntry, ...]] | None = None,
        complexity_policy: ComplexityPolicy | None = None,
    ):
        self.vocabularies = vocabularies or ENTITY_VOCABULARIES
        self.complexity_policy = complexity_policy or ComplexityPolicy()

    def extract(self, text: str) -> FeatureBundle:
        normalized = text.lower().strip()

        entities = self.extract_entities(normalized)
        temporal = self.extract_temporal(normalized)
        score = self._complexity_score(normalized, entities, temporal)

        return FeatureBundle(
            entities=entities,
            query_types=self.classify_query_types(normalized),
            complexity=self._bucket(score),
            complexity_score=round(score, 3),
            temporal=temporal,
        )

    def extract_entities(self, text: str) -> dict[str, list[str]]:
        normalized = text.lower()
        return {
            kind: [entry.name for entry in entries if _matches(entry, normalized)]
            for kind, entries in self.vocabularies.items()
        }

    def classify_query_types(self, text: str) -> list[str]:
        tags = [tag for tag, pattern in QUERY_TYPE_PATTERNS.items() if pattern.search(text)]
        return tags or ["general"]

    def extract_temporal(self, text: str) -> TemporalMarkers:
        periods: list[int] = []
        for match in PERIOD_PATTERN.findall(text):
            period = int(match)
            if period not in periods:
                periods.append(period)

        return TemporalMarkers(
            is_current_period=bool(CURRENT_PERIOD_PATTERN.search(text)),
            is_historical=bool(HISTORICAL_PERIOD_PATTERN.search(text)),
            is_future=bool(FUTURE_PERIOD_PATTERN.search(text)),
            explicit_periods=periods,
        )

    def extract_topics(self, text: str) -> list[str]:
        normalized = text.lower()
        return [topic for topic in TOPICS if topic in normalized]

    def resolve_entity_id(self, kind: str, name: str) -> str | None:
        """Map a canonical entity name to its knowledge-provider id."""
        for entry in self.vocabularies.get(kind, ()):
            if entry.name == name:
                return entry.provider_id
        return None

    def _complexity_score(
        self,
        text: str,
        entities: dict[str, list[str]],
        temporal: TemporalMarkers,
    ) -> float:
        policy = self.complexity_policy
        word_count = len(text.split())

        score = min(word_count / policy.words_per_point, policy.max_word_points)
        score += policy.indicator_weight * sum(
            1 for indicator in COMPLEXITY_INDICATORS if indicator in text
        )
        entity_count = sum(len(names) for names in entities.values())
        entity_count += len(temporal.explicit_periods)
        score += policy.entity_weight * entity_count

        if " and " in text or " or " in text:
            score += policy.conjunction_weight

        return score

    def _bucket(self, score: float) -> Complexity:
        if score <= self.complexity_policy.simple_max:
            return Complexity.SIMPLE
        if score <= self.complexity_policy.moderate_max:
            return Complexity.MODERATE
        return Complexity.COMPLEX
