"""
Static Formula 1 vocabularies.

Read-only after import; shared by the feature extractor, the router and the
conversation memory so all three recognise the same entities.
"""

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class VocabularyEntry:
    """A recognisable entity: canonical name, knowledge-provider id and aliases."""

    name: str
    provider_id: str
    aliases: tuple[str, ...] = field(default_factory=tuple)

    @property
    def surface_forms(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


DRIVERS: tuple[VocabularyEntry, ...] = (
    VocabularyEntry("hamilton", "hamilton"),
    VocabularyEntry("verstappen", "max_verstappen"),
    VocabularyEntry("leclerc", "leclerc"),
    VocabularyEntry("russell", "russell"),
    VocabularyEntry("sainz", "sainz"),
    VocabularyEntry("norris", "norris"),
    VocabularyEntry("piastri", "piastri"),
    VocabularyEntry("alonso", "alonso"),
    VocabularyEntry("stroll", "stroll"),
    VocabularyEntry("ocon", "ocon"),
    VocabularyEntry("gasly", "gasly"),
    VocabularyEntry("tsunoda", "tsunoda"),
    VocabularyEntry("perez", "perez", ("pérez",)),
    VocabularyEntry("bottas", "bottas"),
    VocabularyEntry("zhou", "zhou"),
    VocabularyEntry("albon", "albon"),
    VocabularyEntry("sargeant", "sargeant"),
    VocabularyEntry("hulkenberg", "hulkenberg", ("hülkenberg",)),
    VocabularyEntry("magnussen", "kevin_magnussen"),
    VocabularyEntry("ricciardo", "ricciardo"),
    VocabularyEntry("vettel", "vettel"),
    VocabularyEntry("schumacher", "michael_schumacher"),
    VocabularyEntry("senna", "senna"),
    VocabularyEntry("prost", "prost"),
    VocabularyEntry("lauda", "lauda"),
    VocabularyEntry("fangio", "fangio"),
)

CONSTRUCTORS: tuple[VocabularyEntry, ...] = (
    VocabularyEntry("mercedes", "mercedes"),
    VocabularyEntry("ferrari", "ferrari"),
    VocabularyEntry("red bull", "red_bull", ("redbull",)),
    VocabularyEntry("mclaren", "mclaren"),
    VocabularyEntry("alpine", "alpine"),
    VocabularyEntry("aston martin", "aston_martin"),
    VocabularyEntry("williams", "williams"),
    VocabularyEntry("haas", "haas"),
    VocabularyEntry("alfa romeo", "alfa"),
    VocabularyEntry("alphatauri", "alphatauri"),
    VocabularyEntry("renault", "renault"),
    VocabularyEntry("racing point", "racing_point"),
    VocabularyEntry("force india", "force_india"),
)

CIRCUITS: tuple[VocabularyEntry, ...] = (
    VocabularyEntry("monaco", "monaco"),
    VocabularyEntry("silverstone", "silverstone"),
    VocabularyEntry("monza", "monza"),
    VocabularyEntry("spa", "spa"),
    VocabularyEntry("suzuka", "suzuka"),
    VocabularyEntry("interlagos", "interlagos"),
    VocabularyEntry("austin", "americas", ("cota",)),
    VocabularyEntry("abu dhabi", "yas_marina", ("yas marina",)),
    VocabularyEntry("bahrain", "bahrain"),
    VocabularyEntry("melbourne", "albert_park", ("albert park",)),
    VocabularyEntry("imola", "imola"),
    VocabularyEntry("barcelona", "catalunya"),
    VocabularyEntry("hungaroring", "hungaroring"),
    VocabularyEntry("zandvoort", "zandvoort"),
    VocabularyEntry("singapore", "marina_bay"),
    VocabularyEntry("baku", "baku"),
    VocabularyEntry("miami", "miami"),
)

ENTITY_VOCABULARIES: dict[str, tuple[VocabularyEntry, ...]] = {
    "driver": DRIVERS,
    "constructor": CONSTRUCTORS,
    "circuit": CIRCUITS,
}

TOPICS: tuple[str, ...] = (
    "championship",
    "qualifying",
    "race",
    "strategy",
    "performance",
    "standings",
    "prediction",
    "circuit",
    "constructor",
    "driver",
)

# Query-type tag -> pattern. Checked in this order.
QUERY_TYPE_PATTERNS: dict[str, re.Pattern[str]] = {
    "comparison": re.compile(r"\b(compare|compared|vs|versus|better|worse|difference)\b"),
    "prediction": re.compile(r"\b(predict|forecast|will|future|likely|probability)\b"),
    "historical": re.compile(r"\b(history|historical|evolution|era|all time|legacy|past)\b"),
    "analytical": re.compile(r"\b(analyze|analyse|analysis|explain|why|how|impact|reason)\b"),
    "statistical": re.compile(
        r"\b(stats|statistics|numbers|data|record|performance|fastest|slowest)\b"
    ),
}

COMPLEXITY_INDICATORS: tuple[str, ...] = (
    "comprehensive",
    "detailed",
    "in-depth",
    "thorough",
    "analyze",
    "correlation",
    "impact",
    "throughout",
    "across",
    "multiple",
)

PERIOD_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")

CURRENT_PERIOD_PATTERN = re.compile(
    r"\b(current|now|this season|this year|today|latest)\b"
)
HISTORICAL_PERIOD_PATTERN = re.compile(
    r"\b(history|past|previous|last season|last year|years ago)\b"
)
FUTURE_PERIOD_PATTERN = re.compile(r"\b(next|future|upcoming|will|predict)\b")

# Relative period phrase -> offset from the current season.
RELATIVE_PERIOD_PHRASES: dict[str, int] = {
    "this current season": 0,
    "current season": 0,
    "current year": 0,
    "this season": 0,
    "this year": 0,
    "last season": -1,
    "last year": -1,
    "previous season": -1,
    "previous year": -1,
}

PERIOD_RESOLUTION_PATTERN = re.compile(
    r"\b(this current season|current season|current year|this season|this year|"
    r"last season|last year|previous season|previous year|(?:19|20)\d{2})\b",
    re.IGNORECASE,
)

CLARIFICATION_QUESTION_PATTERN = re.compile(
    r"which year|what year|which season|what season|specify\b.*\b(?:year|season)",
    re.IGNORECASE,
)
