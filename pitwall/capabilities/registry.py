"""
Capability Descriptors

Each domain specialist is a static descriptor: keywords and specialization
phrases for routing, entity keywords for boosts, the entity kinds it pulls
facts for, and its execution limits. One generic executor runs every
descriptor, so adding a specialist is a data change.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace

from pitwall.features.vocabulary import CIRCUITS, CONSTRUCTORS, DRIVERS


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Static description of one specialist capability."""

    id: str
    name: str
    description: str
    keywords: tuple[str, ...]
    specializations: tuple[str, ...]
    entity_keywords: tuple[str, ...] = field(default_factory=tuple)
    fetch_kinds: tuple[str, ...] = field(default_factory=tuple)
    boost: float = 1.0
    timeout_seconds: float = 30.0
    temperature: float = 0.1
    max_tokens: int = 2000
    period_sensitive: bool = False
    synthesis_suited: bool = False

    @property
    def mention_forms(self) -> tuple[str, ...]:
        """Ways the capability id may appear in query text."""
        spaced = self.id.replace("_", " ")
        return (self.id,) if spaced == self.id else (self.id, spaced)


DEFAULT_CAPABILITIES: tuple[CapabilityDescriptor, ...] = (
    CapabilityDescriptor(
        id="circuit",
        name="Circuit Analysis Agent",
        description=(
            "Analyzes F1 circuits and track characteristics, lap records, "
            "and circuit-specific performance"
        ),
        keywords=(
            "circuit", "track", "lap time", "sector", "corner", "straight", "drs",
            "elevation", "surface", "grip", "layout", "configuration", "pit lane",
        ),
        specializations=(
            "Circuit layout and technical specifications",
            "Historical lap records and sector times",
            "Track-specific performance patterns",
            "Weather impact analysis",
            "Circuit evolution over seasons",
        ),
        entity_keywords=tuple(entry.name for entry in CIRCUITS),
        fetch_kinds=("circuit",),
        boost=2.0,
        timeout_seconds=30.0,
    ),
    CapabilityDescriptor(
        id="driver",
        name="Driver Performance Agent",
        description=(
            "Analyzes driver performance, statistics, career progression, "
            "and head-to-head comparisons"
        ),
        keywords=(
            "driver", "pilot", "performance", "statistics", "comparison", "career",
            "qualifying", "pole position", "fastest lap", "podium", "win", "points",
        ),
        specializations=(
            "Career statistics and performance trends",
            "Head-to-head driver comparisons",
            "Qualifying vs race performance",
            "Circuit-specific driver strengths",
            "Rookie vs veteran analysis",
        ),
        entity_keywords=tuple(entry.name for entry in DRIVERS),
        fetch_kinds=("driver",),
        boost=1.8,
        timeout_seconds=35.0,
    ),
    CapabilityDescriptor(
        id="constructor",
        name="Constructor Analysis Agent",
        description=(
            "Analyzes team performance, technical regulations, constructor "
            "championships, and team strategies"
        ),
        keywords=(
            "constructor", "team", "chassis", "engine", "power unit", "aerodynamics",
            "strategy", "pit stop", "regulation", "technical", "development",
        ),
        specializations=(
            "Constructor championship analysis",
            "Technical regulation impact assessment",
            "Team strategy and pit stop analysis",
            "Constructor development trends",
            "Power unit performance comparisons",
        ),
        entity_keywords=tuple(entry.name for entry in CONSTRUCTORS),
        fetch_kinds=("constructor",),
        boost=1.6,
        timeout_seconds=30.0,
    ),
    CapabilityDescriptor(
        id="race_results",
        name="Race Results Agent",
        description=(
            "Analyzes race outcomes, qualifying sessions, grid positions, "
            "and race weekend performance"
        ),
        keywords=(
            "race", "result", "qualifying", "grid", "position", "finish", "dnf",
            "retirement", "safety car", "sprint", "formation lap", "starting",
        ),
        specializations=(
            "Race result analysis and trends",
            "Qualifying session breakdowns",
            "Grid position impact on results",
            "DNF analysis and reliability",
            "Sprint race vs Grand Prix comparison",
        ),
        fetch_kinds=("circuit", "season"),
        boost=1.5,
        timeout_seconds=25.0,
        period_sensitive=True,
    ),
    CapabilityDescriptor(
        id="championship",
        name="Championship Agent",
        description=(
            "Analyzes championship standings, predictions, points systems, "
            "and title fight scenarios"
        ),
        keywords=(
            "championship", "standings", "points", "title", "leader", "gap",
            "prediction", "scenario", "mathematical", "clinch", "fight",
        ),
        specializations=(
            "Driver and constructor championship analysis",
            "Points system impact assessment",
            "Championship prediction modeling",
            "Historical championship comparisons",
            "Season progression analysis",
        ),
        fetch_kinds=("season",),
        boost=1.7,
        timeout_seconds=40.0,
        temperature=0.2,
        period_sensitive=True,
        synthesis_suited=True,
    ),
    CapabilityDescriptor(
        id="historical",
        name="Historical Data Agent",
        description=(
            "Provides multi-season analysis, cross-era comparisons, and "
            "historical trend identification"
        ),
        keywords=(
            "historical", "history", "era", "decade", "evolution", "comparison",
            "trend", "pattern", "legacy", "record", "milestone", "achievement",
        ),
        specializations=(
            "Cross-era performance comparisons",
            "Regulation change impact analysis",
            "Historical trend identification",
            "Statistical pattern recognition",
            "Legacy performance assessment",
        ),
        fetch_kinds=("driver", "constructor"),
        boost=1.4,
        timeout_seconds=45.0,
        max_tokens=2500,
        synthesis_suited=True,
    ),
)

# Fallbacks offered when a user asks for a different approach.
ALTERNATIVE_CAPABILITIES: dict[str, tuple[str, ...]] = {
    "circuit": ("driver", "race_results"),
    "driver": ("historical", "championship"),
    "constructor": ("driver", "race_results"),
    "race_results": ("driver", "circuit"),
    "championship": ("historical", "driver"),
    "historical": ("driver", "championship"),
}


class CapabilityTable:
    """Ordered, read-only collection of capability descriptors."""

    def __init__(
        self,
        descriptors: Iterable[CapabilityDescriptor] = DEFAULT_CAPABILITIES,
        timeouts: dict[str, float] | None = None,
    ):
        overrides = timeouts or {}
        self._descriptors: dict[str, CapabilityDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in overrides:
                descriptor = replace(descriptor, timeout_seconds=overrides[descriptor.id])
            self._descriptors[descriptor.id] = descriptor

    def __iter__(self) -> Iterator[CapabilityDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, capability_id: object) -> bool:
        return capability_id in self._descriptors

    def get(self, capability_id: str) -> CapabilityDescriptor:
        try:
            return self._descriptors[capability_id]
        except KeyError:
            available = ", ".join(self._descriptors)
            raise KeyError(
                f"Capability '{capability_id}' not found. Available: {available}"
            ) from None

    def ids(self) -> list[str]:
        return list(self._descriptors)

    def order(self, capability_id: str) -> int:
        """Declaration index, used as the routing tie-breaker."""
        return self.ids().index(capability_id)

    def alternatives_for(self, capability_id: str) -> tuple[str, ...]:
        return tuple(
            alt for alt in ALTERNATIVE_CAPABILITIES.get(capability_id, ("driver",))
            if alt in self._descriptors
        )

    def describe(self) -> list[dict]:
        return [
            {
                "id": d.id,
                "name": d.name,
                "description": d.description,
                "specializations": list(d.specializations),
                "keywords": list(d.keywords[:5]),
                "timeout_seconds": d.timeout_seconds,
            }
            for d in self
        ]
