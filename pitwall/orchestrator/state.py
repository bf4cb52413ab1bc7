"""
Query State Definition

Defines the state schema for the LangGraph query pipeline.
This state flows through all nodes for a single turn.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from pitwall.capabilities.executor import CapabilityResult, ResolvedClarification
from pitwall.features import FeatureBundle
from pitwall.routing.router import RoutingDecision

APOLOGY_RESPONSE = (
    "I'm sorry, I wasn't able to answer that question. "
    "Could you try rephrasing it or asking about a specific driver, team, race or season?"
)


class TurnOutcome(str, Enum):
    FINALIZED = "finalized"
    CONFIRMATION = "confirmation"
    ERROR = "error"


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CAPABILITY = "capability"
    NO_RESULT = "no_result"


# =============================================================================
# Trace
# =============================================================================


class NodeTiming(BaseModel):
    """Timing for a single node."""

    started_at: float
    completed_at: float | None = None


class Trace(BaseModel):
    """Execution trace for one turn."""

    started_at: float = Field(default_factory=lambda: datetime.now(timezone.utc).timestamp())
    completed_at: float | None = None
    nodes: list[str] = Field(default_factory=list)
    current_node: str | None = None
    node_timings: dict[str, NodeTiming] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def step(
        self,
        node: str,
        started_at: float,
        completed_at: float,
        error: str | None = None,
        warnings: list[str] | None = None,
    ) -> "Trace":
        """Copy of this trace with ``node`` recorded."""
        return self.model_copy(
            update={
                "current_node": node,
                "nodes": self.nodes + [node],
                "node_timings": {
                    **self.node_timings,
                    node: NodeTiming(started_at=started_at, completed_at=completed_at),
                },
                "errors": self.errors + ([f"{node}: {error}"] if error else []),
                "warnings": self.warnings + (warnings or []),
            }
        )


# =============================================================================
# Main State
# =============================================================================


class QueryState(BaseModel):
    """
    State for one turn through the query pipeline.

    Nodes return partial updates; LangGraph merges them by field.
    """

    # Input
    query: str
    session_id: str | None = None
    user_id: str | None = None
    extra_context: dict[str, Any] = Field(default_factory=dict)

    # Context
    effective_query: str | None = None
    history: list[dict[str, str]] = Field(default_factory=list)
    clarification: ResolvedClarification | None = None

    # Routing
    features: FeatureBundle | None = None
    routing: RoutingDecision | None = None
    selected_capabilities: list[str] = Field(default_factory=list)

    # Execution
    results: list[CapabilityResult] = Field(default_factory=list)
    failures: dict[str, str] = Field(default_factory=dict)
    synthesized: bool = False

    # Response
    response: str | None = None
    confidence: float = 0.0
    capability: str | None = None
    confirmation: dict[str, Any] | None = None
    outcome: TurnOutcome | None = None
    error_kind: ErrorKind | None = None
    memory_recorded: bool = False

    # Trace
    trace: Trace = Field(default_factory=Trace)

    @property
    def query_text(self) -> str:
        return self.effective_query or self.query.strip()


class QueryResponse(BaseModel):
    """What a caller receives for one turn."""

    success: bool
    response: str
    selected_capability: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    multi_capability: bool = False
    capability_result_count: int = 0
    session_id: str | None = None
    requires_confirmation: bool = False
    confirmation: dict[str, Any] | None = None
    routing_trace: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_state(cls, state: QueryState) -> "QueryResponse":
        routing = state.routing
        return cls(
            success=state.outcome != TurnOutcome.ERROR,
            response=state.response or APOLOGY_RESPONSE,
            selected_capability=state.capability,
            confidence=state.confidence,
            multi_capability=bool(routing and routing.multi_capability),
            capability_result_count=len(state.results),
            session_id=state.session_id,
            requires_confirmation=state.outcome == TurnOutcome.CONFIRMATION,
            confirmation=state.confirmation,
            routing_trace=list(state.trace.nodes),
            metadata={
                "effective_query": state.effective_query,
                "capabilities": list(state.selected_capabilities),
                "failed_capabilities": dict(state.failures),
                "synthesized": state.synthesized,
                "routing_confidence": routing.confidence if routing else None,
                "routing_fallback": routing.fallback if routing else False,
                "complexity": state.features.complexity.value if state.features else None,
                "query_types": list(state.features.query_types) if state.features else [],
                "warnings": list(state.trace.warnings),
                "errors": list(state.trace.errors),
                "memory_recorded": state.memory_recorded,
                "processing_ms": int(
                    ((state.trace.completed_at or state.trace.started_at) - state.trace.started_at)
                    * 1000
                ),
            },
        )
