from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from pitwall.capabilities import CapabilityRequest, CapabilityResult
from pitwall.errors import CapabilityExecutionError
from pitwall.orchestrator import QueryOrchestrator, build_orchestrator
from pitwall.routing import RoutingDecision

from .clock import FakeClock
from .fakes import FakeKnowledgeProvider, FakeResponder
from .settings import make_settings


def make_orchestrator(
    responder: FakeResponder | None = None,
    knowledge: FakeKnowledgeProvider | None = None,
    clock: FakeClock | None = None,
    **settings_overrides,
) -> QueryOrchestrator:
    """Orchestrator wired with fakes and isolated settings."""
    return build_orchestrator(
        responder or FakeResponder(),
        knowledge,
        settings=make_settings(**settings_overrides),
        clock=clock or FakeClock.fixed(year=2026),
    )


@dataclass
class StaticRouter:
    """Router stand-in that always returns the same decision."""

    decision: RoutingDecision

    def route(self, query, features, context=None) -> RoutingDecision:
        return self.decision


@dataclass
class ScriptedExecutor:
    """Executor stand-in returning fixed confidences per capability."""

    confidences: dict[str, float] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def execute(self, capability_id: str, request: CapabilityRequest) -> CapabilityResult:
        self.calls.append(capability_id)
        if capability_id in self.delays:
            await asyncio.sleep(self.delays[capability_id])
        if capability_id in self.failing:
            raise CapabilityExecutionError(capability_id, "scripted failure")
        return CapabilityResult(
            capability_id=capability_id,
            name=capability_id.replace("_", " ").title(),
            response=f"{capability_id} answer to: {request.query}",
            confidence=self.confidences.get(capability_id, 0.8),
        )
