"""
Query Orchestrator

Public entry point of the engine: processes queries through the LangGraph
pipeline, resolves confirmations, exposes conversation history and runs the
periodic maintenance sweep.
"""

import asyncio
from typing import Any
from uuid import uuid4

import structlog

from pitwall.capabilities import CapabilityExecutor, CapabilityTable
from pitwall.clock import Clock, utc_now
from pitwall.config import Settings, get_settings
from pitwall.confirmation import ConfirmationManager
from pitwall.features import FeatureExtractor
from pitwall.memory import ConversationMemory
from pitwall.providers.base import GenerativeResponder, KnowledgeProvider, StatsReporter
from pitwall.routing import CapabilityRouter, RoutingPolicy

from .dependencies import OrchestratorServices
from .graph import compile_query_graph
from .state import APOLOGY_RESPONSE, QueryResponse, QueryState
from .validation import QueryValidator

logger = structlog.get_logger()


class QueryOrchestrator:
    """Runs turns through the query graph and owns the background sweep."""

    def __init__(self, services: OrchestratorServices):
        self.services = services
        self.graph = compile_query_graph(services)
        self._maintenance_task: asyncio.Task | None = None
        self._shutdown = asyncio.Event()

    @property
    def memory(self) -> ConversationMemory:
        return self.services.memory

    @property
    def confirmations(self) -> ConfirmationManager:
        return self.services.confirmations

    async def process_query(
        self,
        query: str,
        session_id: str | None = None,
        user_id: str | None = None,
        extra_context: dict[str, Any] | None = None,
    ) -> QueryResponse:
        """
        Answer one query.

        Never raises: unexpected pipeline failures become the standard
        apology with zero confidence.
        """
        initial_state = QueryState(
            query=query or "",
            session_id=session_id,
            user_id=user_id,
            extra_context=extra_context or {},
        )

        with structlog.contextvars.bound_contextvars(turn_id=str(uuid4()), session_id=session_id):
            logger.info("Processing query", query_length=len(query or ""))
            try:
                final_state = await self.graph.ainvoke(initial_state)
            except Exception as e:
                logger.error("Query pipeline failed", error=str(e))
                return QueryResponse(
                    success=False,
                    response=APOLOGY_RESPONSE,
                    confidence=0.0,
                    session_id=session_id,
                    metadata={"errors": [f"pipeline: {e}"]},
                )

        if isinstance(final_state, dict):
            final_state = QueryState.model_validate(final_state)

        response = QueryResponse.from_state(final_state)
        logger.info(
            "Query processed",
            session_id=response.session_id,
            capability=response.selected_capability,
            confidence=response.confidence,
            requires_confirmation=response.requires_confirmation,
            nodes=response.routing_trace,
        )
        return response

    async def process_confirmation(
        self,
        confirmation_id: str,
        action: str,
        extra: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Resolve a pending confirmation; failures come back as values."""
        request = await self.confirmations.get(confirmation_id)
        result = await self.confirmations.resolve(confirmation_id, action, extra)
        payload = result.to_dict()

        if not result.success or request is None:
            return payload

        payload["session_id"] = request.session_id

        if result.action == "confirmed":
            try:
                await self.memory.append_message(
                    request.session_id,
                    "assistant",
                    result.response or "",
                    metadata={
                        "capability": result.capability,
                        "confidence": result.confidence,
                        "confirmation_id": confirmation_id,
                        "confirmed": True,
                    },
                )
            except Exception as e:
                logger.error(
                    "Failed to record confirmed answer",
                    confirmation_id=confirmation_id,
                    error=str(e),
                )
        elif result.action == "alternative":
            payload["retry"] = {
                "query": request.query,
                "session_id": request.session_id,
                "extra_context": {"capability": result.alternative_capability},
            }

        return payload

    async def get_pending_confirmations(self, session_id: str) -> list[dict[str, Any]]:
        pending = await self.confirmations.get_pending(session_id)
        return [self.confirmations.format_request(request) for request in pending]

    async def get_history(self, session_id: str, limit: int | None = None) -> dict[str, Any] | None:
        return await self.memory.get_history(session_id, limit=limit)

    async def delete_session(self, session_id: str) -> bool:
        return await self.memory.delete_session(session_id)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def run_maintenance(self) -> dict[str, Any]:
        """Drop idle sessions and settle expired confirmations."""
        sessions_removed = await self.memory.cleanup_expired(
            self.services.settings.session_max_age_hours
        )
        confirmations = await self.confirmations.sweep()
        return {"sessions_removed": sessions_removed, **confirmations}

    async def _maintenance_loop(self) -> None:
        interval = max(1, int(self.services.settings.maintenance_interval_seconds))
        while not self._shutdown.is_set():
            try:
                await self.run_maintenance()
            except Exception as exc:
                logger.warning("Maintenance sweep failed (will retry)", error=str(exc))
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    def start_maintenance(self) -> None:
        if self._maintenance_task is not None and not self._maintenance_task.done():
            return
        self._shutdown.clear()
        self._maintenance_task = asyncio.create_task(self._maintenance_loop())
        logger.info("Maintenance loop started")

    async def stop_maintenance(self) -> None:
        if self._maintenance_task is None:
            return
        self._shutdown.set()
        await asyncio.gather(self._maintenance_task, return_exceptions=True)
        self._maintenance_task = None
        logger.info("Maintenance loop stopped")

    def _provider_stats(self) -> dict[str, dict[str, Any]]:
        providers = {
            "responder": self.services.responder,
            "synthesizer": self.services.synthesizer,
            "knowledge": self.services.knowledge,
        }
        return {
            name: provider.get_stats()
            for name, provider in providers.items()
            if isinstance(provider, StatsReporter)
        }

    def get_status(self) -> dict[str, Any]:
        return {
            "capabilities": self.services.capabilities.describe(),
            "memory": self.memory.get_stats(),
            "confirmations": self.confirmations.get_stats(),
            "providers": self._provider_stats(),
            "maintenance_running": (
                self._maintenance_task is not None and not self._maintenance_task.done()
            ),
        }


def build_orchestrator(
    responder: GenerativeResponder,
    knowledge: KnowledgeProvider | None = None,
    settings: Settings | None = None,
    synthesizer: GenerativeResponder | None = None,
    capabilities: CapabilityTable | None = None,
    clock: Clock = utc_now,
) -> QueryOrchestrator:
    """Wire the default collaborators into an orchestrator."""
    settings = settings or get_settings()
    extractor = FeatureExtractor()
    capabilities = capabilities or CapabilityTable(timeouts=settings.capability_timeouts)

    services = OrchestratorServices(
        settings=settings,
        extractor=extractor,
        capabilities=capabilities,
        router=CapabilityRouter(capabilities, RoutingPolicy.from_settings(settings)),
        executor=CapabilityExecutor(
            capabilities, responder, knowledge, extractor=extractor, clock=clock
        ),
        synthesizer=synthesizer or responder,
        memory=ConversationMemory(settings, extractor=extractor, clock=clock),
        confirmations=ConfirmationManager(settings, clock=clock, capabilities=capabilities),
        validator=QueryValidator(max_length=settings.max_query_length),
        responder=responder,
        knowledge=knowledge,
    )
    return QueryOrchestrator(services)
