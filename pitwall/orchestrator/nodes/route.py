"""
Route Node

Pulls conversation context, resolves an answered season clarification into
the effective query, extracts features and asks the router for a decision.
"""

import time

import structlog

from pitwall.capabilities.executor import ResolvedClarification
from pitwall.routing import Alternative, RoutingDecision

from ..dependencies import OrchestratorServices
from ..state import QueryState

logger = structlog.get_logger()


def _force_capability(decision: RoutingDecision, capability_id: str) -> RoutingDecision:
    """Pin the primary capability, keeping the rest of the ranking."""
    confidence = decision.scores.get(capability_id, decision.confidence)
    ranked = [alt for alt in decision.ranked() if alt.capability_id != capability_id]
    return decision.model_copy(
        update={
            "primary": capability_id,
            "confidence": confidence,
            "alternatives": [
                Alternative(capability_id=alt.capability_id, confidence=alt.confidence)
                for alt in ranked[:3]
            ],
            "multi_capability": False,
            "strategy": "forced",
        }
    )


async def route_node(state: QueryState, services: OrchestratorServices) -> dict:
    """
    Route the query to one or more capabilities.

    Routing never fails; memory lookups that fail are logged and skipped.
    """
    start_time = time.time()
    query = state.query_text
    errors = []

    relevant = None
    try:
        relevant = await services.memory.get_relevant_context(state.session_id, query)
    except Exception as e:
        logger.warning("Context lookup failed", session_id=state.session_id, error=str(e))
        errors.append(f"context: {e}")

    clarification = None
    if relevant is not None and relevant.pending_clarification is not None:
        pending = relevant.pending_clarification
        clarification = ResolvedClarification(
            original_query=pending.original_query,
            resolution=pending.resolution or query,
            resolved_period=pending.resolved_period,
        )
        period = pending.resolved_period or pending.resolution
        query = f"{pending.original_query} {period}"
        logger.info(
            "Clarification resolved",
            session_id=state.session_id,
            original_query=pending.original_query,
            resolved_period=pending.resolved_period,
        )

    features = services.extractor.extract(query)
    conversation = relevant.context if relevant is not None else None
    decision = services.router.route(query, features, conversation)

    forced = state.extra_context.get("capability")
    if forced and forced in services.capabilities:
        decision = _force_capability(decision, forced)
    elif forced:
        logger.warning("Ignoring unknown forced capability", capability=forced)

    update = {
        "effective_query": query,
        "features": features,
        "routing": decision,
        "clarification": clarification,
        "history": relevant.history() if relevant is not None else [],
        "trace": state.trace.step(
            "route", start_time, time.time(), error="; ".join(errors) or None
        ),
    }
    return update
