"""
Generate Response Node

Applies the confirmation policy to the tentative answer and decides how the
turn ends.
"""

import time

import structlog

from pitwall.confirmation import TentativeResult

from ..dependencies import OrchestratorServices
from ..state import ErrorKind, QueryState, TurnOutcome

logger = structlog.get_logger()


async def generate_response_node(state: QueryState, services: OrchestratorServices) -> dict:
    start_time = time.time()

    if not state.results or not state.response:
        return {
            "error_kind": state.error_kind or ErrorKind.NO_RESULT,
            "trace": state.trace.step(
                "generate_response", start_time, time.time(), error="no result available"
            ),
        }

    multi = len(state.selected_capabilities) > 1
    tentative = TentativeResult(
        response=state.response,
        confidence=state.confidence,
        capability_id=state.capability or state.results[0].capability_id,
        capability_ids=[r.capability_id for r in state.results],
    )

    # A season question is itself the answer; nothing to confirm.
    asked_for_period = any(r.requested_period for r in state.results)

    confirmations = services.confirmations
    if not asked_for_period and confirmations.should_confirm(
        state.features, tentative, state.query_text, multi_capability=multi
    ):
        alternatives = [
            alt.capability_id
            for alt in state.routing.alternatives
            if alt.capability_id not in tentative.capability_ids
        ]
        request = await confirmations.create_request(
            session_id=state.session_id,
            query=state.query_text,
            features=state.features,
            tentative=tentative,
            alternatives=alternatives,
            user_id=state.user_id,
            multi_capability=multi,
        )
        return {
            "outcome": TurnOutcome.CONFIRMATION,
            "confirmation": confirmations.format_request(request),
            "trace": state.trace.step("generate_response", start_time, time.time()),
        }

    return {
        "outcome": TurnOutcome.FINALIZED,
        "trace": state.trace.step("generate_response", start_time, time.time()),
    }
