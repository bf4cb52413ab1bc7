"""
Record Turn Node

Appends the user message and the assistant reply to conversation memory
after every terminal node, rejected queries included. Memory failures never affect the response.
"""

import time

import structlog

from pitwall.errors import MemoryWriteFailure

from ..dependencies import OrchestratorServices
from ..state import QueryState, TurnOutcome

logger = structlog.get_logger()


async def record_turn_node(state: QueryState, services: OrchestratorServices) -> dict:
    start_time = time.time()

    assistant_metadata = {
        "capability": state.capability,
        "capabilities": [r.capability_id for r in state.results],
        "confidence": state.confidence,
        "multi_capability": len(state.selected_capabilities) > 1,
        "outcome": state.outcome.value if state.outcome else None,
        "processing_ms": int((time.time() - state.trace.started_at) * 1000),
    }
    if state.outcome == TurnOutcome.CONFIRMATION and state.confirmation:
        assistant_metadata["confirmation_id"] = state.confirmation.get("confirmation_id")

    try:
        await services.memory.append_message(
            state.session_id,
            "user",
            state.query.strip(),
            metadata={"effective_query": state.effective_query},
            user_id=state.user_id,
        )
        await services.memory.append_message(
            state.session_id,
            "assistant",
            state.response or "",
            metadata=assistant_metadata,
            user_id=state.user_id,
        )
    except Exception as e:
        failure = e if isinstance(e, MemoryWriteFailure) else MemoryWriteFailure(str(e))
        logger.error("Failed to record turn", session_id=state.session_id, error=str(failure))
        return {
            "memory_recorded": False,
            "trace": state.trace.step("record_turn", start_time, time.time(), error=str(failure)),
        }

    return {
        "memory_recorded": True,
        "trace": state.trace.step("record_turn", start_time, time.time()),
    }
