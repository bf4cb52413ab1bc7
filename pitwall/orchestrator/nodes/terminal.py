"""
Terminal Nodes

Finalize, request human input, or handle an error. Exactly one of these
ends every turn.
"""

import time

import structlog

from ..state import APOLOGY_RESPONSE, ErrorKind, QueryState, TurnOutcome

logger = structlog.get_logger()

VALIDATION_CONFIDENCE = 0.0
FAILURE_CONFIDENCE = 0.1


async def finalize_node(state: QueryState) -> dict:
    start_time = time.time()

    logger.info(
        "Turn finalized",
        session_id=state.session_id,
        capability=state.capability,
        confidence=state.confidence,
        capabilities=len(state.results),
    )

    trace = state.trace.step("finalize", start_time, time.time())
    return {
        "outcome": TurnOutcome.FINALIZED,
        "trace": trace.model_copy(update={"completed_at": time.time()}),
    }


async def request_human_input_node(state: QueryState) -> dict:
    start_time = time.time()
    confirmation = state.confirmation or {}

    logger.info(
        "Awaiting human confirmation",
        session_id=state.session_id,
        confirmation_id=confirmation.get("confirmation_id"),
        reason=confirmation.get("reason"),
    )

    trace = state.trace.step("request_human_input", start_time, time.time())
    return {
        "outcome": TurnOutcome.CONFIRMATION,
        "response": confirmation.get("message", state.response),
        "trace": trace.model_copy(update={"completed_at": time.time()}),
    }


async def handle_error_node(state: QueryState) -> dict:
    start_time = time.time()
    kind = state.error_kind or ErrorKind.NO_RESULT
    confidence = VALIDATION_CONFIDENCE if kind == ErrorKind.VALIDATION else FAILURE_CONFIDENCE

    logger.warning(
        "Turn failed",
        session_id=state.session_id,
        error_kind=kind.value,
        errors=state.trace.errors,
    )

    trace = state.trace.step("handle_error", start_time, time.time())
    return {
        "outcome": TurnOutcome.ERROR,
        "error_kind": kind,
        "response": APOLOGY_RESPONSE,
        "confidence": confidence,
        "trace": trace.model_copy(update={"completed_at": time.time()}),
    }
