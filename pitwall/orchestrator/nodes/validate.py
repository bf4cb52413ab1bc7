"""
Validate Node

Rejects empty or over-long queries and assigns the session id.
"""

import time
from uuid import uuid4

import structlog

from pitwall.errors import ValidationError

from ..dependencies import OrchestratorServices
from ..state import ErrorKind, QueryState

logger = structlog.get_logger()


async def validate_node(state: QueryState, services: OrchestratorServices) -> dict:
    """
    Validate the incoming query.

    Returns:
        State update with the session id, trimmed query and any warnings,
        or a validation error kind.
    """
    start_time = time.time()
    session_id = state.session_id or str(uuid4())

    try:
        warnings = services.validator.validate(
            state.query,
            has_history=services.memory.has_session(session_id),
        )
    except ValidationError as e:
        logger.info("Query rejected", session_id=session_id, reason=str(e))
        return {
            "session_id": session_id,
            "error_kind": ErrorKind.VALIDATION,
            "trace": state.trace.step("validate", start_time, time.time(), error=str(e)),
        }

    if warnings:
        logger.debug("Query warnings", session_id=session_id, warnings=warnings)

    return {
        "session_id": session_id,
        "effective_query": state.query.strip(),
        "trace": state.trace.step("validate", start_time, time.time(), warnings=warnings),
    }
