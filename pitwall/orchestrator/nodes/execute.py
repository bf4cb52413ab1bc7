"""
Execute Nodes

Single-capability execution and concurrent multi-capability fan-out with
fail-soft aggregation.
"""

import asyncio
import time

import structlog

from pitwall.capabilities import CapabilityRequest
from pitwall.errors import AllCapabilitiesFailedError
from pitwall.routing import RoutingDecision

from ..dependencies import OrchestratorServices
from ..state import ErrorKind, QueryState

logger = structlog.get_logger()


def select_capabilities(
    decision: RoutingDecision,
    min_confidence: float,
    max_parallel: int,
) -> list[str]:
    """Primary plus confident alternatives, always at least two when available."""
    selected = [decision.primary]
    for alt in decision.alternatives:
        if len(selected) >= max_parallel:
            break
        if alt.confidence > min_confidence:
            selected.append(alt.capability_id)

    for alt in decision.alternatives:
        if len(selected) >= 2:
            break
        if alt.capability_id not in selected:
            selected.append(alt.capability_id)

    return selected


def _request(state: QueryState) -> CapabilityRequest:
    return CapabilityRequest(
        query=state.query_text,
        features=state.features,
        history=state.history,
        clarification=state.clarification,
    )


async def execute_single_node(state: QueryState, services: OrchestratorServices) -> dict:
    start_time = time.time()
    capability_id = state.routing.primary

    try:
        result = await services.executor.execute(capability_id, _request(state))
    except Exception as e:
        logger.error("Capability failed", capability=capability_id, error=str(e))
        return {
            "selected_capabilities": [capability_id],
            "failures": {capability_id: str(e)},
            "error_kind": ErrorKind.CAPABILITY,
            "trace": state.trace.step("execute_single", start_time, time.time(), error=str(e)),
        }

    return {
        "selected_capabilities": [capability_id],
        "results": [result],
        "response": result.response,
        "confidence": result.confidence,
        "capability": capability_id,
        "trace": state.trace.step("execute_single", start_time, time.time()),
    }


async def execute_multi_node(state: QueryState, services: OrchestratorServices) -> dict:
    """
    Run the selected capabilities concurrently.

    Each capability carries its own timeout; the whole fan-in is bounded by
    the aggregate timeout, after which unfinished capabilities are cancelled
    and counted as failed.
    """
    start_time = time.time()
    settings = services.settings
    selected = select_capabilities(
        state.routing,
        settings.min_alternative_confidence,
        settings.max_parallel_capabilities,
    )
    request = _request(state)

    logger.info("Executing capabilities in parallel", capabilities=selected)

    tasks = {
        asyncio.create_task(services.executor.execute(capability_id, request)): capability_id
        for capability_id in selected
    }
    done, pending = await asyncio.wait(
        tasks, timeout=settings.multi_capability_timeout_seconds
    )

    failures: dict[str, str] = {}
    for task in pending:
        task.cancel()
        failures[tasks[task]] = "aggregate timeout"
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    by_capability = {}
    for task in done:
        capability_id = tasks[task]
        exc = task.exception()
        if exc is not None:
            logger.warning("Capability failed", capability=capability_id, error=str(exc))
            failures[capability_id] = str(exc)
        else:
            by_capability[capability_id] = task.result()

    results = [by_capability[cid] for cid in selected if cid in by_capability]

    logger.info(
        "Parallel execution complete",
        succeeded=[r.capability_id for r in results],
        failed=sorted(failures),
    )

    errors = "; ".join(f"{cid}: {msg}" for cid, msg in sorted(failures.items())) or None
    update = {
        "selected_capabilities": selected,
        "results": results,
        "failures": failures,
    }
    if not results:
        errors = str(AllCapabilitiesFailedError(failures))
        logger.error("No capability produced a result", capabilities=selected)
        update["error_kind"] = ErrorKind.CAPABILITY

    update["trace"] = state.trace.step("execute_multi", start_time, time.time(), error=errors)
    return update
