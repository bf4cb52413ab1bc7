"""
Synthesize Node

Combines multi-capability results with the generative responder. If the
responder fails, the highest-confidence raw result is returned instead.
"""

import time

import structlog

from pitwall.capabilities.executor import strip_markdown
from pitwall.capabilities.prompts import get_synthesis_prompt
from pitwall.errors import SynthesisFailure

from ..dependencies import OrchestratorServices
from ..state import QueryState

logger = structlog.get_logger()


async def synthesize_node(state: QueryState, services: OrchestratorServices) -> dict:
    start_time = time.time()
    results = state.results
    best = max(results, key=lambda r: r.confidence)

    if len(results) == 1:
        return {
            "response": best.response,
            "confidence": best.confidence,
            "capability": best.capability_id,
            "trace": state.trace.step("synthesize", start_time, time.time()),
        }

    messages = get_synthesis_prompt(
        state.query_text,
        [
            {"name": r.name, "confidence": r.confidence, "response": r.response}
            for r in results
        ],
    )

    try:
        combined = strip_markdown(await services.synthesizer.complete(messages) or "")
        if not combined:
            raise SynthesisFailure("empty synthesis")
    except Exception as e:
        failure = e if isinstance(e, SynthesisFailure) else SynthesisFailure(str(e))
        logger.warning(
            "Synthesis failed, using best single result",
            capability=best.capability_id,
            error=str(failure),
        )
        return {
            "response": best.response,
            "confidence": best.confidence,
            "capability": best.capability_id,
            "trace": state.trace.step("synthesize", start_time, time.time(), error=str(failure)),
        }

    confidence = round(sum(r.confidence for r in results) / len(results), 3)
    primary = state.routing.primary if state.routing else None
    if primary not in {r.capability_id for r in results}:
        primary = best.capability_id
    logger.info("Synthesis complete", capabilities=len(results), confidence=confidence)

    return {
        "response": combined,
        "confidence": confidence,
        "capability": primary,
        "synthesized": True,
        "trace": state.trace.step("synthesize", start_time, time.time()),
    }
