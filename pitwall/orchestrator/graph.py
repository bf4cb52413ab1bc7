"""
LangGraph Query Pipeline

The graph that carries one query from validation to a terminal node, then
records the turn in conversation memory.
"""

import time
from typing import Literal

import structlog
from langgraph.graph import END, StateGraph

from .dependencies import OrchestratorServices
from .nodes.execute import execute_multi_node, execute_single_node
from .nodes.record import record_turn_node
from .nodes.respond import generate_response_node
from .nodes.route import route_node
from .nodes.synthesize import synthesize_node
from .nodes.terminal import finalize_node, handle_error_node, request_human_input_node
from .nodes.validate import validate_node
from .state import ErrorKind, QueryState, TurnOutcome

logger = structlog.get_logger()


# =============================================================================
# Conditional Routing Functions
# =============================================================================


def after_validate(state: QueryState) -> Literal["route", "handle_error"]:
    """Rejected queries go straight to the error path."""
    if state.error_kind == ErrorKind.VALIDATION:
        return "handle_error"
    return "route"


def check_multi(state: QueryState) -> Literal["execute_single", "execute_multi"]:
    """Pick single or concurrent multi-capability execution."""
    if state.routing is not None and state.routing.multi_capability:
        return "execute_multi"
    return "execute_single"


def after_single(state: QueryState) -> Literal["generate_response", "handle_error"]:
    if state.results:
        return "generate_response"
    return "handle_error"


def after_multi(state: QueryState) -> Literal["synthesize", "handle_error"]:
    """Any successful capability is enough to continue."""
    if state.results:
        return "synthesize"
    return "handle_error"


def after_response(
    state: QueryState,
) -> Literal["finalize", "request_human_input", "handle_error"]:
    if state.outcome == TurnOutcome.CONFIRMATION:
        return "request_human_input"
    if state.outcome == TurnOutcome.FINALIZED:
        return "finalize"
    return "handle_error"


async def check_multi_node(state: QueryState) -> dict:
    now = time.time()
    return {"trace": state.trace.step("check_multi", now, now)}


# =============================================================================
# Graph Construction
# =============================================================================


def create_query_graph(services: OrchestratorServices) -> StateGraph:
    """
    Create the LangGraph query pipeline.

    The graph follows this flow:
    1. validate - Reject empty or over-long queries, assign the session
    2. route - Pull context, extract features, score capabilities
    3. check_multi - Choose single or multi-capability execution
    4. execute_single / execute_multi - Run the capabilities
    5. synthesize - Combine multi-capability results
    6. generate_response - Apply the confirmation policy
    7. finalize / request_human_input / handle_error - End the turn
    8. record_turn - Append the turn to conversation memory

    Collaborators are bound into the nodes through closures.
    """

    async def validate(state: QueryState) -> dict:
        return await validate_node(state, services)

    async def route(state: QueryState) -> dict:
        return await route_node(state, services)

    async def execute_single(state: QueryState) -> dict:
        return await execute_single_node(state, services)

    async def execute_multi(state: QueryState) -> dict:
        return await execute_multi_node(state, services)

    async def synthesize(state: QueryState) -> dict:
        return await synthesize_node(state, services)

    async def generate_response(state: QueryState) -> dict:
        return await generate_response_node(state, services)

    async def record_turn(state: QueryState) -> dict:
        return await record_turn_node(state, services)

    workflow = StateGraph(QueryState)

    workflow.add_node("validate", validate)
    workflow.add_node("route", route)
    workflow.add_node("check_multi", check_multi_node)
    workflow.add_node("execute_single", execute_single)
    workflow.add_node("execute_multi", execute_multi)
    workflow.add_node("synthesize", synthesize)
    workflow.add_node("generate_response", generate_response)
    workflow.add_node("finalize", finalize_node)
    workflow.add_node("request_human_input", request_human_input_node)
    workflow.add_node("handle_error", handle_error_node)
    workflow.add_node("record_turn", record_turn)

    workflow.set_entry_point("validate")

    workflow.add_conditional_edges(
        "validate",
        after_validate,
        {"route": "route", "handle_error": "handle_error"},
    )

    workflow.add_edge("route", "check_multi")

    workflow.add_conditional_edges(
        "check_multi",
        check_multi,
        {"execute_single": "execute_single", "execute_multi": "execute_multi"},
    )

    workflow.add_conditional_edges(
        "execute_single",
        after_single,
        {"generate_response": "generate_response", "handle_error": "handle_error"},
    )

    workflow.add_conditional_edges(
        "execute_multi",
        after_multi,
        {"synthesize": "synthesize", "handle_error": "handle_error"},
    )

    workflow.add_edge("synthesize", "generate_response")

    workflow.add_conditional_edges(
        "generate_response",
        after_response,
        {
            "finalize": "finalize",
            "request_human_input": "request_human_input",
            "handle_error": "handle_error",
        },
    )

    # Every terminal node records the turn before the graph ends.
    workflow.add_edge("finalize", "record_turn")
    workflow.add_edge("request_human_input", "record_turn")
    workflow.add_edge("handle_error", "record_turn")
    workflow.add_edge("record_turn", END)

    logger.debug("Query graph created", nodes=list(workflow.nodes.keys()))

    return workflow


def compile_query_graph(services: OrchestratorServices):
    """Compile the query graph for execution."""
    return create_query_graph(services).compile()
