"""
Query orchestration pipeline.

LangGraph-based pipeline that routes each query to one or more specialist
capabilities and decides whether the answer needs human confirmation.
"""

from .engine import QueryOrchestrator, build_orchestrator
from .graph import compile_query_graph, create_query_graph
from .state import APOLOGY_RESPONSE, QueryResponse, QueryState, TurnOutcome

__all__ = [
    "APOLOGY_RESPONSE",
    "QueryOrchestrator",
    "QueryResponse",
    "QueryState",
    "TurnOutcome",
    "build_orchestrator",
    "compile_query_graph",
    "create_query_graph",
]
