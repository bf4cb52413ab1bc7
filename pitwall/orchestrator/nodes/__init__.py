"""Query pipeline nodes."""

from .execute import execute_multi_node, execute_single_node, select_capabilities
from .record import record_turn_node
from .respond import generate_response_node
from .route import route_node
from .synthesize import synthesize_node
from .terminal import finalize_node, handle_error_node, request_human_input_node
from .validate import validate_node

__all__ = [
    "execute_multi_node",
    "execute_single_node",
    "finalize_node",
    "generate_response_node",
    "handle_error_node",
    "record_turn_node",
    "request_human_input_node",
    "route_node",
    "select_capabilities",
    "synthesize_node",
    "validate_node",
]
