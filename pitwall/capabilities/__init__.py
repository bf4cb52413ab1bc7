"""Specialist capabilities: descriptor table and generic executor."""

from .executor import (
    CapabilityExecutor,
    CapabilityRequest,
    CapabilityResult,
    ResolvedClarification,
)
from .registry import (
    ALTERNATIVE_CAPABILITIES,
    DEFAULT_CAPABILITIES,
    CapabilityDescriptor,
    CapabilityTable,
)

__all__ = [
    "ALTERNATIVE_CAPABILITIES",
    "DEFAULT_CAPABILITIES",
    "CapabilityDescriptor",
    "CapabilityExecutor",
    "CapabilityRequest",
    "CapabilityResult",
    "CapabilityTable",
    "ResolvedClarification",
]
