"""Capability scoring and routing."""

from .router import Alternative, CapabilityRouter, RoutingDecision, RoutingPolicy

__all__ = ["Alternative", "CapabilityRouter", "RoutingDecision", "RoutingPolicy"]
