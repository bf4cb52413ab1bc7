"""
Error taxonomy for the orchestration engine.

Only validation failures and the all-capabilities-failed case reach callers
as error-shaped results; every other error here is caught inside the pipeline
and degrades to a lower-confidence response.
"""


class PitwallError(Exception):
    """Base class for engine errors."""


class ValidationError(PitwallError):
    """The query was rejected before entering the pipeline."""


class RoutingDegradation(PitwallError):
    """Capability scoring failed; the router falls back to a default decision."""


class CapabilityExecutionError(PitwallError):
    """A single capability invocation failed."""

    def __init__(self, capability_id: str, message: str):
        super().__init__(f"{capability_id}: {message}")
        self.capability_id = capability_id


class AllCapabilitiesFailedError(PitwallError):
    """Every capability selected for a turn failed."""

    def __init__(self, failures: dict[str, str]):
        detail = "; ".join(f"{cid}: {msg}" for cid, msg in sorted(failures.items()))
        super().__init__(f"all {len(failures)} capabilities failed ({detail})")
        self.failures = dict(failures)


class SynthesisFailure(PitwallError):
    """Combining multi-capability results failed."""


class MemoryWriteFailure(PitwallError):
    """Appending a turn to conversation memory failed."""


class ResponderError(PitwallError):
    """The generative responder timed out or rejected the request."""


class KnowledgeProviderError(PitwallError):
    """The knowledge provider hit a fatal transport condition."""
