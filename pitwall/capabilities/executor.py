"""
Capability Executor

Runs any capability descriptor against the generative responder: gathers
knowledge facts for the extracted entities, builds the prompt, enforces the
per-capability timeout, cleans the text and scores confidence.
"""

import asyncio
import re
import time

import structlog
from pydantic import BaseModel, Field

from pitwall.clock import Clock, utc_now
from pitwall.errors import CapabilityExecutionError, KnowledgeProviderError, ResponderError
from pitwall.features import FeatureBundle, FeatureExtractor
from pitwall.providers.base import GenerativeResponder, KnowledgeProvider

from .prompts import (
    format_knowledge_context,
    get_capability_system_prompt,
    get_clarification_resolution_prompt,
    get_period_request_prompt,
)
from .registry import CapabilityDescriptor, CapabilityTable

logger = structlog.get_logger()

MAX_FACT_LOOKUPS = 4
HISTORY_TURNS = 3

_BOLD = re.compile(r"\*\*(.*?)\*\*")
_HEADER = re.compile(r"#{1,6}\s*")
_RULE = re.compile(r"\*{3,}")
_EMPHASIS = re.compile(r"\*(.*?)\*")
_YEAR = re.compile(r"\d{4}")
_DECIMAL = re.compile(r"\d+\.\d+")


class ResolvedClarification(BaseModel):
    """A season clarification the user has just answered."""

    original_query: str
    resolution: str
    resolved_period: int | None = None


class CapabilityRequest(BaseModel):
    """Everything one capability invocation needs."""

    query: str
    features: FeatureBundle
    history: list[dict[str, str]] = Field(default_factory=list)
    clarification: ResolvedClarification | None = None


class CapabilityResult(BaseModel):
    """Outcome of one capability invocation."""

    capability_id: str
    name: str
    response: str
    confidence: float = Field(ge=0.0, le=1.0)
    processing_ms: int = 0
    facts_used: list[str] = Field(default_factory=list)
    requested_period: bool = False


def strip_markdown(text: str) -> str:
    cleaned = _BOLD.sub(r"\1", text)
    cleaned = _HEADER.sub("", cleaned)
    cleaned = _RULE.sub("", cleaned)
    cleaned = _EMPHASIS.sub(r"\1", cleaned)
    return cleaned.strip()


def score_confidence(descriptor: CapabilityDescriptor, query: str, response: str) -> float:
    """Heuristic confidence from keyword fit and response richness."""
    confidence = 0.7

    query_lower = query.lower()
    keyword_hits = sum(1 for keyword in descriptor.keywords if keyword in query_lower)
    if keyword_hits:
        confidence += min(keyword_hits * 0.1, 0.2)

    if len(response) > 200:
        confidence += 0.05
    if "•" in response or "-" in response:
        confidence += 0.05
    if _YEAR.search(response):
        confidence += 0.05
    if _DECIMAL.search(response):
        confidence += 0.05

    return round(min(confidence, 0.95), 3)


class CapabilityExecutor:
    """Generic execution function parameterized by a capability descriptor."""

    def __init__(
        self,
        capabilities: CapabilityTable,
        responder: GenerativeResponder,
        knowledge: KnowledgeProvider | None = None,
        extractor: FeatureExtractor | None = None,
        clock: Clock = utc_now,
    ):
        self.capabilities = capabilities
        self.responder = responder
        self.knowledge = knowledge
        self.extractor = extractor or FeatureExtractor()
        self.clock = clock

    async def execute(self, capability_id: str, request: CapabilityRequest) -> CapabilityResult:
        """Run one capability under its own timeout.

        Raises:
            CapabilityExecutionError: on timeout, responder failure or an
                empty response.
        """
        descriptor = self.capabilities.get(capability_id)
        start_time = time.time()

        logger.info(
            "Executing capability",
            capability=capability_id,
            timeout_seconds=descriptor.timeout_seconds,
        )

        try:
            return await asyncio.wait_for(
                self._run(descriptor, request, start_time),
                timeout=descriptor.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(
                "Capability timed out",
                capability=capability_id,
                timeout_seconds=descriptor.timeout_seconds,
            )
            raise CapabilityExecutionError(
                capability_id, f"timed out after {descriptor.timeout_seconds}s"
            ) from exc
        except ResponderError as exc:
            logger.warning("Capability responder failed", capability=capability_id, error=str(exc))
            raise CapabilityExecutionError(capability_id, str(exc)) from exc

    async def _run(
        self,
        descriptor: CapabilityDescriptor,
        request: CapabilityRequest,
        start_time: float,
    ) -> CapabilityResult:
        current_period = self.clock().year
        facts = await self.gather_facts(descriptor, request.features, current_period)
        requested_period = self._needs_period(descriptor, request)

        messages = self.build_messages(
            descriptor, request, facts, current_period, requested_period
        )
        raw = await self.responder.complete(
            messages,
            temperature=descriptor.temperature,
            max_tokens=descriptor.max_tokens,
        )

        response = strip_markdown(raw or "")
        if not response:
            raise CapabilityExecutionError(descriptor.id, "empty response")

        confidence = score_confidence(descriptor, request.query, response)
        processing_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "Capability complete",
            capability=descriptor.id,
            confidence=confidence,
            facts=len(facts),
            processing_ms=processing_ms,
        )

        return CapabilityResult(
            capability_id=descriptor.id,
            name=descriptor.name,
            response=response,
            confidence=confidence,
            processing_ms=processing_ms,
            facts_used=list(facts),
            requested_period=requested_period,
        )

    def build_messages(
        self,
        descriptor: CapabilityDescriptor,
        request: CapabilityRequest,
        facts: dict[str, dict],
        current_period: int,
        requested_period: bool = False,
    ) -> list[dict[str, str]]:
        messages = [
            {"role": "system", "content": get_capability_system_prompt(descriptor, current_period)}
        ]

        for entry in request.history[-HISTORY_TURNS:]:
            if entry.get("role") in ("user", "assistant"):
                messages.append({"role": entry["role"], "content": entry["content"]})

        if request.clarification is not None:
            messages.append({
                "role": "user",
                "content": get_clarification_resolution_prompt(
                    request.clarification.original_query,
                    request.clarification.resolution,
                    request.clarification.resolved_period,
                ),
            })
        elif requested_period:
            messages.append({
                "role": "user",
                "content": get_period_request_prompt(request.query, current_period),
            })

        if facts:
            messages.append({"role": "user", "content": format_knowledge_context(facts)})

        messages.append({"role": "user", "content": request.query})
        return messages

    async def gather_facts(
        self,
        descriptor: CapabilityDescriptor,
        features: FeatureBundle,
        current_period: int,
    ) -> dict[str, dict]:
        """Fetch knowledge for the entities this capability cares about.

        Missing data and provider failures leave the fact out; execution
        continues with whatever was found.
        """
        if self.knowledge is None:
            return {}

        lookups = self._plan_lookups(descriptor, features, current_period)
        if not lookups:
            return {}

        results = await asyncio.gather(
            *(self._fetch(kind, entity_id, period) for kind, entity_id, period in lookups),
        )

        facts: dict[str, dict] = {}
        for (kind, entity_id, period), payload in zip(lookups, results):
            if payload is not None:
                key = f"{kind}:{entity_id}" + (f":{period}" if period else "")
                facts[key] = payload
        return facts

    def _plan_lookups(
        self,
        descriptor: CapabilityDescriptor,
        features: FeatureBundle,
        current_period: int,
    ) -> list[tuple[str, str, int | None]]:
        periods = features.temporal.explicit_periods
        period = periods[0] if periods else None
        if period is None and features.temporal.is_current_period:
            period = current_period

        lookups: list[tuple[str, str, int | None]] = []
        for kind in descriptor.fetch_kinds:
            if kind == "season":
                for season in periods or ([period] if period else []):
                    lookups.append(("season", str(season), None))
                continue
            for name in features.entities.get(kind, []):
                entity_id = self.extractor.resolve_entity_id(kind, name)
                if entity_id:
                    lookups.append((kind, entity_id, period))

        return lookups[:MAX_FACT_LOOKUPS]

    async def _fetch(self, kind: str, entity_id: str, period: int | None) -> dict | None:
        try:
            return await self.knowledge.fetch(kind, entity_id, period)
        except KnowledgeProviderError as exc:
            logger.warning(
                "Knowledge lookup failed",
                entity_kind=kind,
                entity_id=entity_id,
                error=str(exc),
            )
            return None

    @staticmethod
    def _needs_period(descriptor: CapabilityDescriptor, request: CapabilityRequest) -> bool:
        if not descriptor.period_sensitive or request.clarification is not None:
            return False
        temporal = request.features.temporal
        return not (temporal.has_period or temporal.is_future)
