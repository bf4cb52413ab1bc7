"""
Confirmation Manager

Decides when a tentative answer needs a human decision, tracks outstanding
requests with expiry, and resolves them. Expiry is checked lazily on every
access; the periodic sweep only reclaims memory.
"""

import asyncio
import re
from datetime import timedelta
from typing import Any

import structlog

from pitwall.capabilities.registry import CapabilityTable
from pitwall.clock import Clock, utc_now
from pitwall.config import Settings, get_settings
from pitwall.features import Complexity, FeatureBundle

from .models import (
    ConfirmationAction,
    ConfirmationFailure,
    ConfirmationReason,
    ConfirmationRequest,
    ConfirmationResult,
    ConfirmationStatus,
    TentativeResult,
)

logger = structlog.get_logger()

SENSITIVE_PATTERN = re.compile(
    r"\b(bet|bets|betting|gambling|odds|prediction|predictions|forecast|invest|investment|"
    r"financial|money|profit|loss|risk)\b"
)
VERIFICATION_PATTERN = re.compile(r"\b(confirm|verify|double[- ]check)\b")

LOW_CONFIDENCE_REASON_THRESHOLD = 0.5
PREVIEW_LENGTH = 200

CONFIRMATION_MESSAGES: dict[ConfirmationReason, str] = {
    ConfirmationReason.LOW_CONFIDENCE: (
        "I have lower confidence in this response. Would you like me to proceed "
        "or try a different approach?"
    ),
    ConfirmationReason.COMPLEX_QUERY: (
        "This is a complex query that may require multiple data sources. Should I "
        "proceed with the current analysis?"
    ),
    ConfirmationReason.MULTI_CAPABILITY: (
        "This answer combines analyses from several specialists. Confirm if you'd "
        "like to proceed with the combined analysis?"
    ),
    ConfirmationReason.SENSITIVE_CONTENT: (
        "This query involves predictions or sensitive F1 information. Please confirm "
        "you want me to proceed."
    ),
    ConfirmationReason.VERIFICATION_REQUESTED: (
        "You asked me to verify this. Please review the answer below and confirm."
    ),
    ConfirmationReason.HISTORICAL_COMPARISON: (
        "This involves comparing different F1 eras which may have different contexts. "
        "Proceed with comparison?"
    ),
    ConfirmationReason.GENERAL_VALIDATION: (
        "Please confirm if you'd like me to proceed with this analysis."
    ),
}

CONFIRMATION_OPTIONS: list[dict[str, str]] = [
    {"action": "confirm", "label": "Yes, proceed", "description": "Continue with the current response"},
    {"action": "refine", "label": "Refine query", "description": "Let me ask a more specific question"},
    {"action": "alternative", "label": "Try different approach", "description": "Use a different analysis method"},
    {"action": "cancel", "label": "Cancel", "description": "Cancel this query"},
]

DEFAULT_SUGGESTIONS = [
    "Try being more specific about what aspect interests you most",
    "Add context about what you're trying to understand or achieve",
]


class ConfirmationManager:
    """Owns every ConfirmationRequest; guarded by a single table lock."""

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Clock = utc_now,
        capabilities: CapabilityTable | None = None,
    ):
        settings = settings or get_settings()
        self.capabilities = capabilities or CapabilityTable(timeouts=settings.capability_timeouts)
        self.auto_accept_threshold = settings.auto_accept_threshold
        self.complex_query_threshold = settings.complex_query_threshold
        self.historical_gap_periods = settings.historical_gap_periods
        self.ttl = timedelta(seconds=settings.confirmation_ttl_seconds)
        self.grace = timedelta(seconds=settings.confirmation_grace_seconds)
        self.clock = clock

        self._requests: dict[str, ConfirmationRequest] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Policy
    # -------------------------------------------------------------------------

    def is_sensitive(self, query: str) -> bool:
        return bool(SENSITIVE_PATTERN.search(query.lower()))

    def requests_verification(self, query: str) -> bool:
        return bool(VERIFICATION_PATTERN.search(query.lower()))

    def spans_eras(self, features: FeatureBundle) -> bool:
        periods = features.temporal.explicit_periods
        return len(periods) > 1 and max(periods) - min(periods) > self.historical_gap_periods

    def should_confirm(
        self,
        features: FeatureBundle,
        tentative: TentativeResult,
        query: str,
        multi_capability: bool = False,
    ) -> bool:
        if tentative.confidence >= self.auto_accept_threshold:
            return False
        return (
            tentative.confidence < self.complex_query_threshold
            or features.complexity == Complexity.COMPLEX
            or multi_capability
            or self.is_sensitive(query)
            or self.requests_verification(query)
            or self.spans_eras(features)
        )

    def classify_reason(
        self,
        features: FeatureBundle,
        tentative: TentativeResult,
        query: str,
        multi_capability: bool = False,
    ) -> ConfirmationReason:
        if tentative.confidence < LOW_CONFIDENCE_REASON_THRESHOLD:
            return ConfirmationReason.LOW_CONFIDENCE
        if features.complexity == Complexity.COMPLEX:
            return ConfirmationReason.COMPLEX_QUERY
        if multi_capability:
            return ConfirmationReason.MULTI_CAPABILITY
        if self.is_sensitive(query):
            return ConfirmationReason.SENSITIVE_CONTENT
        if self.requests_verification(query):
            return ConfirmationReason.VERIFICATION_REQUESTED
        if self.spans_eras(features):
            return ConfirmationReason.HISTORICAL_COMPARISON
        return ConfirmationReason.GENERAL_VALIDATION

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def create_request(
        self,
        session_id: str,
        query: str,
        features: FeatureBundle,
        tentative: TentativeResult,
        alternatives: list[str] | None = None,
        user_id: str | None = None,
        multi_capability: bool = False,
    ) -> ConfirmationRequest:
        now = self.clock()
        request = ConfirmationRequest(
            session_id=session_id,
            user_id=user_id,
            query=query,
            features=features,
            tentative=tentative,
            alternatives=list(alternatives or []),
            multi_capability=multi_capability,
            reason=self.classify_reason(features, tentative, query, multi_capability),
            created_at=now,
            expires_at=now + self.ttl,
        )

        async with self._lock:
            self._requests[request.id] = request

        logger.info(
            "Confirmation requested",
            confirmation_id=request.id,
            session_id=session_id,
            reason=request.reason.value,
            confidence=tentative.confidence,
        )
        return request

    def _expire_if_due(self, request: ConfirmationRequest) -> None:
        if request.is_pending and self.clock() > request.expires_at:
            request.status = ConfirmationStatus.EXPIRED
            request.resolved_at = request.expires_at
            logger.info("Confirmation expired", confirmation_id=request.id)

    async def get(self, confirmation_id: str) -> ConfirmationRequest | None:
        async with self._lock:
            request = self._requests.get(confirmation_id)
            if request is not None:
                self._expire_if_due(request)
            return request

    async def resolve(
        self,
        confirmation_id: str,
        action: str,
        extra: dict[str, Any] | None = None,
    ) -> ConfirmationResult:
        extra = extra or {}

        async with self._lock:
            request = self._requests.get(confirmation_id)
            if request is None:
                return ConfirmationResult.failed(
                    ConfirmationFailure.NOT_FOUND, "Confirmation not found or expired"
                )

            self._expire_if_due(request)
            if request.status == ConfirmationStatus.EXPIRED:
                return ConfirmationResult.failed(
                    ConfirmationFailure.EXPIRED, "Confirmation has expired"
                )
            if request.status != ConfirmationStatus.PENDING:
                return ConfirmationResult.failed(
                    ConfirmationFailure.ALREADY_PROCESSED, "Confirmation already processed"
                )

            try:
                parsed = ConfirmationAction(action)
            except ValueError:
                return ConfirmationResult.failed(
                    ConfirmationFailure.INVALID_ACTION, f"Invalid action: {action}"
                )

            alternative = None
            if parsed == ConfirmationAction.ALTERNATIVE:
                requested = extra.get("capability")
                if requested and requested not in self.capabilities:
                    return ConfirmationResult.failed(
                        ConfirmationFailure.INVALID_ACTION, f"Unknown capability: {requested}"
                    )
                alternative = requested or self.suggest_alternative(request)
                if alternative is None:
                    return ConfirmationResult.failed(
                        ConfirmationFailure.INVALID_ACTION, "No alternative capability available"
                    )

            request.status = ConfirmationStatus.RESOLVED
            request.action = parsed
            request.resolved_at = self.clock()

        logger.info(
            "Confirmation resolved",
            confirmation_id=confirmation_id,
            action=parsed.value,
        )

        if parsed == ConfirmationAction.CONFIRM:
            return ConfirmationResult(
                success=True,
                action="confirmed",
                response=request.tentative.response,
                capability=request.tentative.capability_id,
                confidence=request.tentative.confidence,
                message="Response confirmed and delivered",
            )
        if parsed == ConfirmationAction.REFINE:
            return ConfirmationResult(
                success=True,
                action="refine",
                refined_query=extra.get("refined_query") or request.query,
                suggestions=self.refinement_suggestions(request.features),
                message="Query refined. Please resubmit the refined query.",
            )
        if parsed == ConfirmationAction.ALTERNATIVE:
            return ConfirmationResult(
                success=True,
                action="alternative",
                alternative_capability=alternative,
                original_response=request.tentative,
                message=f"Trying alternative approach with the {alternative} capability",
            )
        return ConfirmationResult(
            success=True,
            action="cancelled",
            message="Query cancelled by user request",
        )

    def refinement_suggestions(self, features: FeatureBundle) -> list[str]:
        suggestions = []
        if len(features.entities.get("driver", [])) > 2:
            suggestions.append(
                "Consider focusing on 1-2 specific drivers for more detailed analysis"
            )
        if len(features.temporal.explicit_periods) > 3:
            suggestions.append("Try narrowing down to a specific season or timeframe")
        if features.complexity == Complexity.COMPLEX:
            suggestions.append("Break down your question into smaller, more specific parts")
        if "prediction" in features.query_types:
            suggestions.append(
                "Add specific criteria or timeframe for more accurate predictions"
            )
        return suggestions or list(DEFAULT_SUGGESTIONS)

    def suggest_alternative(self, request: ConfirmationRequest) -> str | None:
        """Next registered capability to try; router alternatives come first."""
        original = request.tentative.capability_id
        candidates = [
            *request.alternatives,
            *self.capabilities.alternatives_for(original),
            *self.capabilities.ids(),
        ]
        for candidate in candidates:
            if candidate != original and candidate in self.capabilities:
                return candidate
        return None

    async def get_pending(self, session_id: str) -> list[ConfirmationRequest]:
        async with self._lock:
            pending = []
            for request in self._requests.values():
                if request.session_id != session_id:
                    continue
                self._expire_if_due(request)
                if request.is_pending:
                    pending.append(request)
            return pending

    async def sweep(self) -> dict[str, int]:
        """Expire overdue requests and drop terminal ones past the grace period."""
        now = self.clock()
        expired = removed = 0
        async with self._lock:
            for confirmation_id, request in list(self._requests.items()):
                if request.is_pending:
                    self._expire_if_due(request)
                    if request.is_pending:
                        continue
                    expired += 1
                finished_at = request.resolved_at or request.expires_at
                if now > finished_at + self.grace:
                    del self._requests[confirmation_id]
                    removed += 1

        if expired or removed:
            logger.info("Confirmation sweep", expired=expired, removed=removed)
        return {"expired": expired, "removed": removed}

    def format_request(self, request: ConfirmationRequest) -> dict[str, Any]:
        """User-facing view of a confirmation request."""
        response = request.tentative.response
        preview = response[:PREVIEW_LENGTH] + ("..." if len(response) > PREVIEW_LENGTH else "")
        return {
            "confirmation_id": request.id,
            "message": CONFIRMATION_MESSAGES[request.reason],
            "query": request.query,
            "reason": request.reason.value,
            "status": request.status.value,
            "tentative": {
                "preview": preview,
                "confidence": request.tentative.confidence,
                "capability": request.tentative.capability_id,
            },
            "options": [dict(option) for option in CONFIRMATION_OPTIONS],
            "expires_at": request.expires_at.isoformat(),
        }

    def get_stats(self) -> dict[str, int]:
        stats = {"total": len(self._requests), "pending": 0, "resolved": 0, "expired": 0}
        for request in self._requests.values():
            stats[request.status.value] += 1
        return stats
