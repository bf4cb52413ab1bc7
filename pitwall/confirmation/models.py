"""Confirmation request records and resolution results."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from pitwall.features import FeatureBundle


class ConfirmationReason(str, Enum):
    """Why a tentative result needs a human decision."""

    LOW_CONFIDENCE = "low_confidence"
    COMPLEX_QUERY = "complex_query"
    MULTI_CAPABILITY = "multi_capability"
    SENSITIVE_CONTENT = "sensitive_content"
    VERIFICATION_REQUESTED = "verification_requested"
    HISTORICAL_COMPARISON = "historical_comparison"
    GENERAL_VALIDATION = "general_validation"


class ConfirmationStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    EXPIRED = "expired"


class ConfirmationAction(str, Enum):
    CONFIRM = "confirm"
    REFINE = "refine"
    ALTERNATIVE = "alternative"
    CANCEL = "cancel"


class ConfirmationFailure(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_PROCESSED = "already_processed"
    EXPIRED = "expired"
    INVALID_ACTION = "invalid_action"


class TentativeResult(BaseModel):
    """The answer awaiting confirmation."""

    response: str
    confidence: float = Field(ge=0.0, le=1.0)
    capability_id: str
    capability_ids: list[str] = Field(default_factory=list)


class ConfirmationRequest(BaseModel):
    """A pending human decision owned by the confirmation manager."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    user_id: str | None = None
    query: str
    features: FeatureBundle
    tentative: TentativeResult
    alternatives: list[str] = Field(default_factory=list)
    multi_capability: bool = False
    reason: ConfirmationReason
    created_at: datetime
    expires_at: datetime
    status: ConfirmationStatus = ConfirmationStatus.PENDING
    resolved_at: datetime | None = None
    action: ConfirmationAction | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == ConfirmationStatus.PENDING


class ConfirmationResult(BaseModel):
    """Outcome of resolving a confirmation. Failures are values, not exceptions."""

    success: bool
    action: str | None = None
    failure: ConfirmationFailure | None = None
    error: str | None = None
    message: str | None = None
    response: str | None = None
    capability: str | None = None
    confidence: float | None = None
    refined_query: str | None = None
    suggestions: list[str] | None = None
    alternative_capability: str | None = None
    original_response: TentativeResult | None = None

    @classmethod
    def failed(cls, failure: ConfirmationFailure, error: str) -> "ConfirmationResult":
        return cls(success=False, failure=failure, error=error)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
