"""Human confirmation of tentative answers."""

from .manager import ConfirmationManager
from .models import (
    ConfirmationAction,
    ConfirmationFailure,
    ConfirmationReason,
    ConfirmationRequest,
    ConfirmationResult,
    ConfirmationStatus,
    TentativeResult,
)

__all__ = [
    "ConfirmationAction",
    "ConfirmationFailure",
    "ConfirmationManager",
    "ConfirmationReason",
    "ConfirmationRequest",
    "ConfirmationResult",
    "ConfirmationStatus",
    "TentativeResult",
]
