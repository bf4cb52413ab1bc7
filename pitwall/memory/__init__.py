"""Per-session conversation memory."""

from .models import (
    ConversationContext,
    Message,
    PendingClarification,
    RelevantContext,
    Session,
)
from .store import ConversationMemory

__all__ = [
    "ConversationContext",
    "ConversationMemory",
    "Message",
    "PendingClarification",
    "RelevantContext",
    "Session",
]
