"""
Conversation memory records.

Sessions own their messages and derived context. Context is a pure fold over
the message list, so rebuilding it from the messages yields the same value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from pitwall.features import FeatureExtractor
from pitwall.features.vocabulary import (
    CLARIFICATION_QUESTION_PATTERN,
    PERIOD_RESOLUTION_PATTERN,
    RELATIVE_PERIOD_PHRASES,
)

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class Message:
    """One conversational turn half."""

    role: Role
    content: str
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
        }


def resolve_period(text: str, current_period: int) -> int | None:
    """Turn a resolution phrase ("last year", "2021", ...) into a season."""
    match = PERIOD_RESOLUTION_PATTERN.search(text)
    if not match:
        return None
    phrase = match.group(1).lower()
    if phrase.isdigit():
        return int(phrase)
    offset = RELATIVE_PERIOD_PHRASES.get(phrase)
    return current_period + offset if offset is not None else None


@dataclass
class PendingClarification:
    """The previous assistant turn asked the user to pick a season."""

    original_query: str
    question: str
    kind: str = "time_period"
    resolution: str | None = None
    resolved_period: int | None = None

    def resolved_by(self, text: str, current_period: int) -> "PendingClarification | None":
        """A resolved copy if ``text`` answers the question, else None."""
        if not PERIOD_RESOLUTION_PATTERN.search(text):
            return None
        return PendingClarification(
            original_query=self.original_query,
            question=self.question,
            kind=self.kind,
            resolution=text.strip(),
            resolved_period=resolve_period(text, current_period),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_query": self.original_query,
            "question": self.question,
            "kind": self.kind,
            "resolution": self.resolution,
            "resolved_period": self.resolved_period,
        }


@dataclass
class ConversationContext:
    """Derived per-session context: tracked entities, topics and queries."""

    entities: dict[str, list[str]] = field(default_factory=dict)
    periods: list[int] = field(default_factory=list)
    active_topics: list[str] = field(default_factory=list)
    recent_queries: list[str] = field(default_factory=list)
    last_capability: str | None = None
    pending_clarification: PendingClarification | None = None
    max_topics: int = field(default=5, repr=False)
    max_recent_queries: int = field(default=10, repr=False)

    def observe(self, message: Message, extractor: FeatureExtractor) -> None:
        """Fold one appended message into the context."""
        if message.role == "user":
            self._observe_user(message.content, extractor)
        else:
            self._observe_assistant(message)

    def _observe_user(self, content: str, extractor: FeatureExtractor) -> None:
        # The next user turn consumes any outstanding clarification.
        self.pending_clarification = None

        for kind, names in extractor.extract_entities(content).items():
            tracked = self.entities.setdefault(kind, [])
            for name in names:
                if name not in tracked:
                    tracked.append(name)

        for period in extractor.extract_temporal(content.lower()).explicit_periods:
            if period not in self.periods:
                self.periods.append(period)

        for topic in extractor.extract_topics(content):
            if topic in self.active_topics:
                self.active_topics.remove(topic)
            self.active_topics.insert(0, topic)
        del self.active_topics[self.max_topics:]

        self.recent_queries.append(content)
        if len(self.recent_queries) > self.max_recent_queries:
            del self.recent_queries[: len(self.recent_queries) - self.max_recent_queries]

    def _observe_assistant(self, message: Message) -> None:
        capability = message.metadata.get("capability")
        if capability:
            self.last_capability = capability

        if CLARIFICATION_QUESTION_PATTERN.search(message.content) and self.recent_queries:
            self.pending_clarification = PendingClarification(
                original_query=self.recent_queries[-1],
                question=message.content,
            )
        else:
            self.pending_clarification = None

    def tracks_any(self, names: set[str]) -> bool:
        return any(name in tracked for tracked in self.entities.values() for name in names)

    def all_entities(self) -> list[str]:
        return [name for names in self.entities.values() for name in names]

    @classmethod
    def from_messages(
        cls,
        messages: list[Message],
        extractor: FeatureExtractor,
        max_topics: int = 5,
        max_recent_queries: int = 10,
    ) -> "ConversationContext":
        context = cls(max_topics=max_topics, max_recent_queries=max_recent_queries)
        for message in messages:
            context.observe(message, extractor)
        return context

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": {kind: list(names) for kind, names in self.entities.items()},
            "periods": list(self.periods),
            "active_topics": list(self.active_topics),
            "recent_queries": list(self.recent_queries),
            "last_capability": self.last_capability,
            "pending_clarification": (
                self.pending_clarification.to_dict() if self.pending_clarification else None
            ),
        }


@dataclass
class Session:
    """A conversation thread."""

    id: str
    created_at: datetime
    last_activity: datetime
    user_id: str | None = None
    messages: list[Message] = field(default_factory=list)
    context: ConversationContext = field(default_factory=ConversationContext)
    summary: str | None = None
    truncated_count: int = 0

    def to_dict(self, limit: int | None = None) -> dict[str, Any]:
        messages = self.messages
        if limit is not None:
            messages = self.messages[max(0, len(self.messages) - max(0, limit)):]
        return {
            "session_id": self.id,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "message_count": len(self.messages),
            "messages": [m.to_dict() for m in messages],
            "context": self.context.to_dict(),
            "summary": self.summary,
        }


@dataclass
class RelevantContext:
    """Read-only snapshot handed to the router and executor."""

    session_id: str
    recent_messages: list[Message]
    relevant_messages: list[Message]
    context: ConversationContext
    summary: str | None = None
    pending_clarification: PendingClarification | None = None

    def history(self) -> list[dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.recent_messages]
