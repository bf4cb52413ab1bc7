"""
Conversation Memory Store

In-process, per-session conversation memory. Each session has its own
asyncio.Lock so concurrent turns on one session serialize while different
sessions proceed in parallel; a table lock guards only session creation and
deletion.
"""

import asyncio
import copy
from datetime import timedelta
from typing import Any

import structlog

from pitwall.clock import Clock, utc_now
from pitwall.config import Settings, get_settings
from pitwall.errors import MemoryWriteFailure
from pitwall.features import FeatureExtractor

from .models import ConversationContext, Message, RelevantContext, Role, Session

logger = structlog.get_logger()

RECENT_WINDOW = 5
RELEVANCE_WINDOW = 10


def summarize_messages(messages: list[Message], extractor: FeatureExtractor) -> str:
    """One-paragraph summary of messages dropped from the window."""
    capabilities: list[str] = []
    entities: list[str] = []
    for message in messages:
        capability = message.metadata.get("capability")
        if capability and capability not in capabilities:
            capabilities.append(capability)
        for names in extractor.extract_entities(message.content).values():
            for name in names:
                if name not in entities:
                    entities.append(name)

    return (
        f"Previous conversation ({len(messages)} messages) covered: "
        f"{', '.join(capabilities) or 'general questions'}. "
        f"Key entities discussed: {', '.join(entities) or 'none'}. "
        f"Conversation period: {messages[0].timestamp.isoformat()} to "
        f"{messages[-1].timestamp.isoformat()}."
    )


class ConversationMemory:
    """Bounded, per-session conversation history with derived context."""

    def __init__(
        self,
        settings: Settings | None = None,
        extractor: FeatureExtractor | None = None,
        clock: Clock = utc_now,
    ):
        settings = settings or get_settings()
        self.max_messages = settings.max_messages_per_session
        self.max_topics = settings.max_active_topics
        self.max_recent_queries = settings.max_recent_queries
        self.extractor = extractor or FeatureExtractor()
        self.clock = clock

        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._table_lock = asyncio.Lock()

    async def _get_or_create(self, session_id: str, user_id: str | None) -> tuple[Session, asyncio.Lock]:
        async with self._table_lock:
            session = self._sessions.get(session_id)
            if session is None:
                now = self.clock()
                session = Session(
                    id=session_id,
                    user_id=user_id,
                    created_at=now,
                    last_activity=now,
                    context=ConversationContext(
                        max_topics=self.max_topics,
                        max_recent_queries=self.max_recent_queries,
                    ),
                )
                self._sessions[session_id] = session
                self._locks[session_id] = asyncio.Lock()
                logger.info("Created conversation session", session_id=session_id)
            return session, self._locks[session_id]

    async def append_message(
        self,
        session_id: str,
        role: Role,
        content: str,
        metadata: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> Message:
        """Append a message, update context and enforce the retention cap.

        Raises:
            MemoryWriteFailure: if the role is unknown or the context update fails.
        """
        if role not in ("user", "assistant"):
            raise MemoryWriteFailure(f"Unknown role: {role}")

        session, lock = await self._get_or_create(session_id, user_id)

        async with lock:
            message = Message(
                role=role,
                content=content,
                timestamp=self.clock(),
                metadata=dict(metadata or {}),
            )
            try:
                session.context.observe(message, self.extractor)
            except Exception as e:
                raise MemoryWriteFailure(f"Context update failed: {e}") from e

            session.messages.append(message)
            session.last_activity = message.timestamp
            if user_id and not session.user_id:
                session.user_id = user_id

            if len(session.messages) > self.max_messages:
                self._truncate(session)

        return message

    def _truncate(self, session: Session) -> None:
        overflow = len(session.messages) - self.max_messages
        dropped = session.messages[:overflow]
        del session.messages[:overflow]

        summary = summarize_messages(dropped, self.extractor)
        session.summary = f"{session.summary}\n\n{summary}" if session.summary else summary
        session.truncated_count += overflow

        logger.debug(
            "Truncated conversation",
            session_id=session.id,
            dropped=overflow,
            retained=len(session.messages),
        )

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def _lookup(self, session_id: str) -> tuple[Session | None, asyncio.Lock | None]:
        return self._sessions.get(session_id), self._locks.get(session_id)

    async def get_history(self, session_id: str, limit: int | None = None) -> dict[str, Any] | None:
        session, lock = self._lookup(session_id)
        if session is None:
            return None
        async with lock:
            return session.to_dict(limit=limit)

    async def get_relevant_context(self, session_id: str, query: str) -> RelevantContext | None:
        """Snapshot of the context that matters for answering ``query``."""
        session, lock = self._lookup(session_id)
        if session is None:
            return None

        async with lock:
            window = session.messages[-RELEVANCE_WINDOW:]
            context = copy.deepcopy(session.context)

            query_lower = query.lower()
            tracked = context.all_entities() + context.active_topics
            query_terms = {term for term in query_lower.split() if len(term) > 3}

            relevant = [
                message for message in window
                if self._is_relevant(message.content.lower(), query_lower, tracked, query_terms)
            ]

            pending = None
            if context.pending_clarification is not None:
                pending = context.pending_clarification.resolved_by(query, self.clock().year)

            return RelevantContext(
                session_id=session_id,
                recent_messages=list(window[-RECENT_WINDOW:]),
                relevant_messages=relevant,
                context=context,
                summary=session.summary,
                pending_clarification=pending,
            )

    @staticmethod
    def _is_relevant(
        content: str,
        query: str,
        tracked: list[str],
        query_terms: set[str],
    ) -> bool:
        if any(term in query or term in content for term in tracked):
            return True
        return any(term in content for term in query_terms)

    async def delete_session(self, session_id: str) -> bool:
        async with self._table_lock:
            existed = self._sessions.pop(session_id, None) is not None
            self._locks.pop(session_id, None)
        if existed:
            logger.info("Deleted conversation session", session_id=session_id)
        return existed

    async def cleanup_expired(self, max_age_hours: float) -> int:
        """Remove sessions idle for longer than ``max_age_hours``."""
        cutoff = self.clock() - timedelta(hours=max_age_hours)
        async with self._table_lock:
            expired = [sid for sid, s in self._sessions.items() if s.last_activity < cutoff]
            for session_id in expired:
                del self._sessions[session_id]
                self._locks.pop(session_id, None)

        if expired:
            logger.info("Cleaned up expired sessions", count=len(expired))
        return len(expired)

    def get_stats(self) -> dict[str, Any]:
        total_sessions = len(self._sessions)
        total_messages = sum(len(s.messages) for s in self._sessions.values())
        return {
            "total_sessions": total_sessions,
            "total_messages": total_messages,
            "average_messages_per_session": (
                round(total_messages / total_sessions) if total_sessions else 0
            ),
            "truncated_messages": sum(s.truncated_count for s in self._sessions.values()),
        }
