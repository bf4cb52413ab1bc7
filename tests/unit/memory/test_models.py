"""
Unit tests for conversation context derivation.
"""

from datetime import datetime, timezone

import pytest

from pitwall.features import FeatureExtractor
from pitwall.memory.models import (
    ConversationContext,
    Message,
    PendingClarification,
    resolve_period,
)

pytestmark = pytest.mark.unit

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def user(content: str) -> Message:
    return Message(role="user", content=content, timestamp=NOW)


def assistant(content: str, **metadata) -> Message:
    return Message(role="assistant", content=content, timestamp=NOW, metadata=metadata)


class TestResolvePeriod:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("2021", 2021),
            ("the 1998 season", 1998),
            ("this year", 2026),
            ("Current season please", 2026),
            ("last year", 2025),
            ("previous season", 2025),
            ("whenever", None),
        ],
    )
    def test_resolution(self, text, expected):
        assert resolve_period(text, 2026) == expected


class TestPendingClarification:
    def test_resolved_by_period_phrase(self):
        pending = PendingClarification(
            original_query="Who won at Monaco?",
            question="Which year are you asking about?",
        )

        resolved = pending.resolved_by("  last year ", 2026)

        assert resolved is not None
        assert resolved.resolution == "last year"
        assert resolved.resolved_period == 2025
        assert pending.resolution is None

    def test_unrelated_answer_does_not_resolve(self):
        pending = PendingClarification(
            original_query="Who won at Monaco?",
            question="Which year are you asking about?",
        )

        assert pending.resolved_by("what about Ferrari?", 2026) is None


class TestConversationContext:
    """Tests for folding messages into context."""

    def test_tracks_entities_periods_and_queries(self):
        extractor = FeatureExtractor()
        context = ConversationContext()

        context.observe(user("Hamilton at Silverstone in 2020"), extractor)
        context.observe(user("And Verstappen in 2021?"), extractor)

        assert context.entities["driver"] == ["hamilton", "verstappen"]
        assert context.entities["circuit"] == ["silverstone"]
        assert context.periods == [2020, 2021]
        assert context.recent_queries == [
            "Hamilton at Silverstone in 2020",
            "And Verstappen in 2021?",
        ]
        assert context.tracks_any({"verstappen"})
        assert not context.tracks_any({"norris"})

    def test_topics_most_recent_first_and_capped(self):
        extractor = FeatureExtractor()
        context = ConversationContext(max_topics=3)

        context.observe(user("championship standings"), extractor)
        context.observe(user("qualifying strategy"), extractor)
        context.observe(user("championship again"), extractor)

        assert context.active_topics == ["championship", "strategy", "qualifying"]

    def test_recent_queries_capped(self):
        extractor = FeatureExtractor()
        context = ConversationContext(max_recent_queries=2)

        for i in range(4):
            context.observe(user(f"question {i}"), extractor)

        assert context.recent_queries == ["question 2", "question 3"]

    def test_assistant_sets_last_capability(self):
        context = ConversationContext()

        context.observe(assistant("Done", capability="driver"), FeatureExtractor())

        assert context.last_capability == "driver"

    def test_clarification_question_sets_pending(self):
        extractor = FeatureExtractor()
        context = ConversationContext()

        context.observe(user("Who won at Monaco?"), extractor)
        context.observe(assistant("Which season do you mean?"), extractor)

        assert context.pending_clarification is not None
        assert context.pending_clarification.original_query == "Who won at Monaco?"

        context.observe(user("2019"), extractor)

        assert context.pending_clarification is None

    def test_plain_answer_clears_pending(self):
        extractor = FeatureExtractor()
        context = ConversationContext()

        context.observe(user("Who won at Monaco?"), extractor)
        context.observe(assistant("Which year are you asking about?"), extractor)
        context.observe(assistant("Leclerc won in 2024."), extractor)

        assert context.pending_clarification is None

    def test_rebuilding_from_messages_is_equivalent(self):
        extractor = FeatureExtractor()
        messages = [
            user("Compare Hamilton and Verstappen in 2021"),
            assistant("Close fight", capability="driver"),
            user("What about Monaco?"),
            assistant("What year are you asking about?", capability="circuit"),
        ]
        incremental = ConversationContext()
        for message in messages:
            incremental.observe(message, extractor)

        rebuilt = ConversationContext.from_messages(messages, extractor)

        assert rebuilt.to_dict() == incremental.to_dict()


class TestMessage:
    def test_to_dict_copies_metadata(self):
        message = assistant("Hello", capability="driver")

        data = message.to_dict()
        data["metadata"]["capability"] = "circuit"

        assert data["role"] == "assistant"
        assert data["content"] == "Hello"
        assert data["timestamp"] == message.timestamp.isoformat()
        assert message.metadata["capability"] == "driver"
