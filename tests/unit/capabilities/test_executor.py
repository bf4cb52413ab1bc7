"""
Unit tests for the generic capability executor.
"""

import pytest

from pitwall.capabilities import (
    CapabilityExecutor,
    CapabilityRequest,
    CapabilityTable,
    ResolvedClarification,
)
from pitwall.capabilities.executor import score_confidence, strip_markdown
from pitwall.errors import CapabilityExecutionError, ResponderError
from pitwall.features import FeatureExtractor

from tests.support.clock import FakeClock
from tests.support.fakes import FakeKnowledgeProvider, FakeResponder

pytestmark = pytest.mark.unit


def make_request(query: str, **kwargs) -> CapabilityRequest:
    return CapabilityRequest(query=query, features=FeatureExtractor().extract(query), **kwargs)


def make_executor(responder, knowledge=None, timeouts=None) -> CapabilityExecutor:
    return CapabilityExecutor(
        CapabilityTable(timeouts=timeouts),
        responder,
        knowledge,
        clock=FakeClock.fixed(year=2026).now,
    )


class TestStripMarkdown:
    def test_removes_emphasis_and_headers(self):
        text = "## Summary\n**Hamilton** won *seven* titles\n***"

        assert strip_markdown(text) == "Summary\nHamilton won seven titles"


class TestScoreConfidence:
    """Tests for the heuristic confidence score."""

    def test_baseline(self):
        driver = CapabilityTable().get("driver")

        assert score_confidence(driver, "tell me about hamilton", "He is fast") == 0.7

    def test_keyword_bonus_is_capped(self):
        driver = CapabilityTable().get("driver")

        confidence = score_confidence(
            driver, "driver performance statistics career", "He is fast"
        )

        assert confidence == pytest.approx(0.9)

    def test_rich_response_is_capped(self):
        driver = CapabilityTable().get("driver")
        response = "Since 2007 - an average of 0.45 wins per race. " * 10

        confidence = score_confidence(driver, "driver career", response)

        assert confidence == 0.95


@pytest.mark.asyncio
class TestExecute:
    """Tests for single capability execution."""

    async def test_returns_cleaned_response(self):
        responder = FakeResponder(replies={"driver": "**Hamilton** has 103 wins"})
        executor = make_executor(responder)

        result = await executor.execute("driver", make_request("Tell me about Hamilton"))

        assert result.capability_id == "driver"
        assert result.name == "Driver Performance Agent"
        assert result.response == "Hamilton has 103 wins"
        assert result.confidence == 0.7
        assert result.requested_period is False

    async def test_passes_descriptor_limits(self):
        responder = FakeResponder()
        executor = make_executor(responder)

        await executor.execute("championship", make_request("Who leads the standings in 2024?"))

        call = responder.calls[0]
        assert call["capability"] == "championship"
        assert call["temperature"] == 0.2
        assert call["max_tokens"] == 2000

    async def test_system_prompt_carries_current_period(self):
        responder = FakeResponder()
        executor = make_executor(responder)

        await executor.execute("driver", make_request("Tell me about Hamilton"))

        system = responder.calls[0]["messages"][0]["content"]
        assert "The current season is 2026" in system
        assert '"last year" means 2025' in system

    async def test_includes_recent_history(self):
        responder = FakeResponder()
        executor = make_executor(responder)
        history = [
            {"role": "user", "content": f"question {i}"} for i in range(5)
        ]

        await executor.execute("driver", make_request("And Hamilton?", history=history))

        contents = [m["content"] for m in responder.calls[0]["messages"]]
        assert "question 1" not in contents
        assert contents[1:4] == ["question 2", "question 3", "question 4"]
        assert contents[-1] == "And Hamilton?"

    async def test_timeout_becomes_execution_error(self):
        responder = FakeResponder(delays={"driver": 0.5})
        executor = make_executor(responder, timeouts={"driver": 0.01})

        with pytest.raises(CapabilityExecutionError, match="timed out") as exc_info:
            await executor.execute("driver", make_request("Tell me about Hamilton"))

        assert exc_info.value.capability_id == "driver"

    async def test_responder_error_becomes_execution_error(self):
        responder = FakeResponder(replies={"driver": ResponderError("rate limited")})
        executor = make_executor(responder)

        with pytest.raises(CapabilityExecutionError, match="rate limited"):
            await executor.execute("driver", make_request("Tell me about Hamilton"))

    async def test_empty_response_is_an_error(self):
        responder = FakeResponder(replies={"driver": "**  **"})
        executor = make_executor(responder)

        with pytest.raises(CapabilityExecutionError, match="empty response"):
            await executor.execute("driver", make_request("Tell me about Hamilton"))

    async def test_unknown_capability(self):
        executor = make_executor(FakeResponder())

        with pytest.raises(KeyError):
            await executor.execute("weather", make_request("Will it rain?"))


@pytest.mark.asyncio
class TestPeriodHandling:
    """Period-sensitive capabilities ask for a season when none is given."""

    async def test_requests_period_when_missing(self):
        responder = FakeResponder(replies={"race_results": "Which year are you asking about?"})
        executor = make_executor(responder)

        result = await executor.execute(
            "race_results", make_request("Who won the Monaco Grand Prix race?")
        )

        assert result.requested_period is True
        contents = " ".join(m["content"] for m in responder.calls[0]["messages"])
        assert "did not specify a season" in contents

    async def test_explicit_period_skips_request(self):
        responder = FakeResponder()
        executor = make_executor(responder)

        result = await executor.execute(
            "race_results", make_request("Who won the Monaco Grand Prix race in 2019?")
        )

        assert result.requested_period is False

    async def test_future_question_skips_request(self):
        responder = FakeResponder()
        executor = make_executor(responder)

        result = await executor.execute(
            "championship", make_request("Who will win the next championship?")
        )

        assert result.requested_period is False

    async def test_not_period_sensitive(self):
        responder = FakeResponder()
        executor = make_executor(responder)

        result = await executor.execute("driver", make_request("Tell me about Hamilton"))

        assert result.requested_period is False

    async def test_resolved_clarification(self):
        responder = FakeResponder()
        executor = make_executor(responder)
        request = make_request(
            "Who won the Monaco Grand Prix race? 2025",
            clarification=ResolvedClarification(
                original_query="Who won the Monaco Grand Prix race?",
                resolution="last year",
                resolved_period=2025,
            ),
        )

        result = await executor.execute("race_results", request)

        assert result.requested_period is False
        contents = " ".join(m["content"] for m in responder.calls[0]["messages"])
        assert "Use the 2025 season." in contents
        assert 'They responded with "last year"' in contents


@pytest.mark.asyncio
class TestKnowledgeFacts:
    """Tests for knowledge lookups feeding the prompt."""

    async def test_facts_for_mentioned_entities(self):
        knowledge = FakeKnowledgeProvider(
            facts={("driver", "max_verstappen", None): {"wins": 63}},
        )
        responder = FakeResponder()
        executor = make_executor(responder, knowledge)

        result = await executor.execute("driver", make_request("Tell me about Verstappen"))

        assert knowledge.calls == [("driver", "max_verstappen", None)]
        assert result.facts_used == ["driver:max_verstappen"]
        contents = [m["content"] for m in responder.calls[0]["messages"]]
        assert any(c.startswith("Context data:") and '"wins": 63' in c for c in contents)

    async def test_period_and_season_lookups(self):
        knowledge = FakeKnowledgeProvider(
            facts={
                ("circuit", "monaco", 2019): {"winner": "hamilton"},
                ("season", "2019", None): {"champion": "hamilton"},
            },
        )
        executor = make_executor(FakeResponder(), knowledge)

        result = await executor.execute(
            "race_results", make_request("Who won the Monaco Grand Prix race in 2019?")
        )

        assert knowledge.calls == [("circuit", "monaco", 2019), ("season", "2019", None)]
        assert result.facts_used == ["circuit:monaco:2019", "season:2019"]

    async def test_current_period_marker_uses_clock(self):
        knowledge = FakeKnowledgeProvider()
        executor = make_executor(FakeResponder(), knowledge)

        await executor.execute("driver", make_request("How is Norris doing this season?"))

        assert knowledge.calls == [("driver", "norris", 2026)]

    async def test_lookups_are_bounded(self):
        knowledge = FakeKnowledgeProvider()
        executor = make_executor(FakeResponder(), knowledge)

        await executor.execute(
            "driver",
            make_request("Hamilton, Verstappen, Leclerc, Norris, Alonso and Russell"),
        )

        assert len(knowledge.calls) == 4

    async def test_provider_failure_is_skipped(self):
        knowledge = FakeKnowledgeProvider(failing={("driver", "hamilton", None)})
        responder = FakeResponder()
        executor = make_executor(responder, knowledge)

        result = await executor.execute("driver", make_request("Tell me about Hamilton"))

        assert result.facts_used == []
        assert result.response == responder.default
