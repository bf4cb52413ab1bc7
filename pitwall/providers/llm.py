"""
LiteLLM Generative Responder

Chat completions through LiteLLM with a timeout and a simple circuit
breaker. Every failure surfaces as ResponderError.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import litellm
import structlog

from pitwall.config import Settings, get_settings
from pitwall.errors import ResponderError

logger = structlog.get_logger()


@dataclass
class CircuitBreaker:
    """
    Stops calling the model after repeated failures.

    Once ``failure_threshold`` consecutive calls fail, the breaker opens and
    every turn fails fast with ResponderError until ``recovery_timeout``
    seconds pass; the next call then probes the model (half-open).
    """

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    failures: int = 0
    last_failure_time: float | None = None
    state: str = "closed"

    def can_execute(self) -> bool:
        if self.state != "open":
            return True
        elapsed = time.monotonic() - (self.last_failure_time or 0.0)
        if elapsed < self.recovery_timeout:
            return False
        self.state = "half-open"
        logger.info("Responder circuit half-open, probing model")
        return True

    def record_success(self) -> None:
        self.failures = 0
        self.state = "closed"

    def record_failure(self) -> None:
        self.failures += 1
        self.last_failure_time = time.monotonic()
        if self.state == "half-open" or self.failures >= self.failure_threshold:
            self.state = "open"
            logger.warning("Responder circuit opened", failures=self.failures)


class LiteLLMResponder:
    """GenerativeResponder backed by ``litellm.acompletion``."""

    def __init__(
        self,
        settings: Settings | None = None,
        model: str | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ):
        settings = settings or get_settings()
        litellm.set_verbose = False
        self.model = model or settings.llm_model
        self.api_key = settings.openai_api_key
        self.default_temperature = settings.llm_temperature
        self.default_max_tokens = settings.llm_max_tokens
        self.timeout = settings.llm_timeout_seconds
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.llm_circuit_failure_threshold,
            recovery_timeout=settings.llm_circuit_recovery_seconds,
        )
        self.prompt_tokens = 0
        self.completion_tokens = 0

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        if not self.circuit_breaker.can_execute():
            raise ResponderError(f"{self.model}: circuit open")

        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                litellm.acompletion(
                    model=self.model,
                    messages=messages,
                    temperature=self.default_temperature if temperature is None else temperature,
                    max_tokens=max_tokens or self.default_max_tokens,
                    api_key=self.api_key,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            self.circuit_breaker.record_failure()
            raise ResponderError(f"{self.model}: timed out after {self.timeout}s") from e
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.warning("LLM call failed", model=self.model, error=str(e))
            raise ResponderError(f"{self.model}: {e}") from e

        self.circuit_breaker.record_success()

        content = response.choices[0].message.content or ""
        if response.usage:
            self.prompt_tokens += response.usage.prompt_tokens
            self.completion_tokens += response.usage.completion_tokens

        logger.debug(
            "LLM call completed",
            model=self.model,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return content

    def get_stats(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "circuit_state": self.circuit_breaker.state,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
        }
