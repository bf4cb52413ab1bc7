"""Collaborator interfaces consumed by the engine."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class GenerativeResponder(Protocol):
    """Turns a chat-style message list into response text.

    Failures surface as ``ResponderError``.
    """

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str: ...


@runtime_checkable
class KnowledgeProvider(Protocol):
    """Structured domain facts by entity kind and id.

    Absence of data is ``None``; only fatal transport conditions raise
    ``KnowledgeProviderError``.
    """

    async def fetch(
        self,
        entity_kind: str,
        entity_id: str,
        period: int | None = None,
    ) -> dict[str, Any] | None: ...


@runtime_checkable
class StatsReporter(Protocol):
    """Adapters that expose counters for ``QueryOrchestrator.get_status``."""

    def get_stats(self) -> dict[str, Any]: ...
