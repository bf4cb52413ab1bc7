"""
Ergast Knowledge Provider

Fetches Formula 1 facts from an Ergast-compatible JSON API. Responses are
cached for a fixed TTL; when the API is rate limiting or unreachable, a stale
cached copy is served if one exists.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from pitwall.config import Settings, get_settings
from pitwall.errors import KnowledgeProviderError

from .http import request_with_retry

logger = structlog.get_logger()

# (entity kind, has period) -> path template
ENDPOINTS: dict[tuple[str, bool], str] = {
    ("driver", False): "/drivers/{id}/driverStandings",
    ("driver", True): "/{period}/drivers/{id}/results",
    ("constructor", False): "/constructors/{id}/constructorStandings",
    ("constructor", True): "/{period}/constructors/{id}/results",
    ("circuit", False): "/circuits/{id}/results/1",
    ("circuit", True): "/{period}/circuits/{id}/results",
    ("season", False): "/{id}/driverStandings",
}

ABSENT_STATUSES = {400, 404}


@dataclass
class _CacheEntry:
    data: dict[str, Any]
    stored_at: float


class ErgastKnowledgeProvider:
    """KnowledgeProvider backed by the Ergast F1 API."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        max_attempts: int = 3,
    ):
        settings = settings or get_settings()
        self.base_url = settings.knowledge_api_base_url.rstrip("/")
        self.cache_ttl = settings.knowledge_cache_ttl_seconds
        self.max_attempts = max_attempts
        self._client = client or httpx.AsyncClient(
            timeout=settings.knowledge_request_timeout_seconds,
            headers={"Accept": "application/json", "User-Agent": "pitwall-intelligence/0.1"},
        )
        self._owns_client = client is None
        self._monotonic = monotonic
        self._cache: dict[str, _CacheEntry] = {}
        self._hits = 0
        self._stale = 0

    def build_path(self, entity_kind: str, entity_id: str, period: int | None = None) -> str | None:
        template = ENDPOINTS.get((entity_kind, period is not None))
        if template is None:
            return None
        return template.format(id=entity_id, period=period) + ".json"

    async def fetch(
        self,
        entity_kind: str,
        entity_id: str,
        period: int | None = None,
    ) -> dict[str, Any] | None:
        path = self.build_path(entity_kind, entity_id, period)
        if path is None:
            logger.debug("No endpoint for entity kind", entity_kind=entity_kind)
            return None

        cached = self._cache.get(path)
        if cached and self._monotonic() - cached.stored_at < self.cache_ttl:
            logger.debug("Knowledge cache hit", path=path)
            self._hits += 1
            return cached.data

        try:
            response = await request_with_retry(
                self._client,
                "GET",
                f"{self.base_url}{path}",
                max_attempts=self.max_attempts,
            )
        except httpx.HTTPError as e:
            return self._stale_or_raise(path, cached, f"request failed: {e}")

        if response.status_code in ABSENT_STATUSES:
            logger.info("Knowledge not found", path=path, status_code=response.status_code)
            return None

        if response.status_code >= 400:
            return self._stale_or_raise(path, cached, f"status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            return self._stale_or_raise(path, cached, f"invalid JSON: {e}")

        data = payload.get("MRData") if isinstance(payload, dict) else None
        if not data or str(data.get("total", "0")) == "0":
            return None

        self._cache[path] = _CacheEntry(data=data, stored_at=self._monotonic())
        return data

    def _stale_or_raise(
        self,
        path: str,
        cached: _CacheEntry | None,
        reason: str,
    ) -> dict[str, Any]:
        if cached is not None:
            logger.warning("Serving stale knowledge", path=path, reason=reason)
            self._stale += 1
            return cached.data
        logger.error("Knowledge provider failed", path=path, reason=reason)
        raise KnowledgeProviderError(f"{path}: {reason}")

    def get_stats(self) -> dict[str, Any]:
        return {
            "cache_size": len(self._cache),
            "cache_hits": self._hits,
            "stale_served": self._stale,
        }

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
