"""
Unit tests for the Ergast knowledge provider using httpx.MockTransport.
"""

import httpx
import pytest

from pitwall.errors import KnowledgeProviderError
from pitwall.providers import ErgastKnowledgeProvider

from tests.support.settings import make_settings

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

BASE_URL = "https://ergast.test/api/f1"


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


def mrdata(total: str = "1", **extra) -> dict:
    return {"MRData": {"total": total, **extra}}


def make_provider(handler, monotonic=None) -> tuple[ErgastKnowledgeProvider, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    provider = ErgastKnowledgeProvider(
        make_settings(knowledge_api_base_url=BASE_URL + "/", knowledge_cache_ttl_seconds=300),
        client=httpx.AsyncClient(transport=httpx.MockTransport(record)),
        monotonic=monotonic or FakeMonotonic(),
        max_attempts=1,
    )
    return provider, seen


class TestPaths:
    def test_build_path(self):
        provider, _ = make_provider(lambda request: httpx.Response(200, json=mrdata()))

        assert provider.build_path("driver", "hamilton") == "/drivers/hamilton/driverStandings.json"
        assert provider.build_path("circuit", "monaco", 2019) == "/2019/circuits/monaco/results.json"
        assert provider.build_path("season", "2021") == "/2021/driverStandings.json"
        assert provider.build_path("season", "2021", 2021) is None
        assert provider.build_path("weather", "monaco") is None


class TestFetch:
    """Tests for fetching, caching and failure handling."""

    async def test_success_is_cached(self):
        provider, seen = make_provider(
            lambda request: httpx.Response(200, json=mrdata(series="f1"))
        )

        first = await provider.fetch("driver", "hamilton")
        second = await provider.fetch("driver", "hamilton")

        assert first == {"total": "1", "series": "f1"}
        assert second == first
        assert len(seen) == 1
        assert str(seen[0].url) == f"{BASE_URL}/drivers/hamilton/driverStandings.json"
        assert provider.get_stats() == {"cache_size": 1, "cache_hits": 1, "stale_served": 0}

    async def test_cache_expires_after_ttl(self):
        monotonic = FakeMonotonic()
        provider, seen = make_provider(
            lambda request: httpx.Response(200, json=mrdata()), monotonic
        )

        await provider.fetch("driver", "hamilton")
        monotonic.value += 301
        await provider.fetch("driver", "hamilton")

        assert len(seen) == 2

    async def test_not_found_is_absence(self):
        provider, _ = make_provider(lambda request: httpx.Response(404))

        assert await provider.fetch("driver", "nobody") is None

    async def test_empty_result_set_is_absence(self):
        provider, _ = make_provider(lambda request: httpx.Response(200, json=mrdata(total="0")))

        assert await provider.fetch("constructor", "brawn", 2009) is None
        assert provider.get_stats()["cache_size"] == 0

    async def test_unknown_kind_makes_no_request(self):
        provider, seen = make_provider(lambda request: httpx.Response(200, json=mrdata()))

        assert await provider.fetch("weather", "monaco") is None
        assert seen == []

    async def test_server_error_without_cache_raises(self):
        provider, _ = make_provider(lambda request: httpx.Response(503))

        with pytest.raises(KnowledgeProviderError, match="status 503"):
            await provider.fetch("driver", "hamilton")

    async def test_stale_copy_served_when_api_fails(self):
        monotonic = FakeMonotonic()
        responses = [httpx.Response(200, json=mrdata(wins="103")), httpx.Response(429)]
        provider, _ = make_provider(lambda request: responses.pop(0), monotonic)

        await provider.fetch("driver", "hamilton")
        monotonic.value += 600
        stale = await provider.fetch("driver", "hamilton")

        assert stale == {"total": "1", "wins": "103"}
        assert provider.get_stats()["stale_served"] == 1

    async def test_network_error_without_cache_raises(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider, _ = make_provider(refuse)

        with pytest.raises(KnowledgeProviderError, match="request failed"):
            await provider.fetch("circuit", "monza")
