"""Unit tests for purge invokers."""

import json

import httpx
import pytest

from cache_warmer.adapters.purge_client import CloudflarePurgeClient, DisabledPurgeClient


URL = "https://example.test/dive-sites"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestCloudflarePurgeClient:
    @pytest.mark.asyncio
    async def test_posts_single_file_purge(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "errors": [], "result": {"id": "abc"}})

        purger = CloudflarePurgeClient("zone123", "secret-token", client=_client(handler))

        result = await purger.purge(URL)

        assert result.success
        assert result.url == URL
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.cloudflare.com/client/v4/zones/zone123/purge_cache"
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert json.loads(request.content) == {"files": [URL]}

    @pytest.mark.asyncio
    async def test_api_rejection_reports_errors(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"success": False, "errors": [{"code": 10000, "message": "Authentication error"}]})

        purger = CloudflarePurgeClient("zone123", "bad-token", client=_client(handler))

        result = await purger.purge(URL)

        assert not result.success
        assert result.message == "Authentication error"

    @pytest.mark.asyncio
    async def test_non_json_body_is_a_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad gateway</html>")

        purger = CloudflarePurgeClient("zone123", "token", client=_client(handler))

        result = await purger.purge(URL)

        assert not result.success

    @pytest.mark.asyncio
    async def test_network_error_is_swallowed(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("connection refused", request=request)

        purger = CloudflarePurgeClient("zone123", "token", client=_client(handler))

        result = await purger.purge(URL)

        assert not result.success
        assert "connection refused" in result.message
        # Purges are never retried
        assert calls == 1

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self):
        client = _client(lambda request: httpx.Response(200, json={"success": True}))

        async with CloudflarePurgeClient("zone123", "token", client=client):
            pass

        assert not client.is_closed

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self):
        purger = CloudflarePurgeClient("zone123", "token")

        await purger.aclose()

        assert purger.client.is_closed

    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            CloudflarePurgeClient("", "token")


@pytest.mark.asyncio
async def test_disabled_purger_reports_reason():
    result = await DisabledPurgeClient("dry run").purge(URL)

    assert not result.success
    assert result.message == "dry run"
