"""Unit tests for the pool metadata client."""

import httpx
import pytest

from pool_tracker.pool_api import PoolApiError, PoolInfoClient

URL = "https://api.example.test/api/xendex/pool/VmZfZnHzFTKSf19ZvAxa4duzChve3JYHVCPq1FvezhN"


def make_client(handler):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PoolInfoClient(URL, http_client=http_client)


@pytest.mark.asyncio
class TestPoolInfoClient:
    """Test suite for PoolInfoClient."""

    async def test_relays_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": {"tvl": 12.5}})

        client = make_client(handler)

        assert await client.fetch_pool_info() == {"success": True, "data": {"tvl": 12.5}}
        assert str(seen[0].url) == URL
        assert seen[0].headers["accept"] == "application/json"
        await client.close()

    async def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(PoolApiError, match="Invalid JSON"):
            await client.fetch_pool_info()
        await client.close()

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = make_client(handler)

        with pytest.raises(PoolApiError, match="connection refused"):
            await client.fetch_pool_info()
        await client.close()
