"""Client for the third-party pool metadata API."""

from typing import Any, Optional

import httpx

from pool_tracker.logging_config import get_logger

logger = get_logger(__name__)


class PoolApiError(Exception):
    """Raised when the pool metadata API cannot be reached or decoded."""


class PoolInfoClient:
    """Fetches pool metadata JSON so the dashboard can avoid CORS issues.

    Args:
        url: Full URL of the pool's metadata document
        timeout: Request timeout in seconds
        http_client: Optional pre-built httpx client (used by tests)
    """

    def __init__(self, url: str, timeout: float = 15.0,
                 http_client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self._http_client = http_client

    async def fetch_pool_info(self) -> Any:
        """Return the decoded metadata document, whatever its shape.

        Raises:
            PoolApiError: On transport errors or a non-JSON body
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)

        try:
            response = await self._http_client.get(
                self.url, headers={"accept": "application/json"}
            )
            return response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Pool API request failed: {str(e)}")
            raise PoolApiError(str(e) or type(e).__name__) from e
        except ValueError as e:
            raise PoolApiError(f"Invalid JSON from pool API: {str(e)}") from e

    async def close(self):
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
