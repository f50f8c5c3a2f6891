import logging
from typing import Any, Dict, Optional

import httpx

from .base import Provider

logger = logging.getLogger(__name__)

CMC_API_URL = "https://pro-api.coinmarketcap.com/v1"


class MarketDataError(Exception):
    """Upstream market data request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MarketDataNotConfigured(MarketDataError):
    """No CoinMarketCap API key is configured."""

    def __init__(self):
        super().__init__("API key not configured")


class CoinMarketCapProvider(Provider):
    """CoinMarketCap Pro API provider for listings and coin metadata"""

    name = "coinmarketcap"
    timeout_s = 15

    def __init__(self, api_key: str = "", base_url: str = CMC_API_URL):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    def _build_headers(self) -> Dict[str, str]:
        return {"X-CMC_PRO_API_KEY": self.api_key, "Accept": "application/json"}

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Missing API key"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(f"{self.base_url}/key/info", headers=self._build_headers())
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except httpx.HTTPError as e:
            return {"status": "error", "reason": str(e)}

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise MarketDataNotConfigured()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(f"{self.base_url}{path}", headers=self._build_headers(), params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("CoinMarketCap %s returned %s", path, e.response.status_code)
            raise MarketDataError(f"CoinMarketCap API error: {e.response.status_code}", e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.warning("CoinMarketCap %s failed: %s", path, e)
            raise MarketDataError(f"CoinMarketCap request failed: {e}") from e

    async def get_latest_listings(
        self,
        limit: int = 10,
        convert: str = "USD",
        start: int = 1,
        sort: Optional[str] = None,
        sort_dir: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Raw ``cryptocurrency/listings/latest`` payload."""
        params: Dict[str, Any] = {"start": start, "limit": limit, "convert": convert}
        if sort:
            params["sort"] = sort
        if sort_dir:
            params["sort_dir"] = sort_dir
        return await self._get("/cryptocurrency/listings/latest", params)

    async def get_info(self, symbol: str) -> Dict[str, Any]:
        """Raw ``cryptocurrency/info`` payload for one or more comma-separated symbols."""
        return await self._get("/cryptocurrency/info", {"symbol": symbol})
