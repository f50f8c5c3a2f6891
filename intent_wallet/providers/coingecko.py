import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import PriceProvider

logger = logging.getLogger(__name__)

# Coingecko asset platform ids for contract lookups
PLATFORM_SOLANA = "solana"
PLATFORM_ETHEREUM = "ethereum"


class CoingeckoProvider(PriceProvider):
    """Coingecko API provider for spot prices and contract metadata"""

    name = "coingecko"
    timeout_s = 15

    def __init__(self, api_key: str = "", enabled: bool = True, base_url: str = "https://api.coingecko.com/api/v3"):
        self.api_key = api_key
        self.enabled = enabled
        self.base_url = base_url.rstrip("/")

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def ready(self) -> bool:
        return self.enabled  # API key is optional for the public tier

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Provider disabled"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(f"{self.base_url}/ping", headers=self._build_headers())
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except httpx.HTTPError as e:
            return {"status": "error", "reason": str(e)}

    async def get_simple_prices(self, ids: List[str], vs_currency: str = "usd") -> Dict[str, float]:
        """Spot prices keyed by Coingecko id."""
        if not ids:
            return {}

        params = {
            "ids": ",".join(sorted(set(ids))),
            "vs_currencies": vs_currency,
        }

        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            response = await client.get(
                f"{self.base_url}/simple/price",
                headers=self._build_headers(),
                params=params,
            )
            response.raise_for_status()
            data = response.json()

        prices: Dict[str, float] = {}
        for asset_id, quote in data.items():
            if isinstance(quote, dict) and vs_currency in quote:
                prices[asset_id] = float(quote[vs_currency])
        return prices

    async def get_token_by_contract(self, platform: str, address: str) -> Optional[Dict[str, Any]]:
        """Token metadata and market data for a contract, or None when unknown."""
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            response = await client.get(
                f"{self.base_url}/coins/{platform}/contract/{address}",
                headers=self._build_headers(),
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()

        market = data.get("market_data") or {}
        return {
            "id": data.get("id"),
            "name": data.get("name", ""),
            "symbol": (data.get("symbol") or "").upper(),
            "price_usd": (market.get("current_price") or {}).get("usd"),
            "market_cap_usd": (market.get("market_cap") or {}).get("usd"),
            "volume_24h_usd": (market.get("total_volume") or {}).get("usd"),
            "price_change_24h": market.get("price_change_percentage_24h"),
            "image": (data.get("image") or {}).get("small"),
            "source": "coingecko",
        }
