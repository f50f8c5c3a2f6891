import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import Provider

logger = logging.getLogger(__name__)


class DexScreenerProvider(Provider):
    """DexScreener public API for DEX pair data (no key required)"""

    name = "dexscreener"
    timeout_s = 10

    def __init__(self, base_url: str = "https://api.dexscreener.com/latest"):
        self.base_url = base_url.rstrip("/")

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def get_token_pairs(self, address: str, chain: Optional[str] = None) -> List[Dict[str, Any]]:
        """Pairs trading ``address``, most liquid first. Raises httpx.HTTPError."""
        params = {"baseChain": chain} if chain in ("solana", "bsc") else None
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            response = await client.get(f"{self.base_url}/dex/tokens/{address}", params=params)
            response.raise_for_status()
            data = response.json()

        pairs = data.get("pairs") or []
        return sorted(pairs, key=lambda p: float((p.get("liquidity") or {}).get("usd") or 0), reverse=True)
