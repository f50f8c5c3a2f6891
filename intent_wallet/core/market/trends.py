"""
Market trends

Top-30 CoinMarketCap listings enriched with dominance, sentiment and
gainer/loser analytics. Results are cached; when the upstream fails an
expired snapshot is served with a status note instead of an error.
"""

import copy
import logging
import math
from typing import Any, Dict, List, Optional

from ...cache import TTLCache
from ...providers.coinmarketcap import CoinMarketCapProvider, MarketDataError

logger = logging.getLogger(__name__)

CACHE_KEY = "market-trends"
LISTINGS_LIMIT = 30
MOVERS_LIMIT = 3
STALE_NOTE = "Using cached data due to API error"


def _usd(coin: Dict[str, Any]) -> Dict[str, Any]:
    return (coin.get("quote") or {}).get("USD") or {}


def _change(coin: Dict[str, Any]) -> float:
    return float(_usd(coin).get("percent_change_24h") or 0.0)


def calculate_btc_dominance(coins: List[Dict[str, Any]]) -> float:
    total = sum(float(_usd(c).get("market_cap") or 0.0) for c in coins)
    btc = next((c for c in coins if c.get("symbol") == "BTC"), None)
    if btc is None or total <= 0:
        return 0.0
    return float(_usd(btc).get("market_cap") or 0.0) / total * 100


def calculate_market_sentiment(coins: List[Dict[str, Any]]) -> str:
    if not coins:
        return "neutral"
    positive = sum(1 for c in coins if _change(c) > 0)
    percentage = positive / len(coins) * 100
    if percentage >= 60:
        return "bullish"
    if percentage <= 40:
        return "bearish"
    return "neutral"


def _mover(coin: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": coin.get("id"),
        "name": coin.get("name"),
        "symbol": coin.get("symbol"),
        "percent_change_24h": _change(coin),
    }


def top_gainers(coins: List[Dict[str, Any]], limit: int = MOVERS_LIMIT) -> List[Dict[str, Any]]:
    return [_mover(c) for c in sorted(coins, key=_change, reverse=True)[:limit]]


def top_losers(coins: List[Dict[str, Any]], limit: int = MOVERS_LIMIT) -> List[Dict[str, Any]]:
    return [_mover(c) for c in sorted(coins, key=_change)[:limit]]


def compute_market_analytics(coins: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "btcDominance": calculate_btc_dominance(coins),
        "marketSentiment": calculate_market_sentiment(coins),
        "topGainers": top_gainers(coins),
        "topLosers": top_losers(coins),
        "marketActivity": {
            "bullishCoins": sum(1 for c in coins if _change(c) > 0),
            "bearishCoins": sum(1 for c in coins if _change(c) < 0),
            "totalCoins": len(coins),
        },
    }


class MarketTrendsService:
    def __init__(self, provider: CoinMarketCapProvider, cache: TTLCache, ttl_s: float = 120):
        self.provider = provider
        self.cache = cache
        self.ttl_s = ttl_s

    async def get_market_trends(self) -> Dict[str, Any]:
        """
        Listings plus ``analytics``.

        Raises MarketDataError only when the upstream fails and nothing has
        ever been cached.
        """
        cached = await self.cache.get(CACHE_KEY)
        if cached is not None:
            return cached

        try:
            payload = await self.provider.get_latest_listings(
                limit=LISTINGS_LIMIT,
                convert="USD",
                start=1,
                sort="market_cap",
                sort_dir="desc",
            )
        except MarketDataError as exc:
            stale = await self.cache.get_stale(CACHE_KEY)
            if stale is None:
                raise
            logger.warning("Serving cached market trends after upstream error: %s", exc)
            fallback = copy.deepcopy(stale.value)
            status = dict(fallback.get("status") or {})
            status["error_message"] = STALE_NOTE
            status["cache_age"] = math.floor(self.cache.age(stale))
            fallback["status"] = status
            return fallback

        enhanced = dict(payload)
        enhanced["analytics"] = compute_market_analytics(payload.get("data") or [])
        await self.cache.set(CACHE_KEY, enhanced, ttl=self.ttl_s)
        return enhanced

    async def get_listings(self) -> Optional[List[Dict[str, Any]]]:
        """Listing rows for market intelligence, or None when unavailable."""
        try:
            trends = await self.get_market_trends()
        except MarketDataError:
            return None
        return trends.get("data") or None
