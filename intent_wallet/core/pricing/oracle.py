"""
Token price oracle.

Serves prices from an in-memory table seeded with mock values. In live mode
the table is refreshed from Coingecko; on any upstream error the previous
values stay in place. Every refresh appends to a bounded per-token history
that drives the up/down/stable trend.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Deque, Dict, Iterable, Literal, Optional

import httpx

from ...providers.coingecko import CoingeckoProvider
from ..tokens import STABLECOINS, find_token

logger = logging.getLogger(__name__)

Trend = Literal["up", "down", "stable"]

HISTORY_LENGTH = 20

MOCK_PRICES: Dict[str, float] = {
    "SOL": 110.25,
    "USDC": 1.00,
    "USDT": 1.00,
    "BONK": 0.00002384,
    "JUP": 0.92,
    "JTO": 2.12,
    "RAY": 0.45,
    "WIF": 1.85,
    "PYTH": 0.38,
    "MEME": 0.03589,
}

MOCK_HISTORY: Dict[str, tuple] = {
    "SOL": (108.75, 109.25, 110.00, 110.25),
    "USDC": (1.00, 1.00, 1.00, 1.00),
    "USDT": (1.00, 0.999, 1.001, 1.00),
    "BONK": (0.00002285, 0.00002315, 0.00002350, 0.00002384),
    "JTO": (2.05, 2.08, 2.10, 2.12),
    "RAY": (0.43, 0.44, 0.44, 0.45),
}


@dataclass
class SwapValueEstimate:
    from_amount: float
    to_amount: float
    price_impact: float
    usd_value: float
    trend: Trend

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "fromAmount": data["from_amount"],
            "toAmount": data["to_amount"],
            "priceImpact": data["price_impact"],
            "usdValue": data["usd_value"],
            "trend": data["trend"],
        }


class PriceOracle:
    def __init__(
        self,
        coingecko: Optional[CoingeckoProvider] = None,
        live: bool = False,
        rng: Optional[random.Random] = None,
    ):
        self._coingecko = coingecko
        self.live = live and coingecko is not None
        self._rng = rng or random.Random()
        self._prices: Dict[str, float] = {}
        self._history: Dict[str, Deque[float]] = {}
        self.reset()

    def reset(self) -> None:
        self._prices = dict(MOCK_PRICES)
        self._history = {
            symbol: deque(MOCK_HISTORY.get(symbol, (price,)), maxlen=HISTORY_LENGTH)
            for symbol, price in MOCK_PRICES.items()
        }

    def _record(self, symbol: str, price: float) -> None:
        self._prices[symbol] = price
        self._history.setdefault(symbol, deque(maxlen=HISTORY_LENGTH)).append(price)

    def get_cached_price(self, symbol: str) -> Optional[float]:
        return self._prices.get(symbol.upper())

    async def refresh_live_prices(self, symbols: Iterable[str]) -> None:
        if not self.live:
            return
        ids: Dict[str, str] = {}
        for symbol in symbols:
            token = find_token(symbol)
            if token and token.coingecko_id:
                ids[token.coingecko_id] = token.symbol
        if not ids:
            return
        try:
            quotes = await self._coingecko.get_simple_prices(list(ids))
        except httpx.HTTPError as exc:
            logger.warning("Live price refresh failed, keeping cached prices: %s", exc)
            return
        for asset_id, price in quotes.items():
            if asset_id in ids and price > 0:
                self._record(ids[asset_id], price)

    async def get_prices(self, symbols: Iterable[str]) -> Dict[str, float]:
        wanted = [s.upper() for s in symbols]
        await self.refresh_live_prices(wanted)
        return {s: self._prices[s] for s in wanted if s in self._prices}

    async def get_price(self, symbol: str) -> Optional[float]:
        prices = await self.get_prices([symbol])
        return prices.get(symbol.upper())

    def get_trend(self, symbol: str) -> Trend:
        history = self._history.get(symbol.upper())
        if not history or len(history) < 2:
            return "stable"
        latest, previous = history[-1], history[-2]
        if latest > previous * 1.01:
            return "up"
        if latest < previous * 0.99:
            return "down"
        return "stable"

    def update_mock_prices(self) -> None:
        """Random walk of up to +/-2% per token (1/100th of that for stables)."""
        for symbol, price in list(self._prices.items()):
            movement = self._rng.uniform(-0.02, 0.02)
            if symbol in STABLECOINS:
                movement /= 100
            self._record(symbol, price * (1 + movement))

    def estimate_swap_value(self, from_token: str, to_token: str, amount: float) -> Optional[SwapValueEstimate]:
        """Price-table estimate of a swap; None when either price is unknown."""
        from_price = self._prices.get(from_token.upper())
        to_price = self._prices.get(to_token.upper())
        if not from_price or not to_price:
            return None

        usd_value = amount * from_price
        if amount > 10_000:
            impact = 1.2
        elif amount > 1_000 and from_token.upper() not in STABLECOINS:
            impact = 0.5
        else:
            impact = 0.0

        return SwapValueEstimate(
            from_amount=amount,
            to_amount=usd_value / to_price,
            price_impact=impact,
            usd_value=usd_value,
            trend=self.get_trend(to_token),
        )
