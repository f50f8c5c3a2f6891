"""
Token contract lookups

DexScreener is queried first; CoinGecko's contract endpoint fills in when no
DEX pair is listed.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ...providers.coingecko import PLATFORM_ETHEREUM, PLATFORM_SOLANA, CoingeckoProvider
from ...providers.dexscreener import DexScreenerProvider

logger = logging.getLogger(__name__)

ETHEREUM_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")
SOLANA_ADDRESS_RE = re.compile(r"\b[1-9A-HJ-NP-Za-km-z]{32,44}\b")

NOT_FOUND_MESSAGE = (
    "I couldn't find any market data for this token contract. It may be too new, "
    "too illiquid, or not a token address at all."
)
LOOKUP_FAILED_MESSAGE = (
    "Sorry, I couldn't fetch information for this token contract. The API might be "
    "rate-limited or the contract might not be valid."
)

_CHAIN_NAMES = {"ethereum": "Ethereum", "solana": "Solana", "bsc": "Binance Smart Chain"}


@dataclass
class TokenLookup:
    found: bool
    message: str
    address: str
    chain: str
    data: Dict[str, Any] = field(default_factory=dict)


def detect_chain(address: str) -> Optional[str]:
    if ETHEREUM_ADDRESS_RE.fullmatch(address):
        return "ethereum"
    if SOLANA_ADDRESS_RE.fullmatch(address):
        return "solana"
    return None


def _price(value: float) -> str:
    if value < 0.01:
        return f"{value:.8f}"
    if value < 1:
        return f"{value:.4f}"
    return f"{value:.2f}"


def _commentary(change: float, volume: float, liquidity: float) -> List[str]:
    if change > 15:
        price_line = f"Strong bullish momentum (+{change:.2f}%), possibly overbought short term"
    elif change > 5:
        price_line = f"Positive momentum with a steady uptrend (+{change:.2f}%)"
    elif change > 0:
        price_line = f"Mild positive performance (+{change:.2f}%)"
    elif change > -5:
        price_line = f"Consolidating with minimal downside ({change:.2f}%)"
    elif change > -15:
        price_line = f"Bearish short-term trend developing ({change:.2f}%)"
    else:
        price_line = f"Significant bearish price action ({change:.2f}%)"

    if liquidity > 500_000:
        liquidity_line = f"High liquidity (${liquidity / 1e6:.2f}M), minimal slippage expected"
    elif liquidity > 50_000:
        liquidity_line = f"Moderate liquidity (${liquidity / 1e3:.2f}K)"
    else:
        liquidity_line = f"Limited liquidity (${liquidity / 1e3:.2f}K), expect slippage on larger orders"

    if volume > 1_000_000:
        volume_line = f"Robust trading volume (${volume / 1e6:.2f}M)"
    elif volume > 100_000:
        volume_line = f"Adequate trading volume (${volume / 1e3:.2f}K)"
    else:
        volume_line = f"Below-average trading volume (${volume / 1e3:.2f}K)"

    return [f"- {price_line}", f"- {liquidity_line}", f"- {volume_line}"]


def format_dex_pair(pair: Dict[str, Any], chain: str) -> str:
    base = pair.get("baseToken") or {}
    price = float(pair.get("priceUsd") or 0)
    change = float((pair.get("priceChange") or {}).get("h24") or 0)
    volume = float((pair.get("volume") or {}).get("h24") or 0)
    liquidity = float((pair.get("liquidity") or {}).get("usd") or 0)

    lines = [
        f"## {base.get('name', 'Unknown')} ({base.get('symbol', '?')})",
        "",
        f"**Chain:** {_CHAIN_NAMES.get(chain, chain)}",
        f"**Contract:** `{base.get('address', '')}`",
        "",
        "**Current Stats:**",
        f"- 💰 Price: ${_price(price)}",
        f"- {'📈' if change >= 0 else '📉'} 24h Change: {'+' if change >= 0 else ''}{change:.2f}%",
        f"- 📊 24h Volume: ${volume / 1e6:.2f}M",
        f"- 💧 Liquidity: ${liquidity / 1e6:.2f}M",
        "",
        "**Trading Info:**",
        f"- DEX: {pair.get('dexId', 'unknown')}",
        f"- Pair Address: `{pair.get('pairAddress', '')}`",
        "",
        "**Market Analysis:**",
    ]
    lines += _commentary(change, volume, liquidity)
    return "\n".join(lines)


def format_coingecko_token(token: Dict[str, Any], chain: str, address: str) -> str:
    lines = [
        f"## {token.get('name', 'Unknown')} ({token.get('symbol', '?')})",
        "",
        f"**Chain:** {_CHAIN_NAMES.get(chain, chain)}",
        f"**Contract:** `{address}`",
        "",
    ]
    if token.get("price_usd") is not None:
        lines.append(f"- 💰 Price: ${_price(float(token['price_usd']))}")
    if token.get("price_change_24h") is not None:
        change = float(token["price_change_24h"])
        lines.append(f"- {'📈' if change >= 0 else '📉'} 24h Change: {'+' if change >= 0 else ''}{change:.2f}%")
    if token.get("market_cap_usd"):
        lines.append(f"- Market Cap: ${float(token['market_cap_usd']) / 1e6:.2f}M")
    if token.get("volume_24h_usd"):
        lines.append(f"- 📊 24h Volume: ${float(token['volume_24h_usd']) / 1e6:.2f}M")
    return "\n".join(lines)


class TokenDataService:
    def __init__(self, dexscreener: DexScreenerProvider, coingecko: Optional[CoingeckoProvider] = None):
        self.dexscreener = dexscreener
        self.coingecko = coingecko

    async def lookup(self, address: str, chain: Optional[str] = None) -> TokenLookup:
        chain = chain or detect_chain(address) or "ethereum"
        failures = 0

        try:
            pairs = await self.dexscreener.get_token_pairs(address, chain)
        except httpx.HTTPError as exc:
            logger.warning("DexScreener lookup failed for %s: %s", address, exc)
            pairs = []
            failures += 1

        if pairs:
            return TokenLookup(True, format_dex_pair(pairs[0], chain), address, chain, data={"pair": pairs[0]})

        if self.coingecko is not None:
            platform = PLATFORM_SOLANA if chain == "solana" else PLATFORM_ETHEREUM
            try:
                token = await self.coingecko.get_token_by_contract(platform, address)
            except httpx.HTTPError as exc:
                logger.warning("Coingecko contract lookup failed for %s: %s", address, exc)
                token = None
                failures += 1
            if token:
                return TokenLookup(True, format_coingecko_token(token, chain, address), address, chain, data=token)

        message = LOOKUP_FAILED_MESSAGE if failures else NOT_FOUND_MESSAGE
        return TokenLookup(False, message, address, chain)
