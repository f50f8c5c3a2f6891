"""Answers for price, market-trend, performance and top-coin questions from a listings snapshot."""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .trends import calculate_market_sentiment, top_gainers, top_losers

PRICE_PATTERNS = (
    "price", "worth", "value", "cost", "how much is", "what is the price of",
    "trading at", "current price", "rate",
)
MARKET_PATTERNS = (
    "market", "trend", "overall", "crypto market", "how is the market",
    "market doing", "market sentiment", "market overview", "crypto overview",
)
PERFORMANCE_PATTERNS = (
    "how is", "performance", "doing", "performing", "going up", "going down",
    "bullish", "bearish", "moving", "trending",
)
TOP_PATTERNS = (
    "top coin", "best coin", "top crypto", "best performing", "highest",
    "leading", "top performer", "best performer", "rank",
)

_SENTIMENT_EMOJI = {"bullish": "🚀", "bearish": "🧸", "neutral": "⚖️"}


@dataclass
class MarketAnswer:
    kind: str
    message: str
    symbol: Optional[str] = None
    price: Optional[float] = None


@dataclass
class CoinQuote:
    """Flattened view of a CoinMarketCap listing row."""
    id: Any
    name: str
    symbol: str
    price: float
    percent_change_24h: float
    percent_change_7d: Optional[float]
    market_cap: float
    volume_24h: float
    last_updated: Optional[str] = None

    @classmethod
    def from_listing(cls, row: Dict[str, Any]) -> "CoinQuote":
        usd = (row.get("quote") or {}).get("USD") or {}
        return cls(
            id=row.get("id"),
            name=row.get("name") or "",
            symbol=(row.get("symbol") or "").upper(),
            price=float(usd.get("price") or 0.0),
            percent_change_24h=float(usd.get("percent_change_24h") or 0.0),
            percent_change_7d=usd.get("percent_change_7d"),
            market_cap=float(usd.get("market_cap") or 0.0),
            volume_24h=float(usd.get("volume_24h") or 0.0),
            last_updated=usd.get("last_updated") or row.get("last_updated"),
        )

    def to_market(self) -> Dict[str, Any]:
        return {
            "price": self.price,
            "percent_change_24h": self.percent_change_24h,
            "market_cap": self.market_cap,
        }


def format_price(price: float) -> str:
    if price < 0.000001:
        return f"${price:.8f}"
    if price < 0.01:
        return f"${price:.6f}"
    if price < 1:
        return f"${price:.4f}"
    return f"${price:,.2f}"


def format_large_number(value: float) -> str:
    if not value:
        return "N/A"
    if value >= 1e9:
        return f"{value / 1e9:.2f}B"
    if value >= 1e6:
        return f"{value / 1e6:.2f}M"
    if value >= 1e3:
        return f"{value / 1e3:.2f}K"
    return f"{value:.2f}"


def _signed(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value:.2f}%"


def _has_any(query: str, patterns) -> bool:
    return any(p in query for p in patterns)


def looks_like_market_query(query: str) -> bool:
    text = query.lower()
    return any(_has_any(text, p) for p in (PRICE_PATTERNS, MARKET_PATTERNS, PERFORMANCE_PATTERNS, TOP_PATTERNS))


def mentions_coin(query: str, coin: CoinQuote) -> bool:
    if coin.symbol and re.search(rf"\b{re.escape(coin.symbol.lower())}\b", query):
        return True
    if coin.name and coin.name.lower() in query:
        return True
    return False


def _find_coin(query: str, coins: List[CoinQuote]) -> Optional[CoinQuote]:
    return next((c for c in coins if mentions_coin(query, c)), None)


def _footer(coin: CoinQuote) -> str:
    text = "\n\n_Data source: CoinMarketCap_"
    if coin.last_updated:
        try:
            stamp = datetime.fromisoformat(coin.last_updated.replace("Z", "+00:00"))
            text += f"\n_Last updated: {stamp.strftime('%H:%M:%S')} UTC_"
        except ValueError:
            pass
    return text


def price_response(coin: CoinQuote) -> str:
    direction = "up" if coin.percent_change_24h >= 0 else "down"
    emoji = "📈" if coin.percent_change_24h >= 0 else "📉"
    lines = [
        f"{coin.name} ({coin.symbol}) is currently trading at **{format_price(coin.price)}**.",
        f"It's {direction} {abs(coin.percent_change_24h):.2f}% in the last 24 hours {emoji}.",
        "",
    ]
    if coin.market_cap > 0:
        lines.append(f"**Market Cap**: ${format_large_number(coin.market_cap)}")
    if coin.volume_24h > 0:
        lines.append(f"**24h Volume**: ${format_large_number(coin.volume_24h)}")
    if coin.percent_change_7d:
        change = float(coin.percent_change_7d)
        lines.append("")
        lines.append(
            f"{coin.symbol} is {'up' if change >= 0 else 'down'} {abs(change):.2f}% over the last 7 days "
            f"{'📈' if change >= 0 else '📉'}."
        )
    return "\n".join(lines) + _footer(coin)


def market_trend_response(rows: List[Dict[str, Any]]) -> str:
    sentiment = calculate_market_sentiment(rows)
    gainers = "\n".join(
        f"- {c['name']} ({c['symbol']}): {_signed(c['percent_change_24h'])}" for c in top_gainers(rows)
    )
    losers = "\n".join(
        f"- {c['name']} ({c['symbol']}): {c['percent_change_24h']:.2f}%" for c in top_losers(rows)
    )
    return (
        f"The crypto market is looking **{sentiment}** right now {_SENTIMENT_EMOJI[sentiment]}\n\n"
        f"**Top Performers**:\n{gainers}\n\n**Largest Declines**:\n{losers}"
    )


def performance_response(coin: CoinQuote) -> str:
    change = coin.percent_change_24h
    if change >= 5:
        sentiment, emoji = "very strong", "🚀"
    elif change >= 2:
        sentiment, emoji = "strong", "📈"
    elif change >= 0:
        sentiment, emoji = "stable", "⚖️"
    elif change >= -5:
        sentiment, emoji = "weak", "📉"
    else:
        sentiment, emoji = "very weak", "🧸"

    lines = [
        f"{coin.name} ({coin.symbol}) is showing **{sentiment}** performance right now {emoji}",
        "",
        f"**Current price**: {format_price(coin.price)}",
        f"**24h change**: {_signed(change)}",
    ]
    if coin.percent_change_7d:
        lines.append(f"**7d change**: {_signed(float(coin.percent_change_7d))}")
    if coin.market_cap:
        lines.append(f"**Market cap**: ${format_large_number(coin.market_cap)}")
    lines.append(f"**24h trading volume**: ${format_large_number(coin.volume_24h)}")
    return "\n".join(lines) + _footer(coin)


def top_coins_response(coins: List[CoinQuote]) -> str:
    by_cap = sorted((c for c in coins if c.market_cap > 0), key=lambda c: c.market_cap, reverse=True)[:5]
    by_change = sorted(coins, key=lambda c: c.percent_change_24h, reverse=True)[:5]

    lines = ["## Top Cryptocurrencies by Market Cap", ""]
    if by_cap:
        for i, c in enumerate(by_cap, 1):
            lines.append(f"{i}. **{c.name}** ({c.symbol}) - ${format_large_number(c.market_cap)} - {format_price(c.price)}")
    else:
        lines.append("_Market cap data unavailable_")

    lines += ["", "## Top Performing Cryptocurrencies (24h)", ""]
    for i, c in enumerate(by_change, 1):
        lines.append(f"{i}. **{c.name}** ({c.symbol}) - {_signed(c.percent_change_24h)} - {format_price(c.price)}")
    return "\n".join(lines)


def find_quote(rows: Optional[List[Dict[str, Any]]], symbol: str) -> Optional[CoinQuote]:
    for row in rows or []:
        if (row.get("symbol") or "").upper() == symbol.upper():
            return CoinQuote.from_listing(row)
    return None


def generate_market_intelligence(query: str, rows: Optional[List[Dict[str, Any]]]) -> Optional[MarketAnswer]:
    """Answer ``query`` from listing rows, or None when it is not a market question."""
    if not rows:
        return None

    text = query.lower()
    coins = [CoinQuote.from_listing(r) for r in rows]

    if _has_any(text, PRICE_PATTERNS):
        coin = _find_coin(text, coins)
        if coin is not None:
            return MarketAnswer("price", price_response(coin), symbol=coin.symbol, price=coin.price)

    if _has_any(text, MARKET_PATTERNS):
        return MarketAnswer("market", market_trend_response(rows))

    if _has_any(text, PERFORMANCE_PATTERNS):
        coin = _find_coin(text, coins)
        if coin is not None:
            return MarketAnswer("performance", performance_response(coin), symbol=coin.symbol, price=coin.price)

    if _has_any(text, TOP_PATTERNS):
        return MarketAnswer("top", top_coins_response(coins))

    return None
