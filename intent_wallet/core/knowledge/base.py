"""
Cryptocurrency knowledge base

Static reference entries the assistant uses to answer "what is X" questions
without a round-trip to the LLM.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class CoinInfo:
    name: str
    symbol: str
    description: str
    category: str
    use_case: Tuple[str, ...]
    blockchain: Optional[str] = None
    launch_year: Optional[int] = None
    features: Tuple[str, ...] = field(default_factory=tuple)
    market_position: Optional[str] = None
    additional_info: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "description": self.description,
            "category": self.category,
            "blockchain": self.blockchain,
            "launchYear": self.launch_year,
            "useCase": list(self.use_case),
            "features": list(self.features),
            "marketPosition": self.market_position,
            "additionalInfo": self.additional_info,
        }


_ENTRIES = (
    CoinInfo(
        name="Solana",
        symbol="SOL",
        description="Solana is a high-performance blockchain supporting builders around the world creating crypto apps that scale.",
        category="Layer 1 Blockchain",
        launch_year=2020,
        use_case=("Fast transactions", "DeFi applications", "NFT marketplaces", "Web3 dApps", "On-chain gaming"),
        features=(
            "Proof of History consensus mechanism",
            "High throughput (thousands of transactions per second)",
            "Low transaction costs",
            "Smart contract functionality",
        ),
        market_position="Top 10 cryptocurrency by market capitalization",
        additional_info=(
            "Known for its speed and efficiency, Solana has become a popular alternative to Ethereum "
            "for developers seeking lower fees and higher throughput."
        ),
    ),
    CoinInfo(
        name="USD Coin",
        symbol="USDC",
        description="USD Coin is a fully-reserved stablecoin pegged to the US dollar created by Circle.",
        category="Stablecoin",
        launch_year=2018,
        use_case=(
            "Store of value",
            "Trading pairs on exchanges",
            "Cross-border payments",
            "DeFi applications",
            "Yield generation",
        ),
        features=(
            "1:1 backed by US dollars held in reserve",
            "Regular attestations of reserves",
            "Available on multiple blockchains",
            "Regulated financial institution backing",
        ),
        market_position="One of the largest stablecoins by market cap",
        additional_info="USDC is widely trusted in the crypto ecosystem due to its transparency and regulatory compliance efforts.",
    ),
    CoinInfo(
        name="Tether",
        symbol="USDT",
        description="Tether is the largest stablecoin by market cap, designed to be pegged to the value of the US dollar.",
        category="Stablecoin",
        launch_year=2014,
        use_case=(
            "Trading pairs on exchanges",
            "Store of value",
            "Global payments",
            "Hedging against market volatility",
        ),
        features=(
            "Claims to be backed by reserves including cash, commercial paper, and other assets",
            "Available on multiple blockchains",
            "High liquidity across exchanges",
        ),
        market_position="The largest stablecoin by market cap and trading volume",
        additional_info=(
            "Despite controversies regarding its reserves, USDT remains the most widely used stablecoin "
            "in the cryptocurrency ecosystem."
        ),
    ),
    CoinInfo(
        name="Bonk",
        symbol="BONK",
        description="A community-focused Solana meme coin featuring a Shiba Inu dog mascot.",
        category="Meme coin",
        blockchain="Solana",
        launch_year=2022,
        use_case=("Community engagement", "Tipping", "NFT purchases on Solana", "Social token"),
        features=("Large initial airdrop to Solana community", "Deflationary tokenomics", "Community governance"),
        market_position="One of the most popular meme coins on Solana",
        additional_info=(
            "BONK gained popularity as Solana's 'native' meme coin, experiencing significant price "
            "volatility driven by community sentiment."
        ),
    ),
    CoinInfo(
        name="Jupiter",
        symbol="JUP",
        description="Governance token for Jupiter, Solana's leading DEX aggregator and liquidity infrastructure.",
        category="DeFi Token",
        blockchain="Solana",
        launch_year=2024,
        use_case=("Governance of Jupiter protocol", "Fee sharing", "Liquidity provision incentives", "Staking"),
        features=(
            "Broad airdrop to Solana ecosystem users",
            "Tokenomics designed for sustainable growth",
            "Represents ownership in a key DeFi infrastructure",
        ),
        market_position="Leading DEX token in the Solana ecosystem",
        additional_info="JUP's launch in 2024 was one of the most anticipated token launches in the Solana ecosystem.",
    ),
    CoinInfo(
        name="Jito",
        symbol="JTO",
        description="Governance token for Jito, a Solana MEV infrastructure and liquid staking protocol.",
        category="DeFi/Infrastructure Token",
        blockchain="Solana",
        launch_year=2023,
        use_case=(
            "Governance of Jito protocol",
            "Fee sharing from MEV extraction",
            "Liquidity staking participation",
        ),
        features=(
            "MEV (Maximal Extractable Value) capture on Solana",
            "Liquid staking solution",
            "Block building optimization",
        ),
        market_position="Leading MEV and liquid staking solution on Solana",
        additional_info="Jito introduces MEV infrastructure to Solana, which was previously more developed on Ethereum.",
    ),
    CoinInfo(
        name="Raydium",
        symbol="RAY",
        description="Governance token for Raydium, an automated market maker (AMM) built on Solana.",
        category="DeFi Token",
        blockchain="Solana",
        launch_year=2021,
        use_case=(
            "Governance of Raydium protocol",
            "Staking for yield",
            "Liquidity mining incentives",
            "Access to IDO platform (AcceleRaytor)",
        ),
        features=("On-chain liquidity provider to Serum DEX", "Swap functionality", "Yield farming", "IDO launchpad"),
        market_position="Established DEX and AMM on Solana",
        additional_info=(
            "Raydium was one of the first major DeFi protocols on Solana and remains a key "
            "infrastructure component."
        ),
    ),
    CoinInfo(
        name="Pyth Network",
        symbol="PYTH",
        description="Oracle protocol providing real-time market data across multiple blockchains.",
        category="Oracle Token",
        blockchain="Multi-chain (originated on Solana)",
        launch_year=2023,
        use_case=(
            "Governance of Pyth protocol",
            "Staking for data validation",
            "Incentivizing accurate price feeds",
        ),
        features=(
            "High-frequency price updates",
            "Cross-chain oracle service",
            "Confidence intervals for price data",
            "Contributed data from major trading firms",
        ),
        market_position="Leading oracle solution that originated in the Solana ecosystem",
        additional_info=(
            "Pyth differentiates itself with high-frequency price updates and direct data contributions "
            "from major trading firms."
        ),
    ),
    CoinInfo(
        name="Memecoin",
        symbol="MEME",
        description="Multi-chain meme token focused on internet culture and humor.",
        category="Meme coin",
        blockchain="Ethereum and others",
        launch_year=2023,
        use_case=("Community engagement", "Digital culture participation", "Social token"),
        features=("Memetic value", "Community-driven development", "Cultural engagement"),
        market_position="Recognized meme coin across multiple blockchains",
        additional_info=(
            "MEME represents the broader meme coin trend, with price action often driven by social media "
            "sentiment and broader cultural movements."
        ),
    ),
    CoinInfo(
        name="Dogwifhat",
        symbol="WIF",
        description="A Solana-based meme coin featuring a Shiba Inu dog wearing a pink beanie hat.",
        category="Meme coin",
        blockchain="Solana",
        launch_year=2023,
        use_case=("Community engagement", "Meme culture participation", "Social signaling"),
        features=(
            "Distinctive meme imagery (dog with hat)",
            "Strong community following",
            "Native to Solana ecosystem",
        ),
        market_position="One of the most successful meme coins on Solana",
        additional_info=(
            "WIF gained substantial popularity in 2023-2024 as one of the breakout meme coins in the "
            "Solana ecosystem."
        ),
    ),
)

KNOWLEDGE_BASE: Dict[str, CoinInfo] = {entry.symbol: entry for entry in _ENTRIES}
_BY_NAME: Dict[str, CoinInfo] = {entry.name.lower(): entry for entry in _ENTRIES}


def get_coin_info(symbol_or_name: str) -> Optional[CoinInfo]:
    """Look up by ticker (case-insensitive) or by full name."""
    if not symbol_or_name:
        return None
    key = symbol_or_name.strip()
    return KNOWLEDGE_BASE.get(key.upper()) or _BY_NAME.get(key.lower())


def get_coins_by_category(category: str) -> List[CoinInfo]:
    needle = category.lower()
    return [coin for coin in _ENTRIES if needle in coin.category.lower()]


def search_coins(query: str) -> List[CoinInfo]:
    needle = query.lower()
    return [
        coin
        for coin in _ENTRIES
        if needle in coin.name.lower()
        or needle in coin.symbol.lower()
        or needle in coin.description.lower()
        or needle in coin.category.lower()
        or (coin.additional_info and needle in coin.additional_info.lower())
    ]


def format_coin_info(coin: CoinInfo, market: Optional[Dict[str, Any]] = None) -> str:
    """
    Markdown answer for a coin.

    ``market`` is an optional quote with ``price``, ``percent_change_24h`` and
    ``market_cap`` keys.
    """
    lines = [f"## {coin.name} ({coin.symbol})", "", coin.description, "", f"**Category:** {coin.category}"]
    if coin.blockchain:
        lines.append(f"**Blockchain:** {coin.blockchain}")
    if coin.launch_year:
        lines.append(f"**Launched:** {coin.launch_year}")

    lines += ["", "**Primary Use Cases:**"]
    lines += [f"- {use}" for use in coin.use_case]

    if coin.features:
        lines += ["", "**Key Features:**"]
        lines += [f"- {feature}" for feature in coin.features]

    if market and market.get("price") is not None:
        change = float(market.get("percent_change_24h") or 0.0)
        lines += ["", "**Current Market Data:**", f"- Price: ${float(market['price']):.6f}"]
        lines.append(f"- 24h Change: {'+' if change > 0 else ''}{change:.2f}%")
        if market.get("market_cap"):
            lines.append(f"- Market Cap: ${float(market['market_cap']) / 1_000_000:.2f}M")

    if coin.additional_info:
        lines += ["", coin.additional_info]
    return "\n".join(lines)
