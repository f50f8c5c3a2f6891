"""Known Solana token table, program ids and unit helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Dict, FrozenSet, Optional, Tuple

LAMPORTS_PER_SOL = 1_000_000_000
NATIVE_SOL_MINT = "So11111111111111111111111111111111111111112"

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
JUPITER_PROGRAM_IDS: FrozenSet[str] = frozenset({
    "JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB",
    "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4",
})

EXPLORER_TX_URL = "https://explorer.solana.com/tx/{signature}"

STABLECOINS: FrozenSet[str] = frozenset({"USDC", "USDT"})


class UnknownTokenError(ValueError):
    """Raised when a symbol is not in the known mint table."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Unknown token: {symbol}")


@dataclass(frozen=True)
class TokenInfo:
    symbol: str
    name: str
    mint: str
    decimals: int
    coingecko_id: Optional[str] = None
    is_native: bool = False
    aliases: FrozenSet[str] = field(default_factory=frozenset)


_RAW_REGISTRY: Dict[str, Dict[str, object]] = {
    "SOL": {
        "name": "Solana",
        "mint": NATIVE_SOL_MINT,
        "decimals": 9,
        "is_native": True,
        "coingecko_id": "solana",
        "aliases": {"sol", "solana", "native"},
    },
    "USDC": {
        "name": "USD Coin",
        "mint": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        "decimals": 6,
        "coingecko_id": "usd-coin",
        "aliases": {"usdc", "usd coin"},
    },
    "USDT": {
        "name": "Tether USD",
        "mint": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
        "decimals": 6,
        "coingecko_id": "tether",
        "aliases": {"usdt", "tether"},
    },
    "BONK": {
        "name": "Bonk",
        "mint": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
        "decimals": 5,
        "coingecko_id": "bonk",
        "aliases": {"bonk"},
    },
    "JUP": {
        "name": "Jupiter",
        "mint": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
        "decimals": 6,
        "coingecko_id": "jupiter-exchange-solana",
        "aliases": {"jup", "jupiter"},
    },
    "RAY": {
        "name": "Raydium",
        "mint": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
        "decimals": 6,
        "coingecko_id": "raydium",
        "aliases": {"ray", "raydium"},
    },
    "WIF": {
        "name": "dogwifhat",
        "mint": "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",
        "decimals": 6,
        "coingecko_id": "dogwifcoin",
        "aliases": {"wif", "dogwifhat"},
    },
    "PYTH": {
        "name": "Pyth Network",
        "mint": "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3",
        "decimals": 6,
        "coingecko_id": "pyth-network",
        "aliases": {"pyth"},
    },
    "JTO": {
        "name": "Jito",
        "mint": "jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL",
        "decimals": 9,
        "coingecko_id": "jito-governance-token",
        "aliases": {"jto", "jito"},
    },
}

TOKEN_REGISTRY: Dict[str, TokenInfo] = {
    symbol: TokenInfo(
        symbol=symbol,
        name=str(entry["name"]),
        mint=str(entry["mint"]),
        decimals=int(entry["decimals"]),  # type: ignore[arg-type]
        coingecko_id=entry.get("coingecko_id"),  # type: ignore[arg-type]
        is_native=bool(entry.get("is_native", False)),
        aliases=frozenset(entry.get("aliases", ())),  # type: ignore[arg-type]
    )
    for symbol, entry in _RAW_REGISTRY.items()
}

_ALIAS_INDEX: Dict[str, str] = {
    alias: symbol
    for symbol, token in TOKEN_REGISTRY.items()
    for alias in (symbol.lower(), *token.aliases)
}
_MINT_INDEX: Dict[str, TokenInfo] = {token.mint: token for token in TOKEN_REGISTRY.values()}

SUPPORTED_SYMBOLS: Tuple[str, ...] = tuple(TOKEN_REGISTRY)


def find_token(symbol: Optional[str]) -> Optional[TokenInfo]:
    if not symbol:
        return None
    key = symbol.strip().lower()
    resolved = _ALIAS_INDEX.get(key)
    return TOKEN_REGISTRY.get(resolved) if resolved else None


def resolve_token(symbol: Optional[str]) -> TokenInfo:
    """Return the registry entry for ``symbol`` or raise UnknownTokenError."""
    token = find_token(symbol)
    if token is None:
        raise UnknownTokenError(symbol or "")
    return token


def token_by_mint(mint: str) -> Optional[TokenInfo]:
    return _MINT_INDEX.get(mint)


def parse_amount(raw: object) -> Optional[Decimal]:
    """Parse a user-supplied amount; None unless positive and finite."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def to_base_units(amount: Decimal, decimals: int) -> int:
    return int((amount * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN))


def from_base_units(raw: int, decimals: int) -> float:
    return float(Decimal(raw) / (Decimal(10) ** decimals))


def explorer_url(signature: str) -> str:
    return EXPLORER_TX_URL.format(signature=signature)


def short_address(address: str) -> str:
    if len(address) <= 8:
        return address
    return f"{address[:4]}...{address[-4:]}"
