"""
Jupiter aggregator client.

Quotes are always fetched fresh for a swap attempt; ``SwapQuote.is_valid``
guards against building a transaction from a quote that has gone stale.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .base import Provider

QUOTE_API_URL = "https://quote-api.jup.ag/v6"

# Quotes older than this are rejected by build_swap_transaction.
QUOTE_TTL_S = 30


@dataclass
class RoutePlanStep:
    """A single hop in the swap route."""
    swap_info: Dict[str, Any]
    percent: int


@dataclass
class SwapQuote:
    """Quote response from Jupiter."""
    input_mint: str
    output_mint: str
    in_amount: int                              # smallest units
    out_amount: int                             # smallest units
    slippage_bps: int
    price_impact_pct: float
    route_plan: List[RoutePlanStep]
    other_amount_threshold: int = 0
    quote_response: Optional[Dict[str, Any]] = None
    fetched_at: float = field(default_factory=time.time)

    @property
    def is_valid(self) -> bool:
        return (time.time() - self.fetched_at) < QUOTE_TTL_S


@dataclass
class JupiterSwapResult:
    """Serialized swap transaction built by Jupiter."""
    swap_transaction: str                       # base64
    last_valid_block_height: int = 0
    priority_fee_lamports: int = 0


class JupiterQuoteError(Exception):
    """Failed to get a quote from Jupiter."""
    pass


class JupiterSwapError(Exception):
    """Failed to build swap transaction."""
    pass


class JupiterSwapProvider(Provider):
    """
    Quote and swap-transaction builder for Solana token swaps.

    Usage:
        provider = JupiterSwapProvider()
        quote = await provider.get_swap_quote(NATIVE_SOL_MINT, USDC_MINT, 1_000_000_000)
        built = await provider.build_swap_transaction(quote, user_public_key="...")
    """

    name = "jupiter"
    timeout_s = 30.0

    def __init__(self, base_url: str = QUOTE_API_URL, timeout_s: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        if timeout_s is not None:
            self.timeout_s = timeout_s

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "base_url": self.base_url}

    async def get_swap_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int = 50,
        only_direct_routes: bool = False,
        as_legacy_transaction: bool = False,
    ) -> SwapQuote:
        """
        Get a swap quote.

        Args:
            input_mint: Input token mint address
            output_mint: Output token mint address
            amount: Amount in smallest units (lamports for SOL)
            slippage_bps: Slippage tolerance in basis points (50 = 0.5%)
        """
        if amount <= 0:
            raise JupiterQuoteError("Quote amount must be positive")

        params: Dict[str, Any] = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": slippage_bps,
            "onlyDirectRoutes": str(only_direct_routes).lower(),
            "asLegacyTransaction": str(as_legacy_transaction).lower(),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(f"{self.base_url}/quote", params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise JupiterQuoteError(
                f"Jupiter quote API error: {e.response.status_code} - {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise JupiterQuoteError(f"Jupiter quote request failed: {e}") from e

        if "error" in data:
            raise JupiterQuoteError(f"Jupiter quote error: {data['error']}")

        try:
            return SwapQuote(
                input_mint=data["inputMint"],
                output_mint=data["outputMint"],
                in_amount=int(data["inAmount"]),
                out_amount=int(data["outAmount"]),
                slippage_bps=int(data.get("slippageBps", slippage_bps)),
                price_impact_pct=float(data.get("priceImpactPct") or 0),
                route_plan=[
                    RoutePlanStep(swap_info=step.get("swapInfo", {}), percent=step.get("percent", 100))
                    for step in data.get("routePlan", [])
                ],
                other_amount_threshold=int(data.get("otherAmountThreshold", data["outAmount"])),
                quote_response=data,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise JupiterQuoteError(f"Malformed Jupiter quote: {e}") from e

    async def build_swap_transaction(
        self,
        quote: SwapQuote,
        user_public_key: str,
        wrap_and_unwrap_sol: bool = True,
    ) -> JupiterSwapResult:
        """Request a serialized swap transaction for ``user_public_key``."""
        if not quote.quote_response:
            raise JupiterSwapError("Quote response required for swap transaction")

        if not quote.is_valid:
            raise JupiterSwapError("Quote has expired, please get a new quote")

        payload = {
            "quoteResponse": quote.quote_response,
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": wrap_and_unwrap_sol,
            "dynamicComputeUnitLimit": True,
            "prioritizationFeeLamports": "auto",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.post(f"{self.base_url}/swap", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise JupiterSwapError(
                f"Jupiter swap API error: {e.response.status_code} - {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise JupiterSwapError(f"Jupiter swap request failed: {e}") from e

        if "error" in data:
            raise JupiterSwapError(f"Jupiter swap error: {data['error']}")

        swap_transaction = data.get("swapTransaction")
        if not swap_transaction:
            raise JupiterSwapError("No swap transaction returned from Jupiter API")

        return JupiterSwapResult(
            swap_transaction=swap_transaction,
            last_valid_block_height=data.get("lastValidBlockHeight", 0),
            priority_fee_lamports=data.get("prioritizationFeeLamports", 0),
        )
