"""
Swap orchestration on top of Jupiter.

validate -> quote -> build -> sign -> submit -> confirm, with the state
trail recorded on a ``SwapExecution``. Only one swap may be in flight per
session at a time.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Dict, Iterator, Optional, Set, Tuple

from ...providers.jupiter import JupiterSwapError, JupiterSwapProvider
from ...types.intents import SwapIntent
from ...types.wallet import WalletData
from ..pricing.oracle import PriceOracle
from ..rpc.client import RpcError
from ..rpc.registry import RpcRegistry
from ..tokens import (
    SUPPORTED_SYMBOLS,
    UnknownTokenError,
    explorer_url,
    find_token,
    from_base_units,
    parse_amount,
    resolve_token,
    to_base_units,
)
from ..wallet.provider import WalletDataProvider
from ..wallet.signer import WalletAdapter
from ..wallet.store import WalletStore
from .models import SwapEstimate, SwapExecution, SwapResult, SwapState, SwapValidation
from .transactions import TransactionDecodeError, deserialize_transaction

logger = logging.getLogger(__name__)

# SOL kept back from swaps to pay transaction fees.
SOL_FEE_RESERVE = 0.01


class SwapInProgressError(Exception):
    """Another swap is already running for the same session."""

    def __init__(self, key: str):
        self.key = key
        super().__init__("A swap is already in progress for this session. Please wait for it to finish.")


def _format_amount(value: float, places: int) -> str:
    return f"{value:,.{places}f}"


class SwapOrchestrator:
    def __init__(
        self,
        jupiter: JupiterSwapProvider,
        registry: RpcRegistry,
        oracle: Optional[PriceOracle] = None,
        wallet_provider: Optional[WalletDataProvider] = None,
        wallet_store: Optional[WalletStore] = None,
        slippage_bps: int = 50,
        confirm_timeout_s: Optional[float] = None,
    ):
        self.jupiter = jupiter
        self.registry = registry
        self.oracle = oracle
        self.wallet_provider = wallet_provider
        self.wallet_store = wallet_store
        self.slippage_bps = slippage_bps
        self.confirm_timeout_s = confirm_timeout_s
        self._in_flight: Set[str] = set()

    # ------------------------------------------------------------------
    # Validation / estimation
    # ------------------------------------------------------------------

    def validate_swap_request(self, intent: SwapIntent, wallet_data: Optional[WalletData]) -> SwapValidation:
        if not intent.from_token or not intent.to_token or not intent.amount:
            return SwapValidation(False, "Missing required swap parameters (fromToken, toToken, amount)")

        from_token = find_token(intent.from_token)
        to_token = find_token(intent.to_token)
        for raw, token in ((intent.from_token, from_token), (intent.to_token, to_token)):
            if token is None:
                return SwapValidation(
                    False,
                    f"Unsupported token: {raw.upper()}. Supported tokens: {', '.join(SUPPORTED_SYMBOLS)}",
                )

        if from_token.symbol == to_token.symbol:
            return SwapValidation(False, "Cannot swap a token to itself")

        amount = parse_amount(intent.amount)
        if amount is None:
            return SwapValidation(False, "Swap amount must be greater than 0")

        if wallet_data is None:
            return SwapValidation(False, "Wallet data unavailable. Please connect your wallet first.")

        requested = float(amount)
        if from_token.is_native:
            available = max(0.0, wallet_data.sol_balance - SOL_FEE_RESERVE)
            if requested > available:
                return SwapValidation(
                    False,
                    f"Insufficient SOL balance. You have {available:.4f} SOL available for swapping "
                    f"(keeping {SOL_FEE_RESERVE} SOL for fees)",
                )
            return SwapValidation(True)

        holding = wallet_data.token(from_token.symbol)
        if holding is None or holding.balance <= 0:
            return SwapValidation(False, f"You don't have any {from_token.symbol} in your wallet")
        if requested > holding.balance:
            return SwapValidation(
                False,
                f"Insufficient {from_token.symbol} balance. You have {holding.balance} {from_token.symbol}",
            )
        return SwapValidation(True)

    async def get_swap_estimate(self, intent: SwapIntent) -> SwapEstimate:
        """Quote ``intent`` with Jupiter; raises JupiterQuoteError/UnknownTokenError/ValueError."""
        from_token = resolve_token(intent.from_token)
        to_token = resolve_token(intent.to_token)
        amount = parse_amount(intent.amount)
        if amount is None:
            raise ValueError("Swap amount must be greater than 0")

        quote = await self.jupiter.get_swap_quote(
            from_token.mint,
            to_token.mint,
            to_base_units(amount, from_token.decimals),
            slippage_bps=self.slippage_bps,
        )
        usd_value = None
        trend = "stable"
        if self.oracle is not None:
            price = self.oracle.get_cached_price(from_token.symbol)
            usd_value = float(amount) * price if price is not None else None
            trend = self.oracle.get_trend(to_token.symbol)

        return SwapEstimate(
            from_amount=float(amount),
            to_amount=from_base_units(quote.out_amount, to_token.decimals),
            price_impact=quote.price_impact_pct,
            usd_value=usd_value,
            trend=trend,
        )

    async def estimate_with_fallback(self, intent: SwapIntent) -> Optional[SwapEstimate]:
        """Jupiter estimate, falling back to the price table when the quote API is down."""
        try:
            return await self.get_swap_estimate(intent)
        except (UnknownTokenError, ValueError):
            raise
        except Exception as exc:
            logger.warning("Jupiter estimate failed, using oracle: %s", exc)

        if self.oracle is None:
            return None
        amount = parse_amount(intent.amount)
        estimate = self.oracle.estimate_swap_value(intent.from_token, intent.to_token, float(amount or 0))
        if estimate is None:
            return None
        return SwapEstimate(
            from_amount=estimate.from_amount,
            to_amount=estimate.to_amount,
            price_impact=estimate.price_impact,
            usd_value=estimate.usd_value,
            trend=estimate.trend,
            source="oracle",
        )

    async def prepare_swap(
        self, intent: SwapIntent, wallet_data: Optional[WalletData]
    ) -> Tuple[SwapValidation, Optional[SwapEstimate]]:
        """Validate then estimate; no quote is requested for an invalid request."""
        validation = self.validate_swap_request(intent, wallet_data)
        if not validation.valid:
            return validation, None
        return validation, await self.estimate_with_fallback(intent)

    async def process_swap(self, intent: SwapIntent, wallet_data: Optional[WalletData]) -> Dict[str, Any]:
        validation, estimate = await self.prepare_swap(intent, wallet_data)
        if not validation.valid:
            return {"success": False, "message": validation.reason, "intent": intent.to_payload()}
        return {
            "success": True,
            "message": "Swap request is valid and ready for execution",
            "estimate": estimate.to_dict() if estimate else None,
            "intent": intent.to_payload(),
        }

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _single_flight(self, key: str) -> Iterator[None]:
        if key in self._in_flight:
            raise SwapInProgressError(key)
        self._in_flight.add(key)
        try:
            yield
        finally:
            self._in_flight.discard(key)

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def execute_swap(
        self,
        intent: SwapIntent,
        wallet: WalletAdapter,
        session_id: Optional[str] = None,
    ) -> SwapResult:
        """
        Execute ``intent`` with ``wallet``.

        Quote and build failures raise JupiterQuoteError / JupiterSwapError.
        Validation problems, signing or submission errors and failed
        confirmations come back as ``success=False``.
        """
        key = session_id or wallet.address or "anonymous"
        try:
            with self._single_flight(key):
                return await self._execute(intent, wallet, SwapExecution(session_id=session_id))
        except SwapInProgressError as exc:
            return SwapResult(False, str(exc))

    async def _execute(self, intent: SwapIntent, wallet: WalletAdapter, execution: SwapExecution) -> SwapResult:
        if not wallet.connected:
            return SwapResult(False, "Please connect your wallet first", execution=execution)

        from_token = find_token(intent.from_token)
        to_token = find_token(intent.to_token)
        amount = parse_amount(intent.amount)
        if from_token is None or to_token is None or amount is None:
            return SwapResult(False, "Invalid swap request", execution=execution)

        address = wallet.address
        quote = await self.jupiter.get_swap_quote(
            from_token.mint,
            to_token.mint,
            to_base_units(amount, from_token.decimals),
            slippage_bps=self.slippage_bps,
        )
        execution.advance(SwapState.QUOTED)

        if self.wallet_provider is not None:
            wallet_data = await self.wallet_provider.get_wallet_data(address)
            validation = self.validate_swap_request(intent, wallet_data)
            if not validation.valid:
                execution.advance(SwapState.FAILED, validation.reason)
                return SwapResult(False, validation.reason or "Swap validation failed", execution=execution)
        execution.advance(SwapState.VALIDATED)

        built = await self.jupiter.build_swap_transaction(quote, user_public_key=address)
        try:
            transaction = deserialize_transaction(built.swap_transaction)
        except TransactionDecodeError as exc:
            raise JupiterSwapError(f"Failed to prepare swap transaction: {exc}") from exc
        execution.advance(SwapState.BUILT)

        try:
            signed = await wallet.sign_transaction(transaction)
        except Exception as exc:
            logger.info("Swap signing declined or failed: %s", exc)
            execution.advance(SwapState.FAILED, str(exc))
            return SwapResult(False, f"Transaction signing failed: {exc}", execution=execution)
        execution.advance(SwapState.SIGNED)

        try:
            async with self.registry.create_optimal_connection() as rpc:
                signature = await rpc.send_raw_transaction(bytes(signed))
                execution.signature = signature
                execution.advance(SwapState.SUBMITTED)
                confirmation = await rpc.confirm_transaction(signature, timeout_s=self.confirm_timeout_s)
        except RpcError as exc:
            logger.warning("Swap submission failed: %s", exc)
            execution.advance(SwapState.FAILED, str(exc))
            return SwapResult(
                False,
                f"Failed to submit swap transaction: {exc}",
                tx_id=execution.signature,
                explorer_url=explorer_url(execution.signature) if execution.signature else None,
                execution=execution,
            )

        if not confirmation.succeeded:
            execution.advance(SwapState.FAILED, confirmation.error)
            return SwapResult(
                False,
                f"Swap transaction failed: {confirmation.error or confirmation.status.value}",
                tx_id=signature,
                explorer_url=explorer_url(signature),
                execution=execution,
            )

        execution.advance(SwapState.CONFIRMED)
        await self._refresh_wallet(address)

        received = from_base_units(quote.out_amount, to_token.decimals)
        logger.info("Swap confirmed %s", signature)
        return SwapResult(
            True,
            f"Successfully swapped {_format_amount(float(amount), 4)} {from_token.symbol} "
            f"for {_format_amount(received, 2)} {to_token.symbol}",
            tx_id=signature,
            explorer_url=explorer_url(signature),
            execution=execution,
        )

    async def _refresh_wallet(self, address: str) -> None:
        if self.wallet_store is None or self.wallet_provider is None:
            return
        await self.wallet_store.refresh_wallet_data(self.wallet_provider, address)

    def reset(self) -> None:
        self._in_flight.clear()
