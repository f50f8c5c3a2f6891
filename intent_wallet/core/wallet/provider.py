"""
Wallet data provider.

Reads SOL balance, SPL token holdings and recent activity for an address
through the RPC pool. Stateless apart from a running diagnostic counter of
transactions it had to skip.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from ...types.wallet import TokenBalance, TxSummary, WalletData
from ..pricing.oracle import PriceOracle
from ..rpc.registry import RpcRegistry
from ..tokens import (
    JUPITER_PROGRAM_IDS,
    LAMPORTS_PER_SOL,
    NATIVE_SOL_MINT,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    short_address,
    token_by_mint,
)

logger = logging.getLogger(__name__)

SWAP_LOG_MARKERS = ("Instruction: Route", "Instruction: SharedAccountsRoute", "Instruction: Swap")
TRANSFER_LOG_MARKERS = ("Instruction: Transfer", "Instruction: TransferChecked")


def _account_key(entry: Any) -> str:
    if isinstance(entry, dict):
        return str(entry.get("pubkey", ""))
    return str(entry)


def classify_transaction(log_messages: List[str]) -> str:
    """swap | transfer | transaction, judged from program log lines."""
    for line in log_messages:
        if any(f"Program {program_id} invoke" in line for program_id in JUPITER_PROGRAM_IDS):
            return "swap"
        if any(marker in line for marker in SWAP_LOG_MARKERS):
            return "swap"
    for line in log_messages:
        if any(marker in line for marker in TRANSFER_LOG_MARKERS):
            return "transfer"
        if f"Program {SYSTEM_PROGRAM_ID} invoke" in line or f"Program {TOKEN_PROGRAM_ID} invoke" in line:
            return "transfer"
    return "transaction"


def _find_recipient(message: Dict[str, Any], owner: str) -> Optional[str]:
    for instruction in message.get("instructions") or []:
        parsed = instruction.get("parsed")
        if not isinstance(parsed, dict):
            continue
        if parsed.get("type") not in ("transfer", "transferChecked"):
            continue
        destination = (parsed.get("info") or {}).get("destination")
        if destination and destination != owner:
            return destination
    return None


def summarize_transaction(owner: str, signature: str, tx: Dict[str, Any]) -> Optional[TxSummary]:
    """Build a TxSummary, or None when the transaction failed on-chain."""
    meta = tx.get("meta") or {}
    if meta.get("err") is not None:
        return None

    message = (tx.get("transaction") or {}).get("message") or {}
    keys = [_account_key(k) for k in message.get("accountKeys") or []]
    pre = meta.get("preBalances") or []
    post = meta.get("postBalances") or []

    delta_lamports = 0
    if owner in keys:
        index = keys.index(owner)
        if index < len(pre) and index < len(post):
            delta_lamports = post[index] - pre[index]

    return TxSummary(
        signature=signature,
        timestamp=tx.get("blockTime"),
        type=classify_transaction(meta.get("logMessages") or []),
        amount=abs(delta_lamports) / LAMPORTS_PER_SOL,
        fee=(meta.get("fee") or 0) / LAMPORTS_PER_SOL,
        status="confirmed",
        recipient=_find_recipient(message, owner),
    )


class WalletDataProvider:
    """Fetches on-chain wallet state through the RPC endpoint pool."""

    def __init__(self, registry: RpcRegistry, price_oracle: Optional[PriceOracle] = None):
        self._registry = registry
        self._oracle = price_oracle
        self.dropped_transactions_total = 0

    async def get_sol_balance(self, address: str) -> float:
        async with self._registry.create_optimal_connection() as rpc:
            lamports = await rpc.get_balance(address)
        return lamports / LAMPORTS_PER_SOL

    async def get_tokens(self, address: str) -> List[TokenBalance]:
        async with self._registry.create_optimal_connection() as rpc:
            accounts = await rpc.get_parsed_token_accounts_by_owner(address)

        holdings: List[Tuple[str, float, int]] = []
        for account in accounts:
            info = ((((account.get("account") or {}).get("data") or {}).get("parsed") or {}).get("info")) or {}
            mint = info.get("mint")
            amount = info.get("tokenAmount") or {}
            ui_amount = amount.get("uiAmount")
            if not mint or not ui_amount or mint == NATIVE_SOL_MINT:
                continue
            holdings.append((mint, float(ui_amount), int(amount.get("decimals", 0))))

        prices: Dict[str, float] = {}
        if self._oracle is not None:
            symbols = [t.symbol for t in (token_by_mint(m) for m, _, _ in holdings) if t]
            prices = await self._oracle.get_prices(symbols)

        tokens: List[TokenBalance] = []
        for mint, balance, decimals in holdings:
            known = token_by_mint(mint)
            symbol = known.symbol if known else short_address(mint)
            price = prices.get(symbol)
            tokens.append(
                TokenBalance(
                    mint=mint,
                    symbol=symbol,
                    name=known.name if known else "Unknown Token",
                    balance=balance,
                    decimals=decimals,
                    usd_value=balance * price if price is not None else None,
                )
            )
        return tokens

    async def _fetch_summary(self, rpc: Any, address: str, signature: str) -> Optional[TxSummary]:
        try:
            tx = await rpc.get_parsed_transaction(signature)
            if not tx:
                return None
            return summarize_transaction(address, signature, tx)
        except Exception as exc:
            logger.warning("Skipping transaction %s: %s", signature, exc)
            return None

    async def _recent_transactions(self, address: str, limit: int) -> Tuple[List[TxSummary], int]:
        async with self._registry.create_optimal_connection() as rpc:
            signatures = await rpc.get_signatures_for_address(address, limit=limit)
            wanted = [s["signature"] for s in signatures if s.get("signature")]
            results = await asyncio.gather(*(self._fetch_summary(rpc, address, sig) for sig in wanted))

        summaries = [r for r in results if r is not None]
        dropped = len(wanted) - len(summaries)
        if dropped:
            self.dropped_transactions_total += dropped
            logger.info("Dropped %d of %d transactions for %s", dropped, len(wanted), short_address(address))
        summaries.sort(key=lambda s: s.timestamp or 0, reverse=True)
        return summaries, dropped

    async def get_recent_transactions(self, address: str, limit: int = 10) -> List[TxSummary]:
        summaries, _ = await self._recent_transactions(address, limit)
        return summaries

    async def _total_value(self, sol_balance: float, tokens: List[TokenBalance]) -> float:
        sol_price = 0.0
        if self._oracle is not None:
            sol_price = await self._oracle.get_price("SOL") or 0.0
        return sol_balance * sol_price + sum(t.usd_value or 0.0 for t in tokens)

    async def get_wallet_data(self, address: str) -> WalletData:
        sol_balance, tokens = await asyncio.gather(
            self.get_sol_balance(address),
            self.get_tokens(address),
        )
        return WalletData(
            address=address,
            sol_balance=sol_balance,
            tokens=tokens,
            total_value_usd=await self._total_value(sol_balance, tokens),
            last_updated=time.time(),
        )

    async def get_complete_wallet_data(self, address: str, limit: int = 10) -> WalletData:
        sol_balance, tokens, (transactions, dropped) = await asyncio.gather(
            self.get_sol_balance(address),
            self.get_tokens(address),
            self._recent_transactions(address, limit),
        )
        return WalletData(
            address=address,
            sol_balance=sol_balance,
            tokens=tokens,
            total_value_usd=await self._total_value(sol_balance, tokens),
            recent_transactions=transactions,
            last_updated=time.time(),
            dropped_transactions=dropped,
        )
