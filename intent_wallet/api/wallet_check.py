import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ..state import AppState
from ..types import WalletCheckRequest, WalletCheckResponse, WalletData
from .deps import get_state

router = APIRouter(prefix="/api")
_logger = logging.getLogger(__name__)


async def run_diagnostic(state: AppState, address: str) -> Dict[str, Any]:
    """Step-by-step wallet fetch report with per-step timings and errors."""
    steps: Dict[str, Any] = {}
    endpoint = state.registry.get_best_endpoint()

    async def _step(name: str, coro) -> Any:
        started = perf_counter()
        try:
            value = await coro
            steps[name] = {"ok": True, "ms": round((perf_counter() - started) * 1000, 1)}
            return value
        except Exception as e:
            steps[name] = {"ok": False, "ms": round((perf_counter() - started) * 1000, 1), "error": str(e)}
            return None

    sol_balance = await _step("solBalance", state.wallet_provider.get_sol_balance(address))
    tokens = await _step("tokens", state.wallet_provider.get_tokens(address))
    transactions = await _step("transactions", state.wallet_provider.get_recent_transactions(address))

    return {
        "address": address,
        "endpoint": endpoint,
        "endpoints": state.registry.snapshot(),
        "steps": steps,
        "solBalance": sol_balance,
        "tokenCount": len(tokens) if tokens is not None else None,
        "transactionCount": len(transactions) if transactions is not None else None,
        "droppedTransactionsTotal": state.wallet_provider.dropped_transactions_total,
    }


def _summary(address: str, data: WalletData) -> WalletCheckResponse:
    return WalletCheckResponse(
        address=address,
        sol_balance=data.sol_balance,
        token_count=len(data.tokens),
        transaction_count=len(data.recent_transactions),
        tokens=[{"symbol": t.symbol, "balance": t.balance, "usdValue": t.usd_value} for t in data.tokens],
    )


@router.get("/wallet-check")
async def get_wallet_check(
    address: Optional[str] = Query(None, description="Wallet address to inspect"),
    diagnostic: bool = Query(False, description="Return a step-by-step fetch report"),
    state: AppState = Depends(get_state),
):
    if not address:
        raise HTTPException(status_code=400, detail="Missing wallet address parameter")

    try:
        if diagnostic:
            return await run_diagnostic(state, address)
        data = await state.wallet_provider.get_complete_wallet_data(address)
        state.wallet_store.update_wallet_data(data)
        return _summary(address, data)
    except Exception as e:
        _logger.warning("Wallet check failed for %s: %s", address, e)
        return JSONResponse(status_code=500, content={"error": f"Failed to check wallet: {str(e)}"})


@router.post("/wallet-check")
async def post_wallet_check(req: WalletCheckRequest, state: AppState = Depends(get_state)) -> Dict[str, Any]:
    if not req.wallet_address:
        raise HTTPException(status_code=400, detail="Missing wallet address")

    address = req.wallet_address
    options = req.fetch_options
    try:
        sol_balance = await state.wallet_provider.get_sol_balance(address)
        tokens, transactions = await asyncio.gather(
            state.wallet_provider.get_tokens(address) if options.tokens else _nothing(),
            state.wallet_provider.get_recent_transactions(address) if options.transactions else _nothing(),
        )
    except Exception as e:
        _logger.warning("Wallet check failed for %s: %s", address, e)
        return JSONResponse(status_code=500, content={"error": f"Failed to check wallet: {str(e)}"})

    payload: Dict[str, Any] = {"address": address, "solBalance": sol_balance}
    if options.tokens:
        payload["tokens"] = [t.model_dump(by_alias=True) for t in tokens]
    if options.transactions:
        payload["transactions"] = [t.model_dump(by_alias=True) for t in transactions]
    return payload


async def _nothing() -> list:
    return []
