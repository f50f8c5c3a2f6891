from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..state import AppState
from .deps import get_state

router = APIRouter()


@router.get("/healthz")
async def health_check(state: AppState = Depends(get_state)) -> Dict[str, Any]:
    """Health check with RPC pool state and provider readiness"""

    providers = {
        "coinmarketcap": state.coinmarketcap,
        "coingecko": state.coingecko,
        "dexscreener": state.dexscreener,
        "jupiter": state.jupiter,
        "twitter": state.twitter,
    }
    provider_status = {name: await provider.ready() for name, provider in providers.items()}
    provider_status["llm"] = state.llm is not None

    endpoints = state.registry.snapshot()
    rate_limited = state.registry.rate_limited_count()

    return {
        "status": "healthy" if rate_limited < len(endpoints) else "degraded",
        "rpc": {
            "endpoints": endpoints,
            "rate_limited": rate_limited,
        },
        "providers": provider_status,
        "available_providers": sum(1 for ready in provider_status.values() if ready),
        "total_providers": len(provider_status),
        "dropped_transactions_total": state.wallet_provider.dropped_transactions_total,
        "wallet": state.wallet.address,
    }
