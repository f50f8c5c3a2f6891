import logging
from time import perf_counter
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..core.intent import WalletContext
from ..logging_config import bind_session
from ..state import AppState
from ..types import AIRequest, AIResponse
from .deps import get_state

router = APIRouter(prefix="/api")
_logger = logging.getLogger(__name__)


async def load_wallet_context(state: AppState, address: Optional[str]) -> WalletContext:
    """Wallet context for ``address``, served from the store while fresh."""
    if not address:
        return WalletContext(connected=False)

    state.wallet_store.set_wallet_address(address)
    data = state.wallet_store.get_fresh(address)
    if data is None:
        data = await state.wallet_store.refresh_wallet_data(state.wallet_provider, address)
    if data is None:
        return WalletContext(connected=True, address=address)
    return WalletContext.from_wallet_data(data)


@router.post("/ai")
async def post_ai(req: AIRequest, state: AppState = Depends(get_state)) -> AIResponse:
    started = perf_counter()
    if not req.message and not req.is_first_message:
        raise HTTPException(status_code=400, detail="Message is required")
    bind_session(req.session_id)

    try:
        wallet = await load_wallet_context(state, req.wallet_address)
        if req.is_first_message:
            result = state.parser.greeting(wallet)
        else:
            result = await state.parser.parse(req.message, wallet, session_id=req.session_id)
    except Exception:
        _logger.exception("AI request failed")
        return JSONResponse(status_code=500, content={"error": "Failed to process AI request"})

    return AIResponse(
        response=result.message,
        intent=result.intent_payload(),
        suggestions=result.suggestions,
        data=result.data,
        processing_time=(perf_counter() - started) * 1000,
    )
