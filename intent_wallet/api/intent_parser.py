import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..core.intent import WalletContext
from ..logging_config import bind_session
from ..state import AppState
from ..types import IntentParserRequest, IntentParserResponse, IntentWalletData
from .deps import get_state

router = APIRouter(prefix="/api")
_logger = logging.getLogger(__name__)


@router.post("/intent-parser")
async def post_intent_parser(
    req: IntentParserRequest, state: AppState = Depends(get_state)
) -> IntentParserResponse:
    """Parse a prompt against the wallet snapshot the client already holds."""
    if not req.prompt or not req.prompt.strip():
        raise HTTPException(status_code=400, detail="Invalid request. Prompt is required.")
    bind_session(req.session_id)

    wallet = WalletContext(
        connected=req.wallet_connected,
        address=req.wallet_address,
        sol_balance=req.balance or 0.0,
        tokens=list(req.token_balances),
        recent_transactions=list(req.recent_transactions),
    )

    try:
        result = await state.parser.parse(req.prompt, wallet, session_id=req.session_id)
    except Exception as e:
        _logger.exception("Intent parsing failed")
        return JSONResponse(status_code=500, content={"error": f"Failed to parse intent: {str(e)}"})

    return IntentParserResponse(
        message=result.message,
        intent=result.intent_payload(),
        suggestions=result.suggestions,
        wallet_data=IntentWalletData(
            address=wallet.address,
            sol_balance=wallet.sol_balance,
            token_balances=wallet.tokens,
            recent_transactions=wallet.recent_transactions,
        ),
    )
