import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..state import AppState
from ..types import SwapExecutionRequest, SwapIntent, WalletData
from .deps import get_state

router = APIRouter(prefix="/api")
_logger = logging.getLogger(__name__)

MISSING_PARAMETERS = "Invalid swap request. Missing required parameters."


def _failure(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@router.post("/swap-execution")
async def post_swap_execution(req: SwapExecutionRequest, state: AppState = Depends(get_state)) -> Dict[str, Any]:
    """
    Validate a swap intent against the client's wallet snapshot and attach an estimate.

    Signing happens in the wallet that owns the keys, so this endpoint never
    submits a transaction. Every failure carries the same ``{success, message}``
    body as a success.
    """
    if not req.intent or not req.wallet_data:
        return _failure(MISSING_PARAMETERS)

    try:
        intent = SwapIntent.model_validate(req.intent)
        wallet_data = WalletData.model_validate(req.wallet_data)
    except ValidationError:
        return _failure(MISSING_PARAMETERS)

    try:
        result = await state.swap_orchestrator.process_swap(intent, wallet_data)
    except Exception as e:
        _logger.exception("Swap processing failed")
        return _failure(f"Error processing swap request: {str(e)}", status_code=500)

    if not result["success"]:
        return JSONResponse(status_code=400, content=result)
    return result
