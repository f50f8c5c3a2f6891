import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..state import AppState
from .deps import get_state

router = APIRouter(prefix="/api")
_logger = logging.getLogger(__name__)


@router.get("/ai-stats")
async def get_ai_stats(state: AppState = Depends(get_state)):
    """Parser performance: success rate, intent mix and the latest prompts, newest first."""
    try:
        return state.interaction_stats.summary()
    except Exception:
        _logger.exception("Failed to build interaction stats")
        return JSONResponse(status_code=500, content={"error": "Failed to generate AI statistics"})
