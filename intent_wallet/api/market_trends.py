import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..providers.coinmarketcap import MarketDataError
from ..state import AppState
from .deps import get_state

router = APIRouter(prefix="/api")
_logger = logging.getLogger(__name__)


@router.get("/market-trends")
async def get_market_trends(state: AppState = Depends(get_state)):
    """Top listings with market analytics; cached, with a stale fallback on upstream errors."""
    try:
        return await state.market_trends.get_market_trends()
    except MarketDataError as e:
        _logger.warning("Market trends unavailable: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch market data", "details": str(e)})
