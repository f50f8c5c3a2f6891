import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..providers.coinmarketcap import MarketDataError, MarketDataNotConfigured
from ..state import AppState
from .deps import get_state

router = APIRouter(prefix="/api/coinmarketcap")
_logger = logging.getLogger(__name__)


def _error_response(e: MarketDataError) -> JSONResponse:
    if isinstance(e, MarketDataNotConfigured):
        return JSONResponse(status_code=500, content={"error": str(e)})
    return JSONResponse(status_code=e.status_code or 500, content={"error": str(e)})


@router.get("/latest")
async def get_latest(
    limit: int = Query(10, ge=1, le=5000, description="Number of listings"),
    convert: str = Query("USD", description="Quote currency"),
    state: AppState = Depends(get_state),
):
    """Raw CoinMarketCap ``listings/latest`` payload."""
    try:
        return await state.coinmarketcap.get_latest_listings(limit=limit, convert=convert)
    except MarketDataError as e:
        return _error_response(e)


@router.get("/info")
async def get_info(
    symbol: Optional[str] = Query(None, description="Comma-separated coin symbols"),
    state: AppState = Depends(get_state),
):
    if not symbol:
        return JSONResponse(status_code=400, content={"error": "Symbol parameter is required"})
    try:
        return await state.coinmarketcap.get_info(symbol)
    except MarketDataError as e:
        return _error_response(e)
