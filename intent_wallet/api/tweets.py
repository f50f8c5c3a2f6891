import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..middleware.rate_limit import RateLimitExceeded
from ..providers.twitter import TwitterError, TwitterRateLimited
from ..state import AppState
from .deps import get_state

router = APIRouter(prefix="/api")
_logger = logging.getLogger(__name__)


def _too_many_requests(message: str, retry_after: int) -> JSONResponse:
    return JSONResponse(status_code=429, content={"error": message}, headers={"Retry-After": str(retry_after)})


@router.get("/tweets")
async def get_tweets(state: AppState = Depends(get_state)):
    try:
        state.tweets_limiter.check()
    except RateLimitExceeded as e:
        return _too_many_requests(str(e), e.retry_after_seconds)

    try:
        return await state.twitter.get_user_tweets(state.settings.twitter_username)
    except TwitterRateLimited as e:
        return _too_many_requests(str(e), e.retry_after)
    except TwitterError as e:
        _logger.warning("Tweet feed failed: %s", e)
        return JSONResponse(status_code=e.status_code, content={"error": str(e)})
