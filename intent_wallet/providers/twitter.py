import logging
from typing import Any, Dict, Optional

import httpx

from ..cache import TTLCache
from .base import Provider

logger = logging.getLogger(__name__)

TWITTER_API_URL = "https://api.twitter.com/2"
TWEETS_CACHE_KEY = "user-tweets"
RATE_LIMITED_CACHE_TTL_S = 15 * 60
DEFAULT_RETRY_AFTER_S = 300


class TwitterError(Exception):
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class TwitterRateLimited(TwitterError):
    def __init__(self, retry_after: int):
        super().__init__(f"Rate limited. Try again after {retry_after} seconds.", status_code=429)
        self.retry_after = retry_after


class TwitterClient(Provider):
    """Twitter API v2 client for a single account's recent tweets"""

    name = "twitter"
    timeout_s = 10

    def __init__(
        self,
        bearer_token: str,
        cache: TTLCache,
        cache_ttl_s: float = 120,
        base_url: str = TWITTER_API_URL,
    ):
        self.bearer_token = bearer_token
        self.cache = cache
        self.cache_ttl_s = cache_ttl_s
        self.base_url = base_url.rstrip("/")
        if not bearer_token:
            logger.warning("Twitter bearer token not configured")

    def _build_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.bearer_token}", "Content-Type": "application/json"}

    async def ready(self) -> bool:
        return bool(self.bearer_token)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Missing bearer token"}
        return {"status": "configured", "cached": self.cache.size() > 0}

    async def _get_user_id(self, client: httpx.AsyncClient, username: str) -> str:
        response = await client.get(f"{self.base_url}/users/by/username/{username}", headers=self._build_headers())
        response.raise_for_status()
        user_id = ((response.json() or {}).get("data") or {}).get("id")
        if not user_id:
            raise TwitterError("User ID not found", status_code=404)
        return user_id

    async def get_user_tweets(self, username: str, use_cache: bool = True) -> Dict[str, Any]:
        """
        Latest five tweets for ``username``.

        An upstream 429 serves the cached payload (and keeps it for 15 more
        minutes) or raises TwitterRateLimited when nothing is cached.
        """
        if use_cache:
            cached = await self.cache.get(TWEETS_CACHE_KEY)
            if cached is not None:
                logger.debug("Using cached Twitter response")
                return cached

        if not self.bearer_token:
            raise TwitterError("Twitter API credentials not configured")

        params = {
            "max_results": 5,
            "tweet.fields": "created_at,public_metrics",
            "expansions": "author_id",
            "user.fields": "profile_image_url,username,name",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                user_id = await self._get_user_id(client, username)
                response = await client.get(
                    f"{self.base_url}/users/{user_id}/tweets",
                    headers=self._build_headers(),
                    params=params,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 429:
                stale = await self.cache.get_stale(TWEETS_CACHE_KEY)
                if stale is not None:
                    logger.info("Twitter rate limited, serving cached tweets")
                    await self.cache.extend(TWEETS_CACHE_KEY, RATE_LIMITED_CACHE_TTL_S)
                    return stale.value
                retry_after = exc.response.headers.get("retry-after", str(DEFAULT_RETRY_AFTER_S))
                try:
                    seconds = int(retry_after)
                except ValueError:
                    seconds = DEFAULT_RETRY_AFTER_S
                raise TwitterRateLimited(seconds) from exc
            raise TwitterError(f"Twitter API error: {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            raise TwitterError(f"Failed to fetch tweets: {exc}") from exc

        await self.cache.set(TWEETS_CACHE_KEY, data, ttl=self.cache_ttl_s)
        return data
