"""
Solana RPC endpoint pool with failure and rate-limit aware scoring.

Lower scores win. Each call made through a connection created by
``create_optimal_connection`` reports back via ``update_endpoint_stats`` so
failing or hot endpoints drift down the ranking and recover over time.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from .client import RetryPolicy, SolanaRpcClient

logger = logging.getLogger(__name__)

# Seconds over which a failure's recency penalty decays to zero.
FAIL_PENALTY_WINDOW_S = 30.0


class NoEndpointAvailableError(Exception):
    """Every endpoint is rate limited and the registry is in strict mode."""


def _wall_clock_ms() -> float:
    return time.time() * 1000


@dataclass
class RpcEndpointConfig:
    url: str
    priority: int
    weight: int
    rate_limit_per_min: Optional[int] = None
    fail_count: int = 0
    last_used: float = 0.0
    last_failed: float = 0.0
    response_time: float = 0.0
    rate_limited_until: Optional[float] = None

    def score(self, now_ms: float) -> float:
        value = float(self.priority - self.weight + 2 * self.fail_count)

        if self.last_failed:
            seconds_since_failure = (now_ms - self.last_failed) / 1000
            value += max(0.0, FAIL_PENALTY_WINDOW_S - seconds_since_failure)

        if self.rate_limit_per_min:
            min_interval_ms = 60_000 / self.rate_limit_per_min
            since_used = now_ms - self.last_used
            if since_used < min_interval_ms:
                value += 50 + 30_000 / (since_used + 1)

        return value

    def is_rate_limited(self, now_ms: float) -> bool:
        return self.rate_limited_until is not None and self.rate_limited_until > now_ms

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_endpoints(primary_url: str) -> List[RpcEndpointConfig]:
    """The stock pool: configured primary first, public fallbacks after."""
    pool = [
        RpcEndpointConfig(url=primary_url, priority=1, weight=10, rate_limit_per_min=50, response_time=500),
        RpcEndpointConfig(url="https://api.mainnet-beta.solana.com", priority=2, weight=3, rate_limit_per_min=100, response_time=800),
        RpcEndpointConfig(url="https://rpc.ankr.com/solana", priority=3, weight=2, rate_limit_per_min=300, response_time=700),
        RpcEndpointConfig(url="https://solana-api.projectserum.com", priority=4, weight=1, rate_limit_per_min=200, response_time=1000),
        RpcEndpointConfig(url="https://ssc-dao.genesysgo.net", priority=5, weight=1, response_time=900),
    ]
    deduped: List[RpcEndpointConfig] = []
    seen = set()
    for endpoint in pool:
        if endpoint.url in seen:
            continue
        seen.add(endpoint.url)
        deduped.append(endpoint)
    return deduped


class RpcRegistry:
    """
    Scored pool of RPC endpoints.

    Args:
        endpoints: Pool definition; copied so ``reset`` can restore it.
        strict: Raise NoEndpointAvailableError instead of returning the
            least-bad endpoint when every endpoint is rate limited.
        clock: Millisecond wall clock, injectable for tests.
        commitment / timeout_s / retry: defaults for created connections.
    """

    def __init__(
        self,
        endpoints: Iterable[RpcEndpointConfig],
        *,
        strict: bool = False,
        clock: Callable[[], float] = _wall_clock_ms,
        commitment: str = "confirmed",
        timeout_s: float = 60.0,
        retry: Optional[RetryPolicy] = None,
    ):
        self._template = [RpcEndpointConfig(**asdict(e)) for e in endpoints]
        if not self._template:
            raise ValueError("RpcRegistry needs at least one endpoint")
        self.strict = strict
        self._clock = clock
        self.commitment = commitment
        self.timeout_s = timeout_s
        self.retry = retry or RetryPolicy()
        self._endpoints: List[RpcEndpointConfig] = []
        self.reset()

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "RpcRegistry":
        return cls(
            default_endpoints(settings.solana_rpc_url),
            strict=settings.rpc_strict_selection,
            timeout_s=settings.rpc_timeout_s,
            retry=RetryPolicy(
                attempts=settings.rpc_max_retries,
                base_interval_s=settings.rpc_retry_base_s,
                multiplier=settings.rpc_retry_multiplier,
            ),
            **kwargs,
        )

    @property
    def endpoints(self) -> List[RpcEndpointConfig]:
        return list(self._endpoints)

    def reset(self) -> None:
        self._endpoints = [RpcEndpointConfig(**asdict(e)) for e in self._template]

    def _find(self, url: str) -> Optional[RpcEndpointConfig]:
        for endpoint in self._endpoints:
            if endpoint.url == url:
                return endpoint
        return None

    def get_best_endpoint(self) -> str:
        now = self._clock()
        available = [e for e in self._endpoints if not e.is_rate_limited(now)]

        if available:
            best = min(available, key=lambda e: e.score(now))
        else:
            if self.strict:
                raise NoEndpointAvailableError("All RPC endpoints are currently rate limited")
            best = min(self._endpoints, key=lambda e: e.rate_limited_until or 0.0)
            logger.warning(
                "All RPC endpoints rate limited; using %s (limited for another %.1fs)",
                best.url,
                ((best.rate_limited_until or now) - now) / 1000,
            )

        best.last_used = now
        return best.url

    def update_endpoint_stats(
        self,
        url: str,
        success: bool,
        response_time_ms: Optional[float] = None,
    ) -> None:
        endpoint = self._find(url)
        if endpoint is None:
            return

        if success:
            endpoint.fail_count = max(0, endpoint.fail_count - 1)
            if response_time_ms is not None:
                endpoint.response_time = endpoint.response_time * 0.7 + response_time_ms * 0.3
        else:
            endpoint.fail_count += 1
            endpoint.last_failed = self._clock()
            logger.debug("RPC endpoint %s failure #%d", url, endpoint.fail_count)

    def mark_rate_limited(self, url: str, retry_after_s: float) -> None:
        endpoint = self._find(url)
        if endpoint is None:
            return
        endpoint.rate_limited_until = self._clock() + retry_after_s * 1000
        logger.info("RPC endpoint %s rate limited for %.0fs", url, retry_after_s)

    def create_optimal_connection(self) -> SolanaRpcClient:
        """A client bound to the current best endpoint that reports its outcomes here."""
        return SolanaRpcClient(
            self.get_best_endpoint(),
            commitment=self.commitment,
            timeout_s=self.timeout_s,
            retry=self.retry,
            registry=self,
        )

    def snapshot(self) -> List[Dict[str, Any]]:
        now = self._clock()
        return [
            {**endpoint.to_dict(), "score": round(endpoint.score(now), 3)}
            for endpoint in self._endpoints
        ]

    def rate_limited_count(self) -> int:
        now = self._clock()
        return sum(1 for endpoint in self._endpoints if endpoint.is_rate_limited(now))
