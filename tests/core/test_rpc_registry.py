"""
Tests for the RPC endpoint pool and the JSON-RPC client's feedback into it.
"""

import json
import logging

import httpx
import pytest

from intent_wallet.core.rpc import (
    NoEndpointAvailableError,
    RetryPolicy,
    RpcEndpointConfig,
    RpcError,
    RpcRegistry,
    SolanaRpcClient,
    default_endpoints,
)

PRIMARY = "https://primary.example"
MAINNET = "https://api.mainnet-beta.solana.com"
ANKR = "https://rpc.ankr.com/solana"


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return RpcRegistry(default_endpoints(PRIMARY), clock=clock)


# =============================================================================
# Endpoint selection
# =============================================================================

class TestEndpointSelection:

    def test_primary_wins_on_fresh_pool(self, registry):
        assert registry.get_best_endpoint() == PRIMARY

    def test_selection_stamps_last_used(self, registry, clock):
        registry.get_best_endpoint()
        primary = registry.endpoints[0]
        assert primary.last_used == clock.now

    def test_hot_endpoint_is_penalised_within_its_rate_window(self, registry, clock):
        assert registry.get_best_endpoint() == PRIMARY
        # 50/min means one call per 1200 ms for the primary
        assert registry.get_best_endpoint() == MAINNET

        clock.advance(1500)
        assert registry.get_best_endpoint() == PRIMARY

    def test_recent_failure_pushes_endpoint_down_then_recovers(self, registry, clock):
        registry.update_endpoint_stats(PRIMARY, success=False)
        assert registry.get_best_endpoint() == MAINNET

        clock.advance(31_000)
        assert registry.get_best_endpoint() == PRIMARY

    def test_rate_limited_endpoint_is_skipped(self, registry, clock):
        registry.mark_rate_limited(PRIMARY, retry_after_s=10)
        assert registry.get_best_endpoint() == MAINNET

        clock.advance(11_000)
        assert registry.get_best_endpoint() == PRIMARY

    def test_all_rate_limited_returns_least_bad_with_warning(self, registry, caplog):
        for offset, endpoint in enumerate(registry.endpoints):
            registry.mark_rate_limited(endpoint.url, retry_after_s=60 - offset)
        last = registry.endpoints[-1].url

        with caplog.at_level(logging.WARNING):
            assert registry.get_best_endpoint() == last
        assert "rate limited" in caplog.text

    def test_all_rate_limited_raises_in_strict_mode(self, clock):
        registry = RpcRegistry(default_endpoints(PRIMARY), clock=clock, strict=True)
        for endpoint in registry.endpoints:
            registry.mark_rate_limited(endpoint.url, retry_after_s=30)

        with pytest.raises(NoEndpointAvailableError):
            registry.get_best_endpoint()

    def test_rate_limited_count(self, registry, clock):
        registry.mark_rate_limited(PRIMARY, retry_after_s=5)
        registry.mark_rate_limited(ANKR, retry_after_s=5)
        assert registry.rate_limited_count() == 2

        clock.advance(6_000)
        assert registry.rate_limited_count() == 0


# =============================================================================
# Stats bookkeeping
# =============================================================================

class TestEndpointStats:

    def test_success_folds_response_time_and_decrements_failures(self, registry):
        registry.update_endpoint_stats(PRIMARY, success=False)
        registry.update_endpoint_stats(PRIMARY, success=True, response_time_ms=1000)

        primary = registry.endpoints[0]
        assert primary.fail_count == 0
        assert primary.response_time == pytest.approx(650.0)

    def test_fail_count_never_goes_negative(self, registry):
        registry.update_endpoint_stats(PRIMARY, success=True)
        assert registry.endpoints[0].fail_count == 0

    def test_unknown_url_is_ignored(self, registry):
        registry.update_endpoint_stats("https://unknown.example", success=False)
        assert all(e.fail_count == 0 for e in registry.endpoints)

    def test_reset_restores_pristine_pool(self, registry):
        registry.update_endpoint_stats(PRIMARY, success=False)
        registry.mark_rate_limited(MAINNET, retry_after_s=60)

        registry.reset()

        assert all(e.fail_count == 0 and e.rate_limited_until is None for e in registry.endpoints)

    def test_snapshot_includes_score(self, registry):
        snapshot = registry.snapshot()
        assert snapshot[0]["url"] == PRIMARY
        assert snapshot[0]["score"] == -9

    def test_default_pool_dedupes_primary(self):
        pool = default_endpoints(MAINNET)
        assert [e.url for e in pool].count(MAINNET) == 1
        assert pool[0].priority == 1

    def test_empty_pool_is_rejected(self):
        with pytest.raises(ValueError):
            RpcRegistry([])


class TestEndpointScore:
    """Lower is better; every penalty only ever pushes the score up."""

    NOW = 10_000_000.0

    def test_more_failures_never_score_better(self):
        scores = [
            RpcEndpointConfig(url=PRIMARY, priority=1, weight=10, fail_count=n).score(self.NOW)
            for n in range(6)
        ]
        assert scores == sorted(scores)
        assert scores[-1] - scores[0] == 10

    @pytest.mark.parametrize("last_failed", [0.0, NOW - 5_000, NOW - 60_000])
    @pytest.mark.parametrize("last_used", [0.0, NOW - 100, NOW - 2_000])
    @pytest.mark.parametrize("elapsed_ms", [0, 500, 30_000])
    def test_higher_fail_count_never_scores_lower(self, last_failed, last_used, elapsed_ms):
        now = self.NOW + elapsed_ms
        for fails in range(5):
            fewer = RpcEndpointConfig(
                url=PRIMARY, priority=1, weight=10, rate_limit_per_min=50,
                fail_count=fails, last_failed=last_failed, last_used=last_used,
            )
            more = RpcEndpointConfig(
                url=PRIMARY, priority=1, weight=10, rate_limit_per_min=50,
                fail_count=fails + 1, last_failed=last_failed, last_used=last_used,
            )
            assert more.score(now) >= fewer.score(now)

    def test_failure_penalty_decays_then_vanishes(self):
        endpoint = RpcEndpointConfig(url=PRIMARY, priority=1, weight=10, last_failed=self.NOW)
        scores = [endpoint.score(self.NOW + s * 1000) for s in (0, 5, 15, 29, 30, 120)]

        assert scores == sorted(scores, reverse=True)
        assert scores[0] == pytest.approx(-9 + 30)
        assert scores[-2] == scores[-1] == -9

    def test_rate_window_penalty_shrinks_with_idle_time(self):
        endpoint = RpcEndpointConfig(url=PRIMARY, priority=1, weight=10, rate_limit_per_min=50, last_used=self.NOW)
        # 50/min leaves a 1200 ms window.
        scores = [endpoint.score(self.NOW + ms) for ms in (0, 10, 500, 1199, 1200, 5000)]

        assert scores == sorted(scores, reverse=True)
        assert scores[0] == pytest.approx(-9 + 50 + 30_000)
        assert scores[-2] == scores[-1] == -9

    def test_penalties_add_up(self):
        base = RpcEndpointConfig(url=PRIMARY, priority=1, weight=10, rate_limit_per_min=50)
        failed = RpcEndpointConfig(
            url=PRIMARY, priority=1, weight=10, rate_limit_per_min=50,
            fail_count=1, last_failed=self.NOW, last_used=self.NOW,
        )
        assert failed.score(self.NOW) > base.score(self.NOW)


# =============================================================================
# JSON-RPC client
# =============================================================================

def _client(handler, registry=None, url=PRIMARY, attempts=3):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SolanaRpcClient(
        url,
        retry=RetryPolicy(attempts=attempts, base_interval_s=0),
        registry=registry,
        http_client=http,
    )


class TestSolanaRpcClient:

    @pytest.mark.asyncio
    async def test_get_balance_reads_value(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["method"] == "getBalance"
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": {"value": 2_500_000_000}})

        rpc = _client(handler)
        assert await rpc.get_balance("wallet") == 2_500_000_000

    @pytest.mark.asyncio
    async def test_retries_429_and_marks_endpoint_rate_limited(self, registry):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429, headers={"retry-after": "20"})
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": 1}})

        rpc = _client(handler, registry=registry)
        assert await rpc.get_balance("wallet") == 1
        assert len(calls) == 2

        primary = registry.endpoints[0]
        assert primary.rate_limited_until is not None
        # one failure then one success
        assert primary.fail_count == 0

    @pytest.mark.asyncio
    async def test_gives_up_after_retry_budget(self, registry):
        rpc = _client(lambda request: httpx.Response(503), registry=registry, attempts=2)

        with pytest.raises(RpcError) as exc_info:
            await rpc.get_balance("wallet")

        assert exc_info.value.status_code == 503
        assert registry.endpoints[0].fail_count == 2

    @pytest.mark.asyncio
    async def test_json_rpc_error_is_raised_with_code(self):
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param"}})

        rpc = _client(handler)
        with pytest.raises(RpcError) as exc_info:
            await rpc.get_balance("bad")

        assert exc_info.value.code == -32602
        assert "Invalid param" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_confirm_transaction_reports_failure(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "result": {"value": [{"slot": 5, "err": {"InstructionError": [0, "Custom"]}}]}},
            )

        rpc = _client(handler)
        result = await rpc.confirm_transaction("sig", timeout_s=1)

        assert not result.succeeded
        assert result.slot == 5
