"""
Application state

One ``AppState`` per process wires every stateful component from
``Settings``. Routers reach it through ``request.app.state.services``;
tests build their own and call ``reset()`` between cases.
"""

import logging
from typing import Any, Optional

from .cache import TTLCache
from .config import Settings
from .core.conversation import ConversationStore
from .core.executor import (
    ExecutionOutcome,
    NotificationCenter,
    PendingIntentSlot,
    SwapExecutorController,
    TransferExecutorController,
)
from .core.intent import IntentParser, InteractionStats
from .core.market import MarketTrendsService, TokenDataService
from .core.pricing import PriceOracle
from .core.rpc import RpcRegistry
from .core.swap import SwapOrchestrator
from .core.transfer import TransferOrchestrator
from .core.wallet import DisconnectedWallet, KeypairWallet, WalletAdapter, WalletDataProvider, WalletStore
from .middleware.rate_limit import MinIntervalLimiter
from .providers.coingecko import CoingeckoProvider
from .providers.coinmarketcap import CoinMarketCapProvider
from .providers.dexscreener import DexScreenerProvider
from .providers.jupiter import JupiterSwapProvider
from .providers.llm import LLMProvider, get_llm_provider
from .providers.twitter import TwitterClient
from .types import intent_kind

logger = logging.getLogger(__name__)


class AppState:
    def __init__(self, settings: Settings, llm: Optional[LLMProvider] = None, **overrides: Any):
        self.settings = settings

        self.registry = overrides.get("registry") or RpcRegistry.from_settings(settings)

        self.coingecko = CoingeckoProvider(api_key=settings.coingecko_api_key)
        self.coinmarketcap = overrides.get("coinmarketcap") or CoinMarketCapProvider(
            api_key=settings.coinmarketcap_api_key
        )
        self.dexscreener = DexScreenerProvider()
        self.jupiter = overrides.get("jupiter") or JupiterSwapProvider(base_url=settings.jupiter_api_url)

        self.oracle = PriceOracle(coingecko=self.coingecko, live=settings.enable_live_prices)
        self.wallet_provider = overrides.get("wallet_provider") or WalletDataProvider(self.registry, self.oracle)
        self.wallet_store = WalletStore(ttl_s=settings.wallet_cache_ttl_s)
        self.conversations = ConversationStore(
            window=settings.conversation_window, max_sessions=settings.conversation_max_sessions
        )
        self.notifications = NotificationCenter()

        self.market_cache = TTLCache(default_ttl=settings.market_cache_ttl_s, max_size=16)
        self.tweets_cache = TTLCache(default_ttl=settings.tweets_cache_ttl_s, max_size=4)
        self.market_trends = MarketTrendsService(
            self.coinmarketcap, self.market_cache, ttl_s=settings.market_cache_ttl_s
        )
        self.token_data = TokenDataService(self.dexscreener, self.coingecko)
        self.twitter = overrides.get("twitter") or TwitterClient(
            settings.twitter_bearer_token, self.tweets_cache, cache_ttl_s=settings.tweets_cache_ttl_s
        )
        self.tweets_limiter = MinIntervalLimiter(settings.tweets_min_interval_s)

        self.llm = llm if llm is not None else get_llm_provider(settings, timeout=settings.ai_timeout_s)
        self.interaction_stats = InteractionStats(max_records=settings.interaction_log_size)
        self.parser = IntentParser(
            self.conversations,
            oracle=self.oracle,
            llm=self.llm,
            market_trends=self.market_trends,
            token_data=self.token_data,
            ai_timeout_s=settings.ai_timeout_s,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            stats=self.interaction_stats,
        )

        self.swap_orchestrator = SwapOrchestrator(
            self.jupiter,
            self.registry,
            oracle=self.oracle,
            wallet_provider=self.wallet_provider,
            wallet_store=self.wallet_store,
            slippage_bps=settings.default_slippage_bps,
            confirm_timeout_s=settings.rpc_timeout_s,
        )
        self.transfer_orchestrator = TransferOrchestrator(
            self.registry,
            wallet_provider=self.wallet_provider,
            wallet_store=self.wallet_store,
            confirm_timeout_s=settings.rpc_timeout_s,
        )

        self.pending = PendingIntentSlot()
        self.swap_executor = SwapExecutorController(
            self.swap_orchestrator, self.pending, self.notifications, self.conversations
        )
        self.transfer_executor = TransferExecutorController(
            self.transfer_orchestrator, self.pending, self.notifications, self.conversations
        )
        self.executors = {"swap": self.swap_executor, "transfer": self.transfer_executor}

        self.wallet: WalletAdapter = self._load_wallet(settings)

    @staticmethod
    def _load_wallet(settings: Settings) -> WalletAdapter:
        if not settings.wallet_secret_key:
            return DisconnectedWallet()
        wallet = KeypairWallet.from_secret(settings.wallet_secret_key)
        logger.info("Signing wallet loaded: %s", wallet.address)
        return wallet

    async def run_pending_intent(self) -> Optional[ExecutionOutcome]:
        """Hand whatever sits in the pending slot to the executor for its kind."""
        pending = self.pending.current
        if pending is None:
            return None
        executor = self.executors.get(intent_kind(pending.intent))
        if executor is None:
            return None
        return await executor.on_intent_set(self.wallet)

    def reset(self) -> None:
        self.registry.reset()
        self.oracle.reset()
        self.wallet_store.reset()
        self.conversations.reset()
        self.interaction_stats.reset()
        self.notifications.reset()
        self.market_cache.reset()
        self.tweets_cache.reset()
        self.tweets_limiter.reset()
        self.swap_orchestrator.reset()
        self.pending.clear()

    async def aclose(self) -> None:
        if self.llm is not None:
            await self.llm.aclose()
