from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalize values that are commonly pasted with stray whitespace."""

        super().model_post_init(__context)

        object.__setattr__(self, "solana_rpc_url", self.solana_rpc_url.strip() or MAINNET_RPC_URL)
        object.__setattr__(self, "llm_provider", self.llm_provider.strip().lower() or "openai")

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Solana RPC
    solana_rpc_url: str = Field(
        default=MAINNET_RPC_URL,
        description="Primary Solana RPC endpoint (highest priority in the pool)",
        validation_alias=AliasChoices("solana_rpc_url", "SOLANA_RPC_URL", "NEXT_PUBLIC_SOLANA_RPC_URL"),
    )
    rpc_timeout_s: float = Field(default=60.0, description="Per-request and confirmation timeout for RPC calls")
    rpc_max_retries: int = Field(default=5, ge=1, description="Attempts per RPC call on retryable status codes")
    rpc_retry_base_s: float = Field(default=0.5, description="Initial retry interval in seconds")
    rpc_retry_multiplier: float = Field(default=2.0, description="Backoff multiplier between retries")
    rpc_strict_selection: bool = Field(
        default=False,
        description="Raise instead of returning the least-bad endpoint when every endpoint is rate limited",
    )
    wallet_secret_key: str = Field(
        default="",
        description="Base58 or JSON byte-array secret for the CLI signing wallet (empty = read-only)",
    )

    # External API Keys
    coinmarketcap_api_key: str = Field(
        default="",
        description="CoinMarketCap Pro API key",
        validation_alias=AliasChoices("coinmarketcap_api_key", "COINMARKETCAP_API_KEY", "CMC_API_KEY"),
    )
    coingecko_api_key: str = Field(default="", description="Coingecko API key")
    twitter_bearer_token: str = Field(default="", description="Twitter API v2 bearer token")
    twitter_api_key: str = Field(default="", description="Twitter OAuth1 consumer key")
    twitter_api_secret: str = Field(default="", description="Twitter OAuth1 consumer secret")
    twitter_access_token: str = Field(default="", description="Twitter OAuth1 access token")
    twitter_access_secret: str = Field(default="", description="Twitter OAuth1 access secret")
    twitter_username: str = Field(default="inteliq_xyz", description="Account whose tweets are proxied")

    # Provider Toggles
    enable_live_prices: bool = Field(default=False, description="Fetch live prices from Coingecko instead of the mock table")
    jupiter_api_url: str = Field(default="https://quote-api.jup.ag/v6", description="Jupiter quote/swap API base URL")
    default_slippage_bps: int = Field(default=50, ge=0, le=5000, description="Swap slippage tolerance in basis points")

    # Cache Settings
    market_cache_ttl_s: int = Field(default=120, description="Market trends cache TTL in seconds")
    wallet_cache_ttl_s: int = Field(default=30, description="Wallet snapshot freshness window in seconds")
    tweets_min_interval_s: float = Field(default=10.0, description="Minimum interval between tweet feed calls")
    tweets_cache_ttl_s: int = Field(default=120, description="Tweet feed cache TTL in seconds")

    # LLM Provider Settings
    llm_provider: str = Field(default="openai", description="Default LLM provider (openai or anthropic)")
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model: str = Field(default="gpt-4-turbo-preview", description="OpenAI chat completion model")
    openai_base_url: str = Field(default="https://api.openai.com", description="OpenAI-compatible API base URL")
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514", description="Anthropic model")
    max_tokens: int = Field(default=800, description="Maximum tokens for LLM response")
    temperature: float = Field(default=0.2, description="LLM temperature setting")
    ai_timeout_s: float = Field(default=30.0, description="Deadline for an AI-backed intent parse")
    conversation_window: int = Field(default=10, ge=1, description="Messages of history sent with each AI call")
    conversation_max_sessions: int = Field(default=1000, ge=1, description="Conversation transcripts kept in memory")
    interaction_log_size: int = Field(default=1000, ge=1, description="Parsed prompts kept for /api/ai-stats")

    @property
    def has_coinmarketcap_key(self) -> bool:
        return bool(self.coinmarketcap_api_key)

    @property
    def has_coingecko_key(self) -> bool:
        return bool(self.coingecko_api_key)

    @property
    def has_twitter_key(self) -> bool:
        return bool(self.twitter_bearer_token)

    @property
    def has_twitter_oauth(self) -> bool:
        return all(
            (
                self.twitter_api_key,
                self.twitter_api_secret,
                self.twitter_access_token,
                self.twitter_access_secret,
            )
        )

    @property
    def has_anthropic_key(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def has_openai_key(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def has_llm_key(self) -> bool:
        """Check if we have an API key for the configured LLM provider"""
        if self.llm_provider in ["anthropic", "claude"]:
            return self.has_anthropic_key
        return self.has_openai_key


settings = Settings()
