import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import (
    ai,
    ai_stats,
    coinmarketcap,
    health,
    intent_parser,
    market_trends,
    swap_execution,
    tweets,
    wallet_check,
)
from .config import Settings, settings
from .logging_config import setup_logging
from .middleware.logging_middleware import RequestLoggingMiddleware
from .state import AppState

logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None, state: Optional[AppState] = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(app_settings.log_level)
        logger.info("Starting Intent Wallet API")
        logger.info(
            "Configured keys: coinmarketcap=%s coingecko=%s twitter=%s twitter_oauth=%s llm(%s)=%s",
            app_settings.has_coinmarketcap_key,
            app_settings.has_coingecko_key,
            app_settings.has_twitter_key,
            app_settings.has_twitter_oauth,
            app_settings.llm_provider,
            app_settings.has_llm_key,
        )
        yield
        await app.state.services.aclose()

    app = FastAPI(
        title="Intent Wallet API",
        description="AI-assisted Solana wallet: intent parsing, swaps, transfers and market data",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = state or AppState(app_settings)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(ai.router, tags=["AI"])
    app.include_router(intent_parser.router, tags=["Intent"])
    app.include_router(ai_stats.router, tags=["Intent"])
    app.include_router(swap_execution.router, tags=["Swap"])
    app.include_router(wallet_check.router, tags=["Wallet"])
    app.include_router(coinmarketcap.router, tags=["Market"])
    app.include_router(market_trends.router, tags=["Market"])
    app.include_router(tweets.router, tags=["Social"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "Intent Wallet API",
            "version": "0.1.0",
            "description": "AI-assisted Solana wallet backend",
            "docs": "/docs",
            "health": "/healthz",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "intent_wallet.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
