from .intelligence import MarketAnswer, generate_market_intelligence
from .token_data import TokenDataService, TokenLookup, detect_chain
from .trends import MarketTrendsService, compute_market_analytics

__all__ = [
    "MarketAnswer",
    "MarketTrendsService",
    "TokenDataService",
    "TokenLookup",
    "compute_market_analytics",
    "detect_chain",
    "generate_market_intelligence",
]
