from .oracle import MOCK_PRICES, PriceOracle, SwapValueEstimate

__all__ = ["MOCK_PRICES", "PriceOracle", "SwapValueEstimate"]
