from abc import ABC, abstractmethod
from typing import Any, Dict, List


class Provider(ABC):
    """Base interface for upstream data providers"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is configured to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class PriceProvider(Provider):
    """Provider for spot token prices"""

    @abstractmethod
    async def get_simple_prices(self, ids: List[str], vs_currency: str = "usd") -> Dict[str, float]:
        """Map of provider asset id -> price"""
        pass
