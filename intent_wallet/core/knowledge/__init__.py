from .base import KNOWLEDGE_BASE, CoinInfo, format_coin_info, get_coin_info, get_coins_by_category, search_coins

__all__ = [
    "KNOWLEDGE_BASE",
    "CoinInfo",
    "format_coin_info",
    "get_coin_info",
    "get_coins_by_category",
    "search_coins",
]
