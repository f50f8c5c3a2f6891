from .intents import (
    BalanceIntent,
    ChatIntent,
    HelpIntent,
    Intent,
    PriceIntent,
    SwapIntent,
    TokenInfoIntent,
    TransferIntent,
    intent_kind,
    parse_intent,
    try_parse_intent,
)
from .requests import AIRequest, FetchOptions, IntentParserRequest, SwapExecutionRequest, WalletCheckRequest
from .responses import AIResponse, IntentParserResponse, IntentWalletData, WalletCheckResponse
from .wallet import TokenBalance, TxSummary, WalletData

__all__ = [
    "AIRequest",
    "AIResponse",
    "BalanceIntent",
    "ChatIntent",
    "FetchOptions",
    "HelpIntent",
    "Intent",
    "IntentParserRequest",
    "IntentParserResponse",
    "IntentWalletData",
    "PriceIntent",
    "SwapExecutionRequest",
    "SwapIntent",
    "TokenBalance",
    "TokenInfoIntent",
    "TransferIntent",
    "TxSummary",
    "WalletCheckRequest",
    "WalletCheckResponse",
    "WalletData",
    "intent_kind",
    "parse_intent",
    "try_parse_intent",
]
