from .parser import IntentParser, ParseResult, WalletContext
from .stats import Interaction, InteractionStats

__all__ = ["Interaction", "InteractionStats", "IntentParser", "ParseResult", "WalletContext"]
