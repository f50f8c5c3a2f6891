from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .wallet import TokenBalance, TxSummary


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AIResponse(_CamelModel):
    response: str = Field(description="Assistant reply text")
    intent: Optional[Dict[str, Any]] = Field(default=None, description="Structured intent, if one was recognised")
    suggestions: List[str] = Field(default_factory=list, description="Follow-up prompts for the UI")
    data: Optional[Dict[str, Any]] = Field(default=None, description="Extra data such as market quotes")
    processing_time: float = Field(alias="processingTime", description="Milliseconds spent handling the request")


class IntentWalletData(_CamelModel):
    address: Optional[str] = None
    sol_balance: float = Field(default=0.0, alias="solBalance")
    token_balances: List[TokenBalance] = Field(default_factory=list, alias="tokenBalances")
    recent_transactions: List[TxSummary] = Field(default_factory=list, alias="recentTransactions")


class IntentParserResponse(_CamelModel):
    message: str
    intent: Optional[Dict[str, Any]] = None
    suggestions: List[str] = Field(default_factory=list)
    wallet_data: IntentWalletData = Field(alias="walletData")


class WalletCheckResponse(_CamelModel):
    address: str
    sol_balance: float = Field(alias="solBalance")
    token_count: int = Field(alias="tokenCount")
    transaction_count: int = Field(alias="transactionCount")
    tokens: List[Dict[str, Any]] = Field(default_factory=list, description="symbol, balance and usdValue per holding")
