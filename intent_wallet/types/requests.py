from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .wallet import TokenBalance, TxSummary


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AIRequest(_CamelModel):
    message: Optional[str] = Field(default=None, description="User chat message")
    session_id: str = Field(default="default", alias="sessionId", description="Conversation session identifier")
    wallet_address: Optional[str] = Field(default=None, alias="walletAddress", description="Connected wallet address")
    is_first_message: bool = Field(default=False, alias="isFirstMessage", description="Return the greeting instead of parsing")


class IntentParserRequest(_CamelModel):
    prompt: Optional[str] = Field(default=None, description="User prompt to interpret")
    wallet_connected: bool = Field(default=False, alias="walletConnected")
    wallet_address: Optional[str] = Field(default=None, alias="walletAddress")
    balance: Optional[float] = Field(default=None, description="SOL balance as seen by the client")
    token_balances: List[TokenBalance] = Field(default_factory=list, alias="tokenBalances")
    recent_transactions: List[TxSummary] = Field(default_factory=list, alias="recentTransactions")
    session_id: str = Field(default="default", alias="sessionId")


class SwapExecutionRequest(_CamelModel):
    intent: Optional[Dict[str, Any]] = Field(default=None, description="Swap intent payload")
    wallet_data: Optional[Dict[str, Any]] = Field(default=None, alias="walletData", description="Client wallet snapshot")


class FetchOptions(_CamelModel):
    tokens: bool = True
    transactions: bool = True


class WalletCheckRequest(_CamelModel):
    wallet_address: Optional[str] = Field(default=None, alias="walletAddress")
    fetch_options: FetchOptions = Field(default_factory=FetchOptions, alias="fetchOptions")
