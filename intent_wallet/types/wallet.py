from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

TxType = Literal["swap", "transfer", "transaction"]


class TokenBalance(BaseModel):
    """SPL token holding, snapshotted per fetch."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    mint: str
    symbol: str
    name: str
    balance: float
    decimals: int
    usd_value: Optional[float] = Field(default=None, alias="usdValue")
    logo: Optional[str] = None


class TxSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    signature: str
    timestamp: Optional[int] = Field(default=None, description="Block time in unix seconds")
    type: TxType = "transaction"
    amount: float = 0.0
    fee: float = 0.0
    status: str = "confirmed"
    recipient: Optional[str] = None


class WalletData(BaseModel):
    """Aggregate wallet view assembled by the wallet data provider."""

    model_config = ConfigDict(populate_by_name=True)

    address: str
    sol_balance: float = Field(default=0.0, alias="solBalance")
    tokens: List[TokenBalance] = Field(default_factory=list)
    total_value_usd: float = Field(default=0.0, alias="totalValueUsd")
    recent_transactions: List[TxSummary] = Field(default_factory=list, alias="recentTransactions")
    last_updated: float = Field(default=0.0, alias="lastUpdated", description="Unix seconds")
    dropped_transactions: int = Field(
        default=0,
        alias="droppedTransactions",
        description="Transactions skipped because they failed on-chain or could not be parsed",
    )

    def token(self, symbol: str) -> Optional[TokenBalance]:
        wanted = symbol.upper()
        for token in self.tokens:
            if token.symbol.upper() == wanted:
                return token
        return None

    def balance_of(self, symbol: str) -> float:
        if symbol.upper() == "SOL":
            return self.sol_balance
        token = self.token(symbol)
        return token.balance if token else 0.0

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)
