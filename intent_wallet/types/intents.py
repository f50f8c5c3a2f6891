"""Structured intents produced by the intent parser.

Every intent carries a literal ``action`` discriminant; ``Intent`` is the
closed union over all of them and ``parse_intent`` validates raw payloads
(from the UI or from an LLM reply) into it.
"""

from typing import Annotated, Any, Dict, Optional, Union, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator


class _IntentModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SwapIntent(_IntentModel):
    action: Literal["swap"] = "swap"
    amount: str = Field(description="Amount of the source token, as typed")
    from_token: str = Field(alias="fromToken")
    to_token: str = Field(alias="toToken")
    estimated_value: Optional[str] = Field(default=None, alias="estimatedValue")

    @field_validator("amount", "estimated_value", mode="before")
    @classmethod
    def _stringify_numbers(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class TransferIntent(_IntentModel):
    action: Literal["transfer"] = "transfer"
    amount: float
    token: str
    recipient: str


class BalanceIntent(_IntentModel):
    action: Literal["balance"] = "balance"
    address: Optional[str] = None


class TokenInfoIntent(_IntentModel):
    action: Literal["tokenInfo"] = "tokenInfo"
    token: str


class PriceIntent(_IntentModel):
    action: Literal["price"] = "price"
    token: str
    price: float


class HelpIntent(_IntentModel):
    action: Literal["help"] = "help"


class ChatIntent(_IntentModel):
    action: Literal["chat"] = "chat"
    topic: Optional[str] = None
    sentiment: Optional[str] = None


Intent = Annotated[
    Union[
        SwapIntent,
        TransferIntent,
        BalanceIntent,
        TokenInfoIntent,
        PriceIntent,
        HelpIntent,
        ChatIntent,
    ],
    Field(discriminator="action"),
]

_intent_adapter: TypeAdapter = TypeAdapter(Intent)


def parse_intent(payload: Any) -> Intent:
    """Validate a raw payload into an Intent; raises ValidationError."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True)
    return _intent_adapter.validate_python(payload)


def try_parse_intent(payload: Any) -> Optional[Intent]:
    if not payload:
        return None
    try:
        return parse_intent(payload)
    except ValidationError:
        return None


def intent_kind(intent: Intent) -> str:
    """Exhaustive mapping from intent variant to its routing target."""
    if isinstance(intent, SwapIntent):
        return "swap"
    if isinstance(intent, TransferIntent):
        return "transfer"
    if isinstance(intent, BalanceIntent):
        return "wallet"
    if isinstance(intent, (TokenInfoIntent, PriceIntent)):
        return "market"
    if isinstance(intent, (HelpIntent, ChatIntent)):
        return "conversation"
    raise TypeError(f"Unhandled intent variant: {type(intent).__name__}")
