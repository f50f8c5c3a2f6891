"""
Intent parser

Maps one chat message plus wallet context to a reply and at most one intent.
Structural fast paths are tried in order before the LLM is consulted:

    swap -> transfer -> contract address -> coin info -> balance -> help -> market

The LLM call is bounded by ``ai_timeout_s``; on timeout or any provider
error the user gets a deterministic reply built from the wallet snapshot.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...providers.llm.base import LLMMessage, LLMProvider
from ...types.intents import (
    BalanceIntent,
    HelpIntent,
    Intent,
    PriceIntent,
    SwapIntent,
    TokenInfoIntent,
    TransferIntent,
    try_parse_intent,
)
from ...types.wallet import TokenBalance, TxSummary, WalletData
from ..conversation import ConversationStore
from ..knowledge.base import format_coin_info, get_coin_info
from ..market.intelligence import find_quote, generate_market_intelligence, looks_like_market_query
from ..market.token_data import ETHEREUM_ADDRESS_RE, SOLANA_ADDRESS_RE, TokenDataService
from ..market.trends import MarketTrendsService
from ..pricing.oracle import PriceOracle
from ..swap.orchestrator import SOL_FEE_RESERVE
from ..tokens import parse_amount, short_address
from ..transfer.orchestrator import is_valid_address
from . import prompts
from .stats import InteractionStats

logger = logging.getLogger(__name__)

SWAP_RE = re.compile(
    r"\b(?:swap|convert|exchange|trade)\s+(?P<amount>\d+\.?\d*|all)\s+(?:my\s+|of\s+my\s+)?"
    r"(?P<from>[a-z0-9]+)\s+(?:to|for|into)\s+(?P<to>[a-z0-9]+)\b",
    re.IGNORECASE,
)
TRANSFER_RE = re.compile(
    r"\b(?:send|transfer|pay|give)\s+(?P<amount>\d+\.?\d*)\s+(?P<token>[a-z0-9]+)\s+to\s+(?P<recipient>\S+)",
    re.IGNORECASE,
)
COIN_INFO_RE = re.compile(
    r"what (?:is|are) ([A-Za-z0-9]+)|\b(?:tell|explain|info|information) (?:me )?(?:about )?\b([A-Za-z0-9]+)",
    re.IGNORECASE,
)
BALANCE_RE = re.compile(
    r"\b(?:balance|my wallet|my tokens|my portfolio)\b|\bhow much\b.*\bdo i (?:have|own)\b",
    re.IGNORECASE,
)
HELP_RE = re.compile(r"^\s*/?help\b|\bwhat can you (?:do|help)", re.IGNORECASE)


@dataclass
class WalletContext:
    """What the parser knows about the user's wallet for this turn."""

    connected: bool = False
    address: Optional[str] = None
    sol_balance: float = 0.0
    tokens: List[TokenBalance] = field(default_factory=list)
    recent_transactions: List[TxSummary] = field(default_factory=list)

    @classmethod
    def from_wallet_data(cls, data: Optional[WalletData], connected: bool = True) -> "WalletContext":
        if data is None:
            return cls(connected=False)
        return cls(
            connected=connected,
            address=data.address,
            sol_balance=data.sol_balance,
            tokens=list(data.tokens),
            recent_transactions=list(data.recent_transactions),
        )

    @property
    def other_token_count(self) -> int:
        return len([t for t in self.tokens if t.symbol != "SOL"])

    def balance_of(self, symbol: str) -> Optional[float]:
        if symbol.upper() == "SOL":
            return self.sol_balance
        for token in self.tokens:
            if token.symbol.upper() == symbol.upper():
                return token.balance
        return None


@dataclass
class ParseResult:
    message: str
    intent: Optional[Intent] = None
    suggestions: List[str] = field(default_factory=list)
    data: Optional[Dict[str, Any]] = None
    source: str = "fast_path"

    def intent_payload(self) -> Optional[Dict[str, Any]]:
        return self.intent.to_payload() if self.intent is not None else None


def _fmt_amount(value: float) -> str:
    return f"{value:.4f}".rstrip("0").rstrip(".")


class IntentParser:
    def __init__(
        self,
        conversations: ConversationStore,
        oracle: Optional[PriceOracle] = None,
        llm: Optional[LLMProvider] = None,
        market_trends: Optional[MarketTrendsService] = None,
        token_data: Optional[TokenDataService] = None,
        ai_timeout_s: float = 30.0,
        max_tokens: int = 800,
        temperature: float = 0.2,
        stats: Optional[InteractionStats] = None,
    ):
        self.conversations = conversations
        self.oracle = oracle
        self.llm = llm
        self.market_trends = market_trends
        self.token_data = token_data
        self.ai_timeout_s = ai_timeout_s
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.stats = stats

    async def parse(self, message: str, wallet: WalletContext, session_id: str = "default") -> ParseResult:
        started = time.monotonic()
        history = self.conversations.get_llm_messages(session_id)
        self.conversations.add_message(session_id, "user", message)

        result = await self._fast_path(message, wallet)
        if result is None:
            result = await self._ai_parse(message, wallet, history)

        self.conversations.add_message(
            session_id,
            "assistant",
            result.message,
            metadata={"intent": result.intent_payload()} if result.intent is not None else None,
        )
        if self.stats is not None:
            self._record(message, wallet, result, (time.monotonic() - started) * 1000)
        return result

    def _record(self, message: str, wallet: WalletContext, result: ParseResult, latency_ms: float) -> None:
        intent = result.intent
        tokens: List[str] = []
        if isinstance(intent, SwapIntent):
            tokens = [intent.from_token, intent.to_token]
        elif isinstance(intent, (TransferIntent, TokenInfoIntent, PriceIntent)):
            tokens = [intent.token]
        self.stats.record(
            message,
            intent.action if intent is not None else None,
            successful=result.source != "fallback",
            wallet_connected=wallet.connected,
            latency_ms=latency_ms,
            tokens_mentioned=tokens,
        )

    def greeting(self, wallet: WalletContext) -> ParseResult:
        return ParseResult(prompts.greeting_message(wallet.connected), suggestions=list(prompts.GREETING_SUGGESTIONS))

    async def _fast_path(self, message: str, wallet: WalletContext) -> Optional[ParseResult]:
        text = message.strip()

        match = SWAP_RE.search(text)
        if match:
            return self._parse_swap(match.group("amount"), match.group("from"), match.group("to"), wallet)

        match = TRANSFER_RE.search(text)
        if match:
            recipient = match.group("recipient").rstrip(".,;:!?")
            return self._parse_transfer(match.group("amount"), match.group("token"), recipient)

        address = self._find_contract_address(text)
        if address and self.token_data is not None:
            lookup = await self.token_data.lookup(address)
            return ParseResult(
                lookup.message,
                suggestions=[
                    "What's your opinion on this token?",
                    "Show me another token",
                    "Is this token trading on major exchanges?",
                ],
                data={"token": lookup.data, "chain": lookup.chain, "address": lookup.address} if lookup.found else None,
            )

        match = COIN_INFO_RE.search(text)
        if match:
            result = await self._coin_info((match.group(1) or match.group(2)).upper())
            if result is not None:
                return result

        if BALANCE_RE.search(text):
            return self._balance(wallet)

        if HELP_RE.search(text):
            return ParseResult(prompts.HELP_MESSAGE, intent=HelpIntent(), suggestions=list(prompts.HELP_SUGGESTIONS))

        if self.market_trends is not None and looks_like_market_query(text):
            return await self._market(text)

        return None

    # ------------------------------------------------------------------
    # Fast paths
    # ------------------------------------------------------------------

    def _parse_swap(self, raw_amount: str, from_token: str, to_token: str, wallet: WalletContext) -> ParseResult:
        source = from_token.upper()
        target = to_token.upper()

        if raw_amount.lower() == "all":
            held = wallet.balance_of(source)
            if held is None or held <= 0:
                return ParseResult(
                    f"I couldn't find {source} in your wallet. Please check your balance or try a different token.",
                    suggestions=["Check my balance", f"Swap SOL to {target}", "Show token prices"],
                )
            amount_value = max(0.0, held - SOL_FEE_RESERVE) if source == "SOL" else held
            amount = f"{amount_value:.4f}" if source == "SOL" else str(amount_value)
        else:
            amount = raw_amount

        requested = parse_amount(amount)
        if requested is None:
            return ParseResult(
                "The swap amount must be greater than 0.",
                suggestions=[f"Swap 1 {source} to {target}", "Check my balance"],
            )

        insufficient = self._insufficient_sol(source, float(requested), target, wallet)
        if insufficient is not None:
            return insufficient

        estimated_value = None
        estimate_text = ""
        if self.oracle is not None:
            estimate = self.oracle.estimate_swap_value(source, target, float(requested))
            if estimate is not None:
                estimated_value = f"{estimate.to_amount:.6f}"
                estimate_text = f" You'll receive approximately {estimate.to_amount:,.4f} {target}."

        intent = SwapIntent(amount=amount, from_token=source, to_token=target, estimated_value=estimated_value)
        reply = f"I'll help you swap {amount} {source} to {target}.{estimate_text}"
        if wallet.connected:
            reply += " Executing the swap now."
        else:
            reply += " Please connect your wallet to execute it."
        return ParseResult(reply, intent=intent, suggestions=["Check my balance", "Show transaction history"])

    def _insufficient_sol(
        self, source: str, amount: float, target: str, wallet: WalletContext
    ) -> Optional[ParseResult]:
        if source != "SOL" or not wallet.connected or amount <= wallet.sol_balance:
            return None
        return ParseResult(
            f"You don't have enough SOL to swap {_fmt_amount(amount)} SOL. "
            f"Your current balance is {wallet.sol_balance:.4f} SOL.",
            suggestions=[f"Swap {wallet.sol_balance * 0.8:.2f} SOL to {target}", "Check my balance"],
        )

    def _parse_transfer(self, raw_amount: str, token: str, recipient: str) -> ParseResult:
        symbol = token.upper()
        if not is_valid_address(recipient):
            return ParseResult(
                "❌ That doesn't look like a valid Solana address. Please check the recipient and try again.",
                suggestions=["Check my balance", "Help"],
            )
        amount = parse_amount(raw_amount)
        if amount is None:
            return ParseResult("The transfer amount must be greater than 0.", suggestions=["Check my balance"])

        intent = TransferIntent(amount=float(amount), token=symbol, recipient=recipient)
        return ParseResult(
            f"Ready to send {raw_amount} {symbol} to {short_address(recipient)}. Please confirm this transfer.",
            intent=intent,
            suggestions=["Confirm", "Cancel"],
        )

    def _find_contract_address(self, text: str) -> Optional[str]:
        match = ETHEREUM_ADDRESS_RE.search(text)
        if match:
            return match.group(0)
        for candidate in SOLANA_ADDRESS_RE.findall(text):
            if is_valid_address(candidate):
                return candidate
        return None

    async def _coin_info(self, symbol: str) -> Optional[ParseResult]:
        coin = get_coin_info(symbol)
        if coin is None:
            return None

        market = None
        if self.market_trends is not None:
            quote = find_quote(await self.market_trends.get_listings(), coin.symbol)
            market = quote.to_market() if quote is not None else None

        return ParseResult(
            format_coin_info(coin, market),
            intent=TokenInfoIntent(token=coin.symbol),
            suggestions=[f"What's the price of {coin.symbol}?", "What's another coin like this?", "How is the market today?"],
            data={"coin": coin.to_dict()},
        )

    def _balance(self, wallet: WalletContext) -> ParseResult:
        if not wallet.connected or not wallet.address:
            return ParseResult(
                "Please connect your wallet so I can check your balance.",
                intent=BalanceIntent(),
                suggestions=["What can you help with?", "How is the market today?"],
            )

        lines = [f"Your wallet ({short_address(wallet.address)}) has **{wallet.sol_balance:.4f} SOL**."]
        if wallet.tokens:
            lines.append("")
            lines.append("Tokens:")
            for token in wallet.tokens:
                line = f"- {token.balance:,.4f} {token.symbol}"
                if token.usd_value:
                    line += f" (≈${token.usd_value:,.2f})"
                lines.append(line)
        else:
            lines.append("You don't hold any other tokens yet.")

        return ParseResult(
            "\n".join(lines),
            intent=BalanceIntent(address=wallet.address),
            suggestions=["Show transaction history", "Swap 0.1 SOL to USDC"],
        )

    async def _market(self, text: str) -> Optional[ParseResult]:
        answer = generate_market_intelligence(text, await self.market_trends.get_listings())
        if answer is None:
            return None

        intent = None
        if answer.kind == "price" and answer.symbol and answer.price is not None:
            intent = PriceIntent(token=answer.symbol, price=answer.price)

        if answer.kind == "price":
            suggestions = ["How's the market today?"]
        elif answer.kind == "market":
            suggestions = ["What's the price of Bitcoin?", "What are the top coins?"]
        else:
            suggestions = ["What's the price of Ethereum?", "Tell me about Solana"]
        return ParseResult(answer.message, intent=intent, suggestions=suggestions)

    # ------------------------------------------------------------------
    # AI fallback
    # ------------------------------------------------------------------

    def _fallback(self, wallet: WalletContext) -> ParseResult:
        return ParseResult(
            prompts.fallback_message(wallet.sol_balance, wallet.other_token_count),
            suggestions=list(prompts.FALLBACK_SUGGESTIONS),
            source="fallback",
        )

    async def _ai_parse(self, message: str, wallet: WalletContext, history: List[Dict[str, str]]) -> ParseResult:
        if self.llm is None:
            return self._fallback(wallet)

        system_prompt = prompts.build_system_prompt(
            wallet.connected,
            wallet.address or "",
            wallet.sol_balance,
            wallet.tokens,
            wallet.recent_transactions,
        )
        messages = [LLMMessage(role="system", content=system_prompt)]
        messages += [LLMMessage(role=m["role"], content=m["content"]) for m in history]
        messages.append(LLMMessage(role="user", content=message))

        try:
            response = await asyncio.wait_for(
                self.llm.generate_response(
                    messages,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    json_mode=True,
                ),
                timeout=self.ai_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("AI response timed out after %.1fs", self.ai_timeout_s)
            return self._fallback(wallet)
        except Exception as exc:
            logger.warning("AI response failed: %s", exc)
            return self._fallback(wallet)

        return self._interpret_reply(response.content or "", wallet)

    def _interpret_reply(self, content: str, wallet: WalletContext) -> ParseResult:
        try:
            payload = json.loads(content)
        except json.JSONDecodeError:
            payload = None

        if not isinstance(payload, dict):
            if not content.strip():
                return self._fallback(wallet)
            return ParseResult(content, suggestions=list(prompts.FALLBACK_SUGGESTIONS), source="ai")

        reply = str(payload.get("message") or "").strip() or content
        suggestions = [str(s) for s in payload.get("suggestions") or [] if s]
        intent = try_parse_intent(payload.get("intent"))

        if isinstance(intent, SwapIntent):
            requested = parse_amount(intent.amount)
            if requested is None:
                intent = None
            else:
                insufficient = self._insufficient_sol(
                    intent.from_token.upper(), float(requested), intent.to_token.upper(), wallet
                )
                if insufficient is not None:
                    insufficient.source = "ai"
                    return insufficient
        elif isinstance(intent, TransferIntent):
            if not is_valid_address(intent.recipient):
                intent = None
            elif "Confirm" not in suggestions:
                suggestions = ["Confirm", "Cancel"] + suggestions

        return ParseResult(
            reply,
            intent=intent,
            suggestions=suggestions or list(prompts.FALLBACK_SUGGESTIONS),
            source="ai",
        )
