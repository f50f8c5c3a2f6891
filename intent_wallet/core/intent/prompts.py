"""System prompt and fixed copy used by the intent parser."""

from datetime import datetime, timezone
from typing import List

from ...types.wallet import TokenBalance, TxSummary
from ..tokens import SUPPORTED_SYMBOLS, short_address

FALLBACK_SUGGESTIONS = ["Check my balance", "Show transaction history", "What can you help with?"]
GREETING_SUGGESTIONS = ["Check my balance", "What's happening in the market?", "Tell me about Solana"]

HELP_MESSAGE = (
    "Here's what I can help you with:\n\n"
    "- **Swap tokens**: \"Swap 1 SOL to USDC\" or \"Swap all my BONK for SOL\"\n"
    "- **Send tokens**: \"Send 0.1 SOL to <address>\"\n"
    "- **Check your wallet**: \"What's my balance?\"\n"
    "- **Learn about coins**: \"What is JUP?\" or \"Tell me about Pyth\"\n"
    "- **Market data**: \"What's the price of SOL?\" or \"How is the market today?\"\n"
    "- **Token lookup**: paste a token contract address\n\n"
    f"Supported tokens: {', '.join(SUPPORTED_SYMBOLS)}"
)
HELP_SUGGESTIONS = ["Swap 0.1 SOL to USDC", "Check my balance", "How is the market today?"]

RESPONSE_FORMAT = """Reply with a JSON object of the form:
{"message": "<reply shown to the user>",
 "intent": null | {"action": "swap", "amount": "<number>", "fromToken": "<SYMBOL>", "toToken": "<SYMBOL>"}
          | {"action": "transfer", "amount": <number>, "token": "<SYMBOL>", "recipient": "<base58 address>"}
          | {"action": "balance"} | {"action": "tokenInfo", "token": "<SYMBOL>"} | {"action": "help"},
 "suggestions": ["<short follow-up>", ...]}
Only set an intent when the user clearly asks for that action. For "swap all my X", use the full
balance of X (for SOL keep 0.01 SOL back for fees)."""


def _token_line(token: TokenBalance) -> str:
    line = f"- {token.symbol}: {token.balance}"
    if token.usd_value:
        line += f" (≈${token.usd_value:.2f})"
    return line


def _tx_line(index: int, tx: TxSummary) -> str:
    if tx.timestamp:
        date = datetime.fromtimestamp(tx.timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
    else:
        date = "unknown date"
    if tx.type == "swap":
        detail = "Swap"
    elif tx.type == "transfer":
        detail = f"Transfer of {tx.amount} SOL" if tx.amount else "Transfer"
    else:
        detail = "Transaction"
    return f"{index}. {date}: {detail} ({tx.status})"


def build_system_prompt(
    connected: bool,
    address: str,
    sol_balance: float,
    tokens: List[TokenBalance],
    transactions: List[TxSummary],
) -> str:
    if connected and address:
        status = f"Connected ({short_address(address)}) with {sol_balance:.4f} SOL balance"
    else:
        status = "Not connected"

    parts = [
        "You are an AI assistant specialized in crypto and Web3, with a focus on the Solana blockchain. "
        "Help users understand cryptocurrency concepts and execute blockchain transactions like token swaps "
        "and transfers.",
        f"Current wallet status: {status}",
        "When a user wants to swap tokens, check they have sufficient balance, show the estimated amount "
        "they will receive, and use a default 0.5% slippage tolerance. If the wallet is not connected, "
        "tell them to connect first. If they don't have enough balance, tell them the exact amount they "
        "have available.",
        f"Supported tokens: {', '.join(SUPPORTED_SYMBOLS)}",
    ]

    if tokens:
        parts.append("User's token balances:\n" + "\n".join(_token_line(t) for t in tokens))
    if transactions:
        parts.append(
            "Recent transactions:\n" + "\n".join(_tx_line(i, tx) for i, tx in enumerate(transactions[:5], 1))
        )

    parts.append(RESPONSE_FORMAT)
    return "\n\n".join(parts)


def fallback_message(sol_balance: float, other_tokens: int) -> str:
    return (
        "I'm having trouble processing your request right now. In the meantime, I can see your wallet has "
        f"{sol_balance:.4f} SOL and {other_tokens} other tokens."
    )


def greeting_message(connected: bool) -> str:
    if connected:
        return (
            "Welcome back! Your wallet is connected. I can check balances, swap or send tokens, "
            "and keep you posted on the market. What would you like to do?"
        )
    return (
        "Hi! I'm your Solana wallet assistant. Connect your wallet to swap and send tokens, "
        "or ask me about any coin or the market."
    )
