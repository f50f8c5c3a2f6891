#!/usr/bin/env python3
"""Simple CLI for driving the Intent Wallet locally"""

import argparse
import asyncio

from intent_wallet.api.ai import load_wallet_context
from intent_wallet.config import settings
from intent_wallet.logging_config import setup_logging
from intent_wallet.state import AppState
from intent_wallet.types import WalletData, intent_kind

SESSION_ID = "cli"


def print_wallet(data: WalletData):
    """Pretty print a wallet snapshot"""
    print("\n👛 Wallet")
    print("=" * 50)
    print(f"Address: {data.address}")
    print(f"SOL Balance: {data.sol_balance:.4f} SOL")
    print(f"Total Value: ${data.total_value_usd:,.2f} USD")

    if data.tokens:
        print("\nTokens:")
        print("-" * 50)
        for i, token in enumerate(sorted(data.tokens, key=lambda t: t.usd_value or 0, reverse=True), 1):
            value_str = f"${token.usd_value:,.2f}" if token.usd_value else "No price"
            print(f"{i:2d}. {token.balance:>14,.4f} {token.symbol:<8} {value_str:>12}")

    if data.recent_transactions:
        print("\nRecent Transactions:")
        print("-" * 50)
        for tx in data.recent_transactions:
            print(f" - {tx.type:<11} {tx.amount:>10.4f} SOL  {tx.signature[:16]}...")

    if data.dropped_transactions:
        print(f"\n⚠️  {data.dropped_transactions} transaction(s) skipped (failed or unparseable)")


async def cli_wallet(state: AppState, address: str):
    """CLI command to show a wallet snapshot"""
    print(f"🔍 Fetching wallet data for {address}...")
    try:
        data = await state.wallet_provider.get_complete_wallet_data(address)
        print_wallet(data)
    except Exception as e:
        print(f"❌ Error: {e}")


async def cli_market(state: AppState):
    """CLI command to show market analytics"""
    try:
        trends = await state.market_trends.get_market_trends()
    except Exception as e:
        print(f"❌ Error: {e}")
        return

    analytics = trends.get("analytics", {})
    print("\n📈 Market Overview")
    print("=" * 50)
    print(f"Sentiment: {analytics.get('marketSentiment')}")
    print(f"BTC Dominance: {analytics.get('btcDominance', 0):.2f}%")
    print("\nTop Gainers:")
    for coin in analytics.get("topGainers", []):
        print(f" - {coin['name']} ({coin['symbol']}): {coin['percent_change_24h']:+.2f}%")
    print("\nTop Losers:")
    for coin in analytics.get("topLosers", []):
        print(f" - {coin['name']} ({coin['symbol']}): {coin['percent_change_24h']:+.2f}%")


async def _confirm_and_execute(state: AppState, intent) -> None:
    if not state.wallet.connected:
        print("   (read-only: set WALLET_SECRET_KEY to execute transactions)")
        return

    answer = input("   Execute this transaction? [y/N]: ").strip().lower()
    if answer not in ("y", "yes"):
        print("   Cancelled.")
        return

    state.pending.set(intent, auto_execute=True, session_id=SESSION_ID)
    print("   ⏳ Submitting...")
    outcome = await state.run_pending_intent()
    if outcome is not None:
        print(f"\n🤖 Assistant: {outcome.transcript()}")


async def cli_chat(state: AppState):
    """Interactive chat mode"""
    print("🤖 Intent Wallet Chat")
    print("Type 'exit' to quit, 'clear' to reset the conversation")
    print("-" * 40)

    address = state.wallet.address
    wallet = await load_wallet_context(state, address)
    greeting = state.parser.greeting(wallet)
    print(f"\n🤖 Assistant: {greeting.message}")

    while True:
        try:
            user_input = input("\n💬 You: ").strip()

            if user_input.lower() in ['exit', 'quit', 'q']:
                print("Goodbye! 👋")
                break

            elif user_input.lower() == 'clear':
                state.conversations.clear(SESSION_ID)
                print("Chat history cleared.")
                continue

            elif not user_input:
                continue

            wallet = await load_wallet_context(state, address)
            result = await state.parser.parse(user_input, wallet, session_id=SESSION_ID)
            print(f"🤖 Assistant: {result.message}")

            if result.suggestions:
                print(f"   Suggestions: {' | '.join(result.suggestions)}")

            if result.intent is not None and intent_kind(result.intent) in state.executors:
                await _confirm_and_execute(state, result.intent)

        except KeyboardInterrupt:
            print("\nGoodbye! 👋")
            break
        except Exception as e:
            print(f"❌ Error: {e}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Intent Wallet CLI")
    subparsers = parser.add_subparsers(dest="command")

    wallet_parser = subparsers.add_parser("wallet", help="Get wallet snapshot")
    wallet_parser.add_argument("address", help="Solana wallet address")

    subparsers.add_parser("chat", help="Interactive chat mode")
    subparsers.add_parser("market", help="Market overview from CoinMarketCap")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging("WARNING")
    state = AppState(settings)
    try:
        if args.command == "wallet":
            await cli_wallet(state, args.address)
        elif args.command == "chat":
            await cli_chat(state)
        elif args.command == "market":
            await cli_market(state)
        else:
            print(f"❌ Unknown command: {args.command}")
            parser.print_help()
    finally:
        await state.aclose()


if __name__ == "__main__":
    asyncio.run(main())
