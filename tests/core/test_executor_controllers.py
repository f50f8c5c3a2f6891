"""
Tests for the pending-intent slot and the swap/transfer executor controllers.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel
from solders.keypair import Keypair

from intent_wallet.config import Settings
from intent_wallet.core.conversation import ConversationStore
from intent_wallet.core.executor import (
    ExecutionOutcome,
    NotificationCenter,
    PendingIntentSlot,
    SwapExecutorController,
    TransferExecutorController,
)
from intent_wallet.core.swap import SwapResult
from intent_wallet.core.transfer import TransferResult
from intent_wallet.core.wallet import DisconnectedWallet, KeypairWallet
from intent_wallet.state import AppState
from intent_wallet.types import (
    BalanceIntent,
    ChatIntent,
    HelpIntent,
    PriceIntent,
    SwapIntent,
    TokenInfoIntent,
    TransferIntent,
    intent_kind,
)


@pytest.fixture
def slot():
    return PendingIntentSlot()


@pytest.fixture
def notifications():
    return NotificationCenter()


@pytest.fixture
def conversations():
    return ConversationStore()


@pytest.fixture
def wallet():
    return KeypairWallet(Keypair())


@pytest.fixture
def swap_orchestrator():
    orchestrator = MagicMock()
    orchestrator.execute_swap = AsyncMock(
        return_value=SwapResult(
            success=True,
            message="Successfully swapped 1.0000 SOL for 110.25 USDC",
            tx_id="SwapSig",
            explorer_url="https://explorer.solana.com/tx/SwapSig",
        )
    )
    return orchestrator


@pytest.fixture
def transfer_orchestrator():
    orchestrator = MagicMock()
    orchestrator.transfer_tokens = AsyncMock(
        return_value=TransferResult(False, "Insufficient USDC balance.", error="INSUFFICIENT_BALANCE")
    )
    return orchestrator


@pytest.fixture
def swap_controller(swap_orchestrator, slot, notifications, conversations):
    return SwapExecutorController(swap_orchestrator, slot, notifications, conversations)


@pytest.fixture
def transfer_controller(transfer_orchestrator, slot, notifications, conversations):
    return TransferExecutorController(transfer_orchestrator, slot, notifications, conversations)


SWAP = SwapIntent(amount="1", from_token="SOL", to_token="USDC")
TRANSFER = TransferIntent(amount=5, token="USDC", recipient="Recipient1111")


# =============================================================================
# Pending slot
# =============================================================================

class TestPendingIntentSlot:

    def test_set_and_take(self, slot):
        pending = slot.set(SWAP, session_id="s1")

        assert slot.current is pending
        assert slot.take() is pending
        assert slot.current is None

    def test_clear_only_matching_entry(self, slot):
        first = slot.set(SWAP)
        second = slot.set(TRANSFER)

        assert not slot.clear(first)
        assert slot.current is second
        assert slot.clear(second)
        assert not slot.clear()


# =============================================================================
# Controllers
# =============================================================================

class TestExecutorControllers:

    @pytest.mark.asyncio
    async def test_swap_runs_once_and_clears(self, swap_controller, swap_orchestrator, slot, wallet, notifications):
        slot.set(SWAP, session_id="s1")

        outcome = await swap_controller.on_intent_set(wallet)

        assert outcome.success
        assert outcome.tx_id == "SwapSig"
        assert slot.current is None
        swap_orchestrator.execute_swap.assert_awaited_once_with(SWAP, wallet, session_id="s1")

        assert notifications.latest().type == "success"
        assert notifications.latest().title == "Swap Successful"

        assert await swap_controller.run_pending(wallet) is None
        swap_orchestrator.execute_swap.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_transcript_is_appended(self, swap_controller, slot, wallet, conversations):
        slot.set(SWAP, session_id="s1")

        await swap_controller.run_pending(wallet)

        [message] = conversations.get_history("s1")
        assert message.role == "assistant"
        assert message.content.startswith("✅ Successfully swapped")
        assert "View on Solana Explorer: https://explorer.solana.com/tx/SwapSig" in message.content
        assert message.metadata == {"txId": "SwapSig"}

    @pytest.mark.asyncio
    async def test_ignores_other_intent_types(self, swap_controller, transfer_controller, slot, wallet):
        slot.set(TRANSFER, session_id="s1")

        assert await swap_controller.run_pending(wallet) is None
        assert slot.current is not None

        outcome = await transfer_controller.run_pending(wallet)
        assert not outcome.success
        assert slot.current is None

    @pytest.mark.asyncio
    async def test_failed_transfer_reports_error(self, transfer_controller, transfer_orchestrator, slot, wallet, notifications):
        slot.set(TRANSFER)

        await transfer_controller.run_pending(wallet)

        transfer_orchestrator.transfer_tokens.assert_awaited_once_with(wallet, "Recipient1111", 5.0, "USDC")
        assert notifications.latest().type == "error"
        assert notifications.latest().title == "Transfer Failed"

    @pytest.mark.asyncio
    async def test_waits_for_connected_wallet(self, swap_controller, swap_orchestrator, slot):
        slot.set(SWAP)

        assert await swap_controller.run_pending(DisconnectedWallet()) is None
        assert await swap_controller.run_pending(None) is None
        assert slot.current is not None
        swap_orchestrator.execute_swap.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_manual_intents_are_not_executed(self, swap_controller, swap_orchestrator, slot, wallet):
        slot.set(SWAP, auto_execute=False)

        assert await swap_controller.run_pending(wallet) is None
        swap_orchestrator.execute_swap.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_executable_intent_left_alone(self, swap_controller, transfer_controller, slot, wallet):
        slot.set(BalanceIntent())

        assert await swap_controller.run_pending(wallet) is None
        assert await transfer_controller.run_pending(wallet) is None
        assert slot.current is not None

    @pytest.mark.asyncio
    async def test_orchestrator_exception_becomes_failed_outcome(
        self, swap_controller, swap_orchestrator, slot, wallet, notifications
    ):
        swap_orchestrator.execute_swap.side_effect = RuntimeError("quote service down")
        slot.set(SWAP)

        outcome = await swap_controller.run_pending(wallet)

        assert not outcome.success
        assert outcome.message == "Swap failed: quote service down"
        assert slot.current is None
        assert notifications.latest().type == "error"


class TestExecutionOutcome:

    def test_transcript_without_explorer_link(self):
        assert ExecutionOutcome(False, "Transfer failed").transcript() == "❌ Transfer failed"

    def test_notification_feed_is_bounded(self):
        center = NotificationCenter(max_items=2)
        for i in range(3):
            center.publish("info", f"n{i}", "msg")

        assert [n.title for n in center.list()] == ["n1", "n2"]
        assert center.latest().to_dict()["type"] == "info"


# =============================================================================
# Intent routing
# =============================================================================

class AirdropIntent(BaseModel):
    action: str = "airdrop"


class TestIntentRouting:

    @pytest.mark.parametrize("intent,kind", [
        (SWAP, "swap"),
        (TRANSFER, "transfer"),
        (BalanceIntent(), "wallet"),
        (TokenInfoIntent(token="SOL"), "market"),
        (PriceIntent(token="SOL", price=110.25), "market"),
        (HelpIntent(), "conversation"),
        (ChatIntent(), "conversation"),
    ])
    def test_every_variant_has_a_kind(self, intent, kind):
        assert intent_kind(intent) == kind

    @pytest.mark.asyncio
    async def test_unknown_variant_is_rejected(self, swap_controller, slot, wallet):
        slot.set(AirdropIntent())

        with pytest.raises(TypeError, match="AirdropIntent"):
            await swap_controller.run_pending(wallet)

    @pytest.mark.asyncio
    async def test_app_state_routes_by_kind(self, transfer_orchestrator, wallet):
        state = AppState(Settings(_env_file=None, llm_provider="openai", openai_api_key=""))
        state.wallet = wallet
        state.transfer_executor.orchestrator = transfer_orchestrator
        state.swap_executor.orchestrator = MagicMock(execute_swap=AsyncMock())

        assert await state.run_pending_intent() is None

        state.pending.set(TRANSFER)
        outcome = await state.run_pending_intent()

        assert not outcome.success
        transfer_orchestrator.transfer_tokens.assert_awaited_once()
        state.swap_executor.orchestrator.execute_swap.assert_not_awaited()

        state.pending.set(BalanceIntent())
        assert await state.run_pending_intent() is None
        assert state.pending.current is not None
