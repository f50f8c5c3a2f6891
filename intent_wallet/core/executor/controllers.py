"""
Auto-execution of confirmed swap and transfer intents.

The chat layer drops a ``PendingIntent`` into the shared ``PendingIntentSlot``;
the controller whose intent kind matches runs it, reports the outcome to the
notification feed and the session transcript, and clears the slot. Each
pending intent is executed and cleared at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ...types.intents import Intent, SwapIntent, TransferIntent, intent_kind
from ..conversation import ConversationStore
from ..swap.orchestrator import SwapOrchestrator
from ..transfer.orchestrator import TransferOrchestrator
from ..wallet.signer import WalletAdapter
from .notifications import NotificationCenter

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class PendingIntent:
    intent: Intent
    auto_execute: bool = True
    session_id: Optional[str] = None


class PendingIntentSlot:
    def __init__(self):
        self._current: Optional[PendingIntent] = None

    @property
    def current(self) -> Optional[PendingIntent]:
        return self._current

    def set(self, intent: Intent, auto_execute: bool = True, session_id: Optional[str] = None) -> PendingIntent:
        self._current = PendingIntent(intent=intent, auto_execute=auto_execute, session_id=session_id)
        return self._current

    def take(self) -> Optional[PendingIntent]:
        pending, self._current = self._current, None
        return pending

    def clear(self, pending: Optional[PendingIntent] = None) -> bool:
        """Clear the slot; with ``pending`` given, only if it is still the current entry."""
        if self._current is None:
            return False
        if pending is not None and self._current is not pending:
            return False
        self._current = None
        return True


@dataclass
class ExecutionOutcome:
    success: bool
    message: str
    tx_id: Optional[str] = None
    explorer_url: Optional[str] = None

    @classmethod
    def from_result(cls, result: Any) -> "ExecutionOutcome":
        return cls(
            success=bool(result.success),
            message=result.message,
            tx_id=getattr(result, "tx_id", None),
            explorer_url=getattr(result, "explorer_url", None),
        )

    def transcript(self) -> str:
        text = f"{'✅' if self.success else '❌'} {self.message}"
        if self.explorer_url:
            text += f"\n\nView on Solana Explorer: {self.explorer_url}"
        return text


class _ExecutorController:
    kind = ""
    label = "Transaction"

    def __init__(
        self,
        slot: PendingIntentSlot,
        notifications: NotificationCenter,
        conversations: Optional[ConversationStore] = None,
    ):
        self.slot = slot
        self.notifications = notifications
        self.conversations = conversations
        self._last_handled: Optional[PendingIntent] = None

    def wants(self, pending: Optional[PendingIntent]) -> bool:
        return (
            pending is not None
            and pending.auto_execute
            and intent_kind(pending.intent) == self.kind
            and pending is not self._last_handled
        )

    async def on_intent_set(self, wallet: Optional[WalletAdapter]) -> Optional[ExecutionOutcome]:
        return await self.run_pending(wallet)

    async def run_pending(self, wallet: Optional[WalletAdapter]) -> Optional[ExecutionOutcome]:
        pending = self.slot.current
        if not self.wants(pending):
            return None
        if wallet is None or not wallet.connected:
            logger.debug("%s pending but no wallet connected", self.label)
            return None

        self._last_handled = pending
        try:
            outcome = ExecutionOutcome.from_result(await self._execute(pending.intent, wallet, pending.session_id))
        except Exception as exc:
            logger.exception("%s execution failed", self.label)
            outcome = ExecutionOutcome(False, f"{self.label} failed: {exc}")
        finally:
            self.slot.clear(pending)

        self._report(outcome, pending.session_id)
        return outcome

    def _report(self, outcome: ExecutionOutcome, session_id: Optional[str]) -> None:
        if outcome.success:
            self.notifications.publish("success", f"{self.label} Successful", outcome.message)
        else:
            self.notifications.publish("error", f"{self.label} Failed", outcome.message)
        if self.conversations is not None and session_id:
            self.conversations.add_message(
                session_id,
                "assistant",
                outcome.transcript(),
                metadata={"txId": outcome.tx_id} if outcome.tx_id else None,
            )

    async def _execute(self, intent: Intent, wallet: WalletAdapter, session_id: Optional[str]) -> Any:
        raise NotImplementedError


class SwapExecutorController(_ExecutorController):
    kind = "swap"
    label = "Swap"

    def __init__(self, orchestrator: SwapOrchestrator, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.orchestrator = orchestrator

    async def _execute(self, intent: SwapIntent, wallet: WalletAdapter, session_id: Optional[str]) -> Any:
        return await self.orchestrator.execute_swap(intent, wallet, session_id=session_id)


class TransferExecutorController(_ExecutorController):
    kind = "transfer"
    label = "Transfer"

    def __init__(self, orchestrator: TransferOrchestrator, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.orchestrator = orchestrator

    async def _execute(self, intent: TransferIntent, wallet: WalletAdapter, session_id: Optional[str]) -> Any:
        return await self.orchestrator.transfer_tokens(wallet, intent.recipient, intent.amount, intent.token)
