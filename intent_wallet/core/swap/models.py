"""Typed models used by the swap subsystem."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SwapState(str, Enum):
    """Lifecycle of one swap attempt."""

    QUOTED = "quoted"
    VALIDATED = "validated"
    BUILT = "built"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class InvalidSwapTransition(Exception):
    pass


@dataclass
class SwapExecution:
    """State trail of a single execute_swap call."""

    session_id: Optional[str] = None
    state: Optional[SwapState] = None
    history: List[Tuple[SwapState, float]] = field(default_factory=list)
    error: Optional[str] = None
    signature: Optional[str] = None

    TRANSITIONS = {
        None: {SwapState.QUOTED, SwapState.FAILED},
        SwapState.QUOTED: {SwapState.VALIDATED, SwapState.FAILED},
        SwapState.VALIDATED: {SwapState.BUILT, SwapState.FAILED},
        SwapState.BUILT: {SwapState.SIGNED, SwapState.FAILED},
        SwapState.SIGNED: {SwapState.SUBMITTED, SwapState.FAILED},
        SwapState.SUBMITTED: {SwapState.CONFIRMED, SwapState.FAILED},
        SwapState.CONFIRMED: set(),
        SwapState.FAILED: set(),
    }

    def advance(self, state: SwapState, error: Optional[str] = None) -> None:
        allowed = self.TRANSITIONS[self.state]
        if state not in allowed:
            raise InvalidSwapTransition(f"Cannot move swap from {self.state} to {state}")
        self.state = state
        self.history.append((state, time.time()))
        if error:
            self.error = error

    @property
    def is_terminal(self) -> bool:
        return self.state in (SwapState.CONFIRMED, SwapState.FAILED)


@dataclass
class SwapValidation:
    valid: bool
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"valid": self.valid}
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class SwapEstimate:
    from_amount: float
    to_amount: float
    price_impact: float
    usd_value: Optional[float] = None
    trend: str = "stable"
    source: str = "jupiter"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromAmount": self.from_amount,
            "toAmount": self.to_amount,
            "priceImpact": self.price_impact,
            "usdValue": self.usd_value,
            "trend": self.trend,
            "source": self.source,
        }


@dataclass
class SwapResult:
    """Normalized outcome surfaced to the chat layer."""

    success: bool
    message: str
    tx_id: Optional[str] = None
    explorer_url: Optional[str] = None
    execution: Optional[SwapExecution] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.tx_id:
            data["txId"] = self.tx_id
        if self.explorer_url:
            data["explorerUrl"] = self.explorer_url
        return data
