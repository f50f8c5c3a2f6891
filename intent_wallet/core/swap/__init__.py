from .models import (
    InvalidSwapTransition,
    SwapEstimate,
    SwapExecution,
    SwapResult,
    SwapState,
    SwapValidation,
)
from .orchestrator import SOL_FEE_RESERVE, SwapInProgressError, SwapOrchestrator
from .transactions import (
    TransactionDecodeError,
    deserialize_transaction,
    detect_transaction_format,
)

__all__ = [
    "InvalidSwapTransition",
    "SOL_FEE_RESERVE",
    "SwapEstimate",
    "SwapExecution",
    "SwapInProgressError",
    "SwapOrchestrator",
    "SwapResult",
    "SwapState",
    "SwapValidation",
    "TransactionDecodeError",
    "deserialize_transaction",
    "detect_transaction_format",
]
