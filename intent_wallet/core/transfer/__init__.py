from .orchestrator import (
    NETWORK_FEE_SOL,
    TransferErrorCode,
    TransferOrchestrator,
    TransferResult,
    is_valid_address,
)

__all__ = [
    "NETWORK_FEE_SOL",
    "TransferErrorCode",
    "TransferOrchestrator",
    "TransferResult",
    "is_valid_address",
]
