from .controllers import (
    ExecutionOutcome,
    PendingIntent,
    PendingIntentSlot,
    SwapExecutorController,
    TransferExecutorController,
)
from .notifications import Notification, NotificationCenter

__all__ = [
    "ExecutionOutcome",
    "Notification",
    "NotificationCenter",
    "PendingIntent",
    "PendingIntentSlot",
    "SwapExecutorController",
    "TransferExecutorController",
]
