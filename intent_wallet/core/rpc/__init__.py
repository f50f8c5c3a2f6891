from .client import (
    RetryPolicy,
    RpcError,
    SolanaRpcClient,
    SolanaTransactionResult,
    SolanaTransactionStatus,
)
from .registry import (
    NoEndpointAvailableError,
    RpcEndpointConfig,
    RpcRegistry,
    default_endpoints,
)

__all__ = [
    "NoEndpointAvailableError",
    "RetryPolicy",
    "RpcEndpointConfig",
    "RpcError",
    "RpcRegistry",
    "SolanaRpcClient",
    "SolanaTransactionResult",
    "SolanaTransactionStatus",
    "default_endpoints",
]
