from .provider import WalletDataProvider, classify_transaction, summarize_transaction
from .signer import DisconnectedWallet, KeypairWallet, WalletAdapter, WalletNotConnectedError
from .store import WalletStore

__all__ = [
    "DisconnectedWallet",
    "KeypairWallet",
    "WalletAdapter",
    "WalletDataProvider",
    "WalletNotConnectedError",
    "WalletStore",
    "classify_transaction",
    "summarize_transaction",
]
