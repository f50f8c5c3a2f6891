"""
Wallet signing abstraction.

Orchestrators never touch key material; they hand unsigned transactions to a
``WalletAdapter``. ``KeypairWallet`` is the local implementation used by the
CLI and tests; browser wallets implement the same surface on the client.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Optional, Union

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction, VersionedTransaction

AnyTransaction = Union[Transaction, VersionedTransaction]


class WalletNotConnectedError(Exception):
    """Signing was requested from a wallet without a public key."""


class WalletAdapter(ABC):
    """Anything that can expose a public key and sign transactions."""

    @property
    @abstractmethod
    def public_key(self) -> Optional[Pubkey]:
        pass

    @property
    def connected(self) -> bool:
        return self.public_key is not None

    @property
    def address(self) -> Optional[str]:
        key = self.public_key
        return str(key) if key is not None else None

    @abstractmethod
    async def sign_transaction(self, transaction: AnyTransaction) -> AnyTransaction:
        """Return ``transaction`` signed by this wallet."""
        pass


class KeypairWallet(WalletAdapter):
    """Signs with an in-process solders Keypair."""

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @classmethod
    def from_secret(cls, secret: str) -> "KeypairWallet":
        """Load from a base58 secret key or a JSON byte array (solana-keygen format)."""
        secret = secret.strip()
        if secret.startswith("["):
            return cls(Keypair.from_bytes(bytes(json.loads(secret))))
        return cls(Keypair.from_base58_string(secret))

    @property
    def public_key(self) -> Pubkey:
        return self._keypair.pubkey()

    async def sign_transaction(self, transaction: AnyTransaction) -> AnyTransaction:
        if isinstance(transaction, VersionedTransaction):
            return VersionedTransaction(transaction.message, [self._keypair])
        transaction.sign([self._keypair], transaction.message.recent_blockhash)
        return transaction


class DisconnectedWallet(WalletAdapter):
    """Placeholder used when no wallet is attached to a session."""

    @property
    def public_key(self) -> None:
        return None

    async def sign_transaction(self, transaction: AnyTransaction) -> AnyTransaction:
        raise WalletNotConnectedError("Wallet not connected")
