"""Process-wide wallet snapshots, keyed by address. Last write wins."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Set

from ...types.wallet import WalletData
from .provider import WalletDataProvider

logger = logging.getLogger(__name__)


class WalletStore:
    def __init__(self, ttl_s: float = 30.0, clock: Callable[[], float] = time.time):
        self.ttl_s = ttl_s
        self._clock = clock
        self._snapshots: Dict[str, WalletData] = {}
        self._loading: Set[str] = set()
        self.active_address: Optional[str] = None

    def set_wallet_address(self, address: Optional[str]) -> None:
        if address != self.active_address:
            logger.debug("Active wallet changed to %s", address)
        self.active_address = address

    def get(self, address: str) -> Optional[WalletData]:
        return self._snapshots.get(address)

    def get_fresh(self, address: str) -> Optional[WalletData]:
        snapshot = self._snapshots.get(address)
        if snapshot is None or self._clock() - snapshot.last_updated > self.ttl_s:
            return None
        return snapshot

    def update_wallet_data(self, data: WalletData) -> WalletData:
        self._snapshots[data.address] = data
        return data

    def clear_wallet_data(self, address: Optional[str] = None) -> None:
        if address is None:
            self._snapshots.clear()
        else:
            self._snapshots.pop(address, None)

    def is_loading(self, address: str) -> bool:
        return address in self._loading

    async def refresh_wallet_data(
        self,
        provider: WalletDataProvider,
        address: Optional[str] = None,
        include_transactions: bool = True,
    ) -> Optional[WalletData]:
        """Fetch and store a new snapshot; on failure keep (and return) the old one."""
        target = address or self.active_address
        if not target:
            return None

        self._loading.add(target)
        try:
            if include_transactions:
                data = await provider.get_complete_wallet_data(target)
            else:
                data = await provider.get_wallet_data(target)
        except Exception as exc:
            logger.warning("Wallet refresh failed for %s: %s", target, exc)
            return self._snapshots.get(target)
        finally:
            self._loading.discard(target)

        return self.update_wallet_data(data)

    def reset(self) -> None:
        self._snapshots.clear()
        self._loading.clear()
        self.active_address = None
