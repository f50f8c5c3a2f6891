"""
Tests for wallet snapshots: on-chain reads, transaction summaries and the shared store.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from intent_wallet.core.pricing import PriceOracle
from intent_wallet.core.rpc import RpcError
from intent_wallet.core.tokens import JUPITER_PROGRAM_IDS, NATIVE_SOL_MINT, SYSTEM_PROGRAM_ID, TOKEN_REGISTRY
from intent_wallet.core.wallet import WalletDataProvider, WalletStore, classify_transaction, summarize_transaction
from intent_wallet.types import WalletData

OWNER = "Owner1111111111111111111111111111111111111"
FRIEND = "Friend111111111111111111111111111111111111"
USDC_MINT = TOKEN_REGISTRY["USDC"].mint
UNKNOWN_MINT = "Mystery1111111111111111111111111111111111111"


def _token_account(mint, ui_amount, decimals=6):
    return {"account": {"data": {"parsed": {"info": {
        "mint": mint,
        "tokenAmount": {"uiAmount": ui_amount, "decimals": decimals},
    }}}}}


def _transfer_tx(block_time, err=None):
    return {
        "blockTime": block_time,
        "meta": {
            "err": err,
            "fee": 5000,
            "preBalances": [2_000_000_000, 0],
            "postBalances": [1_499_995_000, 500_000_000],
            "logMessages": [f"Program {SYSTEM_PROGRAM_ID} invoke [1]", f"Program {SYSTEM_PROGRAM_ID} success"],
        },
        "transaction": {"message": {
            "accountKeys": [{"pubkey": OWNER}, {"pubkey": FRIEND}],
            "instructions": [{"parsed": {"type": "transfer", "info": {"source": OWNER, "destination": FRIEND}}}],
        }},
    }


class FakeRpc:
    def __init__(self):
        self.get_balance = AsyncMock(return_value=2_500_000_000)
        self.get_parsed_token_accounts_by_owner = AsyncMock(return_value=[
            _token_account(USDC_MINT, 12.5),
            _token_account(UNKNOWN_MINT, 3.0, decimals=9),
            _token_account(NATIVE_SOL_MINT, 1.0, decimals=9),
            _token_account(TOKEN_REGISTRY["BONK"].mint, 0, decimals=5),
        ])
        self.get_signatures_for_address = AsyncMock(return_value=[
            {"signature": "old"}, {"signature": "new"}, {"signature": "failed"}, {"signature": "broken"},
        ])
        self.get_parsed_transaction = AsyncMock(side_effect=self._transaction)

    async def _transaction(self, signature):
        if signature == "broken":
            raise RpcError("Transaction version (0) is not supported")
        if signature == "failed":
            return _transfer_tx(1_700_000_500, err={"InstructionError": [0, "Custom"]})
        return _transfer_tx(1_700_000_000 if signature == "old" else 1_700_000_900)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def provider(rpc):
    registry = MagicMock()
    registry.create_optimal_connection.side_effect = lambda: rpc
    return WalletDataProvider(registry, PriceOracle())


# =============================================================================
# Transaction classification
# =============================================================================

class TestTransactionSummaries:

    def test_classify(self):
        jupiter = next(iter(JUPITER_PROGRAM_IDS))
        assert classify_transaction([f"Program {jupiter} invoke [1]"]) == "swap"
        assert classify_transaction(["Program log: Instruction: SharedAccountsRoute"]) == "swap"
        assert classify_transaction(["Program log: Instruction: TransferChecked"]) == "transfer"
        assert classify_transaction([f"Program {SYSTEM_PROGRAM_ID} invoke [1]"]) == "transfer"
        assert classify_transaction(["Program log: Instruction: InitializeAccount"]) == "transaction"
        assert classify_transaction([]) == "transaction"

    def test_summarize_transfer(self):
        summary = summarize_transaction(OWNER, "sig", _transfer_tx(1_700_000_000))

        assert summary.type == "transfer"
        assert summary.amount == pytest.approx(0.500005)
        assert summary.fee == pytest.approx(0.000005)
        assert summary.recipient == FRIEND
        assert summary.timestamp == 1_700_000_000

    def test_failed_transaction_is_skipped(self):
        assert summarize_transaction(OWNER, "sig", _transfer_tx(1, err="boom")) is None


# =============================================================================
# Provider
# =============================================================================

class TestWalletDataProvider:

    @pytest.mark.asyncio
    async def test_tokens_skip_native_and_empty_accounts(self, provider):
        tokens = await provider.get_tokens(OWNER)

        assert [t.symbol for t in tokens] == ["USDC", "Myst...1111"]
        assert tokens[0].usd_value == pytest.approx(12.5)
        assert tokens[1].name == "Unknown Token"
        assert tokens[1].usd_value is None

    @pytest.mark.asyncio
    async def test_complete_wallet_data(self, provider):
        data = await provider.get_complete_wallet_data(OWNER)

        assert data.sol_balance == pytest.approx(2.5)
        assert data.total_value_usd == pytest.approx(2.5 * 110.25 + 12.5)
        assert [tx.signature for tx in data.recent_transactions] == ["new", "old"]
        assert data.dropped_transactions == 2
        assert provider.dropped_transactions_total == 2
        assert data.last_updated > 0

    @pytest.mark.asyncio
    async def test_dropped_counter_accumulates(self, provider):
        await provider.get_recent_transactions(OWNER)
        await provider.get_recent_transactions(OWNER)

        assert provider.dropped_transactions_total == 4


# =============================================================================
# Store
# =============================================================================

class TestWalletStore:

    @pytest.fixture
    def store(self, clock):
        return WalletStore(ttl_s=30, clock=clock)

    def test_last_write_wins(self, store):
        store.update_wallet_data(WalletData(address=OWNER, sol_balance=1.0, last_updated=1_000))
        store.update_wallet_data(WalletData(address=OWNER, sol_balance=2.0, last_updated=900))

        assert store.get(OWNER).sol_balance == 2.0

    def test_freshness_window(self, store, clock):
        store.update_wallet_data(WalletData(address=OWNER, sol_balance=1.0, last_updated=1_000))

        assert store.get_fresh(OWNER) is not None
        clock.advance(31)
        assert store.get_fresh(OWNER) is None
        assert store.get(OWNER) is not None

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_previous_snapshot(self, store):
        previous = store.update_wallet_data(WalletData(address=OWNER, sol_balance=1.0))
        provider = MagicMock()
        provider.get_complete_wallet_data = AsyncMock(side_effect=RpcError("all endpoints down"))

        assert await store.refresh_wallet_data(provider, OWNER) is previous
        assert not store.is_loading(OWNER)

    @pytest.mark.asyncio
    async def test_refresh_uses_active_address(self, store):
        provider = MagicMock()
        provider.get_wallet_data = AsyncMock(return_value=WalletData(address=OWNER, sol_balance=4.0))

        assert await store.refresh_wallet_data(provider) is None
        store.set_wallet_address(OWNER)
        refreshed = await store.refresh_wallet_data(provider, include_transactions=False)

        assert refreshed.sol_balance == 4.0
        assert store.get(OWNER) is refreshed

    def test_clear(self, store):
        store.update_wallet_data(WalletData(address=OWNER))
        store.update_wallet_data(WalletData(address=FRIEND))

        store.clear_wallet_data(OWNER)
        assert store.get(OWNER) is None
        store.clear_wallet_data()
        assert store.get(FRIEND) is None
