"""
Tests for SOL and SPL transfers, focused on the mandatory pre-flight checks.
"""

import struct
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address

from intent_wallet.core.rpc import RpcError, SolanaTransactionResult, SolanaTransactionStatus
from intent_wallet.core.tokens import TOKEN_PROGRAM_ID, TOKEN_REGISTRY
from intent_wallet.core.transfer import TransferErrorCode, TransferOrchestrator, is_valid_address
from intent_wallet.core.wallet import DisconnectedWallet, KeypairWallet


class FakeRpc:
    def __init__(self, lamports=2_000_000_000):
        self.get_balance = AsyncMock(return_value=lamports)
        self.get_parsed_account_info = AsyncMock(return_value=None)
        self.get_latest_blockhash = AsyncMock(return_value={"blockhash": str(Hash.default()), "lastValidBlockHeight": 1})
        self.send_raw_transaction = AsyncMock(return_value="TransferSig")
        self.confirm_transaction = AsyncMock(
            return_value=SolanaTransactionResult(signature="TransferSig", status=SolanaTransactionStatus.CONFIRMED)
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


def _token_account(amount, decimals=6):
    return {"data": {"parsed": {"info": {"tokenAmount": {"amount": str(amount), "decimals": decimals}}}}}


def _sent_transaction(rpc) -> Transaction:
    return Transaction.from_bytes(rpc.send_raw_transaction.await_args.args[0])


def _program_ids(tx: Transaction):
    keys = tx.message.account_keys
    return [str(keys[ix.program_id_index]) for ix in tx.message.instructions]


@pytest.fixture
def sender():
    return Keypair()


@pytest.fixture
def recipient():
    return str(Keypair().pubkey())


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def orchestrator(rpc):
    registry = MagicMock()
    registry.create_optimal_connection.return_value = rpc
    return TransferOrchestrator(registry, confirm_timeout_s=1)


# =============================================================================
# Request validation
# =============================================================================

class TestTransferValidation:

    @pytest.mark.asyncio
    async def test_wallet_not_connected(self, orchestrator, recipient):
        result = await orchestrator.transfer_tokens(DisconnectedWallet(), recipient, 1)
        assert result.error == TransferErrorCode.WALLET_NOT_CONNECTED

    @pytest.mark.asyncio
    async def test_invalid_recipient(self, orchestrator, sender, rpc):
        result = await orchestrator.transfer_tokens(KeypairWallet(sender), "not-an-address", 1)

        assert result.error == TransferErrorCode.INVALID_RECIPIENT
        rpc.get_balance.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -2, "NaN", "lots"])
    async def test_invalid_amount(self, orchestrator, sender, recipient, amount):
        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, amount)
        assert result.error == TransferErrorCode.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_unknown_token(self, orchestrator, sender, recipient):
        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, 1, token="DOGE")

        assert result.error == TransferErrorCode.UNKNOWN_TOKEN
        assert result.message == "Unsupported token: DOGE"

    def test_is_valid_address(self, recipient):
        assert is_valid_address(recipient)
        assert not is_valid_address("0x1234")
        assert not is_valid_address("")
        assert not is_valid_address(None)


# =============================================================================
# Native SOL
# =============================================================================

class TestSolTransfer:

    @pytest.mark.asyncio
    async def test_insufficient_balance_states_shortfall_and_sends_nothing(self, orchestrator, sender, recipient, rpc):
        rpc.get_balance.return_value = 100_000_000

        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, "0.5")

        assert not result.success
        assert result.error == TransferErrorCode.INSUFFICIENT_BALANCE
        assert result.message == (
            "You don't have enough SOL for this transfer. Your current balance is 0.1 SOL, "
            "but you need at least 0.500005 SOL (including transaction fees). Short by 0.400005 SOL."
        )
        rpc.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fee_is_part_of_the_check(self, orchestrator, sender, recipient, rpc):
        rpc.get_balance.return_value = 500_000_000

        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, "0.5")

        assert result.error == TransferErrorCode.INSUFFICIENT_BALANCE
        rpc.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_successful_transfer(self, orchestrator, sender, recipient, rpc):
        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, 0.5)

        assert result.success
        assert result.tx_id == "TransferSig"
        assert result.message == f"Successfully sent 0.5 SOL to {recipient[:4]}...{recipient[-4:]}"

        tx = _sent_transaction(rpc)
        assert tx.message.instructions[0].data == struct.pack("<IQ", 2, 500_000_000)
        assert tx.message.account_keys[0] == sender.pubkey()
        tx.verify()

    @pytest.mark.asyncio
    async def test_rpc_failure_is_normalized(self, orchestrator, sender, recipient, rpc):
        rpc.get_balance.side_effect = RpcError("connection reset")

        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, 0.5)

        assert result.error == TransferErrorCode.SOL_TRANSFER_ERROR
        assert "connection reset" in result.message

    @pytest.mark.asyncio
    async def test_failed_confirmation(self, orchestrator, sender, recipient, rpc):
        rpc.confirm_transaction.return_value = SolanaTransactionResult(
            signature="TransferSig", status=SolanaTransactionStatus.EXPIRED, error="Transaction confirmation timed out"
        )

        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, 0.5)

        assert not result.success
        assert result.explorer_url.endswith("/TransferSig")
        assert result.error == TransferErrorCode.TRANSACTION_ERROR


# =============================================================================
# SPL tokens
# =============================================================================

class TestSplTransfer:

    @pytest.mark.asyncio
    async def test_insufficient_token_balance(self, orchestrator, sender, recipient, rpc):
        rpc.get_parsed_account_info.return_value = _token_account(5_000_000)

        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, 10, token="USDC")

        assert result.error == TransferErrorCode.INSUFFICIENT_BALANCE
        assert result.message == "Insufficient USDC balance. You have 5 USDC but tried to send 10. Short by 5 USDC."
        rpc.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_token_not_held(self, orchestrator, sender, recipient, rpc):
        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, 1, token="BONK")

        assert result.message == "You don't have any BONK in your wallet"
        rpc.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_creates_recipient_account_when_missing(self, orchestrator, sender, recipient, rpc):
        rpc.get_parsed_account_info.side_effect = [_token_account(10_000_000), None]

        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, "2.5", token="usdc")

        assert result.success
        assert result.message.startswith("Successfully sent 2.5 USDC to ")

        tx = _sent_transaction(rpc)
        assert _program_ids(tx) == [str(ASSOCIATED_TOKEN_PROGRAM_ID), TOKEN_PROGRAM_ID]
        assert tx.message.instructions[0].data == bytes([1])
        assert tx.message.instructions[1].data == struct.pack("<BQB", 12, 2_500_000, 6)

    @pytest.mark.asyncio
    async def test_existing_recipient_account_is_reused(self, orchestrator, sender, recipient, rpc):
        rpc.get_parsed_account_info.side_effect = [_token_account(10_000_000), _token_account(0)]

        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, 1, token="USDC")

        assert result.success
        assert _program_ids(_sent_transaction(rpc)) == [TOKEN_PROGRAM_ID]

    @pytest.mark.asyncio
    async def test_transfer_checked_accounts(self, orchestrator, sender, recipient, rpc):
        rpc.get_parsed_account_info.side_effect = [_token_account(10_000_000), _token_account(0)]

        await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, 1, token="USDC")

        tx = _sent_transaction(rpc)
        keys = tx.message.account_keys
        mint = Pubkey.from_string(TOKEN_REGISTRY["USDC"].mint)
        accounts = [keys[i] for i in tx.message.instructions[0].accounts]
        assert accounts == [
            get_associated_token_address(sender.pubkey(), mint),
            mint,
            get_associated_token_address(Pubkey.from_string(recipient), mint),
            sender.pubkey(),
        ]

    @pytest.mark.asyncio
    async def test_needs_sol_for_fees_and_rent(self, orchestrator, sender, recipient, rpc):
        rpc.get_parsed_account_info.side_effect = [_token_account(10_000_000), None]
        rpc.get_balance.return_value = 1_000_000

        result = await orchestrator.transfer_tokens(KeypairWallet(sender), recipient, 1, token="USDC")

        assert result.error == TransferErrorCode.INSUFFICIENT_BALANCE
        assert result.message.startswith("Not enough SOL to pay for this transfer")
        rpc.send_raw_transaction.assert_not_awaited()

    def test_associated_token_address_is_off_curve_and_owner_specific(self, sender):
        mint = Pubkey.from_string(TOKEN_REGISTRY["USDC"].mint)
        mine = get_associated_token_address(sender.pubkey(), mint)
        theirs = get_associated_token_address(Keypair().pubkey(), mint)

        assert mine != theirs
        assert not mine.is_on_curve()
