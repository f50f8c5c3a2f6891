"""
Tests for swap validation, estimation and execution.
"""

import asyncio
import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from intent_wallet.core.pricing import PriceOracle
from intent_wallet.core.rpc import RpcError, SolanaTransactionResult, SolanaTransactionStatus
from intent_wallet.core.swap import SwapOrchestrator, SwapState
from intent_wallet.core.tokens import NATIVE_SOL_MINT, TOKEN_REGISTRY
from intent_wallet.core.wallet import DisconnectedWallet, KeypairWallet, WalletStore
from intent_wallet.providers.jupiter import JupiterQuoteError, JupiterSwapResult, SwapQuote
from intent_wallet.types import SwapIntent, TokenBalance, WalletData

USDC_MINT = TOKEN_REGISTRY["USDC"].mint


class FakeRpc:
    """Async-context RPC stand-in handed out by the registry mock."""

    def __init__(self, confirmation_status=SolanaTransactionStatus.CONFIRMED):
        self.send_raw_transaction = AsyncMock(return_value="5igSig")
        self.confirm_transaction = AsyncMock(
            return_value=SolanaTransactionResult(
                signature="5igSig",
                status=confirmation_status,
                error="custom program error" if confirmation_status == SolanaTransactionStatus.FAILED else None,
            )
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


def _quote(out_amount=110_250_000):
    return SwapQuote(
        input_mint=NATIVE_SOL_MINT,
        output_mint=USDC_MINT,
        in_amount=1_000_000_000,
        out_amount=out_amount,
        slippage_bps=50,
        price_impact_pct=0.01,
        route_plan=[],
        quote_response={"inputMint": NATIVE_SOL_MINT},
    )


def _wallet_data(address="Wallet111", sol=5.0, tokens=()):
    return WalletData(address=address, sol_balance=sol, tokens=list(tokens))


def _usdc(balance):
    return TokenBalance(mint=USDC_MINT, symbol="USDC", name="USD Coin", balance=balance, decimals=6)


@pytest.fixture
def payer():
    return Keypair()


@pytest.fixture
def swap_tx(payer):
    ix = transfer(TransferParams(from_pubkey=payer.pubkey(), to_pubkey=Keypair().pubkey(), lamports=1))
    message = MessageV0.try_compile(payer.pubkey(), [ix], [], Hash.default())
    unsigned = VersionedTransaction.populate(message, [Signature.default()])
    return base64.b64encode(bytes(unsigned)).decode()


@pytest.fixture
def jupiter(swap_tx):
    provider = MagicMock()
    provider.get_swap_quote = AsyncMock(return_value=_quote())
    provider.build_swap_transaction = AsyncMock(return_value=JupiterSwapResult(swap_transaction=swap_tx))
    return provider


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def registry(rpc):
    mock = MagicMock()
    mock.create_optimal_connection.return_value = rpc
    return mock


@pytest.fixture
def wallet_provider(payer):
    provider = MagicMock()
    provider.get_wallet_data = AsyncMock(return_value=_wallet_data(str(payer.pubkey())))
    provider.get_complete_wallet_data = AsyncMock(return_value=_wallet_data(str(payer.pubkey()), sol=3.9))
    return provider


@pytest.fixture
def store():
    return WalletStore()


@pytest.fixture
def orchestrator(jupiter, registry, wallet_provider, store):
    return SwapOrchestrator(
        jupiter,
        registry,
        oracle=PriceOracle(),
        wallet_provider=wallet_provider,
        wallet_store=store,
        confirm_timeout_s=1,
    )


def _intent(amount="1", from_token="SOL", to_token="USDC"):
    return SwapIntent(amount=amount, from_token=from_token, to_token=to_token)


# =============================================================================
# Validation
# =============================================================================

class TestValidateSwapRequest:

    def test_valid_sol_swap(self, orchestrator):
        assert orchestrator.validate_swap_request(_intent("1"), _wallet_data(sol=5)).valid

    def test_sol_swap_keeps_fee_reserve(self, orchestrator):
        result = orchestrator.validate_swap_request(_intent("1"), _wallet_data(sol=1.005))
        assert not result.valid
        assert "Insufficient SOL balance" in result.reason
        assert "0.9950 SOL" in result.reason

    def test_unknown_token(self, orchestrator):
        result = orchestrator.validate_swap_request(_intent(to_token="FOO"), _wallet_data())
        assert not result.valid
        assert result.reason.startswith("Unsupported token: FOO")

    def test_same_token(self, orchestrator):
        result = orchestrator.validate_swap_request(_intent(to_token="sol"), _wallet_data())
        assert result.reason == "Cannot swap a token to itself"

    @pytest.mark.parametrize("amount", ["0", "-1", "nan", "abc"])
    def test_non_positive_or_non_finite_amount(self, orchestrator, amount):
        assert not orchestrator.validate_swap_request(_intent(amount), _wallet_data()).valid

    def test_spl_balance_checked(self, orchestrator):
        data = _wallet_data(tokens=[_usdc(10)])
        assert orchestrator.validate_swap_request(_intent("5", "USDC", "SOL"), data).valid

        result = orchestrator.validate_swap_request(_intent("20", "USDC", "SOL"), data)
        assert result.reason == "Insufficient USDC balance. You have 10.0 USDC"

    def test_spl_not_held(self, orchestrator):
        result = orchestrator.validate_swap_request(_intent("5", "BONK", "SOL"), _wallet_data())
        assert result.reason == "You don't have any BONK in your wallet"


# =============================================================================
# Estimation
# =============================================================================

class TestSwapEstimate:

    @pytest.mark.asyncio
    async def test_quote_uses_smallest_units(self, orchestrator, jupiter):
        estimate = await orchestrator.get_swap_estimate(_intent("1.5"))

        args, kwargs = jupiter.get_swap_quote.call_args
        assert args == (NATIVE_SOL_MINT, USDC_MINT, 1_500_000_000)
        assert kwargs["slippage_bps"] == 50
        assert estimate.to_amount == pytest.approx(110.25)
        assert estimate.source == "jupiter"

    @pytest.mark.asyncio
    async def test_falls_back_to_oracle_when_quote_fails(self, orchestrator, jupiter):
        jupiter.get_swap_quote.side_effect = JupiterQuoteError("down")

        estimate = await orchestrator.estimate_with_fallback(_intent("2"))

        assert estimate.source == "oracle"
        assert estimate.to_amount == pytest.approx(220.5)

    @pytest.mark.asyncio
    async def test_invalid_request_never_requests_a_quote(self, orchestrator, jupiter):
        result = await orchestrator.process_swap(_intent("10"), _wallet_data(sol=1))

        assert result["success"] is False
        assert "Insufficient SOL balance" in result["message"]
        jupiter.get_swap_quote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_process_swap_returns_estimate(self, orchestrator):
        result = await orchestrator.process_swap(_intent("1"), _wallet_data())

        assert result["success"] is True
        assert result["message"] == "Swap request is valid and ready for execution"
        assert result["estimate"]["toAmount"] == pytest.approx(110.25)
        assert result["intent"] == {"action": "swap", "amount": "1", "fromToken": "SOL", "toToken": "USDC"}


# =============================================================================
# Execution
# =============================================================================

class TestExecuteSwap:

    @pytest.mark.asyncio
    async def test_successful_swap(self, orchestrator, payer, rpc, wallet_provider, store):
        result = await orchestrator.execute_swap(_intent("1"), KeypairWallet(payer), session_id="s1")

        assert result.success
        assert result.tx_id == "5igSig"
        assert result.explorer_url == "https://explorer.solana.com/tx/5igSig"
        assert result.message == "Successfully swapped 1.0000 SOL for 110.25 USDC"
        assert result.execution.state == SwapState.CONFIRMED
        assert result.execution.is_terminal
        assert [state for state, _ in result.execution.history] == [
            SwapState.QUOTED,
            SwapState.VALIDATED,
            SwapState.BUILT,
            SwapState.SIGNED,
            SwapState.SUBMITTED,
            SwapState.CONFIRMED,
        ]

        raw = rpc.send_raw_transaction.await_args.args[0]
        assert isinstance(raw, bytes)
        wallet_provider.get_complete_wallet_data.assert_awaited_once()
        assert store.get(str(payer.pubkey())).sol_balance == 3.9

    @pytest.mark.asyncio
    async def test_failed_confirmation(self, orchestrator, payer, registry):
        registry.create_optimal_connection.return_value = FakeRpc(SolanaTransactionStatus.FAILED)

        result = await orchestrator.execute_swap(_intent("1"), KeypairWallet(payer))

        assert not result.success
        assert result.message.startswith("Swap transaction failed")
        assert result.tx_id == "5igSig"
        assert result.execution.state == SwapState.FAILED
        assert result.execution.is_terminal

    @pytest.mark.asyncio
    async def test_submission_error_is_normalized(self, orchestrator, payer, rpc):
        rpc.send_raw_transaction.side_effect = RpcError("blockhash not found")

        result = await orchestrator.execute_swap(_intent("1"), KeypairWallet(payer))

        assert not result.success
        assert "blockhash not found" in result.message

    @pytest.mark.asyncio
    async def test_quote_errors_propagate(self, orchestrator, payer, jupiter):
        jupiter.get_swap_quote.side_effect = JupiterQuoteError("no route")

        with pytest.raises(JupiterQuoteError):
            await orchestrator.execute_swap(_intent("1"), KeypairWallet(payer))

    @pytest.mark.asyncio
    async def test_disconnected_wallet(self, orchestrator, jupiter):
        result = await orchestrator.execute_swap(_intent("1"), DisconnectedWallet())

        assert not result.success
        assert result.message == "Please connect your wallet first"
        jupiter.get_swap_quote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_swap_in_flight_per_session(self, orchestrator, payer, jupiter):
        release = asyncio.Event()

        async def slow_quote(*args, **kwargs):
            await release.wait()
            return _quote()

        jupiter.get_swap_quote.side_effect = slow_quote
        wallet = KeypairWallet(payer)

        first = asyncio.create_task(orchestrator.execute_swap(_intent("1"), wallet, session_id="s1"))
        await asyncio.sleep(0)
        assert orchestrator.is_in_flight("s1")

        second = await orchestrator.execute_swap(_intent("1"), wallet, session_id="s1")
        assert not second.success
        assert "already in progress" in second.message

        release.set()
        assert (await first).success
        assert not orchestrator.is_in_flight("s1")
