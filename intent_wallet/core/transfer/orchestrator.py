"""
Native SOL and SPL token transfers.

Balances are checked before anything is built; an insufficient balance
returns a failed result stating the shortfall and nothing is submitted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_idempotent_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)

from ...types.wallet import WalletData
from ..rpc.client import RpcError, SolanaRpcClient
from ..rpc.registry import RpcRegistry
from ..tokens import (
    LAMPORTS_PER_SOL,
    TokenInfo,
    explorer_url,
    find_token,
    parse_amount,
    short_address,
    to_base_units,
)
from ..wallet.provider import WalletDataProvider
from ..wallet.signer import WalletAdapter
from ..wallet.store import WalletStore

logger = logging.getLogger(__name__)

NETWORK_FEE_SOL = Decimal("0.000005")
NETWORK_FEE_LAMPORTS = 5_000
# Rent-exempt minimum for a 165-byte token account.
TOKEN_ACCOUNT_RENT_LAMPORTS = 2_039_280


class TransferErrorCode:
    WALLET_NOT_CONNECTED = "WALLET_NOT_CONNECTED"
    INVALID_RECIPIENT = "INVALID_RECIPIENT"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    UNKNOWN_TOKEN = "UNKNOWN_TOKEN"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    SOL_TRANSFER_ERROR = "SOL_TRANSFER_ERROR"
    TRANSACTION_ERROR = "TRANSACTION_ERROR"


@dataclass
class TransferResult:
    success: bool
    message: str
    tx_id: Optional[str] = None
    explorer_url: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.tx_id:
            data["txId"] = self.tx_id
        if self.explorer_url:
            data["explorerUrl"] = self.explorer_url
        if self.error:
            data["error"] = self.error
        return data


def _fmt(value: Decimal) -> str:
    return f"{value.normalize():f}"


def is_valid_address(address: Optional[str]) -> bool:
    if not address:
        return False
    try:
        Pubkey.from_string(address.strip())
    except ValueError:
        return False
    return True


class TransferOrchestrator:
    def __init__(
        self,
        registry: RpcRegistry,
        wallet_provider: Optional[WalletDataProvider] = None,
        wallet_store: Optional[WalletStore] = None,
        confirm_timeout_s: Optional[float] = None,
    ):
        self.registry = registry
        self.wallet_provider = wallet_provider
        self.wallet_store = wallet_store
        self.confirm_timeout_s = confirm_timeout_s

    async def transfer_tokens(
        self,
        wallet: Optional[WalletAdapter],
        recipient: str,
        amount: Any,
        token: str = "SOL",
        wallet_data: Optional[WalletData] = None,
    ) -> TransferResult:
        """
        Send ``amount`` of ``token`` to ``recipient``.

        ``wallet_data`` lets a caller that already holds a fresh snapshot skip
        the balance read; the pre-flight check runs either way.
        """
        if wallet is None or not wallet.connected:
            return TransferResult(False, "Wallet not connected", error=TransferErrorCode.WALLET_NOT_CONNECTED)

        if not is_valid_address(recipient):
            return TransferResult(False, "Invalid recipient address", error=TransferErrorCode.INVALID_RECIPIENT)
        recipient_key = Pubkey.from_string(recipient.strip())

        value = parse_amount(amount)
        if value is None:
            return TransferResult(False, "Transfer amount must be greater than 0", error=TransferErrorCode.INVALID_AMOUNT)

        token_info = find_token(token)
        if token_info is None:
            return TransferResult(False, f"Unsupported token: {token}", error=TransferErrorCode.UNKNOWN_TOKEN)

        if token_info.is_native:
            return await self._transfer_sol(wallet, recipient_key, value, wallet_data)
        return await self._transfer_spl(wallet, recipient_key, value, token_info, wallet_data)

    async def _transfer_sol(
        self,
        wallet: WalletAdapter,
        recipient: Pubkey,
        amount: Decimal,
        wallet_data: Optional[WalletData],
    ) -> TransferResult:
        owner = wallet.public_key
        required = amount + NETWORK_FEE_SOL

        try:
            async with self.registry.create_optimal_connection() as rpc:
                if wallet_data is not None:
                    balance = Decimal(str(wallet_data.sol_balance))
                else:
                    balance = Decimal(await rpc.get_balance(str(owner))) / LAMPORTS_PER_SOL

                if balance < required:
                    return TransferResult(
                        False,
                        f"You don't have enough SOL for this transfer. Your current balance is "
                        f"{_fmt(balance)} SOL, but you need at least {_fmt(required)} SOL "
                        f"(including transaction fees). Short by {_fmt(required - balance)} SOL.",
                        error=TransferErrorCode.INSUFFICIENT_BALANCE,
                    )

                lamports = int(amount * LAMPORTS_PER_SOL)
                instruction = transfer(TransferParams(from_pubkey=owner, to_pubkey=recipient, lamports=lamports))
                result = await self._sign_and_send(rpc, wallet, [instruction])
        except RpcError as exc:
            logger.warning("SOL transfer failed: %s", exc)
            return TransferResult(False, f"Failed to send SOL: {exc}", error=TransferErrorCode.SOL_TRANSFER_ERROR)

        if result.success:
            result.message = f"Successfully sent {_fmt(amount)} SOL to {short_address(str(recipient))}"
            await self._refresh_wallet(str(owner))
        return result

    async def _transfer_spl(
        self,
        wallet: WalletAdapter,
        recipient: Pubkey,
        amount: Decimal,
        token: TokenInfo,
        wallet_data: Optional[WalletData],
    ) -> TransferResult:
        owner = wallet.public_key
        mint = Pubkey.from_string(token.mint)
        source = get_associated_token_address(owner, mint)
        destination = get_associated_token_address(recipient, mint)

        try:
            async with self.registry.create_optimal_connection() as rpc:
                source_info = await rpc.get_parsed_account_info(str(source))
                parsed = ((((source_info or {}).get("data") or {}).get("parsed") or {}).get("info")) or {}
                token_amount = parsed.get("tokenAmount") or {}
                if not token_amount:
                    return TransferResult(
                        False,
                        f"You don't have any {token.symbol} in your wallet",
                        error=TransferErrorCode.INSUFFICIENT_BALANCE,
                    )

                decimals = int(token_amount.get("decimals", token.decimals))
                held_raw = int(token_amount.get("amount", 0))
                raw_amount = to_base_units(amount, decimals)
                if raw_amount > held_raw:
                    held = Decimal(held_raw) / (Decimal(10) ** decimals)
                    return TransferResult(
                        False,
                        f"Insufficient {token.symbol} balance. You have {_fmt(held)} {token.symbol} "
                        f"but tried to send {_fmt(amount)}. Short by {_fmt(amount - held)} {token.symbol}.",
                        error=TransferErrorCode.INSUFFICIENT_BALANCE,
                    )

                instructions: List[Instruction] = []
                fee_lamports = NETWORK_FEE_LAMPORTS
                if await rpc.get_parsed_account_info(str(destination)) is None:
                    instructions.append(create_idempotent_associated_token_account(owner, recipient, mint))
                    fee_lamports += TOKEN_ACCOUNT_RENT_LAMPORTS

                if wallet_data is not None:
                    sol_lamports = int(Decimal(str(wallet_data.sol_balance)) * LAMPORTS_PER_SOL)
                else:
                    sol_lamports = await rpc.get_balance(str(owner))
                if sol_lamports < fee_lamports:
                    return TransferResult(
                        False,
                        f"Not enough SOL to pay for this transfer. Need {fee_lamports / LAMPORTS_PER_SOL} SOL "
                        f"for fees, have {sol_lamports / LAMPORTS_PER_SOL} SOL.",
                        error=TransferErrorCode.INSUFFICIENT_BALANCE,
                    )

                instructions.append(transfer_checked(
                    TransferCheckedParams(
                        program_id=TOKEN_PROGRAM_ID,
                        source=source,
                        mint=mint,
                        dest=destination,
                        owner=owner,
                        amount=raw_amount,
                        decimals=decimals,
                    )
                ))
                result = await self._sign_and_send(rpc, wallet, instructions)
        except RpcError as exc:
            logger.warning("%s transfer failed: %s", token.symbol, exc)
            return TransferResult(False, f"Failed to send {token.symbol}: {exc}", error=TransferErrorCode.TRANSACTION_ERROR)

        if result.success:
            result.message = f"Successfully sent {_fmt(amount)} {token.symbol} to {short_address(str(recipient))}"
            await self._refresh_wallet(str(owner))
        return result

    async def _sign_and_send(
        self,
        rpc: SolanaRpcClient,
        wallet: WalletAdapter,
        instructions: List[Instruction],
    ) -> TransferResult:
        latest = await rpc.get_latest_blockhash()
        message = Message.new_with_blockhash(
            instructions,
            wallet.public_key,
            Hash.from_string(latest["blockhash"]),
        )
        try:
            signed = await wallet.sign_transaction(Transaction.new_unsigned(message))
        except Exception as exc:
            logger.info("Transfer signing declined or failed: %s", exc)
            return TransferResult(False, f"Transaction signing failed: {exc}", error=TransferErrorCode.TRANSACTION_ERROR)

        signature = await rpc.send_raw_transaction(bytes(signed))
        confirmation = await rpc.confirm_transaction(signature, timeout_s=self.confirm_timeout_s)
        if not confirmation.succeeded:
            return TransferResult(
                False,
                f"Transfer failed: {confirmation.error or confirmation.status.value}",
                tx_id=signature,
                explorer_url=explorer_url(signature),
                error=TransferErrorCode.TRANSACTION_ERROR,
            )
        return TransferResult(True, "Transfer confirmed", tx_id=signature, explorer_url=explorer_url(signature))

    async def _refresh_wallet(self, address: str) -> None:
        if self.wallet_store is None or self.wallet_provider is None:
            return
        await self.wallet_store.refresh_wallet_data(self.wallet_provider, address)
