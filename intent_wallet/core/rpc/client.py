"""
Solana JSON-RPC client.

Plain JSON-RPC 2.0 over httpx with exponential backoff on retryable HTTP
statuses. When bound to an ``RpcRegistry`` every attempt's outcome is
reported back so endpoint scores stay current.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import httpx

from ..tokens import TOKEN_PROGRAM_ID

if TYPE_CHECKING:
    from .registry import RpcRegistry

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class RpcError(Exception):
    """Transport or JSON-RPC level failure talking to a Solana node."""

    def __init__(self, message: str, *, code: Optional[int] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class SolanaTransactionStatus(str, Enum):
    """Status of a Solana transaction."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"
    FAILED = "failed"
    EXPIRED = "expired"


@dataclass
class SolanaTransactionResult:
    """Outcome of waiting on a submitted signature."""
    signature: str
    status: SolanaTransactionStatus
    slot: Optional[int] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in (SolanaTransactionStatus.CONFIRMED, SolanaTransactionStatus.FINALIZED)


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 5
    base_interval_s: float = 0.5
    multiplier: float = 2.0

    def delay(self, attempt: int) -> float:
        return self.base_interval_s * (self.multiplier ** attempt)


def _retry_after_seconds(response: httpx.Response, default: float) -> float:
    raw = response.headers.get("retry-after")
    if not raw:
        return default
    try:
        return max(0.0, float(raw))
    except ValueError:
        return default


class SolanaRpcClient:
    """
    Client for a single Solana RPC endpoint.

    Usage:
        async with registry.create_optimal_connection() as rpc:
            lamports = await rpc.get_balance(address)
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        commitment: str = "confirmed",
        timeout_s: float = 60.0,
        retry: Optional[RetryPolicy] = None,
        registry: Optional["RpcRegistry"] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.timeout_s = timeout_s
        self.retry = retry or RetryPolicy()
        self._registry = registry
        self._client = http_client
        self._owns_client = http_client is None
        self._request_id = 0

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _report(self, success: bool, elapsed_ms: Optional[float] = None) -> None:
        if self._registry is not None:
            self._registry.update_endpoint_stats(self.rpc_url, success, elapsed_ms)

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        """Make an RPC call and return its ``result`` member."""
        client = await self._get_client()
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        attempts = max(1, self.retry.attempts)
        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            started = time.perf_counter()
            try:
                response = await client.post(self.rpc_url, json=payload)
            except httpx.HTTPError as exc:
                self._report(False)
                if is_last:
                    raise RpcError(f"{method} failed: {exc}") from exc
                await asyncio.sleep(self.retry.delay(attempt))
                continue

            if response.status_code in RETRYABLE_STATUS_CODES:
                self._report(False)
                if response.status_code == 429 and self._registry is not None:
                    self._registry.mark_rate_limited(
                        self.rpc_url, _retry_after_seconds(response, self.retry.delay(attempt))
                    )
                if is_last:
                    raise RpcError(
                        f"{method} failed with HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                logger.debug("Retrying %s after HTTP %s (attempt %d)", method, response.status_code, attempt + 1)
                await asyncio.sleep(self.retry.delay(attempt))
                continue

            try:
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPStatusError, ValueError) as exc:
                self._report(False)
                raise RpcError(f"{method} failed: {exc}", status_code=response.status_code) from exc

            self._report(True, (time.perf_counter() - started) * 1000)

            if "error" in data:
                error = data["error"] or {}
                raise RpcError(
                    f"RPC error: {error.get('message', error)}",
                    code=error.get("code"),
                )
            return data.get("result")

        raise RpcError(f"{method} failed: max retries exceeded")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, address: str) -> int:
        """Lamport balance of ``address``."""
        result = await self._rpc_call("getBalance", [address, {"commitment": self.commitment}])
        if isinstance(result, dict):
            return int(result.get("value", 0))
        return int(result or 0)

    async def get_latest_blockhash(self) -> Dict[str, Any]:
        result = await self._rpc_call("getLatestBlockhash", [{"commitment": self.commitment}])
        value = (result or {}).get("value") or {}
        if not value.get("blockhash"):
            raise RpcError("getLatestBlockhash returned no blockhash")
        return value

    async def get_parsed_token_accounts_by_owner(
        self,
        owner: str,
        program_id: str = TOKEN_PROGRAM_ID,
    ) -> List[Dict[str, Any]]:
        result = await self._rpc_call(
            "getTokenAccountsByOwner",
            [owner, {"programId": program_id}, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        return list((result or {}).get("value") or [])

    async def get_parsed_account_info(self, address: str) -> Optional[Dict[str, Any]]:
        result = await self._rpc_call(
            "getAccountInfo",
            [address, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        return (result or {}).get("value")

    async def get_signatures_for_address(self, address: str, limit: int = 10) -> List[Dict[str, Any]]:
        result = await self._rpc_call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": self.commitment}],
        )
        return list(result or [])

    async def get_parsed_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        return await self._rpc_call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def send_raw_transaction(self, raw: bytes, skip_preflight: bool = False) -> str:
        """Submit a signed, serialized transaction; returns its signature."""
        encoded = base64.b64encode(raw).decode("ascii")
        signature = await self._rpc_call(
            "sendTransaction",
            [
                encoded,
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": self.commitment,
                    "maxRetries": 2,
                },
            ],
        )
        if not signature:
            raise RpcError("sendTransaction returned no signature")
        return str(signature)

    async def get_signature_status(self, signature: str) -> Optional[Dict[str, Any]]:
        result = await self._rpc_call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        statuses = (result or {}).get("value") or [None]
        return statuses[0]

    async def confirm_transaction(
        self,
        signature: str,
        timeout_s: Optional[float] = None,
        poll_interval_s: float = 1.0,
    ) -> SolanaTransactionResult:
        """Poll until the signature reaches our commitment, fails, or times out."""
        deadline = time.monotonic() + (timeout_s if timeout_s is not None else self.timeout_s)
        interval = poll_interval_s
        wanted = ("confirmed", "finalized") if self.commitment != "finalized" else ("finalized",)

        while time.monotonic() < deadline:
            status = await self.get_signature_status(signature)
            if status:
                if status.get("err") is not None:
                    return SolanaTransactionResult(
                        signature=signature,
                        status=SolanaTransactionStatus.FAILED,
                        slot=status.get("slot"),
                        error=str(status["err"]),
                    )
                level = status.get("confirmationStatus")
                if level in wanted:
                    return SolanaTransactionResult(
                        signature=signature,
                        status=(
                            SolanaTransactionStatus.FINALIZED
                            if level == "finalized"
                            else SolanaTransactionStatus.CONFIRMED
                        ),
                        slot=status.get("slot"),
                    )
            await asyncio.sleep(interval)
            interval = min(interval * 1.5, 5.0)

        return SolanaTransactionResult(
            signature=signature,
            status=SolanaTransactionStatus.EXPIRED,
            error="Transaction confirmation timed out",
        )
