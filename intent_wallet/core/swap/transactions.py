"""
Wire-format detection for serialized Solana transactions.

A serialized transaction is ``shortvec(num_signatures) || signatures ||
message``. Versioned messages start with a prefix byte whose high bit is
set and whose low seven bits carry the version; legacy messages start with
the required-signature count, which never has the high bit set.
"""

from __future__ import annotations

import base64
import binascii
from typing import Literal, Tuple, Union

from solders.transaction import Transaction, VersionedTransaction

SIGNATURE_LENGTH = 64
VERSION_PREFIX_MASK = 0x80
MAX_SUPPORTED_VERSION = 4

TransactionFormat = Literal["versioned", "legacy"]


class TransactionDecodeError(ValueError):
    """Payload is not a well-formed serialized transaction."""


def _decode_shortvec(raw: bytes, offset: int = 0) -> Tuple[int, int]:
    value = 0
    for size in range(3):
        if offset + size >= len(raw):
            raise TransactionDecodeError("Truncated signature count")
        byte = raw[offset + size]
        value |= (byte & 0x7F) << (7 * size)
        if not byte & 0x80:
            return value, offset + size + 1
    raise TransactionDecodeError("Signature count is not a valid compact-u16")


def message_version_byte(raw: bytes) -> int:
    """The first byte of the message, i.e. the version prefix for v0+ messages."""
    count, offset = _decode_shortvec(raw)
    index = offset + count * SIGNATURE_LENGTH
    if index >= len(raw):
        raise TransactionDecodeError("Transaction has no message bytes")
    return raw[index]


def detect_transaction_format(raw: bytes) -> TransactionFormat:
    prefix = message_version_byte(raw)
    if not prefix & VERSION_PREFIX_MASK:
        return "legacy"
    version = prefix & 0x7F
    if version > MAX_SUPPORTED_VERSION:
        raise TransactionDecodeError(f"Unsupported transaction version {version}")
    return "versioned"


def decode_base64_transaction(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise TransactionDecodeError(f"Invalid base64 transaction: {exc}") from exc


def deserialize_transaction(payload: Union[str, bytes]) -> Union[VersionedTransaction, Transaction]:
    """Deserialize a base64 string or raw bytes via the matching wire format."""
    raw = decode_base64_transaction(payload) if isinstance(payload, str) else payload
    if detect_transaction_format(raw) == "versioned":
        return VersionedTransaction.from_bytes(raw)
    return Transaction.from_bytes(raw)
