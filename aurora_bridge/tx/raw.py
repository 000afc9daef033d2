"""
aurora_bridge.tx.raw
====================

Parse raw (RLP-encoded) EVM transactions well enough to pre-check them
before they are forwarded to the engine's ``submit`` method.

Supported envelopes
-------------------
- legacy       ``rlp([nonce, gasPrice, gas, to, value, data(, v, r, s)])``
- 0x01 EIP-2930 ``0x01 || rlp([chainId, nonce, gasPrice, gas, to, value, data, accessList(, y, r, s)])``
- 0x02 EIP-1559 ``0x02 || rlp([chainId, nonce, maxPriorityFee, maxFee, gas, to, value, data, accessList(, y, r, s)])``
- 0x03 EIP-4844 ``0x03 || rlp([chainId, nonce, maxPriorityFee, maxFee, gas, to, value, data, accessList,
  maxFeePerBlobGas, blobVersionedHashes(, y, r, s)])``

Anything else raises :class:`RawTransactionError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

import rlp
from eth_utils import big_endian_to_int
from rlp.exceptions import RLPException

from ..account import ADDRESS_LEN, Address
from ..utils.bytes import BytesLike

# Cheapest possible transaction: a plain value transfer.
INTRINSIC_GAS = 21000


class RawTransactionError(ValueError):
    pass


@dataclass(frozen=True)
class Transaction:
    type: int
    nonce: int
    gas_limit: int
    to: Optional[Address]
    value: int
    data: bytes
    chain_id: Optional[int] = None
    gas_price: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    v: Optional[int] = None
    r: Optional[int] = None
    s: Optional[int] = None

    def is_signed(self) -> bool:
        return self.r is not None and self.s is not None


# (payload field names, number of fields before the signature)
_SCHEMAS = {
    0: (("nonce", "gas_price", "gas_limit", "to", "value", "data"), 6),
    1: (("chain_id", "nonce", "gas_price", "gas_limit", "to", "value", "data", "access_list"), 8),
    2: (
        (
            "chain_id",
            "nonce",
            "max_priority_fee_per_gas",
            "max_fee_per_gas",
            "gas_limit",
            "to",
            "value",
            "data",
            "access_list",
        ),
        9,
    ),
    3: (
        (
            "chain_id",
            "nonce",
            "max_priority_fee_per_gas",
            "max_fee_per_gas",
            "gas_limit",
            "to",
            "value",
            "data",
            "access_list",
            "max_fee_per_blob_gas",
            "blob_versioned_hashes",
        ),
        11,
    ),
}

_TYPED = (1, 2, 3)
_LIST_FIELDS = {"access_list", "blob_versioned_hashes"}
_BYTES_FIELDS = {"to", "data"}


def _split_envelope(raw: bytes) -> Tuple[int, bytes]:
    if not raw:
        raise RawTransactionError("empty transaction")
    first = raw[0]
    if first >= 0xC0:
        return 0, raw
    if first in _TYPED:
        return first, raw[1:]
    raise RawTransactionError(f"unsupported transaction type: 0x{first:02x}")


def _scalar(name: str, item: Any) -> int:
    if not isinstance(item, bytes):
        raise RawTransactionError(f"{name} must be a scalar")
    if item[:1] == b"\x00":
        raise RawTransactionError(f"{name} has leading zero bytes")
    return big_endian_to_int(item)


def _decode_fields(tx_type: int, items: Sequence[Any]) -> dict:
    names, unsigned_len = _SCHEMAS[tx_type]
    if len(items) not in (unsigned_len, unsigned_len + 3):
        raise RawTransactionError(
            f"type {tx_type} transaction must have {unsigned_len} or {unsigned_len + 3} fields, got {len(items)}"
        )
    fields: dict = {}
    for name, item in zip(names, items):
        if name in _LIST_FIELDS:
            if not isinstance(item, list):
                raise RawTransactionError(f"{name} must be a list")
        elif name in _BYTES_FIELDS:
            if not isinstance(item, bytes):
                raise RawTransactionError(f"{name} must be a byte string")
            fields[name] = item
        else:
            fields[name] = _scalar(name, item)

    to = fields.pop("to")
    if len(to) not in (0, ADDRESS_LEN):
        raise RawTransactionError(f"invalid recipient length: {len(to)}")
    fields["to"] = Address(to) if to else None

    if len(items) > unsigned_len:
        v, r, s = (_scalar(n, i) for n, i in zip(("v", "r", "s"), items[unsigned_len:]))
        fields.update(v=v, r=r, s=s)
        if tx_type == 0 and v >= 35:
            fields["chain_id"] = (v - 35) // 2
    return fields


def parse_raw_transaction(raw: BytesLike) -> Transaction:
    """Decode a raw transaction; raises :class:`RawTransactionError`."""
    tx_type, payload = _split_envelope(bytes(raw))
    try:
        items = rlp.decode(payload)
    except RLPException as e:
        raise RawTransactionError(f"invalid RLP: {e}") from e
    if not isinstance(items, list):
        raise RawTransactionError("transaction payload must be an RLP list")
    return Transaction(type=tx_type, **_decode_fields(tx_type, items))


__all__ = ["INTRINSIC_GAS", "RawTransactionError", "Transaction", "parse_raw_transaction"]
