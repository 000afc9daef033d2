"""
Reconstruct per-address EVM state from the engine contract's raw storage.

The contract keeps every piece of EVM state under a key whose first byte
says what it is:

    0x00  Config    engine metadata, not per-address (skipped)
    0x01  Nonce     key = 0x01 || address[20]              value = BE uint
    0x02  Balance   key = 0x02 || address[20]              value = BE uint
    0x03  Code      key = 0x03 || address[20]              value = raw code
    0x04  Storage   key = 0x04 || address[20] || slot[32]  value = BE uint

:func:`demux_records` folds a full scan of those records into a mapping of
lowercase hex address -> :class:`AddressState`. The mapping is assembled
locally and handed back whole.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterable, Optional

from .account import ADDRESS_LEN, Address
from .logging import get_logger
from .utils.bytes import int_from_be

log = get_logger(__name__)

SLOT_LEN = 32


class EngineStorageKeyPrefix(IntEnum):
    Config = 0x0
    Nonce = 0x1
    Balance = 0x2
    Code = 0x3
    Storage = 0x4


@dataclass(frozen=True)
class StateRecord:
    key: bytes
    value: bytes


@dataclass
class AddressState:
    address: Address
    nonce: int = 0
    balance: int = 0
    code: Optional[bytes] = None
    storage: Dict[int, int] = field(default_factory=dict)


EngineStorage = Dict[str, AddressState]


def _record_address(prefix: EngineStorageKeyPrefix, key: bytes) -> Optional[bytes]:
    body = key[1:]
    if prefix is EngineStorageKeyPrefix.Storage:
        if len(body) != ADDRESS_LEN + SLOT_LEN:
            return None
        return body[:ADDRESS_LEN]
    if len(body) != ADDRESS_LEN:
        return None
    return body


def demux_records(records: Iterable[StateRecord]) -> EngineStorage:
    """Partition raw storage records into per-address state."""
    result: EngineStorage = {}
    for record in records:
        if not record.key:
            continue
        try:
            prefix = EngineStorageKeyPrefix(record.key[0])
        except ValueError:
            log.debug("state_record_skipped", reason="unknown_prefix", prefix=record.key[0])
            continue
        if prefix is EngineStorageKeyPrefix.Config:
            continue

        raw_address = _record_address(prefix, record.key)
        if raw_address is None:
            log.warning("state_record_skipped", reason="malformed_key", key=record.key.hex())
            continue

        address = raw_address.hex()
        state = result.get(address)
        if state is None:
            state = result[address] = AddressState(Address(raw_address))

        if prefix is EngineStorageKeyPrefix.Nonce:
            state.nonce = int_from_be(record.value)
        elif prefix is EngineStorageKeyPrefix.Balance:
            state.balance = int_from_be(record.value)
        elif prefix is EngineStorageKeyPrefix.Code:
            state.code = bytes(record.value)
        elif prefix is EngineStorageKeyPrefix.Storage:
            slot = int_from_be(record.key[1 + ADDRESS_LEN :])
            state.storage[slot] = int_from_be(record.value)
    return result


__all__ = [
    "EngineStorageKeyPrefix",
    "StateRecord",
    "AddressState",
    "EngineStorage",
    "demux_records",
]
