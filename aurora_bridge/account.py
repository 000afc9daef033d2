"""
aurora_bridge.account
=====================

Identifiers on both sides of the bridge.

- :class:`AccountID` names a signer or contract on the backend network.
  Rules: 2..64 characters; parts of lowercase alphanumerics optionally
  joined by ``-`` or ``_``; parts separated by ``.``.
- :class:`Address` is a 20-byte address in the emulated EVM. Equality is by
  byte content; ``str()`` renders the EIP-55 checksum form.

Both are immutable. ``parse`` returns a :class:`~aurora_bridge.result.Result`
rather than raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from eth_utils import keccak, to_checksum_address

from .errors import InvalidAccountID, InvalidAddress
from .result import Err, Ok, Result
from .utils.bytes import BytesLike

_ACCOUNT_ID_RE = re.compile(r"^(([a-z\d]+[-_])*[a-z\d]+\.)*([a-z\d]+[-_])*[a-z\d]+$")
_ADDRESS_HEX_RE = re.compile(r"^(0x|0X)?[0-9a-fA-F]{40}$")

ACCOUNT_ID_MIN_LEN = 2
ACCOUNT_ID_MAX_LEN = 64
ADDRESS_LEN = 20


@dataclass(frozen=True)
class Address:
    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != ADDRESS_LEN:
            raise InvalidAddress(f"address must be {ADDRESS_LEN} bytes, got {len(self.raw)}")

    @classmethod
    def zero(cls) -> "Address":
        return cls(b"\x00" * ADDRESS_LEN)

    @classmethod
    def parse(cls, value: str) -> Result["Address", InvalidAddress]:
        if not isinstance(value, str) or not _ADDRESS_HEX_RE.match(value.strip()):
            return Err(InvalidAddress(f"invalid address: {value!r}"))
        s = value.strip()
        s = s[2:] if s[:2] in ("0x", "0X") else s
        return Ok(cls(bytes.fromhex(s)))

    @classmethod
    def from_bytes(cls, data: BytesLike) -> Result["Address", InvalidAddress]:
        data = bytes(data)
        if len(data) != ADDRESS_LEN:
            return Err(InvalidAddress(f"address must be {ADDRESS_LEN} bytes, got {len(data)}"))
        return Ok(cls(data))

    def to_bytes(self) -> bytes:
        return self.raw

    def to_hex(self) -> str:
        return "0x" + self.raw.hex()

    def is_zero(self) -> bool:
        return not any(self.raw)

    def __str__(self) -> str:
        return to_checksum_address(self.raw)


@dataclass(frozen=True)
class AccountID:
    id: str

    @classmethod
    def parse(cls, value: object) -> Result["AccountID", InvalidAccountID]:
        if not isinstance(value, str) or not value:
            return Err(InvalidAccountID(f"invalid account ID: {value!r}"))
        if not ACCOUNT_ID_MIN_LEN <= len(value) <= ACCOUNT_ID_MAX_LEN:
            return Err(InvalidAccountID(f"invalid account ID length: {value!r}"))
        if not _ACCOUNT_ID_RE.match(value):
            return Err(InvalidAccountID(f"invalid account ID: {value!r}"))
        return Ok(cls(value))

    def to_address(self) -> Address:
        """EVM address of this account: last 20 bytes of keccak-256(id)."""
        return Address(keccak(self.id.encode("utf-8"))[-ADDRESS_LEN:])

    def __str__(self) -> str:
        return self.id


__all__ = ["AccountID", "Address", "ADDRESS_LEN"]
