"""
Borsh schema of the engine contract's call arguments and results.

Encoders (``.encode() -> bytes``)
---------------------------------
- FunctionCallArgs   ``call``            contract[20], input
- ViewCallArgs       ``view``            sender[20], address[20], amount[32 BE], input
- GetStorageAtArgs   ``get_storage_at``  address[20], key[32]
- NewCallArgs        ``new``             chain_id[32], owner_id, bridge_prover_id, upgrade_delay_blocks
- InitCallArgs       ``new_eth_connector`` prover_account, eth_custodian_address, metadata

Decoders (``.decode(bytes)``)
-----------------------------
- TransactionStatus  tagged: Succeed(vec) | Revert(vec) | OutOfGas | OutOfFund | OutOfOffset | CallTooDeep
- SubmitResult       status, gas_used (u64), logs

Decoders raise :class:`~aurora_bridge.utils.borsh.BorshError` on malformed
input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

from .errors import RemoteExecutionFailure
from .result import Err, Ok, Result
from .utils.borsh import BorshError, BorshReader, BorshWriter
from .utils.bytes import int_to_be

ADDRESS_LEN = 20
WORD_LEN = 32


# -----------------------------------------------------------------------------
# Call arguments
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FunctionCallArgs:
    contract: bytes
    input: bytes = b""

    def encode(self) -> bytes:
        return BorshWriter().fixed(self.contract, ADDRESS_LEN).bytes(self.input).build()


@dataclass(frozen=True)
class ViewCallArgs:
    sender: bytes
    address: bytes
    amount: int
    input: bytes = b""

    def encode(self) -> bytes:
        return (
            BorshWriter()
            .fixed(self.sender, ADDRESS_LEN)
            .fixed(self.address, ADDRESS_LEN)
            .fixed(int_to_be(self.amount, WORD_LEN), WORD_LEN)
            .bytes(self.input)
            .build()
        )


@dataclass(frozen=True)
class GetStorageAtArgs:
    address: bytes
    key: bytes

    def encode(self) -> bytes:
        return BorshWriter().fixed(self.address, ADDRESS_LEN).fixed(self.key, WORD_LEN).build()


@dataclass(frozen=True)
class NewCallArgs:
    chain_id: bytes
    owner_id: str
    bridge_prover_id: str
    upgrade_delay_blocks: int = 0

    def encode(self) -> bytes:
        return (
            BorshWriter()
            .fixed(self.chain_id, WORD_LEN)
            .string(self.owner_id)
            .string(self.bridge_prover_id)
            .u64(self.upgrade_delay_blocks)
            .build()
        )


@dataclass(frozen=True)
class FungibleTokenMetadata:
    spec: str = "ft-1.0.0"
    name: str = "Ether"
    symbol: str = "ETH"
    icon: Optional[str] = None
    reference: Optional[str] = None
    reference_hash: Optional[bytes] = None
    decimals: int = 18

    def write(self, w: BorshWriter) -> None:
        w.string(self.spec).string(self.name).string(self.symbol)
        w.option(self.icon, BorshWriter.string)
        w.option(self.reference, BorshWriter.string)
        w.option(self.reference_hash, lambda w_, h: w_.fixed(h, WORD_LEN))
        w.u8(self.decimals)


@dataclass(frozen=True)
class InitCallArgs:
    prover_account: str
    eth_custodian_address: str
    metadata: FungibleTokenMetadata = field(default_factory=FungibleTokenMetadata)

    def encode(self) -> bytes:
        w = BorshWriter().string(self.prover_account).string(self.eth_custodian_address)
        self.metadata.write(w)
        return w.build()


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


class TransactionStatusKind(IntEnum):
    Succeed = 0
    Revert = 1
    OutOfGas = 2
    OutOfFund = 3
    OutOfOffset = 4
    CallTooDeep = 5


@dataclass(frozen=True)
class TransactionStatus:
    kind: TransactionStatusKind
    output: bytes = b""

    @classmethod
    def read(cls, r: BorshReader) -> "TransactionStatus":
        tag = r.u8()
        try:
            kind = TransactionStatusKind(tag)
        except ValueError:
            raise BorshError(f"unknown transaction status tag: {tag}") from None
        if kind in (TransactionStatusKind.Succeed, TransactionStatusKind.Revert):
            return cls(kind, r.bytes())
        return cls(kind)

    @classmethod
    def decode(cls, data: bytes) -> "TransactionStatus":
        r = BorshReader(data)
        status = cls.read(r)
        r.finish()
        return status

    def is_ok(self) -> bool:
        return self.kind is TransactionStatusKind.Succeed

    def result(self) -> Result[bytes, RemoteExecutionFailure]:
        """Output bytes for Succeed/Revert, the variant name as an error otherwise."""
        if self.kind in (TransactionStatusKind.Succeed, TransactionStatusKind.Revert):
            return Ok(self.output)
        return Err(RemoteExecutionFailure(self.kind.name))


@dataclass(frozen=True)
class LogEvent:
    address: bytes
    topics: List[bytes]
    data: bytes

    @classmethod
    def read(cls, r: BorshReader) -> "LogEvent":
        address = r.fixed(ADDRESS_LEN)
        topics = r.vec(lambda r_: r_.fixed(WORD_LEN))
        return cls(address, topics, r.bytes())


@dataclass(frozen=True)
class SubmitResult:
    status: TransactionStatus
    gas_used: int
    logs: List[LogEvent] = field(default_factory=list)

    @classmethod
    def decode(cls, data: bytes) -> "SubmitResult":
        r = BorshReader(data)
        status = TransactionStatus.read(r)
        gas_used = r.u64()
        logs = r.vec(LogEvent.read)
        r.finish()
        return cls(status, gas_used, logs)

    def output(self) -> Result[bytes, RemoteExecutionFailure]:
        return self.status.result()


@dataclass(frozen=True)
class WrappedSubmitResult:
    """A decoded ``submit`` result plus the backend-side facts about its transaction."""

    result: SubmitResult
    gas_burned: Optional[int] = None
    tx: Optional[str] = None


__all__ = [
    "FunctionCallArgs",
    "ViewCallArgs",
    "GetStorageAtArgs",
    "NewCallArgs",
    "FungibleTokenMetadata",
    "InitCallArgs",
    "TransactionStatusKind",
    "TransactionStatus",
    "LogEvent",
    "SubmitResult",
    "WrappedSubmitResult",
]
