"""
Blocks: selectors, metadata, and per-block transaction counts.

Block selectors
---------------
Callers address blocks the Ethereum way (``"latest"``, ``"pending"``,
``"earliest"``, a height, a 0x-prefixed 32-byte hash). :func:`parse_block_id`
turns those into the backend's block query:

- ``"latest"``   -> ``{"finality": "final"}``
- ``"pending"``  -> ``{"finality": "optimistic"}``
- ``"earliest"`` -> ``{"block_id": 0}``
- ``int``        -> ``{"block_id": <height>}``
- ``0x`` + 64 hex digits -> ``{"block_id": <base58 hash>}``
- any other string is taken to already be a base58 hash
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

import base58

from .errors import RemoteGenericFailure
from .logging import get_logger
from .result import Err, Ok, Result
from .rpc.http import RpcError, RpcResponseError

log = get_logger(__name__)

BlockID = Union[int, str]

# tx_root of a chunk without transactions
EMPTY_TX_ROOT = "11111111111111111111111111111111"

_HASH_HEX_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


class _BlockProvider(Protocol):
    async def block(self, block_query: Dict[str, Any]) -> Dict[str, Any]: ...

    async def chunk(self, chunk_hash: str) -> Dict[str, Any]: ...


def parse_block_id(block_id: BlockID) -> Dict[str, Any]:
    if isinstance(block_id, bool):
        raise ValueError(f"invalid block id: {block_id!r}")
    if isinstance(block_id, int):
        if block_id < 0:
            raise ValueError(f"invalid block height: {block_id}")
        return {"block_id": block_id}
    if block_id == "latest":
        return {"finality": "final"}
    if block_id == "pending":
        return {"finality": "optimistic"}
    if block_id == "earliest":
        return {"block_id": 0}
    if _HASH_HEX_RE.match(block_id):
        return {"block_id": base58.b58encode(bytes.fromhex(block_id[2:])).decode("ascii")}
    return {"block_id": block_id}


def _hex_hash(value: str) -> str:
    return "0x" + base58.b58decode(value).hex()


@dataclass(frozen=True)
class Block:
    number: int
    hash: str
    parent_hash: str
    timestamp: int
    gas_limit: int = 0
    gas_used: int = 0
    chunks: List[Dict[str, Any]] = field(default_factory=list, repr=False)

    @classmethod
    def from_rpc(cls, result: Mapping[str, Any]) -> "Block":
        header = result["header"]
        chunks = list(result.get("chunks") or [])
        return cls(
            number=int(header["height"]),
            hash=_hex_hash(header["hash"]),
            parent_hash=_hex_hash(header["prev_hash"]),
            # backend timestamps are nanoseconds
            timestamp=int(header["timestamp"]) // 1_000_000_000,
            gas_limit=sum(int(c.get("gas_limit", 0)) for c in chunks),
            gas_used=sum(int(c.get("gas_used", 0)) for c in chunks),
            chunks=chunks,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "hash": self.hash,
            "parentHash": self.parent_hash,
            "timestamp": self.timestamp,
            "gasLimit": self.gas_limit,
            "gasUsed": self.gas_used,
        }


async def fetch_block(provider: _BlockProvider, block_id: BlockID) -> Result[Block, RemoteGenericFailure]:
    try:
        return Ok(Block.from_rpc(await provider.block(parse_block_id(block_id))))
    except (RpcError, ValueError, KeyError, TypeError) as e:
        return Err(RemoteGenericFailure(str(e)))


def _is_unknown_block(e: RpcResponseError) -> bool:
    return e.cause_name == "UNKNOWN_BLOCK" or "UNKNOWN_BLOCK" in str(e) or "DB Not Found" in str(e)


async def has_block(provider: _BlockProvider, block_id: BlockID) -> Result[bool, RemoteGenericFailure]:
    try:
        await provider.block(parse_block_id(block_id))
    except RpcResponseError as e:
        if _is_unknown_block(e):
            return Ok(False)
        return Err(RemoteGenericFailure(str(e)))
    except (RpcError, ValueError) as e:
        return Err(RemoteGenericFailure(str(e)))
    return Ok(True)


async def _chunk_transaction_count(provider: _BlockProvider, chunk_header: Mapping[str, Any]) -> int:
    if chunk_header.get("tx_root") == EMPTY_TX_ROOT:
        return 0
    chunk = await provider.chunk(chunk_header["chunk_hash"])
    return len(chunk.get("transactions") or [])


async def count_block_transactions(
    provider: _BlockProvider, block_id: BlockID
) -> Result[int, RemoteGenericFailure]:
    """
    Number of transactions in a block.

    Fetches every included chunk concurrently and joins on all of them.
    """
    try:
        block = await provider.block(parse_block_id(block_id))
        chunks: List[Dict[str, Any]] = list(block.get("chunks") or [])
        mask: Optional[List[bool]] = block.get("header", {}).get("chunk_mask")
        included = [c for i, c in enumerate(chunks) if mask is None or (i < len(mask) and mask[i])]
        counts = await asyncio.gather(*(_chunk_transaction_count(provider, c) for c in included))
    except (RpcError, ValueError, KeyError, TypeError) as e:
        log.debug("block_transaction_count_failed", block_id=block_id, error=str(e))
        return Err(RemoteGenericFailure(str(e)))
    return Ok(sum(counts))


__all__ = [
    "BlockID",
    "EMPTY_TX_ROOT",
    "Block",
    "parse_block_id",
    "fetch_block",
    "has_block",
    "count_block_transactions",
]
