"""
Minimal Borsh encoder/decoder.

Borsh is the binary layout used both by the engine contract for its call
arguments/results and by the backend for signed transactions. We only need a
small subset, so this stays self-contained:

- fixed-width little-endian unsigned ints (u8, u32, u64, u128)
- fixed-size byte arrays (written verbatim)
- ``Vec<u8>`` / ``String``: u32 length prefix + payload
- ``Option<T>``: u8 tag (0 = None, 1 = Some) + payload
- enums: u8 variant index + payload

API
---
- BorshWriter().u8(..).string(..).bytes(..).build() -> bytes
- BorshReader(data).u8() / .u64() / .bytes() / .fixed(n) / .finish()
- BorshError
"""

from __future__ import annotations

import struct
from typing import Callable, List, Optional, TypeVar

from .bytes import BytesLike

T = TypeVar("T")


class BorshError(ValueError):
    pass


# -----------------------------------------------------------------------------
# Writer
# -----------------------------------------------------------------------------


class BorshWriter:
    def __init__(self) -> None:
        self._buf = bytearray()

    def u8(self, value: int) -> "BorshWriter":
        return self._pack("<B", value)

    def u32(self, value: int) -> "BorshWriter":
        return self._pack("<I", value)

    def u64(self, value: int) -> "BorshWriter":
        return self._pack("<Q", value)

    def u128(self, value: int) -> "BorshWriter":
        if not 0 <= value < (1 << 128):
            raise BorshError(f"u128 out of range: {value}")
        self._buf += int(value).to_bytes(16, "little")
        return self

    def fixed(self, data: BytesLike, size: int) -> "BorshWriter":
        data = bytes(data)
        if len(data) != size:
            raise BorshError(f"expected {size} bytes, got {len(data)}")
        self._buf += data
        return self

    def bytes(self, data: BytesLike) -> "BorshWriter":
        data = bytes(data)
        self.u32(len(data))
        self._buf += data
        return self

    def string(self, value: str) -> "BorshWriter":
        return self.bytes(value.encode("utf-8"))

    def option(self, value: Optional[T], write: Callable[["BorshWriter", T], object]) -> "BorshWriter":
        if value is None:
            return self.u8(0)
        self.u8(1)
        write(self, value)
        return self

    def raw(self, data: BytesLike) -> "BorshWriter":
        self._buf += bytes(data)
        return self

    def build(self) -> bytes:
        return bytes(self._buf)

    def _pack(self, fmt: str, value: int) -> "BorshWriter":
        try:
            self._buf += struct.pack(fmt, value)
        except struct.error as e:
            raise BorshError(f"cannot encode {value!r} as {fmt}: {e}") from e
        return self


# -----------------------------------------------------------------------------
# Reader
# -----------------------------------------------------------------------------


class BorshReader:
    def __init__(self, data: BytesLike) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def u8(self) -> int:
        return self._unpack("<B", 1)

    def u32(self) -> int:
        return self._unpack("<I", 4)

    def u64(self) -> int:
        return self._unpack("<Q", 8)

    def u128(self) -> int:
        return int.from_bytes(self.fixed(16), "little")

    def fixed(self, size: int) -> bytes:
        if self.remaining < size:
            raise BorshError(f"truncated input: need {size} bytes at offset {self._pos}")
        out = self._data[self._pos : self._pos + size]
        self._pos += size
        return out

    def bytes(self) -> bytes:
        return self.fixed(self.u32())

    def string(self) -> str:
        try:
            return self.bytes().decode("utf-8")
        except UnicodeDecodeError as e:
            raise BorshError(f"invalid utf-8 string: {e}") from e

    def vec(self, read: Callable[["BorshReader"], T]) -> List[T]:
        return [read(self) for _ in range(self.u32())]

    def finish(self) -> None:
        """Assert the whole buffer was consumed."""
        if self.remaining:
            raise BorshError(f"{self.remaining} trailing bytes after decode")

    def _unpack(self, fmt: str, size: int) -> int:
        return struct.unpack(fmt, self.fixed(size))[0]


__all__ = ["BorshError", "BorshWriter", "BorshReader"]
