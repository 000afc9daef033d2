from __future__ import annotations

import base64
import binascii
from typing import Optional, Union

BytesLike = Union[bytes, bytearray, memoryview]


def ensure_bytes(data: Optional[Union[BytesLike, str]]) -> bytes:
    """
    Ensure input is bytes.

    Accepts:
      - None                            -> b"" (omitted call arguments)
      - bytes / bytearray / memoryview  -> bytes(data)
      - str: treated as hex; optional '0x' prefix; even-length enforced

    Raises:
      ValueError on invalid hex strings.
    """
    if data is None:
        return b""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return from_hex(data)
    raise TypeError(f"Unsupported type for ensure_bytes: {type(data)!r}")


def to_hex(b: BytesLike, prefix: bool = True) -> str:
    """
    Bytes -> hex string (lowercase). Prefix with '0x' by default.
    """
    s = bytes(b).hex()
    return f"0x{s}" if prefix else s


def from_hex(s: str) -> bytes:
    """
    Hex string (optionally '0x' prefixed) -> bytes.

    Enforces even-length (nibbles must pair to bytes) and lowercase/uppercase agnostic.
    """
    if not isinstance(s, str):
        raise TypeError("from_hex expects a string")
    if s.startswith(("0x", "0X")):
        s = s[2:]
    if len(s) % 2 != 0:
        raise ValueError("hex string must have even length")
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {e}") from e


def b64encode(b: BytesLike) -> str:
    return base64.b64encode(bytes(b)).decode("ascii")


def b64decode(s: Union[str, bytes]) -> bytes:
    try:
        return base64.b64decode(s, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e


# --- Fixed-width big-endian integers -----------------------------------------


def int_from_be(b: BytesLike) -> int:
    """Big-endian unsigned bytes -> int. Empty input decodes to 0."""
    return int.from_bytes(bytes(b), "big")


def int_to_be(n: int, width: int = 32) -> bytes:
    """
    int -> fixed-width big-endian unsigned bytes (default 32 bytes / u256).

    Raises:
      ValueError if `n` is negative or does not fit in `width` bytes.
    """
    if n < 0:
        raise ValueError("int_to_be expects a non-negative integer")
    try:
        return int(n).to_bytes(width, "big")
    except OverflowError as e:
        raise ValueError(f"integer does not fit in {width} bytes") from e


__all__ = [
    "BytesLike",
    "ensure_bytes",
    "to_hex",
    "from_hex",
    "b64encode",
    "b64decode",
    "int_from_be",
    "int_to_be",
]
