"""
Small byte-level helpers shared across aurora_bridge.

- bytes: hex/base64 codecs and fixed-width big-endian integers
- borsh: Borsh writer/reader used for contract arguments and backend txs
"""

from .bytes import (  # noqa: F401
    BytesLike,
    b64decode,
    b64encode,
    ensure_bytes,
    from_hex,
    int_from_be,
    int_to_be,
    to_hex,
)

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
