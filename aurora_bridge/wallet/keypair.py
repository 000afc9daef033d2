"""
Ed25519 key pairs in the backend's textual form.

Keys are written as ``ed25519:<base58>``. The secret part is either the
32-byte seed or the 64-byte ``seed || public_key`` form produced by the
backend CLI; both load to the same key pair.

A :class:`KeyPair` is opaque to the rest of the bridge except for identity:
two key pairs are equal when their secret keys are equal.
"""

from __future__ import annotations

from typing import Optional

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..errors import KeyStoreError

CURVE = "ed25519"
SEED_LEN = 32
PUBLIC_KEY_LEN = 32
SIGNATURE_LEN = 64

# Borsh key-type tag for ed25519 in backend transactions.
KEY_TYPE_ED25519 = 0


def _split_key_string(value: str) -> tuple[str, str]:
    if ":" in value:
        curve, _, data = value.partition(":")
        return curve.lower(), data
    return CURVE, value


class KeyPair:
    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._sk = private_key
        self._seed = private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        self._pk = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    # ---------- constructors ----------

    @classmethod
    def from_random(cls) -> "KeyPair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "KeyPair":
        if len(seed) != SEED_LEN:
            raise KeyStoreError(f"ed25519 seed must be {SEED_LEN} bytes, got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(bytes(seed)))

    @classmethod
    def from_string(cls, value: str) -> "KeyPair":
        """Parse ``ed25519:<base58 secret>`` (curve prefix optional)."""
        curve, data = _split_key_string(value.strip())
        if curve != CURVE:
            raise KeyStoreError(f"unsupported key curve: {curve!r}")
        try:
            secret = base58.b58decode(data)
        except ValueError as e:
            raise KeyStoreError(f"invalid base58 secret key: {e}") from e
        if len(secret) not in (SEED_LEN, SEED_LEN + PUBLIC_KEY_LEN):
            raise KeyStoreError(f"invalid ed25519 secret key length: {len(secret)}")
        kp = cls.from_seed(secret[:SEED_LEN])
        if len(secret) > SEED_LEN and secret[SEED_LEN:] != kp.public_key_bytes:
            raise KeyStoreError("secret key does not match its embedded public key")
        return kp

    # ---------- accessors ----------

    @property
    def public_key_bytes(self) -> bytes:
        return self._pk

    @property
    def public_key(self) -> str:
        return f"{CURVE}:{base58.b58encode(self._pk).decode('ascii')}"

    @property
    def secret_key(self) -> str:
        return f"{CURVE}:{base58.b58encode(self._seed + self._pk).decode('ascii')}"

    # ---------- signing ----------

    def sign(self, message: bytes) -> bytes:
        return self._sk.sign(bytes(message))

    def verify(self, message: bytes, signature: bytes, public_key: Optional[bytes] = None) -> bool:
        pk = Ed25519PublicKey.from_public_bytes(public_key or self._pk)
        try:
            pk.verify(bytes(signature), bytes(message))
            return True
        except InvalidSignature:
            return False

    # ---------- identity ----------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyPair):
            return NotImplemented
        return self._seed == other._seed

    def __hash__(self) -> int:
        return hash(self._seed)

    def __repr__(self) -> str:
        return f"KeyPair({self.public_key})"


__all__ = ["KeyPair", "KEY_TYPE_ED25519", "SIGNATURE_LEN"]
