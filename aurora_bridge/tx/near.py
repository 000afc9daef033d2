"""
Backend transaction building and signing.

Layout (Borsh)
--------------
    Transaction {
        signer_id:   String,
        public_key:  u8 key_type || [u8; 32],
        nonce:       u64,
        receiver_id: String,
        block_hash:  [u8; 32],
        actions:     Vec<Action>,
    }
    SignedTransaction { transaction, signature: u8 key_type || [u8; 64] }

The signature covers ``sha256(borsh(Transaction))``; that digest is also the
transaction hash the backend reports.

Only the two actions the bridge issues are modelled: ``DeployContract``
(variant 1) and ``FunctionCall`` (variant 2).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from ..utils.borsh import BorshWriter
from ..wallet.keypair import KEY_TYPE_ED25519, SIGNATURE_LEN, KeyPair

ACTION_DEPLOY_CONTRACT = 1
ACTION_FUNCTION_CALL = 2

BLOCK_HASH_LEN = 32


@dataclass(frozen=True)
class DeployContract:
    code: bytes

    def write(self, w: BorshWriter) -> None:
        w.u8(ACTION_DEPLOY_CONTRACT).bytes(self.code)


@dataclass(frozen=True)
class FunctionCall:
    method_name: str
    args: bytes
    gas: int
    deposit: int = 0

    def write(self, w: BorshWriter) -> None:
        w.u8(ACTION_FUNCTION_CALL).string(self.method_name).bytes(self.args).u64(self.gas).u128(self.deposit)


Action = Union[DeployContract, FunctionCall]


@dataclass(frozen=True)
class Transaction:
    signer_id: str
    public_key: bytes
    nonce: int
    receiver_id: str
    block_hash: bytes
    actions: Tuple[Action, ...]

    def serialize(self) -> bytes:
        w = BorshWriter()
        w.string(self.signer_id)
        w.u8(KEY_TYPE_ED25519).fixed(self.public_key, 32)
        w.u64(self.nonce)
        w.string(self.receiver_id)
        w.fixed(self.block_hash, BLOCK_HASH_LEN)
        w.u32(len(self.actions))
        for action in self.actions:
            action.write(w)
        return w.build()


def build_transaction(
    signer_id: str,
    key_pair: KeyPair,
    nonce: int,
    receiver_id: str,
    block_hash: bytes,
    actions: Sequence[Action],
) -> Transaction:
    return Transaction(
        signer_id=signer_id,
        public_key=key_pair.public_key_bytes,
        nonce=nonce,
        receiver_id=receiver_id,
        block_hash=bytes(block_hash),
        actions=tuple(actions),
    )


def sign_transaction(tx: Transaction, key_pair: KeyPair) -> Tuple[bytes, bytes]:
    """
    Sign ``tx`` with ``key_pair``.

    Returns ``(tx_hash, signed_transaction_bytes)``.
    """
    body = tx.serialize()
    tx_hash = hashlib.sha256(body).digest()
    signature = key_pair.sign(tx_hash)
    signed = BorshWriter().raw(body).u8(KEY_TYPE_ED25519).fixed(signature, SIGNATURE_LEN).build()
    return tx_hash, signed


__all__ = [
    "DeployContract",
    "FunctionCall",
    "Action",
    "Transaction",
    "build_transaction",
    "sign_transaction",
]
