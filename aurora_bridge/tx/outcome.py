"""
aurora_bridge.tx.outcome
========================

What a mutating call leaves behind.

- :class:`TransactionID`      32-byte backend transaction hash
- :class:`TransactionOutcome` id, raw output, gas burned, backend tx reference
- :class:`TxFailure`          tagged decode of a backend ``Failure`` status

Failure decoding
----------------
A final outcome whose ``status`` is ``{"Failure": ...}`` is decoded once, at
this boundary, into one of three kinds:

- ``FailureKind.EXECUTION``         the contract ran and aborted
  (``ActionError.kind.FunctionCallError.ExecutionError``)
- ``FailureKind.METHOD_NOT_FOUND``  the contract has no such method
  (``FunctionCallError.MethodResolveError == "MethodNotFound"``)
- ``FailureKind.OTHER``             anything else (invalid tx, missing
  account, compilation errors, unknown shapes)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import base58

from ..utils.bytes import from_hex

TX_HASH_LEN = 32


@dataclass(frozen=True)
class TransactionID:
    raw: bytes

    @classmethod
    def zero(cls) -> "TransactionID":
        return cls(b"\x00" * TX_HASH_LEN)

    @classmethod
    def from_base58(cls, value: str) -> "TransactionID":
        return cls(base58.b58decode(value))

    @classmethod
    def from_hex(cls, value: str) -> "TransactionID":
        return cls(from_hex(value))

    @property
    def base58(self) -> str:
        return base58.b58encode(self.raw).decode("ascii")

    def to_hex(self) -> str:
        return "0x" + self.raw.hex()

    def __str__(self) -> str:
        return self.to_hex()


@dataclass(frozen=True)
class TransactionOutcome:
    id: TransactionID
    output: bytes
    gas_burned: Optional[int] = None
    tx: Optional[str] = None


# -----------------------------------------------------------------------------
# Failure decoding
# -----------------------------------------------------------------------------


class FailureKind(str, Enum):
    EXECUTION = "FunctionCallError"
    METHOD_NOT_FOUND = "MethodNotFound"
    OTHER = "Other"


@dataclass(frozen=True)
class TxFailure:
    kind: FailureKind
    message: str
    tx: Optional[str] = None


class ServerTransactionError(Exception):
    """Raised by the signing account when a transaction's final status is a Failure."""

    def __init__(self, failure: TxFailure, outcome: Optional[Mapping[str, Any]] = None):
        super().__init__(failure.message)
        self.failure = failure
        self.outcome = dict(outcome or {})


def _transaction_ref(outcome: Mapping[str, Any]) -> Optional[str]:
    transaction_outcome = outcome.get("transaction_outcome")
    if isinstance(transaction_outcome, dict) and isinstance(transaction_outcome.get("id"), str):
        return transaction_outcome["id"]
    return None


def decode_failure(outcome: Mapping[str, Any]) -> Optional[TxFailure]:
    """
    Decode the ``status`` of a final execution outcome.

    Returns None when the status is not a ``Failure``.
    """
    status = outcome.get("status")
    if not isinstance(status, dict) or "Failure" not in status:
        return None
    tx = _transaction_ref(outcome)
    failure = status["Failure"]

    kind: Dict[str, Any] = {}
    if isinstance(failure, dict):
        action_error = failure.get("ActionError")
        if isinstance(action_error, dict) and isinstance(action_error.get("kind"), dict):
            kind = action_error["kind"]

    call_error = kind.get("FunctionCallError")
    if isinstance(call_error, dict):
        if isinstance(call_error.get("ExecutionError"), str):
            return TxFailure(FailureKind.EXECUTION, call_error["ExecutionError"], tx)
        if call_error.get("MethodResolveError") == "MethodNotFound":
            return TxFailure(FailureKind.METHOD_NOT_FOUND, "Contract method is not found", tx)
        return TxFailure(FailureKind.EXECUTION, json.dumps(call_error, separators=(",", ":")), tx)

    return TxFailure(FailureKind.OTHER, json.dumps(failure, separators=(",", ":")), tx)


__all__ = [
    "TransactionID",
    "TransactionOutcome",
    "FailureKind",
    "TxFailure",
    "ServerTransactionError",
    "decode_failure",
]
