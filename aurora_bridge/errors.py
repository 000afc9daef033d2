"""
Typed error classes for aurora-bridge.

The engine never lets these escape its public methods: they are carried as
values inside ``Err(...)`` (see :mod:`aurora_bridge.result`). They are still
real exceptions so lower layers (key stores, the signing account, parsers)
can raise them and the engine boundary can catch them by type.

Taxonomy
--------
- InvalidAccountID        malformed backend account identifier
- InvalidAddress          malformed 20-byte EVM address
- InvalidRawTransaction   ``ERR_INVALID_TX``; raw tx failed to parse
- IntrinsicGasTooLow      ``ERR_INTRINSIC_GAS``; gas limit below 21000
- RemoteExecutionFailure  the contract aborted; carries tx + gas details
- RemoteMethodNotFound    the contract has no such method
- RemoteGenericFailure    anything else the backend reported
- GasAccountingUnavailable  internal; absorbed by the gas accountant

``str(error)`` is the reportable boundary string: the message, followed by
``|`` and a compact JSON details object when details are attached.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

__all__ = [
    "AuroraBridgeError",
    "TransactionErrorDetails",
    "InvalidAccountID",
    "InvalidAddress",
    "InvalidRawTransaction",
    "IntrinsicGasTooLow",
    "RemoteExecutionFailure",
    "RemoteMethodNotFound",
    "RemoteGenericFailure",
    "GasAccountingUnavailable",
    "ConfigError",
    "KeyStoreError",
    "ERR_INVALID_TX",
    "ERR_INTRINSIC_GAS",
]

ERR_INVALID_TX = "ERR_INVALID_TX"
ERR_INTRINSIC_GAS = "ERR_INTRINSIC_GAS"


@dataclass(frozen=True)
class TransactionErrorDetails:
    """Structured details attached to failed mutating calls."""

    tx: Optional[str] = None
    gas_burned: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.tx is not None:
            out["tx"] = self.tx
        if self.gas_burned is not None:
            out["gasBurned"] = self.gas_burned
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


@dataclass
class AuroraBridgeError(Exception):
    """Base class for all aurora-bridge errors."""

    message: str
    details: Optional[TransactionErrorDetails] = None

    code = "error"

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details is None:
            return self.message
        return f"{self.message}|{self.details.to_json()}"


@dataclass
class InvalidAccountID(AuroraBridgeError):
    code = "invalid_account_id"


@dataclass
class InvalidAddress(AuroraBridgeError):
    code = "invalid_address"


@dataclass
class InvalidRawTransaction(AuroraBridgeError):
    message: str = ERR_INVALID_TX
    reason: Optional[str] = None

    code = "invalid_raw_transaction"


@dataclass
class IntrinsicGasTooLow(AuroraBridgeError):
    message: str = ERR_INTRINSIC_GAS
    gas_limit: Optional[int] = None

    code = "intrinsic_gas_too_low"


@dataclass
class RemoteExecutionFailure(AuroraBridgeError):
    code = "remote_execution_failure"


@dataclass
class RemoteMethodNotFound(AuroraBridgeError):
    code = "remote_method_not_found"


@dataclass
class RemoteGenericFailure(AuroraBridgeError):
    code = "remote_generic_failure"


@dataclass
class GasAccountingUnavailable(AuroraBridgeError):
    code = "gas_accounting_unavailable"


@dataclass
class ConfigError(AuroraBridgeError):
    code = "config_error"


@dataclass
class KeyStoreError(AuroraBridgeError):
    code = "key_store_error"
