"""
aurora_bridge.tx: transactions on both sides of the bridge.

- raw:     parse raw EVM transactions (pre-checks for ``submit``)
- near:    build and sign backend transactions
- account: signing account (function calls, deploys, state scans)
- outcome: transaction ids, outcomes, failure decoding
"""

from .account import NearAccount  # noqa: F401
from .near import DeployContract, FunctionCall, build_transaction, sign_transaction  # noqa: F401
from .outcome import (  # noqa: F401
    FailureKind,
    ServerTransactionError,
    TransactionID,
    TransactionOutcome,
    TxFailure,
    decode_failure,
)
from .raw import INTRINSIC_GAS, RawTransactionError, parse_raw_transaction  # noqa: F401

__all__ = [
    "NearAccount",
    "DeployContract",
    "FunctionCall",
    "build_transaction",
    "sign_transaction",
    "FailureKind",
    "ServerTransactionError",
    "TransactionID",
    "TransactionOutcome",
    "TxFailure",
    "decode_failure",
    "INTRINSIC_GAS",
    "RawTransactionError",
    "parse_raw_transaction",
]
