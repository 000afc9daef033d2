"""
aurora_bridge
=============

An Ethereum-style call surface over an EVM engine contract hosted on the
backend network.

Quick start
-----------
    import asyncio
    from aurora_bridge import Address, Engine

    async def main():
        async with Engine.connect(network="testnet") as engine:
            balance = await engine.get_balance(Address.parse("0x...").unwrap())
            print(balance.unwrap())

    asyncio.run(main())

Every engine method returns ``Ok(value)`` or ``Err(error)``; ``str(error)``
is the reportable message.
"""

from .account import AccountID, Address  # noqa: F401
from .config import DEFAULT_GAS, NETWORKS, EngineSettings, Network  # noqa: F401
from .engine import Engine  # noqa: F401
from .errors import (  # noqa: F401
    ERR_INTRINSIC_GAS,
    ERR_INVALID_TX,
    AuroraBridgeError,
    IntrinsicGasTooLow,
    InvalidAccountID,
    InvalidAddress,
    InvalidRawTransaction,
    RemoteExecutionFailure,
    RemoteGenericFailure,
    RemoteMethodNotFound,
    TransactionErrorDetails,
)
from .result import Err, Ok, Result  # noqa: F401
from .state import AddressState, EngineStorage  # noqa: F401
from .version import __version__  # noqa: F401
from .wallet import KeyPair, KeyStore  # noqa: F401

__all__ = [
    "__version__",
    "AccountID",
    "Address",
    "AddressState",
    "EngineStorage",
    "Engine",
    "EngineSettings",
    "Network",
    "NETWORKS",
    "DEFAULT_GAS",
    "KeyPair",
    "KeyStore",
    "Ok",
    "Err",
    "Result",
    "AuroraBridgeError",
    "TransactionErrorDetails",
    "InvalidAccountID",
    "InvalidAddress",
    "InvalidRawTransaction",
    "IntrinsicGasTooLow",
    "RemoteExecutionFailure",
    "RemoteMethodNotFound",
    "RemoteGenericFailure",
    "ERR_INVALID_TX",
    "ERR_INTRINSIC_GAS",
]
