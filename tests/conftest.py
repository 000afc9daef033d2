"""
Shared pytest fixtures:
- FakeProvider: in-memory backend RPC recording every call
- FakeSigner:   signing account whose next outcome/exception is scripted
- engine:       an Engine wired to both fakes and a fresh KeyStore
- outcome helpers for building backend-shaped transaction outcomes
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import base58
import pytest
import structlog

from aurora_bridge.account import AccountID
from aurora_bridge.engine import Engine
from aurora_bridge.logging import ROOT_LOGGER
from aurora_bridge.wallet.keystore import KeyStore

CONTRACT_ID = "aurora.test.near"
SIGNER_ID = "relayer.test.near"
NETWORK_ID = "local"

TX_HASH = b"\xab" * 32
TX_REF = "9RxGTzyoMJkYqWE6ZufEmZKjWgNrn2xHjaF5eyXRqZ8m"


class FakeProvider:
    """
    Minimal in-memory backend implementing the collaborator protocol.

    ``query_handler`` / ``block_handler`` are optional callables deciding the
    response; ``tx_statuses`` maps a transaction reference to its status.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Any]] = []
        self.query_handler: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
        self.block_handler: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
        self.chunks: Dict[str, Dict[str, Any]] = {}
        self.tx_statuses: Dict[str, Dict[str, Any]] = {}
        self.tx_status_error: Optional[Exception] = None

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    async def query(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("query", request))
        if self.query_handler is None:
            return {"result": [], "logs": []}
        return self.query_handler(request)

    async def tx_status(self, tx_hash: str, account_id: str) -> Dict[str, Any]:
        self.calls.append(("tx", (tx_hash, account_id)))
        if self.tx_status_error is not None:
            raise self.tx_status_error
        return self.tx_statuses[tx_hash]

    async def block(self, block_query: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("block", block_query))
        assert self.block_handler is not None
        return self.block_handler(block_query)

    async def chunk(self, chunk_hash: str) -> Dict[str, Any]:
        self.calls.append(("chunk", chunk_hash))
        return self.chunks[chunk_hash]

    async def send_transaction(self, signed_tx: bytes) -> Dict[str, Any]:
        self.calls.append(("broadcast_tx_commit", signed_tx))
        raise AssertionError("FakeProvider does not broadcast")


class FakeSigner:
    """Signing account returning ``outcome`` or raising ``error``."""

    def __init__(self, account_id: str = SIGNER_ID) -> None:
        self.account_id = account_id
        self.calls: List[Tuple[str, str, bytes, int]] = []
        self.outcome: Dict[str, Any] = {}
        self.error: Optional[Exception] = None

    async def state(self) -> Dict[str, Any]:
        return {}

    async def view_state(self, prefix: bytes = b"", *, finality: str = "final") -> list:
        return []

    async def function_call(self, contract_id, method_name, args, gas, deposit=0):
        self.calls.append((contract_id, method_name, bytes(args), gas))
        if self.error is not None:
            raise self.error
        return self.outcome

    async def deploy_contract(self, code: bytes) -> Dict[str, Any]:
        raise AssertionError("FakeSigner does not deploy")


def success_outcome(value: bytes = b"", tx: str = TX_REF) -> Dict[str, Any]:
    return {
        "status": {"SuccessValue": base64.b64encode(value).decode("ascii")},
        "transaction": {"hash": base58.b58encode(TX_HASH).decode("ascii")},
        "transaction_outcome": {"id": tx, "outcome": {"gas_burnt": 5}},
        "receipts_outcome": [],
    }


def tx_status(tx_gas: int, *receipt_gas: int) -> Dict[str, Any]:
    return {
        "transaction_outcome": {"id": TX_REF, "outcome": {"gas_burnt": tx_gas}},
        "receipts_outcome": [{"id": f"r{i}", "outcome": {"gas_burnt": g}} for i, g in enumerate(receipt_gas)],
    }


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()
    package_logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def key_store() -> KeyStore:
    return KeyStore(NETWORK_ID)


@pytest.fixture
def engine(provider: FakeProvider, signer: FakeSigner, key_store: KeyStore) -> Engine:
    return Engine(provider, key_store, signer, NETWORK_ID, AccountID(CONTRACT_ID))


@pytest.fixture
def make_success_outcome() -> Callable[..., Dict[str, Any]]:
    return success_outcome


@pytest.fixture
def make_tx_status() -> Callable[..., Dict[str, Any]]:
    return tx_status
