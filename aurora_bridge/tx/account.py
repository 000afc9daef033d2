"""
A signing account on the backend network.

:class:`NearAccount` turns "call method M on contract C" into a signed
backend transaction:

1. ask the key store for the account's current key (the store decides which
   key of a pool this is, see :mod:`aurora_bridge.wallet.keystore`);
2. look up that access key's nonce and a recent final block hash;
3. build, sign and broadcast the transaction, waiting for the final outcome;
4. raise :class:`~aurora_bridge.tx.outcome.ServerTransactionError` if the
   outcome's status is a ``Failure``.

It also exposes the read primitives the engine needs about the account
itself: ``state()`` and the full-state scan ``view_state()``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, Sequence

import base58

from ..errors import KeyStoreError
from ..logging import get_logger
from ..state import StateRecord
from ..utils.bytes import b64decode, b64encode
from ..wallet.keystore import KeyStoreBackend
from .near import Action, DeployContract, FunctionCall, build_transaction, sign_transaction
from .outcome import ServerTransactionError, decode_failure

log = get_logger(__name__)


class _Provider(Protocol):
    async def query(self, request: Dict[str, Any]) -> Dict[str, Any]: ...

    async def send_transaction(self, signed_tx: bytes) -> Dict[str, Any]: ...


class NearAccount:
    def __init__(self, provider: _Provider, account_id: str, key_store: KeyStoreBackend, network_id: str) -> None:
        self.provider = provider
        self.account_id = account_id
        self.key_store = key_store
        self.network_id = network_id

    # ---------- reads ----------

    async def state(self) -> Dict[str, Any]:
        """``view_account``: amount, code hash, storage usage, block hash/height."""
        return await self.provider.query(
            {"request_type": "view_account", "account_id": self.account_id, "finality": "final"}
        )

    async def view_state(self, prefix: bytes = b"", *, finality: str = "final") -> List[StateRecord]:
        """Every contract storage record whose key starts with ``prefix``."""
        result = await self.provider.query(
            {
                "request_type": "view_state",
                "account_id": self.account_id,
                "prefix_base64": b64encode(prefix),
                "finality": finality,
            }
        )
        return [StateRecord(b64decode(v["key"]), b64decode(v["value"])) for v in result.get("values", [])]

    # ---------- mutations ----------

    async def function_call(
        self,
        contract_id: str,
        method_name: str,
        args: bytes,
        gas: int,
        deposit: int = 0,
    ) -> Dict[str, Any]:
        return await self.sign_and_send(contract_id, [FunctionCall(method_name, bytes(args), gas, deposit)])

    async def deploy_contract(self, code: bytes) -> Dict[str, Any]:
        return await self.sign_and_send(self.account_id, [DeployContract(bytes(code))])

    async def sign_and_send(self, receiver_id: str, actions: Sequence[Action]) -> Dict[str, Any]:
        key_pair = self.key_store.get_key(self.network_id, self.account_id)
        if key_pair is None:
            raise KeyStoreError(f"no signing key for {self.account_id!r} on network {self.network_id!r}")

        access_key = await self.provider.query(
            {
                "request_type": "view_access_key",
                "account_id": self.account_id,
                "public_key": key_pair.public_key,
                "finality": "final",
            }
        )
        nonce = int(access_key["nonce"]) + 1
        block_hash = base58.b58decode(access_key["block_hash"])

        tx = build_transaction(self.account_id, key_pair, nonce, receiver_id, block_hash, actions)
        tx_hash, signed = sign_transaction(tx, key_pair)
        log.debug(
            "transaction_signed",
            signer=self.account_id,
            receiver=receiver_id,
            public_key=key_pair.public_key,
            nonce=nonce,
            tx=base58.b58encode(tx_hash).decode("ascii"),
        )

        outcome = await self.provider.send_transaction(signed)
        failure = decode_failure(outcome)
        if failure is not None:
            raise ServerTransactionError(failure, outcome)
        return outcome

    def __repr__(self) -> str:
        return f"NearAccount({self.account_id!r})"


__all__ = ["NearAccount"]
