"""
Collaborators the engine consumes.

Structural protocols, so tests (and alternative transports) can plug in any
object with the right coroutine methods. :class:`~aurora_bridge.rpc.NearRpc`
satisfies :class:`Provider`; :class:`~aurora_bridge.tx.NearAccount` satisfies
:class:`SigningAccount`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, runtime_checkable

from .state import StateRecord


@runtime_checkable
class Provider(Protocol):
    async def query(self, request: Dict[str, Any]) -> Dict[str, Any]: ...

    async def tx_status(self, tx_hash: str, account_id: str) -> Dict[str, Any]: ...

    async def block(self, block_query: Dict[str, Any]) -> Dict[str, Any]: ...

    async def chunk(self, chunk_hash: str) -> Dict[str, Any]: ...

    async def send_transaction(self, signed_tx: bytes) -> Dict[str, Any]: ...


@runtime_checkable
class SigningAccount(Protocol):
    account_id: str

    async def state(self) -> Dict[str, Any]: ...

    async def view_state(self, prefix: bytes = b"", *, finality: str = "final") -> List[StateRecord]: ...

    async def function_call(
        self,
        contract_id: str,
        method_name: str,
        args: bytes,
        gas: int,
        deposit: int = 0,
    ) -> Dict[str, Any]: ...

    async def deploy_contract(self, code: bytes) -> Dict[str, Any]: ...


__all__ = ["Provider", "SigningAccount"]
